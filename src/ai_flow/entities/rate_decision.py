"""Rate limiter decision entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RateDecision:
    """Outcome of a rate limiter check.

    Attributes:
        allowed: Whether the request may proceed
        reset_seconds: Seconds until the oldest counted request leaves the
            window (only set when the request is rejected)
    """

    allowed: bool
    reset_seconds: int | None = None
