import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import MovingWindowRateLimiter

from ai_flow.entities import RateDecision


class RateLimiter:
    """Per-identity request limiter over a trailing time window.

    Built on the ``limits`` moving-window strategy: a request is accepted
    while fewer than ``max_requests`` accepted requests from the same
    identity fall inside the last ``window_seconds``. Rejected requests are
    not recorded.

    Entries live in a ``limits`` storage (in-memory by default), which
    expires them once they leave the window, so idle identities do not
    accumulate.
    """

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: int = 60,
        storage_uri: str = "memory://",
        storage: Storage | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            max_requests: Requests allowed per identity within one window.
            window_seconds: Length of the trailing window in whole seconds.
            storage_uri: ``limits`` storage URI, used when ``storage`` is None.
            storage: Ready-made ``limits`` storage.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")

        self._item = RateLimitItemPerSecond(max_requests, int(window_seconds))
        self._storage = storage or storage_from_string(storage_uri)
        self._strategy = MovingWindowRateLimiter(self._storage)

    @classmethod
    def from_settings(cls, settings) -> "RateLimiter":
        return cls(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            storage_uri=settings.rate_limit_storage_uri,
        )

    def allow(self, identity: str) -> RateDecision:
        """Check and record a request from ``identity``."""
        if self._strategy.hit(self._item, identity):
            return RateDecision(allowed=True)

        # reset_time is when the oldest counted request leaves the window
        stats = self._strategy.get_window_stats(self._item, identity)
        reset = math.ceil(stats.reset_time - time.time())
        return RateDecision(allowed=False, reset_seconds=min(max(1, reset), self.window_seconds))

    def remaining(self, identity: str) -> int:
        """Requests ``identity`` may still make in the current window."""
        return self._strategy.get_window_stats(self._item, identity).remaining

    def reset(self, identity: str | None = None) -> None:
        """Forget one identity, or every identity when none is given."""
        if identity is None:
            self._storage.reset()
        else:
            self._storage.clear(self._item.key_for(identity))

    @property
    def max_requests(self) -> int:
        return self._item.amount

    @property
    def window_seconds(self) -> int:
        return self._item.get_expiry()
