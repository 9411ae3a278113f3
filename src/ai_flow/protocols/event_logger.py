"""Event logger protocol.

Components log through an injected EventLogger instead of a module-level
logger so tests can capture records without touching handlers or files.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EventLogger(Protocol):
    """Protocol for structured key/value logging."""

    def debug(self, event: str, **fields: Any) -> None: ...

    def info(self, event: str, **fields: Any) -> None: ...

    def warning(self, event: str, **fields: Any) -> None: ...

    def error(self, event: str, **fields: Any) -> None: ...
