"""Logging setup and the structured logger handed to components."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s  %(levelname)-7s  %(name)-24s │ %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure console logging for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _render(event: str, fields: dict[str, Any]) -> str:
    if not fields:
        return event
    pairs = " ".join(f"{key}={value!r}" for key, value in fields.items())
    return f"{event} | {pairs}"


class StructuredLogger:
    """EventLogger backed by the standard library ``logging`` module.

    Fields are rendered into the message as ``key=value`` pairs and also
    attached to the record under ``extra["fields"]`` so handlers that emit
    JSON can pick them up unchanged.
    """

    def __init__(self, name: str = "ai_flow") -> None:
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, _render(event, fields), extra={"fields": fields})

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, fields)
