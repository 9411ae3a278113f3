"""Translation of internal failures into client-facing errors.

The mapping is total: every exception produces exactly one StructuredError.
Rules are checked in order and the first ``isinstance`` match wins, so more
specific exception types must come before their bases.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import status

from ai_flow.errors import (
    AppError,
    CompletionAuthError,
    CompletionConfigError,
    CompletionError,
    CompletionRateLimitError,
    CompletionUnavailableError,
    DuplicateEntryError,
    ErrorCode,
    ModelNotAllowedError,
    StoreError,
    StoreUnavailableError,
    StoreValidationError,
)


class Operation(str, Enum):
    """What the request was doing when it failed."""

    COMPLETION = "completion"
    SAVE = "save"
    LIST = "list"
    OTHER = "other"


@dataclass(frozen=True)
class StructuredError:
    """A classified failure ready to be sent to the client."""

    status_code: int
    code: ErrorCode
    message: str
    details: Any = None
    extra: dict[str, Any] | None = None

    def to_body(self) -> dict[str, Any]:
        error: dict[str, Any] = {"message": self.message, "code": self.code.value}
        if self.extra:
            error.update(self.extra)
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


_RULES: list[tuple[type[BaseException], int, ErrorCode, str]] = [
    # Completion client
    (CompletionConfigError, 500, ErrorCode.AI_CONFIG_ERROR, "AI service configuration error"),
    (ModelNotAllowedError, 500, ErrorCode.AI_CONFIG_ERROR, "AI service configuration error"),
    (CompletionAuthError, 401, ErrorCode.AI_AUTH_ERROR, "AI service authentication failed"),
    (
        CompletionRateLimitError,
        429,
        ErrorCode.AI_RATE_LIMIT,
        "AI service rate limit exceeded. Please try again later",
    ),
    (
        CompletionUnavailableError,
        503,
        ErrorCode.AI_SERVICE_UNAVAILABLE,
        "AI service temporarily unavailable",
    ),
    (CompletionError, 500, ErrorCode.AI_PROCESSING_ERROR, "Failed to process AI request"),
    # Persistence gateway
    (StoreValidationError, 400, ErrorCode.VALIDATION_ERROR, "Validation failed"),
    (StoreUnavailableError, 503, ErrorCode.DATABASE_UNAVAILABLE, "Database temporarily unavailable"),
    (DuplicateEntryError, 409, ErrorCode.DUPLICATE_ENTRY, "Duplicate entry detected"),
]

_STORE_FAILURE_MESSAGES: dict[Operation, str] = {
    Operation.SAVE: "Failed to save prompt-response pair",
    Operation.LIST: "Failed to load prompt-response pairs",
}

_FALLBACKS: dict[Operation, tuple[ErrorCode, str]] = {
    Operation.COMPLETION: (ErrorCode.AI_PROCESSING_ERROR, "Failed to process AI request"),
    Operation.SAVE: (ErrorCode.DATABASE_ERROR, "Failed to save prompt-response pair"),
    Operation.LIST: (ErrorCode.DATABASE_ERROR, "Failed to load prompt-response pairs"),
    Operation.OTHER: (ErrorCode.INTERNAL_ERROR, "Internal server error"),
}


class ErrorTranslator:
    """Maps exceptions to (status, code, message).

    Raw exception text is attached as ``details`` only when ``debug`` is
    enabled; otherwise clients only see the fixed messages above.
    """

    def __init__(self, debug: bool = False) -> None:
        self._debug = debug

    @property
    def debug(self) -> bool:
        return self._debug

    def translate(self, exc: BaseException, operation: Operation = Operation.OTHER) -> StructuredError:
        """Classify an exception raised while performing ``operation``."""
        if isinstance(exc, AppError):
            return StructuredError(
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details if self._debug else None,
            )

        details = str(exc) if self._debug else None

        for exc_type, status_code, code, message in _RULES:
            if isinstance(exc, exc_type):
                return StructuredError(status_code, code, message, details)

        # Other store failures are worded by what was being done with the store
        if isinstance(exc, StoreError):
            message = _STORE_FAILURE_MESSAGES.get(operation, _STORE_FAILURE_MESSAGES[Operation.SAVE])
            return StructuredError(
                status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR, message, details
            )

        # Deadlines enforced by the pipeline, mapped by what was being awaited
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            if operation is Operation.COMPLETION:
                return StructuredError(
                    status.HTTP_503_SERVICE_UNAVAILABLE,
                    ErrorCode.AI_SERVICE_UNAVAILABLE,
                    "AI service temporarily unavailable",
                    details,
                )
            if operation in (Operation.SAVE, Operation.LIST):
                return StructuredError(
                    status.HTTP_503_SERVICE_UNAVAILABLE,
                    ErrorCode.DATABASE_UNAVAILABLE,
                    "Database temporarily unavailable",
                    details,
                )

        code, message = _FALLBACKS[operation]
        return StructuredError(status.HTTP_500_INTERNAL_SERVER_ERROR, code, message, details)

    def error(
        self,
        code: ErrorCode,
        message: str,
        status_code: int,
        details: Any = None,
        **extra: Any,
    ) -> StructuredError:
        """Build a StructuredError for a failure detected without an exception.

        Keyword arguments are added to the error body as-is; ``details`` is
        only kept in debug mode.
        """
        return StructuredError(
            status_code,
            code,
            message,
            details if self._debug else None,
            extra or None,
        )
