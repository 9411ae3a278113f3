"""Error taxonomy for the AI Flow backend.

Components raise the exceptions defined here; the error translator in
``ai_flow.services.error_translator`` is the only place that turns them into
HTTP status codes and machine-readable codes.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable machine-readable error codes returned to clients."""

    INVALID_PROMPT = "INVALID_PROMPT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_SAVE_DATA = "INVALID_SAVE_DATA"
    INVALID_CONTENT_TYPE = "INVALID_CONTENT_TYPE"
    JSON_PARSE_ERROR = "JSON_PARSE_ERROR"
    INVALID_REQUEST_BODY = "INVALID_REQUEST_BODY"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    AI_AUTH_ERROR = "AI_AUTH_ERROR"
    AI_RATE_LIMIT = "AI_RATE_LIMIT"
    AI_SERVICE_UNAVAILABLE = "AI_SERVICE_UNAVAILABLE"
    AI_CONFIG_ERROR = "AI_CONFIG_ERROR"
    AI_PROCESSING_ERROR = "AI_PROCESSING_ERROR"
    DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    ROUTE_NOT_FOUND = "ROUTE_NOT_FOUND"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """An error that already knows its client-facing classification."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details


# Completion client


class CompletionError(Exception):
    """Unclassified failure of the upstream completion API."""


class InvalidPromptError(CompletionError):
    """Prompt rejected locally before any network call."""


class ModelNotAllowedError(CompletionError):
    """Requested model is not in the allow-list of free models."""


class CompletionConfigError(CompletionError):
    """The completion credential is missing."""


class CompletionAuthError(CompletionError):
    """Upstream rejected the credential (HTTP 401)."""


class CompletionRateLimitError(CompletionError):
    """Upstream rate limited the request (HTTP 429)."""


class CompletionUnavailableError(CompletionError):
    """Upstream unreachable or failing (5xx, DNS, connection refused)."""


class CompletionTimeoutError(CompletionUnavailableError):
    """Upstream call exceeded its deadline and was aborted."""


class CompletionFormatError(CompletionError):
    """Upstream answered 2xx but the body lacks the expected content."""


# Persistence gateway


class StoreError(Exception):
    """Unclassified failure of the document store."""


class StoreUnavailableError(StoreError):
    """Store unreachable, not connected, or connection dropped."""


class StoreTimeoutError(StoreUnavailableError):
    """Store write exceeded its deadline and was aborted."""


class DuplicateEntryError(StoreError):
    """A document with the same key already exists."""


class StoreValidationError(StoreError):
    """Document rejected by the pre-storage constraint check."""
