"""Request pipeline for the AI endpoints.

Every request walks the same states::

    Received -> Validated -> RateChecked -> Dispatched -> Success
         \\-> 400       \\-> 429          \\-> classified error

and ends in exactly one PipelineResult. Nothing raised by a collaborator
escapes ``ask``/``save``/``recent``; the ErrorTranslator classifies it.
"""

import asyncio
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fastapi import status

from ai_flow.config import Settings
from ai_flow.entities import PromptResponseEntity
from ai_flow.errors import CompletionTimeoutError, ErrorCode, StoreTimeoutError
from ai_flow.protocols import CompletionProvider, EventLogger, PromptResponseStore
from ai_flow.rate_limiter import RateLimiter
from ai_flow.services.error_translator import ErrorTranslator, Operation, StructuredError
from ai_flow.validation import missing_fields, validate_prompt, validate_save_data


class OutcomeKind(str, Enum):
    """Terminal states of a request."""

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class PipelineResult:
    """The single response a request produces."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> OutcomeKind:
        if self.status_code < 400:
            return OutcomeKind.SUCCESS
        if self.status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
            return OutcomeKind.SERVICE_UNAVAILABLE
        if self.status_code >= 500:
            return OutcomeKind.INTERNAL_ERROR
        return OutcomeKind.CLIENT_ERROR

    @property
    def error_code(self) -> str | None:
        error = self.body.get("error")
        return error.get("code") if isinstance(error, dict) else None

    @classmethod
    def failure(cls, error: StructuredError, headers: dict[str, str] | None = None) -> "PipelineResult":
        return cls(status_code=error.status_code, body=error.to_body(), headers=headers or {})


class RequestTimeout(Exception):
    """The whole request exceeded the global deadline."""


def _length(value: Any) -> int:
    return len(value) if isinstance(value, str) else 0


class RequestPipeline:
    """Orchestrates validation, rate limiting and dispatch.

    Collaborators are injected so the pipeline can be driven entirely with
    in-memory fakes:
    - CompletionProvider: answers ``/api/ask-ai``
    - PromptResponseStore: persists ``/api/save``
    - RateLimiter: per-identity request cap shared by all endpoints
    - EventLogger: structured request logging

    Outbound calls are bounded by ``asyncio.wait_for``, which cancels the
    call on expiry so the underlying connection is released.
    """

    def __init__(
        self,
        completion_provider: CompletionProvider,
        pair_store: PromptResponseStore,
        rate_limiter: RateLimiter,
        translator: ErrorTranslator,
        logger: EventLogger,
        completion_timeout: float = 25.0,
        save_timeout: float = 10.0,
        request_timeout: float = 30.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._completion = completion_provider
        self._store = pair_store
        self._limiter = rate_limiter
        self._translator = translator
        self._logger = logger
        self._completion_timeout = completion_timeout
        self._save_timeout = save_timeout
        self._request_timeout = request_timeout
        self._clock = clock

    @classmethod
    def create(
        cls,
        settings: Settings,
        completion_provider: CompletionProvider,
        pair_store: PromptResponseStore,
        rate_limiter: RateLimiter,
        logger: EventLogger,
    ) -> "RequestPipeline":
        """Factory method wiring timeouts and debug mode from settings."""
        return cls(
            completion_provider=completion_provider,
            pair_store=pair_store,
            rate_limiter=rate_limiter,
            translator=ErrorTranslator(debug=settings.is_development),
            logger=logger,
            completion_timeout=settings.ai_timeout,
            save_timeout=settings.save_timeout,
            request_timeout=settings.request_timeout,
        )

    async def ask(self, body: Mapping[str, Any], identity: str) -> PipelineResult:
        """Handle an ``/api/ask-ai`` request body."""
        start = self._clock()
        self._logger.info(
            "AI request received",
            ip=identity,
            prompt_length=_length(body.get("prompt")),
        )

        rejected = self._check_required(body, ("prompt",), identity)
        if rejected:
            return rejected

        validation = validate_prompt(body["prompt"])
        if not validation.is_valid:
            self._logger.warning("Invalid prompt validation", errors=validation.errors, ip=identity)
            return PipelineResult.failure(
                self._translator.error(
                    ErrorCode.INVALID_PROMPT, validation.errors[0], status.HTTP_400_BAD_REQUEST
                )
            )

        limited = self._check_rate(identity)
        if limited:
            return limited

        try:
            reply = await self._with_request_deadline(self._complete(validation.sanitized))
        except Exception as exc:
            return self._failed("AI request failed", exc, Operation.COMPLETION, start, identity)

        self._logger.info(
            "AI request completed successfully",
            duration_ms=self._elapsed_ms(start),
            response_length=len(reply),
            ip=identity,
        )
        return PipelineResult(status_code=status.HTTP_200_OK, body={"response": reply})

    async def save(self, body: Mapping[str, Any], identity: str) -> PipelineResult:
        """Handle an ``/api/save`` request body."""
        start = self._clock()
        self._logger.info(
            "Save request received",
            ip=identity,
            prompt_length=_length(body.get("prompt")),
            response_length=_length(body.get("response")),
        )

        rejected = self._check_required(body, ("prompt", "response"), identity)
        if rejected:
            return rejected

        validation = validate_save_data(body["prompt"], body["response"])
        if not validation.is_valid:
            self._logger.warning("Invalid save data validation", errors=validation.errors, ip=identity)
            return PipelineResult.failure(
                self._translator.error(
                    ErrorCode.INVALID_SAVE_DATA,
                    validation.errors[0],
                    status.HTTP_400_BAD_REQUEST,
                    errors=validation.errors,
                )
            )

        limited = self._check_rate(identity)
        if limited:
            return limited

        pair = PromptResponseEntity(
            prompt=validation.sanitized_prompt,
            response=validation.sanitized_response,
        )
        try:
            doc_id = await self._with_request_deadline(self._save(pair))
        except Exception as exc:
            return self._failed("Save request failed", exc, Operation.SAVE, start, identity)

        self._logger.info(
            "Save request completed successfully",
            duration_ms=self._elapsed_ms(start),
            document_id=doc_id,
            ip=identity,
        )
        return PipelineResult(
            status_code=status.HTTP_201_CREATED,
            body={
                "success": True,
                "id": doc_id,
                "message": "Prompt-response pair saved successfully",
            },
        )

    async def recent(self, limit: int, identity: str) -> PipelineResult:
        """List the most recently saved pairs as summaries."""
        start = self._clock()

        limited = self._check_rate(identity)
        if limited:
            return limited

        try:
            pairs = await self._with_request_deadline(self._find_recent(limit))
        except Exception as exc:
            return self._failed("Recent pairs request failed", exc, Operation.LIST, start, identity)

        return PipelineResult(
            status_code=status.HTTP_200_OK,
            body={"success": True, "items": [pair.summary() for pair in pairs]},
        )

    async def _complete(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self._completion.complete(prompt), timeout=self._completion_timeout
            )
        except asyncio.TimeoutError as e:
            raise CompletionTimeoutError("AI request timeout") from e

    async def _save(self, pair: PromptResponseEntity) -> str:
        try:
            return await asyncio.wait_for(self._store.save(pair), timeout=self._save_timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError("Database save timeout") from e

    async def _find_recent(self, limit: int) -> list[PromptResponseEntity]:
        try:
            return await asyncio.wait_for(self._store.find_recent(limit), timeout=self._save_timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError("Database read timeout") from e

    async def _with_request_deadline(self, operation):
        """Await ``operation`` under the global request timeout."""
        try:
            return await asyncio.wait_for(operation, timeout=self._request_timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeout() from e

    def _check_required(
        self, body: Mapping[str, Any], required: tuple[str, ...], identity: str
    ) -> PipelineResult | None:
        missing = missing_fields(body, required)
        if not missing:
            return None
        self._logger.warning("Missing required field", fields=missing, ip=identity)
        return PipelineResult.failure(
            self._translator.error(
                ErrorCode.MISSING_REQUIRED_FIELD,
                f"Missing required field: {missing[0]}",
                status.HTTP_400_BAD_REQUEST,
            )
        )

    def _check_rate(self, identity: str) -> PipelineResult | None:
        decision = self._limiter.allow(identity)
        if decision.allowed:
            return None
        self._logger.warning("Rate limit exceeded", ip=identity, reset_seconds=decision.reset_seconds)
        return PipelineResult.failure(
            self._translator.error(
                ErrorCode.RATE_LIMIT_EXCEEDED,
                f"Too many requests. Try again in {decision.reset_seconds} seconds",
                status.HTTP_429_TOO_MANY_REQUESTS,
                reset_seconds=decision.reset_seconds,
            ),
            headers={"Retry-After": str(decision.reset_seconds)},
        )

    def _failed(
        self,
        event: str,
        exc: Exception,
        operation: Operation,
        start: float,
        identity: str,
    ) -> PipelineResult:
        if isinstance(exc, RequestTimeout):
            error = self._translator.error(
                ErrorCode.REQUEST_TIMEOUT, "Request timeout", status.HTTP_408_REQUEST_TIMEOUT
            )
        else:
            error = self._translator.translate(exc, operation)
        self._logger.error(
            event,
            code=error.code.value,
            status_code=error.status_code,
            error=str(exc),
            error_type=type(exc).__name__,
            duration_ms=self._elapsed_ms(start),
            ip=identity,
        )
        return PipelineResult.failure(error)

    def _elapsed_ms(self, start: float) -> int:
        return round((self._clock() - start) * 1000)

