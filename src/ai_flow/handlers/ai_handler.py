"""HTTP handlers for the AI endpoints.

Handlers convert between DTOs (API contracts) and pipeline calls.
They handle HTTP concerns: picking the client identity, turning a
PipelineResult into a JSONResponse, and reporting health.
"""

import time
from datetime import datetime, timezone

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ai_flow.dto import (
    AskAIRequest,
    HealthCheckResponse,
    ModelsResponse,
    SavePairRequest,
)
from ai_flow.protocols import CompletionProvider, PromptResponseStore
from ai_flow.repositories import StoreConnection
from ai_flow.services import PipelineResult, RequestPipeline


def client_identity(request: Request) -> str:
    """Identity used for rate limiting: the peer network address."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def to_response(result: PipelineResult) -> JSONResponse:
    return JSONResponse(
        status_code=result.status_code,
        content=jsonable_encoder(result.body),
        headers=result.headers or None,
    )


class AIHandler:
    """HTTP handlers for the AI endpoints.

    This handler delegates validation, rate limiting and dispatch to
    RequestPipeline and only deals with HTTP-specific concerns.

    Example:
        ```python
        handler = AIHandler(
            pipeline=pipeline, completion_provider=client, pair_store=store, connection=conn
        )

        @router.post("/ask-ai")
        async def ask_ai(body: AskAIRequest, request: Request):
            return await handler.ask_ai(body, request)
        ```
    """

    def __init__(
        self,
        pipeline: RequestPipeline,
        completion_provider: CompletionProvider,
        pair_store: PromptResponseStore | None = None,
        connection: StoreConnection | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            pipeline: The request pipeline (required).
            completion_provider: Used to report the configured models.
            pair_store: Document store, pinged by the health check.
            connection: Store connection, reported by the health check.
        """
        self._pipeline = pipeline
        self._completion = completion_provider
        self._store = pair_store
        self._connection = connection
        self._started_at = time.monotonic()

    async def ask_ai(self, body: AskAIRequest, request: Request) -> JSONResponse:
        """Handle POST /api/ask-ai requests."""
        result = await self._pipeline.ask(body.present_fields(), client_identity(request))
        return to_response(result)

    async def save(self, body: SavePairRequest, request: Request) -> JSONResponse:
        """Handle POST /api/save requests."""
        result = await self._pipeline.save(body.present_fields(), client_identity(request))
        return to_response(result)

    async def recent(self, limit: int, request: Request) -> JSONResponse:
        """Handle GET /api/recent requests."""
        result = await self._pipeline.recent(limit, client_identity(request))
        return to_response(result)

    def models(self) -> ModelsResponse:
        """Handle GET /api/models requests."""
        return ModelsResponse(
            default_model=self._completion.model_name,
            available_models=self._completion.available_models(),
        )

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Always reports OK while the process serves requests; the store state
        is informational since the service runs degraded without it.
        """
        reachable = await self._store.health_check() if self._store is not None else None
        if self._connection is not None:
            database = self._connection.state.value
        elif reachable is None:
            database = "not_configured"
        else:
            database = "connected" if reachable else "unavailable"

        return HealthCheckResponse(
            status="OK",
            timestamp=datetime.now(timezone.utc),
            uptime=round(time.monotonic() - self._started_at, 3),
            database=database,
            database_reachable=reachable,
        )
