"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from ai_flow.config import Settings
from ai_flow.errors import AppError, ErrorCode
from ai_flow.handlers import AIHandler
from ai_flow.logging_config import StructuredLogger
from ai_flow.protocols import CompletionProvider, EventLogger, PromptResponseStore
from ai_flow.rate_limiter import RateLimiter
from ai_flow.repositories import OpenRouterClient, RedisPromptResponseRepository, StoreConnection
from ai_flow.services import RequestPipeline


@dataclass
class Overrides:
    """Collaborators supplied by the caller instead of built from settings."""

    completion_provider: CompletionProvider | None = None
    pair_store: PromptResponseStore | None = None
    rate_limiter: RateLimiter | None = None
    event_logger: EventLogger | None = None
    connection: StoreConnection | None = None


def get_handler(request: Request) -> AIHandler:
    """Dependency injection for AIHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AIHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "ai_handler", None)
    if handler is None:
        raise RuntimeError("AIHandler not initialized. Check lifespan setup.")
    return handler


def require_json(request: Request) -> None:
    """Reject POST bodies that are not sent as JSON."""
    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "application/json" or media_type.endswith("+json"):
        return
    raise AppError(
        ErrorCode.INVALID_CONTENT_TYPE,
        "Content-Type must be application/json",
        400,
    )


def make_lifespan(settings: Settings, overrides: Overrides):
    """Build the lifespan context manager for an app.

    Initializes all layers and stores them in app.state:
    1. Store connection and repository (Redis), connected in the background
    2. Completion client (OpenRouter)
    3. Rate limiter
    4. Pipeline - stored in app.state.pipeline
    5. Handler - stored in app.state.ai_handler

    Anything present in ``overrides`` is used as-is instead of being built
    from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = overrides.event_logger or StructuredLogger("ai_flow")

        connection = overrides.connection
        pair_store = overrides.pair_store
        if pair_store is None:
            connection = connection or StoreConnection.create(settings, logger)
            pair_store = RedisPromptResponseRepository(connection, key_prefix=settings.store_key_prefix)

        # Connecting may take several retries; the server starts serving
        # immediately and writes fail as DATABASE_UNAVAILABLE meanwhile.
        connect_task: asyncio.Task | None = None
        if connection is not None:
            connect_task = asyncio.create_task(connection.connect())

        completion_provider = overrides.completion_provider or OpenRouterClient.create(settings)
        if not settings.openrouter_api_key and overrides.completion_provider is None:
            logger.warning("OPENROUTER_API_KEY is not set, AI requests will fail")

        rate_limiter = overrides.rate_limiter or RateLimiter.from_settings(settings)
        pipeline = RequestPipeline.create(
            settings=settings,
            completion_provider=completion_provider,
            pair_store=pair_store,
            rate_limiter=rate_limiter,
            logger=logger,
        )
        handler = AIHandler(
            pipeline=pipeline,
            completion_provider=completion_provider,
            pair_store=pair_store,
            connection=connection,
        )

        # Store in app.state (FastAPI pattern)
        app.state.event_logger = logger
        app.state.pipeline = pipeline
        app.state.ai_handler = handler
        app.state.rate_limiter = rate_limiter
        app.state.store_connection = connection

        logger.info(
            "AI Flow backend started",
            environment=settings.environment,
            model=completion_provider.model_name,
            rate_limit=f"{rate_limiter.max_requests}/{rate_limiter.window_seconds:g}s",
        )

        try:
            yield
        finally:
            if connect_task is not None and not connect_task.done():
                connect_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await connect_task
            await completion_provider.close()
            if connection is not None:
                await connection.close()

            del app.state.ai_handler
            del app.state.pipeline
            del app.state.rate_limiter
            del app.state.store_connection
            logger.info("AI Flow backend shut down")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[AIHandler, Depends(get_handler)]
JsonBody = Depends(require_json)
