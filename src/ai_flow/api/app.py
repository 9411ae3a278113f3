import time
from typing import Any

from fastapi import APIRouter, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ai_flow.api.dependencies import HandlerDep, JsonBody, Overrides, make_lifespan
from ai_flow.config import Settings, get_settings
from ai_flow.dto import (
    AskAIRequest,
    AskAIResponse,
    ErrorResponse,
    HealthCheckResponse,
    ModelsResponse,
    RecentPairsResponse,
    SavePairRequest,
    SavePairResponse,
)
from ai_flow.errors import AppError, ErrorCode
from ai_flow.logging_config import StructuredLogger, configure_logging
from ai_flow.protocols import CompletionProvider, EventLogger, PromptResponseStore
from ai_flow.rate_limiter import RateLimiter
from ai_flow.repositories import StoreConnection
from ai_flow.services import ErrorTranslator, StructuredError

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Internal error"},
    503: {"model": ErrorResponse, "description": "Upstream service unavailable"},
}

router = APIRouter(prefix="/api", tags=["AI"])


@router.get("/test")
async def api_test() -> dict[str, str]:
    """Check that the API router is mounted."""
    return {"message": "AI routes are working"}


@router.post(
    "/ask-ai",
    response_model=AskAIResponse,
    responses={**ERROR_RESPONSES, 401: {"model": ErrorResponse}, 408: {"model": ErrorResponse}},
    dependencies=[JsonBody],
)
async def ask_ai(body: AskAIRequest, request: Request, handler: HandlerDep) -> JSONResponse:
    """
    Send a prompt to the AI model and return its reply.

    Request Body: { prompt: string }
    Response Body: { response: string }
    """
    return await handler.ask_ai(body, request)


@router.post(
    "/save",
    status_code=status.HTTP_201_CREATED,
    response_model=SavePairResponse,
    responses={**ERROR_RESPONSES, 408: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[JsonBody],
)
async def save(body: SavePairRequest, request: Request, handler: HandlerDep) -> JSONResponse:
    """
    Persist a prompt-response pair.

    Request Body: { prompt: string, response: string }
    Response Body: { success: boolean, id: string, message: string }
    """
    return await handler.save(body, request)


@router.get("/recent", response_model=RecentPairsResponse, responses=ERROR_RESPONSES)
async def recent(
    request: Request,
    handler: HandlerDep,
    limit: int = Query(10, ge=1, le=50, description="Number of pairs to return"),
) -> JSONResponse:
    """List the most recently saved prompt-response pairs."""
    return await handler.recent(limit, request)


@router.get("/models", response_model=ModelsResponse)
async def models(handler: HandlerDep) -> ModelsResponse:
    """Get the model used for completions and the allowed free models."""
    return handler.models()


def _error_response(error: StructuredError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_body())


def register_exception_handlers(app: FastAPI, translator: ErrorTranslator) -> None:
    """Convert every failure that reaches the app boundary into an ErrorResponse."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return _error_response(translator.translate(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            error = translator.error(
                ErrorCode.JSON_PARSE_ERROR, "Invalid JSON format", status.HTTP_400_BAD_REQUEST
            )
        elif all(err.get("loc", ("body",))[0] == "body" for err in errors):
            error = translator.error(
                ErrorCode.INVALID_REQUEST_BODY,
                "Request body must be a valid JSON object",
                status.HTTP_400_BAD_REQUEST,
                details=str(errors),
            )
        else:
            error = translator.error(
                ErrorCode.INVALID_REQUEST_BODY,
                "Invalid request parameters",
                status.HTTP_400_BAD_REQUEST,
                details=str(errors),
            )
        return _error_response(error)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            logger = getattr(request.app.state, "event_logger", None)
            if logger is not None:
                logger.warning("Route not found", method=request.method, path=request.url.path)
            error = translator.error(
                ErrorCode.ROUTE_NOT_FOUND, "Route not found", status.HTTP_404_NOT_FOUND
            )
        else:
            error = translator.error(ErrorCode.INTERNAL_ERROR, str(exc.detail), exc.status_code)
        return _error_response(error)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger = getattr(request.app.state, "event_logger", None)
        if logger is not None:
            logger.error(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return _error_response(translator.translate(exc))


def create_app(
    settings: Settings | None = None,
    *,
    completion_provider: CompletionProvider | None = None,
    pair_store: PromptResponseStore | None = None,
    rate_limiter: RateLimiter | None = None,
    event_logger: EventLogger | None = None,
    connection: StoreConnection | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings. Defaults to environment settings.
        completion_provider: Use instead of the OpenRouter client.
        pair_store: Use instead of the Redis repository (no store
            connection is opened then).
        rate_limiter: Use instead of a limiter built from settings.
        event_logger: Use instead of the stdlib-backed StructuredLogger.
        connection: Use instead of a StoreConnection built from settings.

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    overrides = Overrides(
        completion_provider=completion_provider,
        pair_store=pair_store,
        rate_limiter=rate_limiter,
        event_logger=event_logger,
        connection=connection,
    )

    app = FastAPI(
        title="AI Flow Backend API",
        description="Backend for the AI Flow Visualizer: validated, rate-limited AI completions and prompt storage",
        version="0.1.0",
        lifespan=make_lifespan(settings, overrides),
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger = getattr(request.app.state, "event_logger", None)
        if logger is not None:
            logger.debug(
                "API response",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000),
            )
        return response

    register_exception_handlers(app, ErrorTranslator(debug=settings.is_development))
    app.include_router(router)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "message": "AI Flow Visualizer Backend API",
            "version": "0.1.0",
            "endpoints": {
                "ask_ai": "/api/ask-ai",
                "save": "/api/save",
                "recent": "/api/recent",
                "models": "/api/models",
                "health": "/health",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    return app


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    StructuredLogger("ai_flow").info(
        "Starting server", host=settings.api_host, port=settings.api_port
    )
    uvicorn.run(
        "ai_flow.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


app = create_app()


if __name__ == "__main__":
    main()
