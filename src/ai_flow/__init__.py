"""AI Flow backend - validated, rate-limited AI completions and prompt storage.

This package provides a layered architecture for the AI Flow Visualizer API:

Layers:
    - protocols: Interface contracts (CompletionProvider, PromptResponseStore, EventLogger)
    - repositories: External system implementations (OpenRouter, Redis)
    - services: Request pipeline and error translation
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from ai_flow.config import get_settings
    from ai_flow.repositories import OpenRouterClient

    client = OpenRouterClient.create(get_settings())
    reply = await client.complete("What is 2+2?")
    ```

For HTTP API:
    ```python
    from ai_flow.api.app import app
    ```
"""

from ai_flow.config import Settings, get_settings
from ai_flow.dto import AskAIRequest, SavePairRequest
from ai_flow.entities import PromptResponseEntity, RateDecision
from ai_flow.errors import AppError, ErrorCode
from ai_flow.handlers import AIHandler
from ai_flow.protocols import CompletionProvider, EventLogger, PromptResponseStore
from ai_flow.rate_limiter import RateLimiter
from ai_flow.repositories import OpenRouterClient, RedisPromptResponseRepository, StoreConnection
from ai_flow.services import ErrorTranslator, RequestPipeline

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "AppError",
    "ErrorCode",
    # Protocols (interfaces)
    "CompletionProvider",
    "EventLogger",
    "PromptResponseStore",
    # Services (business logic)
    "ErrorTranslator",
    "RateLimiter",
    "RequestPipeline",
    # Handlers (HTTP)
    "AIHandler",
    # Repositories (external systems)
    "OpenRouterClient",
    "RedisPromptResponseRepository",
    "StoreConnection",
    # Entities (domain models)
    "PromptResponseEntity",
    "RateDecision",
    # DTOs (API contracts)
    "AskAIRequest",
    "SavePairRequest",
]
