"""Repository layer for external systems.

This layer wraps the two outbound dependencies (the OpenRouter completion
API and the Redis document store) behind protocol-based interfaces. This
enables:
- Unit testing with in-memory fakes
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
"""

from .connection import ConnectionState, StoreConnection
from .openrouter_client import OpenRouterClient
from .redis_repository import RedisPromptResponseRepository

__all__ = [
    "ConnectionState",
    "StoreConnection",
    "OpenRouterClient",
    "RedisPromptResponseRepository",
]
