"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on the request pipeline, not directly on repositories.

Architecture:
    Handler -> Pipeline -> Repository
    (HTTP)  -> (Business) -> (External services)
"""

from .ai_handler import AIHandler, client_identity

__all__ = [
    "AIHandler",
    "client_identity",
]
