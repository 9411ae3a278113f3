"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import AskAIRequest, SavePairRequest
from .responses import (
    AskAIResponse,
    ErrorDetail,
    ErrorResponse,
    HealthCheckResponse,
    ModelsResponse,
    PairSummaryItem,
    RecentPairsResponse,
    SavePairResponse,
)

__all__ = [
    "AskAIRequest",
    "SavePairRequest",
    "AskAIResponse",
    "SavePairResponse",
    "ErrorDetail",
    "ErrorResponse",
    "PairSummaryItem",
    "RecentPairsResponse",
    "ModelsResponse",
    "HealthCheckResponse",
]
