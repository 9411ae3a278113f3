"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AskAIResponse(BaseModel):
    """Response DTO for a successful completion."""

    response: str = Field(..., description="The AI model's reply")


class SavePairResponse(BaseModel):
    """Response DTO for a saved prompt-response pair."""

    success: bool = Field(..., description="Whether the operation succeeded")
    id: str = Field(..., description="Identifier of the stored document")
    message: str = Field(..., description="Human-readable status message")


class ErrorDetail(BaseModel):
    """Error payload inside an ErrorResponse."""

    message: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Stable machine-readable error code")
    details: Any | None = Field(None, description="Raw failure details (development mode only)")


class ErrorResponse(BaseModel):
    """Response DTO for every failed request."""

    success: bool = Field(False, description="Always false")
    error: ErrorDetail


class PairSummaryItem(BaseModel):
    """Single saved pair in the recent listing."""

    id: str = Field(..., description="Document identifier")
    prompt: str = Field(..., description="Prompt, truncated to 100 characters")
    response_length: int = Field(..., description="Length of the stored response", ge=0)
    created_at: datetime = Field(..., description="When the pair was saved")


class RecentPairsResponse(BaseModel):
    """Response DTO for GET /api/recent."""

    success: bool = Field(True)
    items: list[PairSummaryItem] = Field(default_factory=list)


class ModelsResponse(BaseModel):
    """Response DTO for GET /api/models."""

    default_model: str = Field(..., description="Model used for every completion")
    available_models: list[str] = Field(..., description="Allow-list of free models")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Always 'OK' while the process serves requests")
    timestamp: datetime = Field(..., description="Server time (UTC)")
    uptime: float = Field(..., description="Seconds since startup", ge=0)
    database: str = Field(..., description="Document store connection state")
    database_reachable: bool | None = Field(None, description="Whether the store answered a ping")
