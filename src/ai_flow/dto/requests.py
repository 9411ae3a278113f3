"""Request DTOs for API endpoints.

Fields are typed ``Any`` on purpose: type and length rules live in
``ai_flow.validation`` so that a non-string prompt gets the same
``INVALID_PROMPT`` response as an empty one, and a missing field can be told
apart from a null one via ``model_fields_set``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AskAIRequest(BaseModel):
    """Request DTO for POST /api/ask-ai."""

    model_config = ConfigDict(extra="ignore")

    prompt: Any = Field(None, description="The prompt to send to the AI model (3-10,000 characters)")

    def present_fields(self) -> dict[str, Any]:
        """Return only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class SavePairRequest(BaseModel):
    """Request DTO for POST /api/save."""

    model_config = ConfigDict(extra="ignore")

    prompt: Any = Field(None, description="The prompt that was sent")
    response: Any = Field(None, description="The AI response to persist")

    def present_fields(self) -> dict[str, Any]:
        """Return only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)
