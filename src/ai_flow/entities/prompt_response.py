"""Prompt-response pair domain entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

SUMMARY_PROMPT_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PromptResponseEntity:
    """Domain entity for a saved prompt-response pair.

    This is an internal representation used by services and repositories.
    For API contracts, use the DTO classes from the dto package.

    Attributes:
        prompt: The sanitized prompt text
        response: The sanitized AI response text
        created_at: When the pair was created (UTC)
        id: Store-assigned identifier, None until saved
    """

    prompt: str
    response: str
    created_at: datetime = field(default_factory=_utcnow)
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt,
            "response": self.response,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_document(cls, doc_id: str, document: dict[str, Any]) -> "PromptResponseEntity":
        return cls(
            id=doc_id,
            prompt=document["prompt"],
            response=document["response"],
            created_at=datetime.fromisoformat(document["createdAt"]),
        )

    def summary(self) -> dict[str, Any]:
        """Short form used by listings: truncated prompt and response length."""
        prompt = self.prompt
        if len(prompt) > SUMMARY_PROMPT_LENGTH:
            prompt = prompt[:SUMMARY_PROMPT_LENGTH] + "..."
        return {
            "id": self.id,
            "prompt": prompt,
            "response_length": len(self.response),
            "created_at": self.created_at,
        }
