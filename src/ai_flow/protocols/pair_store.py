"""Prompt-response store protocol.

Defines the interface for the document store that persists saved
prompt-response pairs.
"""

from typing import Protocol, runtime_checkable

from ai_flow.entities import PromptResponseEntity


@runtime_checkable
class PromptResponseStore(Protocol):
    """Protocol for prompt-response persistence backends."""

    async def save(self, pair: PromptResponseEntity) -> str:
        """Persist a pair.

        Args:
            pair: The validated, sanitized pair

        Returns:
            The identifier assigned to the stored document

        Raises:
            StoreError: Or one of its subclasses, classified by cause
        """
        ...

    async def find_recent(self, limit: int = 10) -> list[PromptResponseEntity]:
        """Return the most recently saved pairs, newest first."""
        ...

    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        ...
