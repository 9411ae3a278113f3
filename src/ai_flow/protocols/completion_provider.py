"""Completion provider protocol.

Defines the interface for the external text-completion service the
``/api/ask-ai`` endpoint proxies to.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CompletionProvider(Protocol):
    """Protocol for chat-completion clients.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed. Tests use in-memory fakes.
    """

    @property
    def model_name(self) -> str:
        """Return the model used when no override is given."""
        ...

    def available_models(self) -> list[str]:
        """Return the allow-list of models this provider may call."""
        ...

    async def complete(self, prompt: str, model: str | None = None) -> str:
        """Send a single user message and return the reply text.

        Args:
            prompt: Sanitized, non-empty prompt text
            model: Optional model override, must be in the allow-list

        Returns:
            The completion text

        Raises:
            CompletionError: Or one of its subclasses, classified by cause
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
