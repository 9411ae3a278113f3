"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (OpenRouter → another provider, Redis → another store)
- Unit testing with in-memory fakes
- Clear separation of concerns
"""

from .completion_provider import CompletionProvider
from .event_logger import EventLogger
from .pair_store import PromptResponseStore

__all__ = [
    "CompletionProvider",
    "EventLogger",
    "PromptResponseStore",
]
