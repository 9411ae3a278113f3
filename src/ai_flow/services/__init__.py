"""Service layer for request orchestration.

Services depend on protocols (interfaces), not concrete implementations,
making them testable with in-memory fakes.

Architecture:
    Handler -> Pipeline -> Repository
    (HTTP)  -> (Validation, rate limiting, classification) -> (OpenRouter, Redis)
"""

from .error_translator import ErrorTranslator, Operation, StructuredError
from .request_pipeline import OutcomeKind, PipelineResult, RequestPipeline

__all__ = [
    "ErrorTranslator",
    "Operation",
    "StructuredError",
    "OutcomeKind",
    "PipelineResult",
    "RequestPipeline",
]
