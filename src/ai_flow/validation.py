"""Prompt sanitization and validation.

Pure functions, no I/O. The sanitized values returned here are the ones
downstream components must use; the raw input is never forwarded.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

MIN_PROMPT_LENGTH = 3
MAX_PROMPT_LENGTH = 10_000

# ASCII control characters except tab, line feed and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


@dataclass(frozen=True)
class PromptValidation:
    """Result of validating a single prompt."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    sanitized: str | None = None


@dataclass(frozen=True)
class SaveValidation:
    """Result of validating a prompt/response pair."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    sanitized_prompt: str = ""
    sanitized_response: str = ""


def sanitize_string(value: Any) -> str:
    """Strip control characters and surrounding whitespace.

    Non-string input sanitizes to the empty string.
    """
    if not isinstance(value, str):
        return ""
    return _CONTROL_CHARS.sub("", value).strip()


def validate_prompt(prompt: Any) -> PromptValidation:
    """Validate a prompt, reporting the first rule it breaks."""
    if not prompt:
        return PromptValidation(is_valid=False, errors=["Prompt is required"])

    if not isinstance(prompt, str):
        return PromptValidation(is_valid=False, errors=["Prompt must be a string"])

    sanitized = sanitize_string(prompt)

    if len(sanitized) == 0:
        return PromptValidation(is_valid=False, errors=["Prompt cannot be empty"])

    if len(sanitized) < MIN_PROMPT_LENGTH:
        return PromptValidation(
            is_valid=False,
            errors=[f"Prompt must be at least {MIN_PROMPT_LENGTH} characters long"],
        )

    if len(sanitized) > MAX_PROMPT_LENGTH:
        return PromptValidation(
            is_valid=False,
            errors=[f"Prompt is too long (maximum {MAX_PROMPT_LENGTH:,} characters)"],
        )

    return PromptValidation(is_valid=True, sanitized=sanitized)


def validate_save_data(prompt: Any, response: Any) -> SaveValidation:
    """Validate a prompt/response pair.

    Errors are accumulated, prompt errors first, so the message order is
    deterministic.
    """
    errors: list[str] = []

    prompt_validation = validate_prompt(prompt)
    if not prompt_validation.is_valid:
        errors.extend(prompt_validation.errors)

    if not response:
        errors.append("Response is required")
    elif not isinstance(response, str):
        errors.append("Response must be a string")
    elif len(sanitize_string(response)) == 0:
        errors.append("Response cannot be empty")

    return SaveValidation(
        is_valid=not errors,
        errors=errors,
        sanitized_prompt=prompt_validation.sanitized or "",
        sanitized_response=sanitize_string(response),
    )


def missing_fields(body: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    """Return the required keys that are absent from a request body."""
    return [name for name in required if name not in body]
