"""
Tests for prompt sanitization and validation.
"""

import pytest

from ai_flow.validation import (
    MAX_PROMPT_LENGTH,
    missing_fields,
    sanitize_string,
    validate_prompt,
    validate_save_data,
)


@pytest.mark.parametrize(
    "prompt",
    ["abc", "What is 2+2?", "  padded prompt  ", "line one\nline two\ttabbed", "x" * MAX_PROMPT_LENGTH],
)
def test_valid_prompt_is_trimmed(prompt):
    result = validate_prompt(prompt)
    assert result.is_valid
    assert result.errors == []
    assert result.sanitized == prompt.strip()


@pytest.mark.parametrize(
    "prompt, message",
    [
        ("", "Prompt is required"),
        (None, "Prompt is required"),
        (123, "Prompt must be a string"),
        (["list"], "Prompt must be a string"),
        ("     ", "Prompt cannot be empty"),
        ("ab", "Prompt must be at least 3 characters long"),
        ("  ab  ", "Prompt must be at least 3 characters long"),
        ("x" * (MAX_PROMPT_LENGTH + 1), "Prompt is too long (maximum 10,000 characters)"),
    ],
)
def test_invalid_prompt_reports_first_error(prompt, message):
    result = validate_prompt(prompt)
    assert not result.is_valid
    assert result.errors == [message]
    assert result.sanitized is None


def test_control_characters_are_stripped():
    result = validate_prompt("he\x00llo\x07 world\x1b")
    assert result.is_valid
    assert result.sanitized == "hello world"


def test_control_characters_count_against_minimum_length():
    assert not validate_prompt("a\x00\x01b").is_valid


def test_sanitize_is_idempotent():
    once = sanitize_string("  \x0bsome\x7f text \n")
    assert sanitize_string(once) == once


def test_sanitize_non_string_is_empty():
    assert sanitize_string(42) == ""
    assert sanitize_string(None) == ""


def test_save_data_valid():
    result = validate_save_data("  What is 2+2?  ", " 4 ")
    assert result.is_valid
    assert result.sanitized_prompt == "What is 2+2?"
    assert result.sanitized_response == "4"


@pytest.mark.parametrize(
    "response, message",
    [
        ("", "Response is required"),
        (None, "Response is required"),
        (7, "Response must be a string"),
        ("   ", "Response cannot be empty"),
    ],
)
def test_save_data_invalid_response(response, message):
    result = validate_save_data("valid prompt", response)
    assert not result.is_valid
    assert result.errors == [message]


def test_save_data_accumulates_prompt_errors_first():
    result = validate_save_data("p", "")
    assert not result.is_valid
    assert result.errors == [
        "Prompt must be at least 3 characters long",
        "Response is required",
    ]


def test_missing_fields_distinguishes_absent_from_null():
    assert missing_fields({"prompt": None}, ("prompt", "response")) == ["response"]
    assert missing_fields({}, ("prompt",)) == ["prompt"]
    assert missing_fields({"prompt": "x", "response": "y"}, ("prompt", "response")) == []
