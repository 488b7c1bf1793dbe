"""Tests for the data models and outcomes."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ai_service.errors import ConfigurationError, Ok, ParseError, unwrap
from ai_service.models import (
    ChatRequest,
    Moderation,
    TokenUsage,
    assistant_message,
    system_message,
    user_message,
)


def test_token_usage_total_is_filled() -> None:
    """The total is derived from input and output counts."""
    assert TokenUsage(input_tokens=10, output_tokens=5).total_tokens == 15


def test_token_usage_inconsistent_total() -> None:
    """A reported total must match the parts."""
    with pytest.raises(ValidationError, match="must equal"):
        TokenUsage(input_tokens=10, output_tokens=5, total_tokens=16)


def test_token_usage_partial() -> None:
    """Partial counts stay partial."""
    usage = TokenUsage(input_tokens=3)
    assert usage.output_tokens is None
    assert usage.total_tokens is None


def test_request_user_message() -> None:
    """The last user message is the outbound one."""
    request = ChatRequest(
        messages=[system_message("s"), user_message("first"), assistant_message("a"), user_message("last")],
    )
    assert request.user_message() == user_message("last")
    assert ChatRequest(messages=[system_message("s")]).user_message() is None


def test_messages_are_immutable() -> None:
    """Messages cannot be changed once built."""
    message = user_message("hello")
    with pytest.raises(ValidationError):
        message.content = "changed"


def test_moderation_verdicts() -> None:
    """Flagged verdicts carry the text."""
    assert Moderation.flagged_by("bad") == Moderation(flagged=True, flagged_text="bad")
    assert not Moderation.not_flagged().flagged


def test_unwrap() -> None:
    """Ok values are returned, errors raised."""
    assert unwrap(Ok(13)) == 13
    with pytest.raises(ParseError):
        unwrap(ParseError("Failed to parse 'x' into int", "x"))
    with pytest.raises(ConfigurationError, match="missing"):
        unwrap(ConfigurationError("Value for the variable 'it' is missing"))
