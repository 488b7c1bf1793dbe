"""Data models exchanged with the model, moderation and memory ports."""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """Chat message model."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


def system_message(content: str) -> Message:
    """Build a system message."""
    return Message(role="system", content=content)


def user_message(content: str) -> Message:
    """Build a user message."""
    return Message(role="user", content=content)


def assistant_message(content: str) -> Message:
    """Build an assistant message."""
    return Message(role="assistant", content=content)


class ChatRequest(BaseModel):
    """Ordered conversation plus an opaque bag of request parameters."""

    model_config = ConfigDict(frozen=True)

    messages: list[Message]
    parameters: dict[str, Any] = Field(default_factory=dict)

    def user_message(self) -> Message | None:
        """Return the last user message of the conversation."""
        return next((m for m in reversed(self.messages) if m.role == "user"), None)


class TokenUsage(BaseModel):
    """Token accounting reported by the model."""

    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)
    total_tokens: int | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _fill_total(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        input_tokens = data.get("input_tokens")
        output_tokens = data.get("output_tokens")
        if input_tokens is None or output_tokens is None:
            return data
        expected = input_tokens + output_tokens
        total = data.get("total_tokens")
        if total is None:
            return {**data, "total_tokens": expected}
        if total != expected:
            msg = f"total_tokens ({total}) must equal input_tokens + output_tokens ({expected})"
            raise ValueError(msg)
        return data


class Source(BaseModel):
    """Reference to retrieved content that contributed to an answer."""

    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    """What the model port returns for a single request."""

    content: str
    token_usage: TokenUsage | None = None
    finish_reason: str | None = None
    sources: list[Source] = Field(default_factory=list)


class Moderation(BaseModel):
    """Outcome of classifying outbound text."""

    model_config = ConfigDict(frozen=True)

    flagged: bool
    flagged_text: str | None = None

    @classmethod
    def flagged_by(cls, text: str) -> Moderation:
        """Verdict for text that violates the content policy."""
        return cls(flagged=True, flagged_text=text)

    @classmethod
    def not_flagged(cls) -> Moderation:
        """Verdict for acceptable text."""
        return cls(flagged=False)


class Result(BaseModel, Generic[T]):
    """Parsed content together with usage metadata and retrieval sources."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: T
    token_usage: TokenUsage | None = None
    sources: list[Source] = Field(default_factory=list)
