"""Abstract base classes for the model and moderation ports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ai_service.models import ChatRequest, ChatResponse, Message, Moderation


JSON_RESPONSE_FORMAT = "json_response_format"
"""Capability of models that can be asked for a JSON object answer."""


class ChatModel(ABC):
    """Abstract base class for chat models.

    The descriptive properties are read when a service is assembled and never
    during a call.
    """

    provider: str = "unknown"

    @property
    def default_request_parameters(self) -> dict[str, Any]:
        """Parameters every request starts from (temperature, ...)."""
        return {}

    @property
    def supported_capabilities(self) -> frozenset[str]:
        """Optional features the model supports, such as ``"json_response_format"``."""
        return frozenset()

    @property
    def listeners(self) -> tuple[Callable[..., Any], ...]:
        """Observers notified by the model implementation itself."""
        return ()

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send the request and return the model's answer."""
        ...


class ModerationModel(ABC):
    """Abstract base class for moderation models."""

    @abstractmethod
    async def moderate(self, messages: Sequence[Message]) -> Moderation:
        """Classify the messages against the content policy."""
        ...
