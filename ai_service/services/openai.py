"""OpenAI-compatible chat and moderation ports."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic_ai.direct import model_request
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.settings import ModelSettings

from ai_service.models import ChatRequest, ChatResponse, Moderation, TokenUsage
from ai_service.services.base import JSON_RESPONSE_FORMAT, ChatModel, ModerationModel

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pydantic_ai.models import Model

    from ai_service import config
    from ai_service.models import Message

logger = logging.getLogger(__name__)

# Request parameters forwarded as pydantic-ai model settings
_MODEL_SETTING_KEYS = (
    "temperature",
    "max_tokens",
    "top_p",
    "seed",
    "presence_penalty",
    "frequency_penalty",
    "stop_sequences",
    "timeout",
)


def build_model(openai_config: config.OpenAILLM) -> Model:
    """Construct the pydantic-ai model for an OpenAI-compatible endpoint."""
    from pydantic_ai.models.openai import OpenAIChatModel  # noqa: PLC0415
    from pydantic_ai.providers.openai import OpenAIProvider  # noqa: PLC0415

    if not openai_config.openai_api_key and not openai_config.openai_base_url:
        msg = "OpenAI API key is not set."
        raise ValueError(msg)
    provider = OpenAIProvider(
        api_key=openai_config.openai_api_key or "not-needed",
        base_url=openai_config.openai_base_url,
    )
    return OpenAIChatModel(model_name=openai_config.llm_openai_model, provider=provider)


def to_model_messages(messages: Sequence[Message]) -> list[ModelMessage]:
    """Convert a conversation into pydantic-ai request/response messages.

    Consecutive system and user messages share one request; every assistant
    message becomes a response.
    """
    converted: list[ModelMessage] = []
    pending: list[SystemPromptPart | UserPromptPart] = []
    for message in messages:
        if message.role == "assistant":
            if pending:
                converted.append(ModelRequest(parts=pending))
                pending = []
            converted.append(ModelResponse(parts=[TextPart(content=message.content)]))
        elif message.role == "system":
            pending.append(SystemPromptPart(content=message.content))
        else:
            pending.append(UserPromptPart(content=message.content))
    if pending:
        converted.append(ModelRequest(parts=pending))
    return converted


def to_model_settings(parameters: dict[str, Any]) -> ModelSettings:
    """Keep the request parameters pydantic-ai understands.

    ``response_format`` has no pydantic-ai setting and is sent in the request
    body; a string names the format type (``"json_object"``).
    """
    settings: dict[str, Any] = {}
    for key, value in parameters.items():
        if key in _MODEL_SETTING_KEYS:
            settings[key] = value
        elif key == "response_format":
            response_format = {"type": value} if isinstance(value, str) else value
            settings["extra_body"] = {"response_format": response_format}
        else:
            logger.warning("Ignoring unsupported request parameter %r", key)
    return ModelSettings(**settings)


class OpenAIChatModelPort(ChatModel):
    """Chat model backed by a pydantic-ai model (OpenAI-compatible by default)."""

    provider = "openai"

    def __init__(
        self,
        openai_config: config.OpenAILLM | None = None,
        *,
        model: Model | None = None,
    ) -> None:
        """Initialize from configuration, or wrap an already built pydantic-ai model."""
        if model is None:
            if openai_config is None:
                msg = "Either an OpenAI configuration or a model is required"
                raise ValueError(msg)
            model = build_model(openai_config)
        self.model = model
        self.temperature = openai_config.temperature if openai_config else None
        self.json_response_format = bool(openai_config and openai_config.json_response_format)

    @property
    def default_request_parameters(self) -> dict[str, Any]:
        """Temperature from the configuration, when set."""
        if self.temperature is None:
            return {}
        return {"temperature": self.temperature}

    @property
    def supported_capabilities(self) -> frozenset[str]:
        """JSON answers when the endpoint is configured to support them."""
        if self.json_response_format:
            return frozenset({JSON_RESPONSE_FORMAT})
        return frozenset()

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send the conversation through pydantic-ai and collect the text answer."""
        response = await model_request(
            self.model,
            to_model_messages(request.messages),
            model_settings=to_model_settings(request.parameters),
        )
        content = "".join(part.content for part in response.parts if isinstance(part, TextPart))
        usage = response.usage
        logger.debug(
            "Model answered with %d characters (%s input / %s output tokens)",
            len(content),
            usage.input_tokens,
            usage.output_tokens,
        )
        return ChatResponse(
            content=content,
            token_usage=TokenUsage(
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
            ),
            finish_reason=getattr(response, "finish_reason", None),
        )


class OpenAIModerationModel(ModerationModel):
    """Moderation through the OpenAI ``/moderations`` endpoint."""

    def __init__(
        self,
        moderation_config: config.OpenAIModeration,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the moderation model."""
        self.moderation_config = moderation_config
        self.client = client

    async def moderate(self, messages: Sequence[Message]) -> Moderation:
        """Flag the first message the endpoint reports as violating the policy."""
        inputs = [m.content for m in messages]
        if not inputs:
            return Moderation.not_flagged()
        cfg = self.moderation_config
        headers = {"Authorization": f"Bearer {cfg.openai_api_key}"} if cfg.openai_api_key else None
        payload = {"model": cfg.moderation_openai_model, "input": inputs}
        url = f"{cfg.openai_base_url.rstrip('/')}/moderations"

        if self.client is not None:
            response = await self.client.post(url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=cfg.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()

        results = response.json().get("results", [])
        for text, result in zip(inputs, results, strict=False):
            if result.get("flagged"):
                return Moderation.flagged_by(text)
        return Moderation.not_flagged()
