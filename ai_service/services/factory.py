"""Factory functions for creating port instances from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ai_service.memory import MessageWindowChatMemory
from ai_service.services.openai import OpenAIChatModelPort, OpenAIModerationModel
from ai_service.templates import ChainedResourceLoader, DirectoryResourceLoader

if TYPE_CHECKING:
    from ai_service import config
    from ai_service.memory import ChatMemory
    from ai_service.services.base import ChatModel, ModerationModel
    from ai_service.templates import ResourceLoader


def get_chat_model(openai_llm_config: config.OpenAILLM) -> ChatModel:
    """Get the chat model for the configured endpoint."""
    return OpenAIChatModelPort(openai_llm_config)


def get_moderation_model(moderation_config: config.OpenAIModeration) -> ModerationModel:
    """Get the moderation model for the configured endpoint."""
    return OpenAIModerationModel(moderation_config)


def get_chat_memory(memory_config: config.Memory) -> ChatMemory:
    """Get a message window sized from the configuration."""
    return MessageWindowChatMemory(max_messages=memory_config.max_messages)


def get_resource_loader(templates_config: config.Templates) -> ResourceLoader:
    """Get a loader for the template directory, falling back to the working directory."""
    loaders: list[ResourceLoader] = []
    if templates_config.template_dir is not None:
        loaders.append(DirectoryResourceLoader(templates_config.template_dir))
    loaders.append(DirectoryResourceLoader("."))
    return ChainedResourceLoader(*loaders)
