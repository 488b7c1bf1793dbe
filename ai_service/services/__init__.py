"""Ports to the model and moderation services, and their OpenAI-compatible adapters."""

from ai_service.services.base import ChatModel, ModerationModel

__all__ = ["ChatModel", "ModerationModel"]
