"""Conversation memory port and an in-process message window."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque

from ai_service.models import Message


class ChatMemory(ABC):
    """Append-ordered message log; retrieval windowing belongs to the implementation."""

    @abstractmethod
    def add(self, message: Message) -> None:
        """Append a message."""
        ...

    @abstractmethod
    def messages(self) -> list[Message]:
        """Messages to replay before the next user message, oldest first.

        System messages are not replayed; each call renders its own.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Forget every message."""
        ...


class MessageWindowChatMemory(ChatMemory):
    """Keeps the most recent ``max_messages`` messages."""

    def __init__(self, max_messages: int = 10) -> None:
        """Initialize the memory."""
        if max_messages < 1:
            msg = "max_messages must be at least 1"
            raise ValueError(msg)
        self.max_messages = max_messages
        self._messages: deque[Message] = deque(maxlen=max_messages)

    def add(self, message: Message) -> None:
        """Append a message, evicting the oldest beyond the window."""
        self._messages.append(message)

    def messages(self) -> list[Message]:
        """Return the window, oldest first."""
        return list(self._messages)

    def clear(self) -> None:
        """Forget every message."""
        self._messages.clear()

    def __len__(self) -> int:
        """Number of messages in the window."""
        return len(self._messages)
