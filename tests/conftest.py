"""Shared test fixtures and configuration."""

from __future__ import annotations

import contextlib
import io

import pytest
from rich.console import Console

from ai_service.memory import MessageWindowChatMemory
from tests.mocks.models import MockChatModel, MockModerationModel


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(3))


@pytest.fixture
def chat_model() -> MockChatModel:
    """Provide a chat model that answers with an empty string until scripted."""
    return MockChatModel()


@pytest.fixture
def moderation_model() -> MockModerationModel:
    """Provide a moderation model that flags the word 'kill'."""
    return MockModerationModel("kill")


@pytest.fixture
def chat_memory() -> MessageWindowChatMemory:
    """Provide an empty message window."""
    return MessageWindowChatMemory(max_messages=10)


@pytest.fixture
def mock_console() -> Console:
    """Provide a console that writes to a StringIO for testing."""
    return Console(file=io.StringIO(), width=80, force_terminal=True)
