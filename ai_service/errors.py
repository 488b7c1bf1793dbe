"""Errors and the tagged outcome threaded through a dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from ai_service.models import Moderation
    from ai_service.types import TypeDescriptor

T = TypeVar("T")


class AIServiceError(Exception):
    """Base class for failures produced by the service core."""


class ConfigurationError(AIServiceError):
    """Raised for a missing or empty template, an unbound placeholder or an invalid method table."""


class ModerationError(AIServiceError):
    """Raised when the moderation model flags the outbound text."""

    def __init__(self, message: str, moderation: Moderation) -> None:
        """Keep the moderation verdict as evidence."""
        super().__init__(message)
        self.moderation = moderation

    @property
    def flagged_text(self) -> str | None:
        """The text that was flagged."""
        return self.moderation.flagged_text


class ParseError(AIServiceError):
    """Raised when the model answer does not conform to the expected shape."""

    def __init__(self, message: str, text: str, descriptor: TypeDescriptor | None = None) -> None:
        """Keep the offending text and the target descriptor."""
        super().__init__(message)
        self.text = text
        self.descriptor = descriptor


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of a dispatcher step."""

    value: T


Outcome = Ok[T] | ConfigurationError | ModerationError | ParseError
"""What `Dispatcher.try_invoke` returns: a value or the error that stopped the call."""


def unwrap(outcome: Outcome[T]) -> T:
    """Return the value of a successful outcome, raise the error otherwise."""
    if isinstance(outcome, Ok):
        return outcome.value
    raise outcome
