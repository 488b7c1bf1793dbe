"""Compose the chat request for a call and run it through the request transformers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ai_service.models import ChatRequest, Message, system_message, user_message

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

RequestTransformer = Callable[[ChatRequest], ChatRequest | None]
"""Receives the full request and returns it rewritten, unchanged, or None."""


def compose_user_text(text: str, instruction: str | None) -> str:
    """Append the format instruction to the user text on its own line."""
    if instruction:
        return f"{text}\n{instruction}"
    return text


def build_request(
    user_text: str,
    instruction: str | None = None,
    *,
    system_text: str | None = None,
    history: Sequence[Message] = (),
    parameters: Mapping[str, Any] | None = None,
) -> ChatRequest:
    """Ordered conversation: system message, prior history, then the user message.

    System messages found in the history are left out; the request carries at
    most one, the one rendered for this call.
    """
    messages: list[Message] = []
    if system_text is not None:
        messages.append(system_message(system_text))
    prior = [m for m in history if m.role != "system"]
    if len(prior) != len(history):
        logger.debug("Dropped %d system message(s) from the history", len(history) - len(prior))
    messages.extend(prior)
    messages.append(user_message(compose_user_text(user_text, instruction)))
    return ChatRequest(messages=messages, parameters=dict(parameters or {}))


def apply_transformers(
    request: ChatRequest,
    transformers: Iterable[RequestTransformer],
) -> ChatRequest:
    """Run transformers in order, keeping the same object when nothing changes."""
    for transform in transformers:
        transformed = transform(request)
        if transformed is None or transformed is request or transformed == request:
            continue
        logger.debug("Request rewritten by %s", getattr(transform, "__name__", transform))
        request = transformed
    return request


def user_message_transformer(
    rewrite: Callable[[str], str | None],
) -> Callable[[ChatRequest], ChatRequest]:
    """Turn a ``str -> str`` rewrite into a transformer for the last user message."""

    def _transform(request: ChatRequest) -> ChatRequest:
        target = request.user_message()
        if target is None:
            return request
        rewritten = rewrite(target.content)
        if rewritten is None or rewritten == target.content:
            return request
        messages = [user_message(rewritten) if m is target else m for m in request.messages]
        return ChatRequest(messages=messages, parameters=request.parameters)

    _transform.__name__ = getattr(rewrite, "__name__", "user_message_transformer")
    return _transform
