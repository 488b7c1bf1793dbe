"""Assemble a service from a table of method specs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ai_service.dispatcher import Dispatcher, MethodSpec
from ai_service.errors import ConfigurationError
from ai_service.moderation import ModerationGate

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from ai_service.memory import ChatMemory
    from ai_service.request import RequestTransformer
    from ai_service.services.base import ChatModel, ModerationModel
    from ai_service.templates import ResourceLoader

logger = logging.getLogger(__name__)


class Service:
    """A set of dispatchers reachable as attributes, e.g. ``await service.count(text)``."""

    def __init__(self, dispatchers: Mapping[str, Dispatcher]) -> None:
        """Initialize the service."""
        self._dispatchers = dict(dispatchers)

    def __getattr__(self, name: str) -> Dispatcher:
        """Look up a method by name."""
        dispatchers = self.__dict__.get("_dispatchers", {})
        try:
            return dispatchers[name]
        except KeyError:
            msg = f"{type(self).__name__} has no method {name!r}"
            raise AttributeError(msg) from None

    def __getitem__(self, name: str) -> Dispatcher:
        """Look up a method by name."""
        return self._dispatchers[name]

    def __iter__(self) -> Iterator[str]:
        """Iterate over method names."""
        return iter(self._dispatchers)

    def __contains__(self, name: object) -> bool:
        """Whether the service has a method called ``name``."""
        return name in self._dispatchers

    def __dir__(self) -> list[str]:
        """Include method names for completion."""
        return sorted({*super().__dir__(), *self._dispatchers})


def create_service(  # noqa: PLR0913
    chat_model: ChatModel,
    methods: Iterable[MethodSpec],
    *,
    moderation_model: ModerationModel | None = None,
    chat_memory: ChatMemory | None = None,
    resource_loader: ResourceLoader | None = None,
    request_transformers: Iterable[RequestTransformer] = (),
    request_parameters: Mapping[str, Any] | None = None,
    concurrent_moderation: bool = False,
) -> Service:
    """Build one dispatcher per method spec and bundle them into a `Service`.

    Example:
        counter = create_service(
            model,
            [
                MethodSpec(
                    "count",
                    returns=t.INT,
                    user_message="Count the eggs in: {{it}}",
                    params=("sentence",),
                ),
            ],
        )
        eggs = await counter.count("I have ten eggs and three more.")

    """
    transformers = tuple(request_transformers)
    parameters = {**chat_model.default_request_parameters, **(request_parameters or {})}
    gate = ModerationGate(moderation_model) if moderation_model is not None else None

    dispatchers: dict[str, Dispatcher] = {}
    for spec in methods:
        if spec.name in dispatchers:
            msg = f"Method '{spec.name}' is declared more than once"
            raise ConfigurationError(msg)
        if not spec.name.isidentifier() or spec.name.startswith("_") or hasattr(Service, spec.name):
            msg = f"'{spec.name}' cannot be used as a method name"
            raise ConfigurationError(msg)
        dispatchers[spec.name] = Dispatcher(
            spec,
            chat_model=chat_model,
            moderation_gate=gate,
            chat_memory=chat_memory,
            resource_loader=resource_loader,
            request_transformers=transformers,
            request_parameters=parameters,
            concurrent_moderation=concurrent_moderation,
        )

    logger.debug(
        "Assembled service with methods %s on provider %s",
        list(dispatchers),
        chat_model.provider,
    )
    return Service(dispatchers)
