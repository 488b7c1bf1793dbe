"""Per-method orchestration: arguments in, typed value out."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ai_service.errors import (
    ConfigurationError,
    Ok,
    Outcome,
    ParseError,
    unwrap,
)
from ai_service.instructions import format_instruction
from ai_service.models import ChatRequest, Result, assistant_message
from ai_service.moderation import moderation_error
from ai_service.parsing import parse_response
from ai_service.request import apply_transformers, build_request
from ai_service.services.base import JSON_RESPONSE_FORMAT
from ai_service.templates import (
    IT,
    TemplateSpec,
    as_template,
    fill_template,
    is_structured_prompt,
    render_structured_prompt,
    render_value,
)
from ai_service.types import STRING, MapOf, RecordType, ResultOf, TypeDescriptor, unwrap_result

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from ai_service.memory import ChatMemory
    from ai_service.moderation import ModerationGate
    from ai_service.request import RequestTransformer
    from ai_service.services.base import ChatModel
    from ai_service.templates import ResourceLoader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Param:
    """A method parameter.

    Every parameter is available to templates as ``{{name}}``. A
    ``user_message`` parameter supplies the user message when the method has no
    user template; a ``variadic`` parameter collects the remaining positional
    arguments.
    """

    name: str
    user_message: bool = False
    variadic: bool = False


@dataclass(frozen=True)
class MethodSpec:
    """Declarative description of one service method."""

    name: str
    returns: TypeDescriptor | ResultOf = STRING
    user_message: TemplateSpec | str | None = None
    system_message: TemplateSpec | str | None = None
    params: tuple[Param | str, ...] = field(default=())
    moderate: bool = False

    def __post_init__(self) -> None:
        """Normalize templates and parameters, then validate the combination."""
        object.__setattr__(self, "user_message", as_template(self.user_message))
        object.__setattr__(self, "system_message", as_template(self.system_message))
        params = tuple(Param(p) if isinstance(p, str) else p for p in self.params)
        object.__setattr__(self, "params", params)

        names = [p.name for p in params]
        if len(set(names)) != len(names):
            msg = f"Method '{self.name}' declares duplicate parameters: {names}"
            raise ConfigurationError(msg)
        user_params = [p for p in params if p.user_message]
        if len(user_params) > 1:
            msg = f"Method '{self.name}' can have at most one user message parameter"
            raise ConfigurationError(msg)
        if user_params and self.user_message is not None:
            msg = (
                f"Method '{self.name}' declares both a user message template"
                " and a user message parameter"
            )
            raise ConfigurationError(msg)
        variadic = [i for i, p in enumerate(params) if p.variadic]
        if variadic and variadic != [len(params) - 1]:
            msg = f"Method '{self.name}' can only have a single, last variadic parameter"
            raise ConfigurationError(msg)

    def signature(self) -> inspect.Signature:
        """Python call signature matching the declared parameters."""
        return inspect.Signature(
            [
                inspect.Parameter(
                    p.name,
                    inspect.Parameter.VAR_POSITIONAL
                    if p.variadic
                    else inspect.Parameter.POSITIONAL_OR_KEYWORD,
                )
                for p in self.params
            ],
        )


def _attempt(step: Callable[..., Any], *args: Any) -> Outcome[Any]:
    """Run a pure step, returning its failure as a value instead of raising it."""
    try:
        return Ok(step(*args))
    except (ConfigurationError, ParseError) as e:
        return e


async def _discard(task: asyncio.Task[Any]) -> None:
    """Cancel a model call whose answer is no longer wanted and wait for it to finish."""
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


class Dispatcher:
    """Runs one method of a service.

    Everything derivable from the `MethodSpec` (return descriptor, format
    instruction, call signature, request parameters) is fixed at construction.
    """

    def __init__(  # noqa: PLR0913
        self,
        spec: MethodSpec,
        *,
        chat_model: ChatModel,
        moderation_gate: ModerationGate | None = None,
        chat_memory: ChatMemory | None = None,
        resource_loader: ResourceLoader | None = None,
        request_transformers: Sequence[RequestTransformer] = (),
        request_parameters: Mapping[str, Any] | None = None,
        concurrent_moderation: bool = False,
    ) -> None:
        """Initialize the dispatcher."""
        if spec.moderate and moderation_gate is None:
            msg = f"Method '{spec.name}' is moderated but no moderation model is configured"
            raise ConfigurationError(msg)
        self.spec = spec
        self.chat_model = chat_model
        self.moderation_gate = moderation_gate
        self.chat_memory = chat_memory
        self.resource_loader = resource_loader
        self.request_transformers = tuple(request_transformers)
        self.concurrent_moderation = concurrent_moderation

        self.descriptor, self.wraps_result = unwrap_result(spec.returns)
        self.instruction = format_instruction(self.descriptor)
        self.signature = spec.signature()
        self.request_parameters = dict(request_parameters or {})
        if (
            isinstance(self.descriptor, RecordType | MapOf)
            and JSON_RESPONSE_FORMAT in chat_model.supported_capabilities
        ):
            self.request_parameters.setdefault("response_format", "json_object")
        self._raw_templates: dict[str, str] = {}

    @property
    def name(self) -> str:
        """Method name."""
        return self.spec.name

    def __repr__(self) -> str:
        """Show the method and its signature."""
        return f"<Dispatcher {self.name}{self.signature}>"

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """Same as `invoke`."""
        return await self.invoke(*args, **kwargs)

    async def invoke(self, *args: Any, **kwargs: Any) -> Any:
        """Call the method, raising `ConfigurationError`, `ModerationError` or `ParseError`."""
        return unwrap(await self.try_invoke(*args, **kwargs))

    async def try_invoke(self, *args: Any, **kwargs: Any) -> Outcome[Any]:
        """Call the method and return the outcome as a value.

        Errors raised by the model, moderation or memory ports propagate
        unchanged.
        """
        arguments = dict(self.signature.bind(*args, **kwargs).arguments)
        composed = _attempt(self.compose, arguments)
        if not isinstance(composed, Ok):
            return composed
        request: ChatRequest = composed.value
        outbound = request.user_message()
        if outbound is None:
            msg = f"The request for '{self.name}' has no user message left after transformation"
            return ConfigurationError(msg)

        response = None
        if self.spec.moderate:
            assert self.moderation_gate is not None
            if self.concurrent_moderation:
                chat_task = asyncio.create_task(self.chat_model.chat(request))
                try:
                    moderation = await self.moderation_gate.moderate([outbound])
                except BaseException:
                    await _discard(chat_task)
                    raise
                if moderation.flagged:
                    await _discard(chat_task)
                    return moderation_error(moderation)
                response = await chat_task
            else:
                moderation = await self.moderation_gate.moderate([outbound])
                if moderation.flagged:
                    return moderation_error(moderation)

        if response is None:
            logger.debug("Calling %s with %d message(s)", self.name, len(request.messages))
            response = await self.chat_model.chat(request)

        parsed = _attempt(parse_response, response.content, self.descriptor)
        if not isinstance(parsed, Ok):
            logger.debug("Answer to %s did not parse: %s", self.name, parsed)
            return parsed

        if self.chat_memory is not None:
            self.chat_memory.add(outbound)
            self.chat_memory.add(assistant_message(response.content))

        if self.wraps_result:
            return Ok(
                Result(
                    content=parsed.value,
                    token_usage=response.token_usage,
                    sources=list(response.sources),
                ),
            )
        return parsed

    def compose(self, arguments: dict[str, Any]) -> ChatRequest:
        """Build the request for bound ``arguments`` (no model call)."""
        variables = dict(arguments)
        if len(self.spec.params) == 1:
            variables[IT] = arguments[self.spec.params[0].name]

        system_text = None
        if self.spec.system_message is not None:
            system_text = self._resolve(self.spec.system_message, variables, "System")
        user_text = self._user_text(arguments, variables)
        history = self.chat_memory.messages() if self.chat_memory is not None else ()

        request = build_request(
            user_text,
            self.instruction,
            system_text=system_text,
            history=history,
            parameters=self.request_parameters,
        )
        return apply_transformers(request, self.request_transformers)

    def _resolve(self, spec: TemplateSpec, variables: Mapping[str, Any], role: str) -> str:
        raw = self._raw_templates.get(role)
        if raw is None:
            raw = spec.load(self.resource_loader, role)
            self._raw_templates[role] = raw
        return fill_template(raw, variables, role=role)

    def _user_text(self, arguments: Mapping[str, Any], variables: Mapping[str, Any]) -> str:
        if self.spec.user_message is not None:
            return self._resolve(self.spec.user_message, variables, "User")

        params = self.spec.params
        source = next((p for p in params if p.user_message), None)
        if source is None and len(params) == 1:
            source = params[0]
        if source is None:
            msg = f"Method '{self.name}' does not have a user message defined"
            raise ConfigurationError(msg)

        value = arguments[source.name]
        text = render_structured_prompt(value) if is_structured_prompt(value) else render_value(value)
        if not text.strip():
            msg = "User message cannot be empty"
            raise ConfigurationError(msg)
        return text
