"""Prompt templates: literal or resource-backed text with ``{{name}}`` placeholders."""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from ai_service.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)

IT = "it"
"""Placeholder bound to the sole argument of a single-parameter method."""

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

C = TypeVar("C", bound=type)


class ResourceLoader(Protocol):
    """Loads template text; returns None when the resource does not exist."""

    def load(self, path: str) -> str | None:
        """Return the text stored at ``path``."""
        ...


class DirectoryResourceLoader:
    """Loads templates from files below a directory."""

    def __init__(self, root: Path | str) -> None:
        """Initialize the loader."""
        self.root = Path(root).expanduser()

    def load(self, path: str) -> str | None:
        """Read ``root/path`` if it is a file."""
        candidate = self.root / path.lstrip("/")
        if not candidate.is_file():
            return None
        return candidate.read_text(encoding="utf-8")


class PackageResourceLoader:
    """Loads templates shipped as package data."""

    def __init__(self, package: str) -> None:
        """Initialize the loader."""
        self.package = package

    def load(self, path: str) -> str | None:
        """Read a resource relative to the package root."""
        resource = resources.files(self.package).joinpath(path.lstrip("/"))
        if not resource.is_file():
            return None
        return resource.read_text(encoding="utf-8")


class ChainedResourceLoader:
    """Tries several loaders in order; the first hit wins."""

    def __init__(self, *loaders: ResourceLoader) -> None:
        """Initialize the loader."""
        self.loaders = loaders

    def load(self, path: str) -> str | None:
        """Return the first text any loader finds."""
        for loader in self.loaders:
            text = loader.load(path)
            if text is not None:
                return text
        return None


@dataclass(frozen=True)
class TemplateSpec:
    """Either literal template text or the path of a resource holding it."""

    text: str | None = None
    resource: str | None = None

    def __post_init__(self) -> None:
        """Exactly one of text and resource must be given."""
        if (self.text is None) == (self.resource is None):
            msg = "A template needs either literal text or a resource path"
            raise ConfigurationError(msg)

    @classmethod
    def literal(cls, text: str) -> TemplateSpec:
        """Template given inline."""
        return cls(text=text)

    @classmethod
    def from_resource(cls, path: str) -> TemplateSpec:
        """Template loaded through a `ResourceLoader`."""
        return cls(resource=path)

    def load(self, loader: ResourceLoader | None, role: str) -> str:
        """Return the raw template text, failing if it is missing or blank."""
        if self.resource is not None:
            text = loader.load(self.resource) if loader is not None else None
            if text is None:
                msg = f"{role} message resource '{self.resource}' not found"
                raise ConfigurationError(msg)
        else:
            text = self.text or ""
        if not text.strip():
            msg = f"{role} message template cannot be empty"
            raise ConfigurationError(msg)
        return text


def as_template(value: TemplateSpec | str | None) -> TemplateSpec | None:
    """Accept plain strings wherever a template is expected."""
    if value is None or isinstance(value, TemplateSpec):
        return value
    return TemplateSpec.literal(value)


def render_value(value: Any) -> str:
    """Textual form of a bound argument."""
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, list | tuple | set | frozenset):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    if is_structured_prompt(value):
        return render_structured_prompt(value)
    return str(value)


def placeholders(template: str) -> list[str]:
    """Names of the placeholders in ``template``, in order of appearance."""
    return _PLACEHOLDER.findall(template)


def substitute(template: str, variables: Mapping[str, Any]) -> str:
    """Replace every placeholder with the rendering of its bound value."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            msg = f"Value for the variable '{name}' is missing"
            raise ConfigurationError(msg)
        return render_value(variables[name])

    return _PLACEHOLDER.sub(_replace, template)


def resolve_template(
    spec: TemplateSpec,
    variables: Mapping[str, Any],
    *,
    loader: ResourceLoader | None = None,
    role: str = "User",
) -> str:
    """Resolve ``spec`` into literal message text."""
    return fill_template(spec.load(loader, role), variables, role=role)


def fill_template(template: str, variables: Mapping[str, Any], *, role: str = "User") -> str:
    """Substitute already loaded template text, rejecting a blank result."""
    text = substitute(template, variables)
    if not text.strip():
        msg = f"{role} message template cannot be empty"
        raise ConfigurationError(msg)
    return text


# --- Structured prompts ---


def structured_prompt(template: str) -> Callable[[C], C]:
    """Mark a dataclass or pydantic model as a prompt whose fields fill ``template``.

    Example:
        @structured_prompt("Create a recipe of a {{dish}} using only {{ingredients}}")
        @dataclass
        class CreateRecipePrompt:
            dish: str
            ingredients: list[str]

    """

    def _decorate(cls: C) -> C:
        cls.__structured_prompt__ = template
        return cls

    return _decorate


def is_structured_prompt(value: Any) -> bool:
    """Whether ``value`` is an instance of a `structured_prompt` class."""
    return not isinstance(value, type) and hasattr(type(value), "__structured_prompt__")


def structured_prompt_variables(value: Any) -> dict[str, Any]:
    """The declared fields of a structured prompt, by name."""
    if dataclasses.is_dataclass(value):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    model_fields = getattr(type(value), "model_fields", None)
    if model_fields is not None:
        return {name: getattr(value, name) for name in model_fields}
    msg = f"Structured prompt {type(value).__name__} must be a dataclass or a pydantic model"
    raise ConfigurationError(msg)


def render_structured_prompt(value: Any) -> str:
    """Resolve a structured prompt instance into text."""
    spec = TemplateSpec.literal(type(value).__structured_prompt__)
    return resolve_template(spec, structured_prompt_variables(value), role="Structured prompt")
