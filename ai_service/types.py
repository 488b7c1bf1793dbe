"""Type descriptors: the return shapes a service method can ask the model for.

Descriptors are built explicitly with the small DSL below and are immutable and
hashable, so derived instructions can be cached per descriptor.

Example:
    from ai_service import types as t

    address = t.record(
        "recipes.Address",
        {"street_number": t.INT, "street": t.STRING, "city": t.STRING},
        factory=Address,
    )
    person = t.record(
        "recipes.Person",
        {"first_name": t.STRING, "birth_date": t.DATE, "address": address},
        factory=Person,
    )

"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from ai_service.errors import ConfigurationError

PrimitiveKind = Literal["string", "int", "float", "bool", "date", "time", "datetime"]


@dataclass(frozen=True)
class Primitive:
    """A scalar value."""

    kind: PrimitiveKind


@dataclass(frozen=True)
class EnumConstant:
    """One allowed enum value, optionally explained to the model."""

    name: str
    description: str | None = None


@dataclass(frozen=True)
class EnumType:
    """A closed set of named constants."""

    name: str
    constants: tuple[EnumConstant, ...]
    enum_class: type[Enum] | None = None

    @property
    def names(self) -> list[str]:
        """Constant names in declaration order."""
        return [c.name for c in self.constants]


@dataclass(frozen=True)
class ListOf:
    """An ordered collection of items of one shape."""

    item: TypeDescriptor


@dataclass(frozen=True)
class MapOf:
    """A flat key/value object."""

    key: TypeDescriptor
    value: TypeDescriptor


@dataclass(frozen=True)
class RecordField:
    """A named member of a record."""

    name: str
    type: TypeDescriptor
    description: str | None = None


@dataclass(frozen=True)
class RecordType:
    """A JSON object with declared fields.

    ``factory`` receives the parsed fields as keyword arguments; without one the
    parser returns a plain dict.
    """

    name: str
    fields: tuple[RecordField, ...]
    factory: Callable[..., Any] | None = None


@dataclass(frozen=True)
class ResultOf:
    """Return shape wrapped in a `Result` carrying usage and sources."""

    content: TypeDescriptor


TypeDescriptor = Primitive | EnumType | ListOf | MapOf | RecordType

STRING = Primitive("string")
INT = Primitive("int")
FLOAT = Primitive("float")
BOOL = Primitive("bool")
DATE = Primitive("date")
TIME = Primitive("time")
DATETIME = Primitive("datetime")


def list_of(item: TypeDescriptor) -> ListOf:
    """Collection of ``item``."""
    return ListOf(item)


def map_of(key: TypeDescriptor, value: TypeDescriptor) -> MapOf:
    """Mapping from ``key`` to ``value``; keys must be primitives."""
    if not isinstance(key, Primitive):
        msg = f"Map keys must be primitive, got {describe(key)}"
        raise ConfigurationError(msg)
    return MapOf(key, value)


def enum_of(name: str, *constants: str | tuple[str, str]) -> EnumType:
    """Enum from bare names or ``(name, description)`` pairs."""
    parsed = tuple(
        EnumConstant(*c) if isinstance(c, tuple) else EnumConstant(c) for c in constants
    )
    return _checked_enum(EnumType(name, parsed))


def enum_type(
    enum_cls: type[Enum],
    descriptions: Mapping[str, str] | None = None,
    *,
    name: str | None = None,
) -> EnumType:
    """Enum descriptor for a Python enum; parsing yields its members."""
    descriptions = descriptions or {}
    unknown = set(descriptions) - set(enum_cls.__members__)
    if unknown:
        msg = f"Descriptions given for unknown {enum_cls.__name__} members: {sorted(unknown)}"
        raise ConfigurationError(msg)
    constants = tuple(EnumConstant(m.name, descriptions.get(m.name)) for m in enum_cls)
    return _checked_enum(
        EnumType(name or enum_cls.__qualname__, constants, enum_class=enum_cls),
    )


def _checked_enum(descriptor: EnumType) -> EnumType:
    if not descriptor.constants:
        msg = f"Enum {descriptor.name} must declare at least one constant"
        raise ConfigurationError(msg)
    names = descriptor.names
    if len(set(names)) != len(names):
        msg = f"Enum {descriptor.name} declares duplicate constants"
        raise ConfigurationError(msg)
    return descriptor


def record(
    name: str,
    fields: Mapping[str, TypeDescriptor | tuple[TypeDescriptor, str]],
    *,
    factory: Callable[..., Any] | None = None,
) -> RecordType:
    """Record with fields in mapping order.

    A field maps to its descriptor, or to ``(descriptor, description)`` when
    the model should see an explanation of it.
    """
    if not fields:
        msg = f"Record {name} must declare at least one field"
        raise ConfigurationError(msg)
    members = []
    for field_name, spec in fields.items():
        if isinstance(spec, tuple):
            descriptor, description = spec
            members.append(RecordField(field_name, descriptor, description))
        else:
            members.append(RecordField(field_name, spec))
    return RecordType(name, tuple(members), factory)


def result_of(content: TypeDescriptor) -> ResultOf:
    """Ask for a `Result` wrapper around ``content``."""
    return ResultOf(content)


def unwrap_result(returns: TypeDescriptor | ResultOf) -> tuple[TypeDescriptor, bool]:
    """Split a return shape into its content descriptor and whether it is wrapped."""
    if isinstance(returns, ResultOf):
        return returns.content, True
    return returns, False


def describe(descriptor: TypeDescriptor | ResultOf) -> str:
    """Short readable name for a descriptor, used in messages."""
    if isinstance(descriptor, Primitive):
        return descriptor.kind
    if isinstance(descriptor, EnumType | RecordType):
        return descriptor.name
    if isinstance(descriptor, ListOf):
        return f"list[{describe(descriptor.item)}]"
    if isinstance(descriptor, MapOf):
        return f"map[{describe(descriptor.key)}, {describe(descriptor.value)}]"
    return f"result[{describe(descriptor.content)}]"
