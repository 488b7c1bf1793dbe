"""Turn raw model text back into typed values."""

from __future__ import annotations

import inspect
import json
import logging
import re
from datetime import date, datetime, time
from typing import Any

from ai_service.errors import ParseError
from ai_service.types import (
    EnumType,
    ListOf,
    MapOf,
    Primitive,
    RecordType,
    ResultOf,
    TypeDescriptor,
    describe,
)

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_TRUE_FALSE = {"true": True, "false": False}
_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)
_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def parse_response(text: str, descriptor: TypeDescriptor | ResultOf) -> Any:
    """Parse ``text`` as produced by a model following the descriptor's instruction."""
    if isinstance(descriptor, ResultOf):
        return parse_response(text, descriptor.content)
    if isinstance(descriptor, Primitive):
        if descriptor.kind == "string":
            return text
        return _parse_primitive_text(text.strip(), descriptor, text)
    if isinstance(descriptor, EnumType):
        return _parse_enum(text.strip(), descriptor, text)
    if isinstance(descriptor, ListOf):
        return _parse_lines(text, descriptor)
    if isinstance(descriptor, MapOf):
        return _convert_map(_decode_object(text, descriptor), descriptor, text)
    return _convert_record(_decode_object(text, descriptor), descriptor, text)


def _fail(text: str, descriptor: TypeDescriptor, reason: str | None = None) -> ParseError:
    msg = f"Failed to parse {text!r} into {describe(descriptor)}"
    if reason:
        msg = f"{msg}: {reason}"
    return ParseError(msg, text, descriptor)


def _parse_primitive_text(value: str, descriptor: Primitive, original: str) -> Any:
    kind = descriptor.kind
    try:
        if kind == "string":
            return value
        if kind == "int":
            if not _INTEGER.fullmatch(value):
                raise _fail(original, descriptor)
            return int(value)
        if kind == "float":
            if not _DECIMAL.fullmatch(value):
                raise _fail(original, descriptor)
            return float(value)
        if kind == "bool":
            return _TRUE_FALSE[value.lower()]
        if kind == "date":
            return date.fromisoformat(value)
        if kind == "time":
            return time.fromisoformat(value)
        return datetime.fromisoformat(value)
    except (ValueError, KeyError) as e:
        raise _fail(original, descriptor) from e


def _parse_enum(value: str, descriptor: EnumType, original: str) -> Any:
    if value not in descriptor.names:
        raise _fail(original, descriptor, f"expected one of {descriptor.names}")
    if descriptor.enum_class is not None:
        return descriptor.enum_class[value]
    return value


def _parse_lines(text: str, descriptor: ListOf) -> list[Any]:
    items = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if isinstance(descriptor.item, Primitive):
            items.append(_parse_primitive_text(stripped, descriptor.item, line))
        else:
            items.append(parse_response(stripped, descriptor.item))
    logger.debug("Parsed %d items as %s", len(items), describe(descriptor))
    return items


def extract_json(text: str) -> str:
    """Strip code fences and surrounding prose from a JSON answer."""
    stripped = text.strip()
    fenced = _CODE_FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()
    if stripped.startswith("{"):
        return stripped
    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        return stripped[start : end + 1]
    return stripped


def _decode_object(text: str, descriptor: MapOf | RecordType) -> dict[str, Any]:
    try:
        payload = json.loads(extract_json(text))
    except json.JSONDecodeError as e:
        raise _fail(text, descriptor, str(e)) from e
    if not isinstance(payload, dict):
        raise _fail(text, descriptor, "expected a JSON object")
    return payload


def _convert_map(payload: dict[str, Any], descriptor: MapOf, text: str) -> dict[Any, Any]:
    assert isinstance(descriptor.key, Primitive)
    return {
        _convert_scalar(key, descriptor.key, text): _convert_value(
            value,
            descriptor.value,
            text,
        )
        for key, value in payload.items()
    }


def _convert_record(payload: dict[str, Any], descriptor: RecordType, text: str) -> Any:
    """Build the record; absent fields fall back to the factory default or an empty value."""
    defaulted = _defaulted_parameters(descriptor.factory)
    values = {}
    for field in descriptor.fields:
        raw = payload.get(field.name)
        if raw is not None:
            values[field.name] = _convert_value(raw, field.type, text)
        elif field.name not in defaulted:
            values[field.name] = _empty_value(field.type)
    if descriptor.factory is None:
        return values
    try:
        return descriptor.factory(**values)
    except (TypeError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        raise _fail(text, descriptor, str(e)) from e


def _defaulted_parameters(factory: Any) -> frozenset[str]:
    if factory is None:
        return frozenset()
    try:
        parameters = inspect.signature(factory).parameters.values()
    except (TypeError, ValueError):
        return frozenset()
    return frozenset(p.name for p in parameters if p.default is not inspect.Parameter.empty)


def _empty_value(descriptor: TypeDescriptor) -> Any:
    if isinstance(descriptor, ListOf):
        return []
    if isinstance(descriptor, MapOf):
        return {}
    return None


def _convert_value(value: Any, descriptor: TypeDescriptor, text: str) -> Any:  # noqa: PLR0911
    """Convert an already decoded JSON value."""
    if isinstance(descriptor, RecordType):
        if not isinstance(value, dict):
            raise _fail(text, descriptor, f"expected an object, got {value!r}")
        return _convert_record(value, descriptor, text)
    if isinstance(descriptor, MapOf):
        if not isinstance(value, dict):
            raise _fail(text, descriptor, f"expected an object, got {value!r}")
        return _convert_map(value, descriptor, text)
    if isinstance(descriptor, ListOf):
        if not isinstance(value, list):
            raise _fail(text, descriptor, f"expected an array, got {value!r}")
        return [
            _empty_value(descriptor.item)
            if item is None
            else _convert_value(item, descriptor.item, text)
            for item in value
        ]
    if isinstance(descriptor, EnumType):
        if not isinstance(value, str):
            raise _fail(text, descriptor, f"expected a constant name, got {value!r}")
        return _parse_enum(value.strip(), descriptor, text)
    return _convert_scalar(value, descriptor, text)


def _convert_scalar(value: Any, descriptor: Primitive, text: str) -> Any:
    kind = descriptor.kind
    if isinstance(value, str):
        if kind == "string":
            return value
        return _parse_primitive_text(value.strip(), descriptor, text)
    if kind == "int" and isinstance(value, int) and not isinstance(value, bool):
        return value
    if kind == "float" and isinstance(value, int | float) and not isinstance(value, bool):
        return float(value)
    if kind == "bool" and isinstance(value, bool):
        return value
    raise _fail(text, descriptor, f"unexpected JSON value {value!r}")
