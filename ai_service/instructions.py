"""Format instructions appended to the user message for a return shape.

The wording is part of the contract with the model and with the parser, so it
must stay byte-for-byte stable.
"""

from __future__ import annotations

from functools import lru_cache

from ai_service.types import (
    EnumType,
    ListOf,
    MapOf,
    Primitive,
    RecordType,
    ResultOf,
    TypeDescriptor,
)

STRICT_FORMAT_PREFIX = "You must answer strictly in the following format: "
ONE_ENUM_PREFIX = "You must answer strictly with one of these enums:\n"
MANY_ENUMS_PREFIX = "You must answer strictly with zero or more of these enums on a separate line:\n"
SEPARATE_LINES = "You must put every item on a separate line."
JSON_FORMAT_PREFIX = "You must answer strictly in the following JSON format: "

# Answer format for a primitive return value
_PRIMITIVE_FORMATS = {
    "int": "integer number",
    "float": "floating point number",
    "bool": "one of [true, false]",
    "date": "yyyy-MM-dd",
    "time": "HH:mm:ss",
    "datetime": "yyyy-MM-ddTHH:mm:ss",
}

# Type of a primitive field inside a JSON structure
_PRIMITIVE_FIELD_TYPES = {
    "string": "string",
    "int": "integer",
    "float": "float",
    "bool": "boolean",
    "date": "date string (2023-12-31)",
    "time": "time string (23:59:59)",
    "datetime": "date-time string (2023-12-31T23:59:59)",
}


@lru_cache(maxsize=256)
def format_instruction(descriptor: TypeDescriptor | ResultOf) -> str | None:
    """Return the instruction for ``descriptor``, or None for free-form text."""
    if isinstance(descriptor, ResultOf):
        return format_instruction(descriptor.content)
    if isinstance(descriptor, Primitive):
        fmt = _PRIMITIVE_FORMATS.get(descriptor.kind)
        return STRICT_FORMAT_PREFIX + fmt if fmt else None
    if isinstance(descriptor, EnumType):
        return ONE_ENUM_PREFIX + enum_listing(descriptor)
    if isinstance(descriptor, ListOf):
        if isinstance(descriptor.item, EnumType):
            return MANY_ENUMS_PREFIX + enum_listing(descriptor.item)
        base = format_instruction(descriptor.item)
        return f"{base}\n{SEPARATE_LINES}" if base else SEPARATE_LINES
    if isinstance(descriptor, RecordType):
        return JSON_FORMAT_PREFIX + json_structure(descriptor)
    # Maps are left to the wording of the user message.
    return None


def enum_listing(descriptor: EnumType) -> str:
    """One line per constant: ``NAME`` or ``NAME - description``."""
    return "\n".join(
        f"{c.name} - {c.description}" if c.description else c.name for c in descriptor.constants
    )


def json_structure(descriptor: RecordType) -> str:
    """Field-by-field outline of the JSON object the model must produce."""
    lines = []
    for field in descriptor.fields:
        field_type = field_type_expression(field.type)
        explanation = (
            f"{field.description}; type: {field_type}" if field.description else f"type: {field_type}"
        )
        lines.append(f'"{field.name}": ({explanation})')
    return "{\n" + ",\n".join(lines) + "\n}"


def field_type_expression(descriptor: TypeDescriptor) -> str:
    """Describe the type of a JSON field, recursing into nested records."""
    if isinstance(descriptor, RecordType):
        return f"{descriptor.name}: {json_structure(descriptor)}"
    if isinstance(descriptor, ListOf):
        return f"array of {_element_name(descriptor.item)}"
    if isinstance(descriptor, MapOf):
        return f"map of {_element_name(descriptor.key)} to {_element_name(descriptor.value)}"
    if isinstance(descriptor, EnumType):
        return f"enum, must be one of [{', '.join(descriptor.names)}]"
    return _PRIMITIVE_FIELD_TYPES[descriptor.kind]


def _element_name(descriptor: TypeDescriptor) -> str:
    if isinstance(descriptor, EnumType | RecordType):
        return descriptor.name
    if isinstance(descriptor, ListOf | MapOf):
        return field_type_expression(descriptor)
    return _PRIMITIVE_FIELD_TYPES[descriptor.kind]
