"""Tests for textual type expressions."""

from __future__ import annotations

import pytest

from ai_service import types as t
from ai_service.errors import ConfigurationError
from ai_service.type_expr import parse_type_expression


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("str", t.STRING),
        ("Integer", t.INT),
        ("datetime", t.DATETIME),
        ("list[date]", t.list_of(t.DATE)),
        ("map[str, int]", t.map_of(t.STRING, t.INT)),
        ("list[ enum[SALT, PEPPER, OIL] ]", t.list_of(t.enum_of("Enum", "SALT", "PEPPER", "OIL"))),
        ("result[list[str]]", t.result_of(t.list_of(t.STRING))),
        ("map[str, list[bool]]", t.map_of(t.STRING, t.list_of(t.BOOL))),
    ],
)
def test_parse(expression: str, expected: object) -> None:
    """Expressions map onto descriptors."""
    assert parse_type_expression(expression) == expected


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "decimal",
        "list[int",
        "list[int]]",
        "map[str]",
        "list[result[int]]",
        "enum[]",
    ],
)
def test_invalid(expression: str) -> None:
    """Malformed expressions raise ValueError."""
    with pytest.raises(ValueError, match="Invalid type expression"):
        parse_type_expression(expression)


def test_structured_map_key() -> None:
    """Map keys must be primitive."""
    with pytest.raises(ConfigurationError):
        parse_type_expression("map[list[str], int]")
