"""Compact textual type expressions, used by the command line.

Examples: ``int``, ``list[date]``, ``map[str, int]``, ``enum[POSITIVE, NEGATIVE]``,
``list[enum[SALT, PEPPER]]``, ``result[str]``.
"""

from __future__ import annotations

import re

from ai_service import types as t

_TOKEN = re.compile(r"\s*(?:(\w+)|(.))")

_PRIMITIVES = {
    "str": t.STRING,
    "string": t.STRING,
    "int": t.INT,
    "integer": t.INT,
    "float": t.FLOAT,
    "bool": t.BOOL,
    "boolean": t.BOOL,
    "date": t.DATE,
    "time": t.TIME,
    "datetime": t.DATETIME,
}


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = [m.group(1) or m.group(2) for m in _TOKEN.finditer(text) if m.group().strip()]
        self.pos = 0

    def error(self, expected: str) -> ValueError:
        found = self.tokens[self.pos] if self.pos < len(self.tokens) else "end of input"
        return ValueError(f"Invalid type expression {self.text!r}: expected {expected}, found {found!r}")

    def peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected: str | None = None) -> str:
        token = self.peek()
        if token is None or (expected is not None and token != expected):
            raise self.error(repr(expected) if expected else "a name")
        self.pos += 1
        return token

    def name(self) -> str:
        token = self.take()
        if not re.fullmatch(r"\w+", token):
            raise self.error("a name")
        return token

    def expression(self) -> t.TypeDescriptor | t.ResultOf:
        word = self.name().lower()
        if word in _PRIMITIVES:
            return _PRIMITIVES[word]
        self.take("[")
        if word == "list":
            inner = self.descriptor()
            self.take("]")
            return t.list_of(inner)
        if word == "map":
            key = self.descriptor()
            self.take(",")
            value = self.descriptor()
            self.take("]")
            return t.map_of(key, value)
        if word == "result":
            inner = self.descriptor()
            self.take("]")
            return t.result_of(inner)
        if word == "enum":
            constants = [self.name()]
            while self.peek() == ",":
                self.take(",")
                constants.append(self.name())
            self.take("]")
            return t.enum_of("Enum", *constants)
        self.pos -= 2
        raise self.error("a known type")

    def descriptor(self) -> t.TypeDescriptor:
        parsed = self.expression()
        if isinstance(parsed, t.ResultOf):
            msg = f"Invalid type expression {self.text!r}: result[...] is only allowed at the top"
            raise ValueError(msg)
        return parsed


def parse_type_expression(text: str) -> t.TypeDescriptor | t.ResultOf:
    """Parse a type expression into a descriptor."""
    parser = _Parser(text)
    parsed = parser.expression()
    if parser.peek() is not None:
        raise parser.error("end of input")
    return parsed
