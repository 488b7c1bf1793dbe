"""Tests for parsing model answers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum

import pytest
from pydantic import BaseModel

from ai_service import types as t
from ai_service.errors import ParseError
from ai_service.parsing import extract_json, parse_response


class Ingredient(Enum):
    """Pantry staples."""

    SALT = "salt"
    PEPPER = "pepper"
    VINEGAR = "vinegar"
    OIL = "oil"


@dataclass
class Address:
    """Postal address."""

    streetNumber: int  # noqa: N815
    street: str
    city: str


@dataclass
class Person:
    """Someone mentioned in a text."""

    firstName: str  # noqa: N815
    lastName: str  # noqa: N815
    birthDate: date  # noqa: N815
    address: Address



class Contact(BaseModel):
    """Contact card with required and defaulted fields."""

    name: str
    age: int
    nickname: str = "none"
    tags: list[str] = []


ADDRESS = t.record(
    "Address",
    {"streetNumber": t.INT, "street": t.STRING, "city": t.STRING},
    factory=Address,
)
PERSON = t.record(
    "Person",
    {"firstName": t.STRING, "lastName": t.STRING, "birthDate": t.DATE, "address": ADDRESS},
    factory=Person,
)


class TestPrimitives:
    """Scalar answers."""

    def test_string_is_returned_verbatim(self) -> None:
        """Text is not stripped."""
        assert parse_response("  Hallo, wie geht es dir?\n", t.STRING) == "  Hallo, wie geht es dir?\n"

    @pytest.mark.parametrize(
        ("text", "descriptor", "expected"),
        [
            ("13", t.INT, 13),
            (" 13\n", t.INT, 13),
            ("2.5", t.FLOAT, 2.5),
            ("TRUE", t.BOOL, True),
            ("false", t.BOOL, False),
            ("1968-07-04", t.DATE, date(1968, 7, 4)),
            ("23:45:00", t.TIME, time(23, 45)),
            ("1968-07-04T23:45:00", t.DATETIME, datetime(1968, 7, 4, 23, 45)),  # noqa: DTZ001
        ],
    )
    def test_conversion(self, text: str, descriptor: t.Primitive, expected: object) -> None:
        """Surrounding whitespace is ignored for non-string scalars."""
        assert parse_response(text, descriptor) == expected

    @pytest.mark.parametrize(
        ("text", "descriptor"),
        [
            ("thirteen", t.INT),
            ("1_000", t.INT),
            ("\u0663", t.INT),
            ("1_0.5", t.FLOAT),
            ("nan", t.FLOAT),
            ("yes", t.BOOL),
            ("July 4th", t.DATE),
        ],
    )
    def test_malformed_answer(self, text: str, descriptor: t.Primitive) -> None:
        """Answers that do not match the format raise ParseError with the text."""
        with pytest.raises(ParseError) as exc_info:
            parse_response(text, descriptor)
        assert exc_info.value.text == text
        assert exc_info.value.descriptor == descriptor


class TestEnums:
    """Enum answers."""

    def test_enum_member(self) -> None:
        """Python enum descriptors produce members."""
        assert parse_response("PEPPER\n", t.enum_type(Ingredient)) is Ingredient.PEPPER

    def test_enum_name(self) -> None:
        """Name-only enums produce the constant name."""
        assert parse_response("POSITIVE", t.enum_of("Sentiment", "POSITIVE", "NEGATIVE")) == (
            "POSITIVE"
        )

    def test_unknown_constant(self) -> None:
        """Matching is exact."""
        with pytest.raises(ParseError, match="expected one of"):
            parse_response("positive", t.enum_of("Sentiment", "POSITIVE", "NEGATIVE"))

    def test_list_of_enums(self) -> None:
        """One constant per line; blank lines are skipped."""
        answer = "SALT\n\nPEPPER\nOIL\n"
        assert parse_response(answer, t.list_of(t.enum_type(Ingredient))) == [
            Ingredient.SALT,
            Ingredient.PEPPER,
            Ingredient.OIL,
        ]


class TestLists:
    """Line-per-item answers."""

    def test_list_of_strings(self) -> None:
        """Items are stripped."""
        answer = "- Mango is tasty\n  - Mango is sweet\n"
        assert parse_response(answer, t.list_of(t.STRING)) == ["- Mango is tasty", "- Mango is sweet"]

    def test_list_of_ints(self) -> None:
        """Each line is converted."""
        assert parse_response("1\n2\n3", t.list_of(t.INT)) == [1, 2, 3]

    def test_bad_item(self) -> None:
        """A single bad line fails the whole answer."""
        with pytest.raises(ParseError):
            parse_response("1\ntwo", t.list_of(t.INT))


class TestJson:
    """Map and record answers."""

    def test_map(self) -> None:
        """Keys and values are converted."""
        answer = '{"Klaus": 42, "Francine": 47}'
        assert parse_response(answer, t.map_of(t.STRING, t.INT)) == {"Klaus": 42, "Francine": 47}

    def test_map_with_int_keys(self) -> None:
        """Object keys are strings in JSON and converted to the key type."""
        assert parse_response('{"1": "one"}', t.map_of(t.INT, t.STRING)) == {1: "one"}

    def test_nested_record_with_factory(self) -> None:
        """Nested records are built bottom-up."""
        answer = (
            '{"firstName": "John", "lastName": "Doe", "birthDate": "1968-07-04",'
            ' "address": {"streetNumber": 345, "street": "Whispering Pines Avenue",'
            ' "city": "Springfield"}}'
        )
        person = parse_response(answer, PERSON)
        assert person == Person(
            firstName="John",
            lastName="Doe",
            birthDate=date(1968, 7, 4),
            address=Address(345, "Whispering Pines Avenue", "Springfield"),
        )

    def test_record_without_factory(self) -> None:
        """Records without a factory parse into dicts; unknown keys are ignored."""
        booking = t.record("Booking", {"userId": t.STRING, "bookingId": t.STRING})
        answer = '{"userId": "u-1", "bookingId": "b-7", "extra": true}'
        assert parse_response(answer, booking) == {"userId": "u-1", "bookingId": "b-7"}

    def test_missing_fields_are_empty(self) -> None:
        """Absent or null fields become None, or empty collections."""
        recipe = t.record(
            "Recipe",
            {"title": t.STRING, "steps": t.list_of(t.STRING), "tags": t.map_of(t.STRING, t.STRING)},
        )
        assert parse_response('{"title": null}', recipe) == {"title": None, "steps": [], "tags": {}}

    def test_missing_fields_use_factory_defaults(self) -> None:
        """Absent fields fall back to the defaults of the record class."""
        contact = t.record(
            "Contact",
            {"name": t.STRING, "age": t.INT, "nickname": t.STRING, "tags": t.list_of(t.STRING)},
            factory=Contact,
        )
        assert parse_response('{"name": "Klaus", "age": 42, "nickname": null}', contact) == (
            Contact(name="Klaus", age=42)
        )

    def test_missing_required_field_of_pydantic_model(self) -> None:
        """A required field the model rejects as empty is a ParseError."""
        contact = t.record("Contact", {"name": t.STRING, "age": t.INT}, factory=Contact)
        with pytest.raises(ParseError, match="age") as exc_info:
            parse_response('{"name": "Klaus"}', contact)
        assert exc_info.value.text == '{"name": "Klaus"}'

    def test_factory_type_error(self) -> None:
        """Factories rejecting the fields produce a ParseError."""

        def strict(*, name: str) -> str:
            if not name:
                msg = "name must not be empty"
                raise TypeError(msg)
            return name

        named = t.record("Named", {"name": t.STRING}, factory=strict)
        with pytest.raises(ParseError, match="name must not be empty"):
            parse_response('{"name": ""}', named)

    def test_fenced_json(self) -> None:
        """Code fences and surrounding prose are ignored."""
        answer = 'Sure! Here it is:\n```json\n{"Klaus": 42}\n```'
        assert parse_response(answer, t.map_of(t.STRING, t.INT)) == {"Klaus": 42}

    def test_numeric_string_for_int_field(self) -> None:
        """Numbers sent as strings are accepted."""
        assert parse_response('{"streetNumber": "345", "street": "Main", "city": "X"}', ADDRESS) == (
            Address(345, "Main", "X")
        )

    @pytest.mark.parametrize(
        "answer",
        [
            "not json at all",
            "[1, 2, 3]",
            '{"streetNumber": true, "street": "Main", "city": "X"}',
            '{"streetNumber": 1, "street": "Main", "city": ["X"]}',
        ],
    )
    def test_malformed_record(self, answer: str) -> None:
        """Invalid JSON or mistyped fields raise ParseError."""
        with pytest.raises(ParseError, match="Failed to parse"):
            parse_response(answer, ADDRESS)


def test_extract_json() -> None:
    """Only the outermost object is kept."""
    assert extract_json('```\n{"a": {"b": 1}}\n```') == '{"a": {"b": 1}}'
    assert extract_json('The answer is {"a": 1}.') == '{"a": 1}'


def test_result_wrapper_parses_content() -> None:
    """A Result wrapper parses like its content."""
    assert parse_response("42", t.result_of(t.INT)) == 42
