"""Opaque JSON values that travel through the bridge without re-encoding.

Gateway payloads and caller data belong to the payment gateways. Parsing them
into Python floats and dumping them again would change their digits, so they
are carried as the exact JSON text received and spliced back into outgoing
documents as is.
"""

import json
from decimal import Decimal
from json.decoder import scanstring
from typing import Any

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler, SerializationInfo
from pydantic_core import CoreSchema, core_schema


_decoder = json.JSONDecoder()
_WHITESPACE = " \t\n\r"


class RawJson(str):
    """The text of one JSON value, exactly as it was received."""

    @classmethod
    def coerce(cls, value: Any) -> "RawJson":
        """Raw text stays untouched, bytes must already be JSON, anything else is encoded."""

        if isinstance(value, RawJson):
            return value
        if isinstance(value, (bytes, bytearray)):
            text = bytes(value).decode("utf-8")
            json.loads(text)
            return cls(text)
        return cls(json.dumps(value))

    def value(self) -> Any:
        """Parsed value; fractional numbers become `Decimal` so no digit is lost."""

        return json.loads(self, parse_float=Decimal)

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(_serialize, info_arg=True),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, schema: CoreSchema, handler: GetJsonSchemaHandler) -> dict[str, Any]:
        return {}


def _serialize(value: RawJson, info: SerializationInfo) -> Any:
    if info.mode_is_json():
        return json.loads(value)
    return value.value()


def _skip(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _value_span(text: str, pos: int) -> tuple[int, int]:
    start = _skip(text, pos)
    _, end = _decoder.raw_decode(text, start)
    return start, end


def object_members(text: str) -> dict[str, RawJson]:
    """Raw text of every member of the JSON object in `text`, keyed by name."""

    pos = _skip(text, 0)
    if text[pos:pos + 1] != "{":
        raise ValueError("expected a JSON object")
    members: dict[str, RawJson] = {}
    pos = _skip(text, pos + 1)
    if text[pos:pos + 1] == "}":
        return members
    while True:
        if text[pos:pos + 1] != '"':
            raise ValueError(f"expected a member name at offset {pos}")
        name, pos = scanstring(text, pos + 1)
        pos = _skip(text, pos)
        if text[pos:pos + 1] != ":":
            raise ValueError(f"expected ':' at offset {pos}")
        start, end = _value_span(text, pos + 1)
        members[name] = RawJson(text[start:end])
        pos = _skip(text, end)
        if text[pos:pos + 1] == ",":
            pos = _skip(text, pos + 1)
            continue
        if text[pos:pos + 1] == "}":
            return members
        raise ValueError(f"expected ',' or '}}' at offset {pos}")


def array_elements(text: str) -> list[RawJson]:
    """Raw text of every element of the JSON array in `text`, in order."""

    pos = _skip(text, 0)
    if text[pos:pos + 1] != "[":
        raise ValueError("expected a JSON array")
    elements: list[RawJson] = []
    pos = _skip(text, pos + 1)
    if text[pos:pos + 1] == "]":
        return elements
    while True:
        start, end = _value_span(text, pos)
        elements.append(RawJson(text[start:end]))
        pos = _skip(text, end)
        if text[pos:pos + 1] == ",":
            pos += 1
            continue
        if text[pos:pos + 1] == "]":
            return elements
        raise ValueError(f"expected ',' or ']' at offset {pos}")


def splice_member(object_text: str, name: str, raw: str) -> str:
    """Append the member `name` with the JSON text `raw` to a serialized object."""

    body = object_text.rstrip()
    if not body.endswith("}"):
        raise ValueError("expected a JSON object")
    body = body[:-1].rstrip()
    separator = "" if body.endswith("{") else ","
    return f"{body}{separator}{json.dumps(name)}:{raw}}}"
