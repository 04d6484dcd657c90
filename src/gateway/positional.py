"""Decoder for records sent as bare JSON arrays.

Some endpoints encode a record as ``["0.0024", "10.0"]`` or
``[1499040000000, "0.016", ...]`` with no field names. A
``PositionalShape`` says which record field lives at which index and
whether it is an integer; every other position is kept as the exact string
the exchange sent so decimal precision survives.
"""
from __future__ import annotations
import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Sequence, Tuple, Type, TypeVar, Union

import orjson

from core.errors import ParseError

R = TypeVar("R")

Raw = Union[bytes, bytearray, str, Sequence[Any]]

_INT_TOKEN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True, slots=True)
class PositionalField:
    name: str
    integer: bool = False
    bits: int = 64


@dataclass(frozen=True, slots=True)
class PositionalShape:
    name: str
    record: type
    fields: Tuple[PositionalField, ...]

    @property
    def min_fields(self) -> int:
        return len(self.fields)


def _tokens_from_text(text: str) -> list:
    s = text.replace('"', "").strip().strip("[]").strip()
    if not s:
        return []
    return [t.strip() for t in s.split(",")]


def _token(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return orjson.dumps(value).decode()


def _parse_int(token: str, index: int, f: PositionalField, shape: PositionalShape) -> int:
    if not _INT_TOKEN.fullmatch(token):
        raise ParseError(
            f"{shape.name}: failed to parse {f.name} at index {index}: {token!r}"
        )
    value = int(token)
    bound = 1 << (f.bits - 1)
    if not -bound <= value < bound:
        raise ParseError(
            f"{shape.name}: {f.name} at index {index} overflows int{f.bits}: {token!r}"
        )
    return value


def decode(raw: Raw, shape: PositionalShape) -> Any:
    """Decode one positional record.

    ``raw`` is either the array's JSON text or an already-parsed list.
    Empty input yields the record with all fields at their zero values.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode()
        except UnicodeDecodeError as e:
            raise ParseError(f"{shape.name}: invalid UTF-8: {e}") from e
    if isinstance(raw, str):
        if not raw.strip():
            return shape.record()
        tokens = _tokens_from_text(raw)
    elif isinstance(raw, (list, tuple)):
        tokens = [_token(v) for v in raw]
    else:
        raise ParseError(f"{shape.name}: expected an array, got {type(raw).__name__}")

    if len(tokens) < shape.min_fields:
        raise ParseError(
            f"{shape.name}: at least {shape.min_fields} fields are expected "
            f"but got {len(tokens)}: {tokens}"
        )

    values = {}
    for index, f in enumerate(shape.fields):
        token = tokens[index]
        values[f.name] = _parse_int(token, index, f, shape) if f.integer else token
    return shape.record(**values)


def decode_many(raw: Any, shape: PositionalShape) -> list:
    """Decode a JSON array of positional records (e.g. a klines response)."""
    if isinstance(raw, (bytes, bytearray, str)):
        if not raw.strip():
            return []
        try:
            raw = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise ParseError(f"{shape.name}: malformed JSON: {e}") from e
    if not isinstance(raw, list):
        raise ParseError(f"{shape.name}: expected a JSON array, got {type(raw).__name__}")
    return [decode(item, shape) for item in raw]


def shape_for(record: Type[R], name: str, *fields: PositionalField) -> PositionalShape:
    """Declare a shape, checking every field exists on the record."""
    known = {f.name for f in dataclasses.fields(record)}
    missing = [f.name for f in fields if f.name not in known]
    if missing:
        raise ValueError(f"{record.__name__} has no fields {missing}")
    return PositionalShape(name=name, record=record, fields=tuple(fields))
