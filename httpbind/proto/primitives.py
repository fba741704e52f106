"""Canonical text encoding of primitive values.

The same encoder is used for headers, query strings and path labels so a
value always has exactly one textual form on the wire.
"""

import base64
import binascii
import math
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

TEnum = TypeVar("TEnum", bound=Enum)


def encode_primitive(value: bool | int | float | Decimal) -> str:
    """Encode a boolean or number in its compact canonical form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(float(value))


def parse_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"expected 'true' or 'false', got {text!r}")


def parse_float(text: str) -> float:
    if text == "NaN":
        return math.nan
    if text == "Infinity":
        return math.inf
    if text == "-Infinity":
        return -math.inf
    return float(text)


PRIMITIVE_PARSERS = {
    "bool": parse_bool,
    "int": int,
    "float": parse_float,
    "decimal": Decimal,
}


def parse_primitive(text: str, kind: str) -> Any:
    """Parse a primitive of the given kind (bool, int, float, decimal)."""
    return PRIMITIVE_PARSERS[kind](text.strip())


def parse_enum(enum_type: type[TEnum], text: str, *, strict: bool) -> TEnum | str:
    """Convert wire text to an enum member.

    When ``strict`` is false an unknown value is returned as the raw string so
    newer service values survive a round trip through older generated code.
    """
    try:
        return enum_type(text)
    except ValueError:
        if strict:
            raise ValueError(f"{text!r} is not a valid {enum_type.__name__}") from None
        return text


def enum_text(value: Enum | str) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return value


def base64_encode(value: str | bytes) -> str:
    if isinstance(value, str):
        value = value.encode("utf-8")
    return base64.b64encode(value).decode("ascii")


def base64_decode(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as err:
        raise ValueError("failed to decode base64") from err


def base64_decode_text(text: str) -> str:
    """Decode base64 wire text that wraps UTF-8 media content."""
    data = base64_decode(text)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ValueError("base64 encoded data was not valid utf-8") from err


def encode_blob_field(value: bytes | None) -> str | None:
    return None if value is None else base64_encode(value)


def decode_blob_field(value: Any) -> bytes | None:
    if value is None or isinstance(value, bytes):
        return value
    return base64_decode(value)
