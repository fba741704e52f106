"""Header value parsing and formatting used by generated binding code."""

import re
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime
from typing import Any, TypeVar

from .message import BuildError
from .primitives import base64_decode_text, parse_primitive
from .sensitivity import REDACTED
from .timestamps import TimestampFormat, parse_timestamp

T = TypeVar("T")

_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class ParseError(ValueError):
    """Raised when wire data is malformed or ambiguous."""


def validate_header_name(name: str) -> None:
    """Raise ValueError unless ``name`` is an RFC 9110 token."""
    if not _TOKEN.match(name):
        raise ValueError(f"invalid header name {name!r}")


def validate_header_value(value: str) -> None:
    """Raise ValueError if ``value`` cannot be sent as a header value."""
    if value != value.strip(" \t"):
        raise ValueError("leading or trailing whitespace in header value")
    for ch in value:
        code = ord(ch)
        if (code < 0x20 and ch != "\t") or code == 0x7F:
            raise ValueError(f"invalid character {ch!r} in header value")
        if code > 0xFF:
            raise ValueError(f"non-latin-1 character {ch!r} in header value")


def quote_header_value(value: str) -> str:
    """Quote a list element so it survives comma splitting."""
    if value == "" or value != value.strip() or any(c in value for c in ',"()'):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def _split_one(value: str) -> Iterator[str]:
    i = 0
    n = len(value)
    while i < n:
        while i < n and value[i] in " \t":
            i += 1
        if i < n and value[i] == '"':
            i += 1
            out: list[str] = []
            while i < n and value[i] != '"':
                if value[i] == "\\" and i + 1 < n:
                    i += 1
                out.append(value[i])
                i += 1
            if i >= n:
                raise ParseError("unterminated quoted header value")
            i += 1
            while i < n and value[i] in " \t":
                i += 1
            if i < n and value[i] != ",":
                raise ParseError("expected ',' after quoted header value")
            i += 1
            yield "".join(out)
        else:
            end = value.find(",", i)
            if end < 0:
                end = n
            yield value[i:end].strip()
            i = end + 1
    if value.rstrip().endswith(","):
        yield ""


def split_header_values(values: Iterable[str]) -> list[str]:
    """Split comma-delimited header values, honoring quoted elements."""
    result: list[str] = []
    for value in values:
        if value.strip() == "":
            continue
        result.extend(_split_one(value))
    return result


def one_or_none(values: list[str]) -> str | None:
    """Read a single string header.

    The value is not comma split: a bare string may legitimately contain
    commas. Surrounding whitespace is optional whitespace in HTTP and is
    dropped; the encoder refuses to send values that carry any.
    """
    if not values:
        return None
    if len(values) > 1:
        raise ParseError(f"expected one item but found {len(values)}")
    return values[0].strip(" \t")


def read_many_from_str(values: list[str], convert: Callable[[str], T] | None = None) -> list[Any]:
    parsed = split_header_values(values)
    if convert is None:
        return parsed
    try:
        return [convert(item) for item in parsed]
    except ValueError as err:
        raise ParseError(str(err)) from err


def read_many_primitive(values: list[str], kind: str) -> list[Any]:
    try:
        return [parse_primitive(item, kind) for item in split_header_values(values)]
    except ValueError as err:
        raise ParseError(f"failed reading a list of primitives: {err}") from err


def read_many_media(values: list[str]) -> list[str]:
    """Read base64 wrapped media-typed strings."""
    try:
        return [base64_decode_text(item) for item in split_header_values(values)]
    except ValueError as err:
        raise ParseError(str(err)) from err


def many_dates(values: list[str], fmt: TimestampFormat) -> list[datetime]:
    """Read a list of timestamps.

    Every http-date carries one comma of its own ("Mon, 16 Dec 2019 ..."),
    so elements are re-paired before parsing.
    """
    parts = [part.strip() for value in values for part in value.split(",") if value.strip()]
    if fmt == TimestampFormat.HTTP_DATE:
        if len(parts) % 2:
            raise ParseError("incomplete http-date in header list")
        parts = [f"{parts[i]}, {parts[i + 1]}" for i in range(0, len(parts), 2)]
    try:
        return [parse_timestamp(part, fmt) for part in parts]
    except ValueError as err:
        raise ParseError(str(err)) from err


def expect_at_most_one(parsed: list[T]) -> T | None:
    """Collapse a parsed list for a singular binding; more than one is ambiguous."""
    if len(parsed) > 1:
        raise ParseError(f"expected one item but found {len(parsed)}")
    return parsed[0] if parsed else None


def headers_for_prefix(names: Iterable[str], prefix: str) -> Iterator[tuple[str, str]]:
    """Yield ``(key_suffix, header_name)`` for every header starting with ``prefix``.

    Header names compare case-insensitively.
    """
    prefix = prefix.lower()
    for name in names:
        lowered = name.lower()
        if lowered.startswith(prefix):
            yield lowered[len(prefix) :], name


def none_if_empty(parsed: list[T]) -> list[T] | None:
    """An empty header list reads as absent."""
    return parsed or None


def checked_header_name(field: str, name: str) -> str:
    try:
        validate_header_name(name)
    except ValueError as err:
        raise BuildError.invalid_field(field, f"`{name}` cannot be used as a header name: {err}") from err
    return name


def checked_header_value(field: str, value: str, *, sensitive: bool = False) -> str:
    """Validate an outgoing header value, naming the member it came from."""
    try:
        validate_header_value(value)
    except ValueError as err:
        if sensitive:
            raise BuildError.invalid_field(
                field, f"`{REDACTED}` cannot be used as a header value"
            ) from None
        raise BuildError.invalid_field(field, f"`{value}` cannot be used as a header value: {err}") from err
    return value
