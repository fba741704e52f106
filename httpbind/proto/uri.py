"""URI label encoding and request-path matching."""

from collections.abc import Callable
from typing import Any
from urllib.parse import quote, unquote

from .headers import ParseError
from .message import BuildError

# A compiled URI pattern segment: (kind, content) where kind is
# "literal", "label" or "greedy".
Segment = tuple[str, str]


def encode_label(value: str, *, greedy: bool = False) -> str:
    """Percent-encode a path label; greedy labels keep their slashes."""
    return quote(value, safe="/" if greedy else "")


def match_path(segments: tuple[Segment, ...], path: str) -> dict[str, str]:
    """Match a request path against a URI pattern and return label values.

    Raises ParseError when the path does not fit the pattern.
    """
    parts = path.split("?", 1)[0].strip("/").split("/")
    if parts == [""]:
        parts = []
    labels: dict[str, str] = {}
    i = 0
    for index, (kind, content) in enumerate(segments):
        if kind == "greedy":
            remaining = len(segments) - index - 1
            end = len(parts) - remaining
            if end <= i:
                raise ParseError(f"path {path!r} is missing greedy label {content}")
            labels[content] = unquote("/".join(parts[i:end]))
            i = end
            continue
        if i >= len(parts):
            raise ParseError(f"path {path!r} is too short for its URI pattern")
        if kind == "literal":
            if parts[i] != content:
                raise ParseError(f"path {path!r} does not match segment {content!r}")
        else:
            if parts[i] == "":
                raise ParseError(f"path {path!r} has an empty label {content}")
            labels[content] = unquote(parts[i])
        i += 1
    if i != len(parts):
        raise ParseError(f"path {path!r} is longer than its URI pattern")
    return labels


def query_values(params: list[tuple[str, str]], key: str) -> list[str]:
    return [v for k, v in params if k == key]


def query_param_map(params: list[tuple[str, str]]) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for k, v in params:
        out.setdefault(k, []).append(v)
    return out


def _convert(text: str, convert: Callable[[str], Any] | None, what: str) -> Any:
    if convert is None:
        return text
    try:
        return convert(text)
    except ValueError as err:
        raise ParseError(f"invalid {what}: {err}") from err


def read_query(
    values: list[str], convert: Callable[[str], Any] | None = None, *, singular: bool
) -> Any:
    """Read the values of one query key; a singular binding rejects repeats."""
    if singular and len(values) > 1:
        raise ParseError(f"expected one query value but found {len(values)}")
    parsed = [_convert(v, convert, "query value") for v in values]
    if singular:
        return parsed[0] if parsed else None
    return parsed or None


def read_query_params(
    params: list[tuple[str, str]], convert: Callable[[str], Any] | None = None, *, multi: bool
) -> dict[str, Any]:
    """Read every query parameter into a map; single-valued maps keep the first value."""
    out: dict[str, Any] = {}
    for key, values in query_param_map(params).items():
        parsed = [_convert(v, convert, f"query value for {key}") for v in values]
        out[key] = parsed if multi else parsed[0]
    return out


def read_label(labels: dict[str, str], name: str, convert: Callable[[str], Any] | None = None) -> Any:
    return _convert(labels[name], convert, f"label {name}")


def label_text(value: Any, field: str, encode: Callable[[Any], str] | None = None) -> str:
    """Text of a request label; unset and empty labels can't build a path."""
    if value is None:
        raise BuildError.missing_field(field, "cannot be empty or unset")
    text = encode(value) if encode else value
    if text == "":
        raise BuildError.missing_field(field, "cannot be empty or unset")
    return text
