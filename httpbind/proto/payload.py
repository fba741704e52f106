"""Payload helpers and the structured-body codec interface."""

import base64
import dataclasses
import json
from collections.abc import Callable, Iterable
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, TypeVar

from .message import Body
from .primitives import parse_enum
from .timestamps import TimestampFormat, fmt_timestamp

T = TypeVar("T")


class ProtocolError(RuntimeError):
    """Raised when a payload cannot be decoded into its modeled type."""


class Codec(Protocol):
    """Structured body codec (JSON, CBOR, XML, ...).

    ``encode`` serializes a structure value, restricted to the attributes
    named in ``members`` when given; ``decode`` returns a new instance of
    ``cls``, or the plain decoded value for documents.
    """

    media_type: str

    def encode(self, value: Any, members: Iterable[str] | None = None) -> bytes: ...

    def decode(self, data: bytes, cls: type[T]) -> T: ...

    def event_marshaller(self, cls: type[Any]) -> Callable[[Any], bytes]: ...

    def event_unmarshaller(self, cls: type[T]) -> Callable[[bytes], T]: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, datetime):
        return fmt_timestamp(value, TimestampFormat.DATE_TIME)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


class JsonCodec:
    """Reference JSON codec for generated dataclasses.

    Generated structures derive from ``DataClassJsonMixin``, whose
    ``to_dict``/``from_dict`` already honor wire member names.
    """

    media_type = "application/json"

    def encode(self, value: Any, members: Iterable[str] | None = None) -> bytes:
        if members is not None and dataclasses.is_dataclass(value):
            wanted = set(members)
            value = dataclasses.replace(
                value, **{f.name: None for f in dataclasses.fields(value) if f.name not in wanted}
            )
        data = value.to_dict(encode_json=False) if hasattr(value, "to_dict") else value
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if v is not None}
        return json.dumps(data, default=_json_default).encode("utf-8")

    def decode(self, data: bytes, cls: type[T]) -> T:
        try:
            parsed = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            raise ProtocolError(f"invalid JSON body: {err}") from err
        if not hasattr(cls, "from_dict"):
            return parsed
        if not isinstance(parsed, dict):
            raise ProtocolError(f"expected a JSON object for {cls.__name__}")
        try:
            return cls.from_dict(parsed, infer_missing=True)  # type: ignore[attr-defined]
        except (KeyError, TypeError, ValueError) as err:
            raise ProtocolError(f"invalid {cls.__name__}: {err}") from err

    def event_marshaller(self, cls: type[Any]) -> Callable[[Any], bytes]:
        return lambda event: self.encode(event) + b"\n"

    def event_unmarshaller(self, cls: type[T]) -> Callable[[bytes], T]:
        return lambda frame: self.decode(frame, cls)


def decode_utf8(body: bytes) -> str:
    """Decode a string payload, which must be valid UTF-8."""
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ProtocolError(f"payload was not valid utf-8: {err}") from err


def decode_enum(body: bytes, enum_type: type[Any], *, strict: bool) -> Any:
    text = decode_utf8(body)
    try:
        return parse_enum(enum_type, text, strict=strict)
    except ValueError as err:
        raise ProtocolError(str(err)) from err


def decode_document(codec: Codec, body: Body, cls: type[T]) -> T:
    """Decode the body members of ``cls``; an empty body gives an all-unset instance."""
    data = body.read()
    if not data:
        return cls()
    return codec.decode(data, cls)
