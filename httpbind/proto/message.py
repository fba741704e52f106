"""HTTP message types and bodies used by generated (de)serializers."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Self
from urllib.parse import quote


class BuildError(RuntimeError):
    """Raised when an outgoing message cannot be built from a value.

    ``field`` names the offending member so callers can report it.
    """

    def __init__(self, field: str, details: str) -> None:
        super().__init__(f"invalid field in input: {field} (details: {details})")
        self.field = field
        self.details = details

    @classmethod
    def invalid_field(cls, field: str, details: str) -> Self:
        return cls(field, details)

    @classmethod
    def missing_field(cls, field: str, details: str) -> Self:
        return cls(field, f"missing: {details}")


class BodyConsumedError(RuntimeError):
    """Raised when a streaming body is read a second time."""


class Headers:
    """Ordered, case-insensitive multi-map of header fields.

    Names are stored lower-cased.
    """

    def __init__(self, items: Iterable[tuple[str, str]] | dict[str, str] = ()) -> None:
        self._items: list[tuple[str, str]] = []
        pairs = items.items() if isinstance(items, dict) else items
        for name, value in pairs:
            self.append(name, value)

    def append(self, name: str, value: str) -> None:
        self._items.append((name.lower(), value))

    def set(self, name: str, value: str) -> None:
        self.remove(name)
        self.append(name, value)

    def remove(self, name: str) -> None:
        name = name.lower()
        self._items = [(k, v) for k, v in self._items if k != name]

    def get(self, name: str) -> str | None:
        values = self.get_all(name)
        return values[0] if values else None

    def get_all(self, name: str) -> list[str]:
        name = name.lower()
        return [v for k, v in self._items if k == name]

    def names(self) -> list[str]:
        seen: dict[str, None] = {}
        for k, _ in self._items:
            seen.setdefault(k, None)
        return list(seen)

    def items(self) -> list[tuple[str, str]]:
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and any(k == name.lower() for k, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


class Body:
    """A message body: either in-memory bytes or a one-shot chunk stream.

    In-memory bodies can be read any number of times. Streaming bodies are
    single-owner: ``take()`` moves the stream out and leaves an empty
    placeholder behind.
    """

    def __init__(self, data: bytes | Iterable[bytes] = b"", *, content_length: int | None = None):
        if isinstance(data, bytes | bytearray | memoryview):
            self._data: bytes | None = bytes(data)
            self._chunks: Iterable[bytes] | None = None
            self.content_length = len(self._data)
        else:
            self._data = None
            self._chunks = data
            self.content_length = content_length
        self._consumed = False
        self._taken = False

    @classmethod
    def taken(cls) -> "Body":
        body = cls(b"")
        body._taken = True
        return body

    @property
    def is_taken(self) -> bool:
        return self._taken

    @property
    def is_streaming(self) -> bool:
        return self._data is None

    def as_bytes(self) -> bytes | None:
        """Return the in-memory content, or None for a stream."""
        return self._data

    def take(self) -> "Body":
        """Move this body's content into a new Body, leaving this one empty."""
        if self._data is not None:
            moved = Body(self._data)
        else:
            moved = Body(self._chunks or (), content_length=self.content_length)
        self._data = b""
        self._chunks = None
        self.content_length = 0
        self._taken = True
        return moved

    def __iter__(self) -> Iterator[bytes]:
        if self._data is not None:
            if self._data:
                yield self._data
            return
        if self._consumed:
            raise BodyConsumedError("streaming body has already been consumed")
        self._consumed = True
        for chunk in self._chunks or ():
            yield bytes(chunk)

    def read(self) -> bytes:
        return b"".join(self)

    def __repr__(self) -> str:
        if self._data is not None:
            return f"Body({self._data!r})"
        return f"Body(<stream content_length={self.content_length}>)"


class ByteStream:
    """A streaming blob value handed to or produced by generated code."""

    def __init__(self, source: Body | bytes | Iterable[bytes] = b"") -> None:
        self._body = source if isinstance(source, Body) else Body(source)

    def into_body(self) -> Body:
        return self._body.take()

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._body)

    def read(self) -> bytes:
        return self._body.read()


@dataclass
class HttpRequest:
    method: str
    path: str
    query: list[tuple[str, str]] = field(default_factory=list)
    headers: Headers = field(default_factory=Headers)
    body: Body = field(default_factory=Body)

    @property
    def uri(self) -> str:
        if not self.query:
            return self.path
        query = "&".join(
            quote(k, safe="") + ("=" + quote(v, safe="") if v != "" else "") for k, v in self.query
        )
        return f"{self.path}?{query}"


@dataclass
class HttpResponse:
    status: int
    headers: Headers = field(default_factory=Headers)
    body: Body = field(default_factory=Body)


class HttpRequestBuilder:
    """Incrementally assembles an :class:`HttpRequest`."""

    def __init__(self, method: str = "GET", path: str = "/") -> None:
        self.method = method
        self.path = path
        self.query: list[tuple[str, str]] = []
        self.headers = Headers()
        self._body = Body()

    def header(self, name: str, value: str) -> Self:
        self.headers.append(name, value)
        return self

    def query_param(self, key: str, value: str) -> Self:
        self.query.append((key, value))
        return self

    def body(self, body: Body) -> Self:
        self._body = body
        return self

    def get_body(self) -> Body:
        return self._body

    def build(self) -> HttpRequest:
        return HttpRequest(
            method=self.method, path=self.path, query=self.query, headers=self.headers, body=self._body
        )


class HttpResponseBuilder:
    """Incrementally assembles an :class:`HttpResponse`."""

    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.headers = Headers()
        self._body = Body()

    def header(self, name: str, value: str) -> Self:
        self.headers.append(name, value)
        return self

    def body(self, body: Body) -> Self:
        self._body = body
        return self

    def get_body(self) -> Body:
        return self._body

    def build(self) -> HttpResponse:
        return HttpResponse(status=self.status, headers=self.headers, body=self._body)


def default_content_type(builder: HttpRequestBuilder | HttpResponseBuilder, media_type: str) -> None:
    """Set content-type unless the caller did, or the body is empty."""
    body = builder.get_body()
    if "content-type" in builder.headers or (not body.is_streaming and not body.as_bytes()):
        return
    builder.headers.set("content-type", media_type)
