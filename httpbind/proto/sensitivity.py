"""Redaction of sensitive HTTP-bound data in request and response logs.

Generated ``sensitivity_<operation>()`` functions build a :class:`Sensitivity`
describing which path segments, query keys, headers and status codes must
be masked. Clauses that were never registered cost nothing at log time.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Self

from .message import Headers, HttpRequest, HttpResponse

REDACTED = "{redacted}"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeaderMarker:
    """Whether a header value is sensitive.

    ``key_suffix`` is the offset past a sensitive prefix; the name's suffix
    (the logical map key) is then sensitive as well.
    """

    value: bool
    key_suffix: int | None = None


@dataclass(frozen=True)
class QueryMarker:
    key: bool
    value: bool


class Sensitivity:
    """Per-operation redaction descriptor."""

    def __init__(self) -> None:
        self._path: Callable[[int], bool] | None = None
        self._query: Callable[[str], QueryMarker] | None = None
        self._request_header: Callable[[str], HeaderMarker] | None = None
        self._response_header: Callable[[str], HeaderMarker] | None = None
        self._status_code = False

    def path(self, marker: Callable[[int], bool]) -> Self:
        self._path = marker
        return self

    def query(self, marker: Callable[[str], QueryMarker]) -> Self:
        self._query = marker
        return self

    def request_header(self, marker: Callable[[str], HeaderMarker]) -> Self:
        self._request_header = marker
        return self

    def response_header(self, marker: Callable[[str], HeaderMarker]) -> Self:
        self._response_header = marker
        return self

    def status_code(self) -> Self:
        self._status_code = True
        return self

    @property
    def is_empty(self) -> bool:
        return not (
            self._path
            or self._query
            or self._request_header
            or self._response_header
            or self._status_code
        )

    def is_path_sensitive(self, index: int) -> bool:
        return self._path is not None and self._path(index)

    def query_marker(self, key: str) -> QueryMarker:
        if self._query is None:
            return QueryMarker(key=False, value=False)
        return self._query(key)

    def request_header_marker(self, name: str) -> HeaderMarker:
        if self._request_header is None:
            return HeaderMarker(value=False)
        return self._request_header(name.lower())

    def response_header_marker(self, name: str) -> HeaderMarker:
        if self._response_header is None:
            return HeaderMarker(value=False)
        return self._response_header(name.lower())

    @property
    def is_status_code_sensitive(self) -> bool:
        return self._status_code


def redact_path(path: str, sensitivity: Sensitivity) -> str:
    segments = path.lstrip("/").split("/")
    redacted = [
        REDACTED if sensitivity.is_path_sensitive(i) else segment for i, segment in enumerate(segments)
    ]
    return "/" + "/".join(redacted)


def redact_query(params: list[tuple[str, str]], sensitivity: Sensitivity) -> list[tuple[str, str]]:
    out = []
    for key, value in params:
        marker = sensitivity.query_marker(key)
        out.append((REDACTED if marker.key else key, REDACTED if marker.value else value))
    return out


def redact_headers(headers: Headers, marker: Callable[[str], HeaderMarker]) -> list[tuple[str, str]]:
    out = []
    for name, value in headers.items():
        found = marker(name)
        if found.key_suffix is not None:
            name = name[: found.key_suffix] + REDACTED
        out.append((name, REDACTED if found.value else value))
    return out


def log_request(log: logging.Logger, request: HttpRequest, sensitivity: Sensitivity) -> None:
    """Log a request at DEBUG with sensitive parts masked."""
    if not log.isEnabledFor(logging.DEBUG):
        return
    log.debug(
        "request method=%s path=%s query=%s headers=%s",
        request.method,
        redact_path(request.path, sensitivity),
        redact_query(request.query, sensitivity),
        redact_headers(request.headers, sensitivity.request_header_marker),
    )


def log_response(log: logging.Logger, response: HttpResponse, sensitivity: Sensitivity) -> None:
    """Log a response at DEBUG with sensitive parts masked."""
    if not log.isEnabledFor(logging.DEBUG):
        return
    status = REDACTED if sensitivity.is_status_code_sensitive else str(response.status)
    log.debug(
        "response status=%s headers=%s",
        status,
        redact_headers(response.headers, sensitivity.response_header_marker),
    )
