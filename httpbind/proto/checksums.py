"""Payload checksum calculation, trailers and validation."""

import base64
import binascii
import hashlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from .crc import CrcKind, crc_funcs
from .message import Body, Headers, HttpRequestBuilder, HttpResponse

logger = logging.getLogger(__name__)


class ChecksumAlgorithm(StrEnum):
    """Checksum algorithms understood on the wire."""

    CRC32 = "crc32"
    CRC32C = "crc32c"
    SHA1 = "sha1"
    SHA256 = "sha256"

    @classmethod
    def parse(cls, name: str) -> "ChecksumAlgorithm":
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(f"unknown checksum algorithm {name!r}") from None

    @property
    def header_name(self) -> str:
        return f"x-amz-checksum-{self.value}"


# Fastest first
CHECKSUM_ALGORITHMS_IN_PRIORITY_ORDER = (
    ChecksumAlgorithm.CRC32C,
    ChecksumAlgorithm.CRC32,
    ChecksumAlgorithm.SHA1,
    ChecksumAlgorithm.SHA256,
)

DEFAULT_CHECKSUM_ALGORITHM = ChecksumAlgorithm.CRC32


class ChecksumMismatchError(RuntimeError):
    """Raised when a received payload does not match its advertised checksum."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        super().__init__(
            "body checksum mismatch. "
            f"expected {base64.b64encode(expected).decode()} "
            f"but got {base64.b64encode(actual).decode()}"
        )
        self.expected = expected
        self.actual = actual


class RequestChecksumCalculation(StrEnum):
    WHEN_SUPPORTED = "when_supported"
    WHEN_REQUIRED = "when_required"


class ResponseChecksumValidation(StrEnum):
    WHEN_SUPPORTED = "when_supported"
    WHEN_REQUIRED = "when_required"


@dataclass(frozen=True)
class ChecksumConfig:
    """Caller preferences for request calculation and response validation."""

    request_checksum_calculation: RequestChecksumCalculation = (
        RequestChecksumCalculation.WHEN_SUPPORTED
    )
    response_checksum_validation: ResponseChecksumValidation = (
        ResponseChecksumValidation.WHEN_SUPPORTED
    )


class Checksum:
    """Incremental checksum state."""

    def update(self, data: bytes) -> None:
        raise NotImplementedError

    def finalize(self) -> bytes:
        raise NotImplementedError


class _CrcChecksum(Checksum):
    def __init__(self, kind: CrcKind) -> None:
        self._func = crc_funcs[kind]
        self._value = 0

    def update(self, data: bytes) -> None:
        self._value = self._func(data, self._value)

    def finalize(self) -> bytes:
        return self._value.to_bytes(4, byteorder="big")


class _HashChecksum(Checksum):
    def __init__(self, name: str) -> None:
        self._hash = hashlib.new(name)

    def update(self, data: bytes) -> None:
        self._hash.update(data)

    def finalize(self) -> bytes:
        return self._hash.digest()


def new_checksum(algorithm: ChecksumAlgorithm) -> Checksum:
    if algorithm == ChecksumAlgorithm.CRC32:
        return _CrcChecksum(CrcKind.CRC32)
    if algorithm == ChecksumAlgorithm.CRC32C:
        return _CrcChecksum(CrcKind.CRC32C)
    if algorithm == ChecksumAlgorithm.SHA1:
        return _HashChecksum("sha1")
    return _HashChecksum("sha256")


def compute_header_value(algorithm: ChecksumAlgorithm, data: bytes) -> str:
    checksum = new_checksum(algorithm)
    checksum.update(data)
    return base64.b64encode(checksum.finalize()).decode("ascii")


def _aws_chunked(inner: Body, algorithm: ChecksumAlgorithm) -> Iterator[bytes]:
    checksum = new_checksum(algorithm)
    for chunk in inner:
        if not chunk:
            continue
        checksum.update(chunk)
        yield f"{len(chunk):x}\r\n".encode("ascii") + chunk + b"\r\n"
    trailer = base64.b64encode(checksum.finalize()).decode("ascii")
    yield b"0\r\n" + f"{algorithm.header_name}:{trailer}\r\n".encode("ascii") + b"\r\n"


def aws_chunked_body(inner: Body, algorithm: ChecksumAlgorithm) -> Body:
    """Wrap a body in aws-chunked encoding with a trailing checksum."""
    return Body(_aws_chunked(inner, algorithm))


def request_checksum_enabled(
    config: ChecksumConfig | None, *, required: bool, explicit: bool
) -> bool:
    """Whether a request checksum is calculated under ``config``."""
    config = config or ChecksumConfig()
    return (
        config.request_checksum_calculation == RequestChecksumCalculation.WHEN_SUPPORTED
        or required
        or explicit
    )


def apply_request_checksum(
    builder: HttpRequestBuilder,
    algorithm: str,
    *,
    required: bool,
    explicit: bool,
    config: ChecksumConfig | None = None,
) -> None:
    """Attach a checksum header or trailer to an outgoing request."""
    if not request_checksum_enabled(config, required=required, explicit=explicit):
        return

    algo = ChecksumAlgorithm.parse(algorithm)
    if algo.header_name in builder.headers:
        # Caller supplied a precalculated checksum
        return

    body = builder.get_body()
    if body.is_streaming:
        decoded_length = body.content_length
        builder.body(aws_chunked_body(body.take(), algo))
        builder.headers.set("content-encoding", "aws-chunked")
        builder.headers.set("x-amz-trailer", algo.header_name)
        if decoded_length is not None:
            builder.headers.set("x-amz-decoded-content-length", str(decoded_length))
    else:
        builder.headers.set(algo.header_name, compute_header_value(algo, body.as_bytes() or b""))


def is_part_level_checksum(checksum: str) -> bool:
    """Detect multipart checksums of the form ``<b64>-<part count>``."""
    found_number = False
    found_dash = False

    for ch in reversed(checksum):
        if ch.isascii() and ch.isdigit():
            found_number = True
            continue
        if ch == "-":
            if found_dash:
                return False
            found_dash = True
            continue
        break

    return found_number and found_dash


def check_headers_for_precalculated_checksum(
    headers: Headers, response_algorithms: tuple[str, ...]
) -> tuple[ChecksumAlgorithm, bytes] | None:
    """Pick the cheapest modeled checksum advertised in the response headers."""
    modeled = {name.lower() for name in response_algorithms}
    for algorithm in CHECKSUM_ALGORITHMS_IN_PRIORITY_ORDER:
        if algorithm.value not in modeled:
            continue
        value = headers.get(algorithm.header_name)
        if value is None:
            continue
        if is_part_level_checksum(value):
            logger.warning(
                "checksum %r is a part-level checksum and can't be validated; "
                "disable checksum validation for this request to silence this warning",
                value,
            )
            return None
        try:
            return algorithm, base64.b64decode(value, validate=True)
        except binascii.Error:
            logger.error(
                "checksum received from server could not be base64 decoded; "
                "no checksum validation will be performed"
            )
            return None
    return None


def _validate(inner: Body, algorithm: ChecksumAlgorithm, expected: bytes) -> Iterator[bytes]:
    checksum = new_checksum(algorithm)
    for chunk in inner:
        checksum.update(chunk)
        yield chunk
    actual = checksum.finalize()
    if actual != expected:
        raise ChecksumMismatchError(expected=expected, actual=actual)


def validating_body(inner: Body, algorithm: ChecksumAlgorithm, expected: bytes) -> Body:
    """Wrap a body so draining it verifies ``expected``."""
    return Body(_validate(inner, algorithm, expected), content_length=inner.content_length)


def validate_response_checksum(
    response: HttpResponse,
    response_algorithms: tuple[str, ...],
    *,
    validation_enabled: bool,
    config: ChecksumConfig | None = None,
) -> None:
    """Swap the response body for one that validates its checksum when drained."""
    config = config or ChecksumConfig()
    if (
        not validation_enabled
        and config.response_checksum_validation == ResponseChecksumValidation.WHEN_REQUIRED
    ):
        return

    found = check_headers_for_precalculated_checksum(response.headers, response_algorithms)
    if found is None:
        return
    algorithm, expected = found
    response.body = validating_body(response.body.take(), algorithm, expected)
