"""Timestamp wire formats shared by the generator and generated code."""

from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from enum import StrEnum
from typing import Any


class TimestampFormat(StrEnum):
    """Wire encodings for timestamp values."""

    DATE_TIME = "date-time"
    HTTP_DATE = "http-date"
    EPOCH_SECONDS = "epoch-seconds"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def fmt_timestamp(value: datetime, fmt: TimestampFormat) -> str:
    """Format a timestamp for the wire.

    Fractional seconds are kept to millisecond precision for date-time and
    epoch-seconds; http-date has whole-second precision.
    """
    value = _as_utc(value)

    if fmt == TimestampFormat.HTTP_DATE:
        return format_datetime(value.replace(microsecond=0), usegmt=True)

    if fmt == TimestampFormat.EPOCH_SECONDS:
        seconds = round(value.timestamp(), 3)
        if seconds.is_integer():
            return str(int(seconds))
        return repr(seconds)

    if value.microsecond:
        millis = value.microsecond // 1000
        return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(text: str, fmt: TimestampFormat) -> datetime:
    """Parse a wire timestamp, raising ValueError on malformed input."""
    text = text.strip()

    if fmt == TimestampFormat.HTTP_DATE:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError) as err:
            raise ValueError(f"invalid http-date: {text!r}") from err
        return _as_utc(parsed)

    if fmt == TimestampFormat.EPOCH_SECONDS:
        try:
            seconds = float(text)
        except ValueError as err:
            raise ValueError(f"invalid epoch-seconds: {text!r}") from err
        return datetime.fromtimestamp(seconds, tz=UTC)

    if not text.upper().endswith("Z") and "+" not in text[10:] and "-" not in text[10:]:
        raise ValueError(f"date-time must carry an offset: {text!r}")
    try:
        parsed = datetime.fromisoformat(text.upper().replace("Z", "+00:00"))
    except ValueError as err:
        raise ValueError(f"invalid date-time: {text!r}") from err
    return _as_utc(parsed)


def field_encoder(fmt: TimestampFormat) -> Callable[[datetime | None], str | float | None]:
    """Dataclass field encoder for timestamps carried in a structured body."""

    def encode(value: datetime | None) -> str | float | None:
        if value is None:
            return None
        text = fmt_timestamp(value, fmt)
        return float(text) if fmt == TimestampFormat.EPOCH_SECONDS else text

    return encode


def field_decoder(fmt: TimestampFormat) -> Callable[[Any], datetime | None]:
    def decode(value: Any) -> datetime | None:
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, int | float):
            return datetime.fromtimestamp(value, tz=UTC)
        return parse_timestamp(value, fmt)

    return decode
