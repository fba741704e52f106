"""Event stream handles for streaming union payloads.

Frame transport is owned by the codec; these wrappers only move typed
events in and out of a single-owner body.
"""

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from .message import Body

E = TypeVar("E")


class EventStreamSender(Generic[E]):
    """Outgoing events, marshalled lazily as the body is drained."""

    def __init__(self, events: Iterable[E]) -> None:
        self._events = events

    def into_body(self, marshaller: Callable[[E], bytes]) -> Body:
        return Body(marshaller(event) for event in self._events)


class EventStreamReceiver(Generic[E]):
    """Incoming events read from newline-delimited frames."""

    def __init__(self, unmarshaller: Callable[[bytes], E], body: Body) -> None:
        self._unmarshaller = unmarshaller
        self._body = body

    def __iter__(self) -> Iterator[E]:
        # A frame may straddle chunk boundaries
        pending = b""
        for chunk in self._body:
            pending += chunk
            *frames, pending = pending.split(b"\n")
            for frame in frames:
                if frame.strip():
                    yield self._unmarshaller(frame)
        if pending.strip():
            yield self._unmarshaller(pending)

    def collect(self) -> list[Any]:
        return list(self)


def as_sender(events: "EventStreamSender[E] | Iterable[E]") -> EventStreamSender[E]:
    if isinstance(events, EventStreamSender):
        return events
    return EventStreamSender(events)
