"""URI pattern parsing for the http trait."""

import os
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from lark import Lark
from lark.exceptions import LarkError
from lark.visitors import Transformer

_g_parser: Lark | None = None


class UriPatternError(ValueError):
    """Raised when an http trait URI cannot be parsed."""


class SegmentKind(StrEnum):
    LITERAL = "literal"
    LABEL = "label"
    GREEDY = "greedy"


@dataclass(frozen=True)
class UriSegment:
    content: str
    kind: SegmentKind

    @property
    def is_label(self) -> bool:
        return self.kind != SegmentKind.LITERAL


@dataclass(frozen=True)
class UriPattern:
    """A parsed URI pattern: path segments plus literal query parameters."""

    segments: tuple[UriSegment, ...]
    query_literals: tuple[tuple[str, str], ...]
    trailing_slash: bool = False

    def label_indexes(self) -> dict[str, int]:
        """Map each label name to its 0-based segment index."""
        return {s.content: i for i, s in enumerate(self.segments) if s.is_label}

    def label(self, name: str) -> UriSegment | None:
        for segment in self.segments:
            if segment.is_label and segment.content == name:
                return segment
        return None

    def __str__(self) -> str:
        parts = []
        for s in self.segments:
            if s.kind == SegmentKind.LITERAL:
                parts.append(s.content)
            elif s.kind == SegmentKind.LABEL:
                parts.append(f"{{{s.content}}}")
            else:
                parts.append(f"{{{s.content}+}}")
        text = "/" + "/".join(parts) + ("/" if self.trailing_slash else "")
        if self.query_literals:
            text += "?" + "&".join(f"{k}={v}" if v else k for k, v in self.query_literals)
        return text


@dataclass
class _Segments:
    items: list[UriSegment]
    trailing_slash: bool


@dataclass
class _Query:
    params: list[tuple[str, str]]


class UriTransformer(Transformer):
    """Transform the parse tree into a :class:`UriPattern`."""

    def literal(self, args: list[Any]) -> UriSegment:
        return UriSegment(content=str(args[0]), kind=SegmentKind.LITERAL)

    def label(self, args: list[Any]) -> UriSegment:
        return UriSegment(content=str(args[0]), kind=SegmentKind.LABEL)

    def greedy_label(self, args: list[Any]) -> UriSegment:
        return UriSegment(content=str(args[0]), kind=SegmentKind.GREEDY)

    def trailing_slash(self, args: list[Any]) -> str:
        return "/"

    def segments(self, args: list[Any]) -> _Segments:
        items = [a for a in args if isinstance(a, UriSegment)]
        return _Segments(items=items, trailing_slash=len(items) != len(args))

    def param(self, args: list[Any]) -> tuple[str, str]:
        value = str(args[1]) if len(args) > 1 and args[1] is not None else ""
        return (str(args[0]), value)

    def query(self, args: list[Any]) -> _Query:
        return _Query(params=list(args))

    def start(self, args: list[Any]) -> UriPattern:
        segments = next((a for a in args if isinstance(a, _Segments)), None)
        query = next((a for a in args if isinstance(a, _Query)), None)
        return UriPattern(
            segments=tuple(segments.items) if segments else (),
            query_literals=tuple(query.params) if query else (),
            trailing_slash=segments.trailing_slash if segments else False,
        )


def parse_uri(text: str) -> UriPattern:
    """Parse an http trait URI pattern."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/uri.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar)

    try:
        tree = _g_parser.parse(text)
    except LarkError as err:
        raise UriPatternError(f"invalid URI pattern {text!r}: {err}") from err

    pattern = UriTransformer().transform(tree)
    greedy = [s for s in pattern.segments if s.kind == SegmentKind.GREEDY]
    if len(greedy) > 1:
        raise UriPatternError(f"URI pattern {text!r} has more than one greedy label")
    names = [s.content for s in pattern.segments if s.is_label]
    if len(names) != len(set(names)):
        raise UriPatternError(f"URI pattern {text!r} repeats a label")
    return pattern
