"""Extension points inside generated binding functions.

A customization is consulted at each named section and returns source
lines spliced in at that point. It sees the generation state through an
immutable :class:`GenerationContext`; it cannot alter the generator.
"""

import json
from dataclasses import dataclass
from enum import StrEnum

from .bindings import BindingDescriptor, HttpMessageType
from .types import Model, Shape


class Section(StrEnum):
    # Encode side, with ``items`` bound to the list of (key, value) pairs
    BEFORE_SERIALIZING_PREFIX_HEADERS = "BeforeSerializingPrefixHeaders"
    # Decode side, with ``pairs`` bound to the list of (key suffix, header name)
    BEFORE_ITERATING_OVER_PREFIX_HEADERS = "BeforeIteratingOverPrefixHeaders"
    # Decode side, with ``out`` bound to the decoded dict
    AFTER_DESERIALIZING_PREFIX_HEADERS = "AfterDeserializingPrefixHeaders"


@dataclass(frozen=True)
class GenerationContext:
    model: Model
    operation: Shape
    container: Shape
    binding: BindingDescriptor
    message_type: HttpMessageType


class HttpBindingCustomization:
    """Base class: contributes nothing anywhere."""

    def section(self, section: Section, context: GenerationContext) -> list[str]:
        return []


class SortPrefixHeaders(HttpBindingCustomization):
    """Emit prefix headers in key order so output is deterministic."""

    def section(self, section: Section, context: GenerationContext) -> list[str]:
        if section == Section.BEFORE_SERIALIZING_PREFIX_HEADERS:
            return ["items.sort(key=lambda item: item[0])"]
        return []


class RejectEmptyPrefixHeaderKeys(HttpBindingCustomization):
    """Reject a header named exactly like the prefix, which has no map key."""

    def section(self, section: Section, context: GenerationContext) -> list[str]:
        if section != Section.BEFORE_ITERATING_OVER_PREFIX_HEADERS:
            return []
        prefix = json.dumps(context.binding.location_name)
        return [
            "for key, name in pairs:",
            "    if not key:",
            f'        raise _h.ParseError(f"header {{name!r}} has no key after prefix " + {prefix})',
        ]


DEFAULT_CUSTOMIZATIONS: tuple[HttpBindingCustomization, ...] = (SortPrefixHeaders(),)


def render_section(
    customizations: list[HttpBindingCustomization] | tuple[HttpBindingCustomization, ...],
    section: Section,
    context: GenerationContext,
) -> list[str]:
    """Collect the lines every customization contributes to ``section``, in order."""
    lines: list[str] = []
    for customization in customizations:
        lines.extend(customization.section(section, context))
    return lines
