"""Wire formatting rules for values bound outside the body."""

from dataclasses import dataclass
from enum import StrEnum

from ..proto.timestamps import TimestampFormat
from .bindings import HttpLocation
from .protocols import ProtocolDescriptor
from .types import (
    COLLECTION_TYPES,
    MEDIA_TYPE,
    TIMESTAMP_FORMAT,
    Member,
    Model,
    Shape,
    ShapeType,
)


class FormatResolutionError(RuntimeError):
    """Raised for a shape and location combination no protocol can carry."""


class ValueTransform(StrEnum):
    """How a single element is turned into wire text."""

    STRINGIFY = "stringify"
    ENUM = "enum"
    BASE64 = "base64"
    PRIMITIVE = "primitive"
    TIMESTAMP = "timestamp"


PRIMITIVE_KINDS = {
    ShapeType.BOOLEAN: "bool",
    ShapeType.BYTE: "int",
    ShapeType.SHORT: "int",
    ShapeType.INTEGER: "int",
    ShapeType.LONG: "int",
    ShapeType.BIG_INTEGER: "int",
    ShapeType.INT_ENUM: "int",
    ShapeType.FLOAT: "float",
    ShapeType.DOUBLE: "float",
    ShapeType.BIG_DECIMAL: "decimal",
}

_LOCATION_TIMESTAMP_DEFAULTS = {
    HttpLocation.HEADER: TimestampFormat.HTTP_DATE,
    HttpLocation.PREFIX_HEADERS: TimestampFormat.HTTP_DATE,
    HttpLocation.QUERY: TimestampFormat.DATE_TIME,
    HttpLocation.QUERY_PARAMS: TimestampFormat.DATE_TIME,
    HttpLocation.LABEL: TimestampFormat.DATE_TIME,
}

_HEADER_LOCATIONS = frozenset([HttpLocation.HEADER, HttpLocation.PREFIX_HEADERS])

# Locations whose values are written as text
TEXT_LOCATIONS = frozenset(_LOCATION_TIMESTAMP_DEFAULTS)


@dataclass(frozen=True)
class FormatSpec:
    """The exact wire representation of a bound value.

    ``collection`` values carry one element per list item. In headers they
    are comma-joined (``comma_join``) and string items are quoted so a
    decoder can split them again. A singular value must fail to decode when
    more than one wire value matches.
    """

    transform: ValueTransform
    element: Shape
    collection: bool = False
    comma_join: bool = False
    quote: bool = False
    timestamp_format: TimestampFormat | None = None
    primitive_kind: str | None = None
    media: bool = False

    @property
    def singular(self) -> bool:
        return not self.collection


def determine_timestamp_format(
    model: Model,
    member: Member,
    location: HttpLocation,
    protocol: ProtocolDescriptor,
) -> TimestampFormat:
    """Resolve the timestamp encoding of a member.

    Member trait, then target trait, then the location default, then the
    protocol default. Encoding and decoding both go through here.
    """
    candidates: list[Member | Shape] = [member]
    target = model.target(member)
    if target.type in COLLECTION_TYPES:
        element = target.members[0]
        candidates += [target, element, model.target(element)]
    else:
        candidates.append(target)

    for node in candidates:
        fmt = node.get_trait(TIMESTAMP_FORMAT)
        if fmt:
            return TimestampFormat(fmt)
    return _LOCATION_TIMESTAMP_DEFAULTS.get(location, protocol.default_timestamp_format)


def _element(model: Model, member: Member, location: HttpLocation) -> tuple[Member, Shape, bool]:
    """Return the member describing one element, its target, and whether it repeats."""
    target = model.target(member)
    if location in (HttpLocation.PREFIX_HEADERS, HttpLocation.QUERY_PARAMS):
        if target.type != ShapeType.MAP:
            raise FormatResolutionError(f"{member.id}: {location} needs a map, got {target.type}")
        member = target.members[1]
        target = model.target(member)

    if target.type not in COLLECTION_TYPES:
        return member, target, False

    element = target.members[0]
    element_target = model.target(element)
    if element_target.type in COLLECTION_TYPES:
        raise FormatResolutionError(f"{member.id}: nested lists can't be bound to {location}")
    return element, element_target, True


def format_rule(
    model: Model,
    member: Member,
    location: HttpLocation,
    protocol: ProtocolDescriptor,
) -> FormatSpec:
    """Decide how ``member`` is written to and read from ``location``."""
    if location in (HttpLocation.PAYLOAD, HttpLocation.DOCUMENT, HttpLocation.RESPONSE_CODE):
        raise FormatResolutionError(f"{member.id}: {location} values are not formatted as text")

    element_member, element, collection = _element(model, member, location)
    in_header = location in _HEADER_LOCATIONS
    if collection and location == HttpLocation.LABEL:
        raise FormatResolutionError(f"{member.id}: a list can't be bound to a label")

    common = {"element": element, "collection": collection, "comma_join": collection and in_header}

    if element.is_enum and element.type != ShapeType.INT_ENUM:
        return FormatSpec(transform=ValueTransform.ENUM, quote=in_header, **common)

    if element.type == ShapeType.STRING:
        media = element.has_trait(MEDIA_TYPE) or element_member.has_trait(MEDIA_TYPE)
        if media and in_header:
            # Media-typed strings are always base64 in headers
            return FormatSpec(transform=ValueTransform.BASE64, media=True, **common)
        return FormatSpec(transform=ValueTransform.STRINGIFY, quote=in_header, **common)

    if element.type in PRIMITIVE_KINDS:
        return FormatSpec(
            transform=ValueTransform.PRIMITIVE, primitive_kind=PRIMITIVE_KINDS[element.type], **common
        )

    if element.type == ShapeType.TIMESTAMP:
        fmt = determine_timestamp_format(model, member, location, protocol)
        return FormatSpec(transform=ValueTransform.TIMESTAMP, timestamp_format=fmt, **common)

    if element.type == ShapeType.BLOB:
        return FormatSpec(transform=ValueTransform.BASE64, **common)

    raise FormatResolutionError(f"{member.id}: a {element.type} can't be bound to {location}")
