"""Binding classification: which member travels in which part of the message."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from .types import (
    AGGREGATE_TYPES,
    COLLECTION_TYPES,
    HTTP,
    HTTP_HEADER,
    HTTP_LABEL,
    HTTP_PAYLOAD,
    HTTP_PREFIX_HEADERS,
    HTTP_QUERY,
    HTTP_QUERY_PARAMS,
    HTTP_RESPONSE_CODE,
    Member,
    Model,
    Shape,
    ShapeType,
)
from .uri import SegmentKind, UriPattern, UriPatternError, parse_uri

logger = logging.getLogger(__name__)


class ClassificationError(RuntimeError):
    """Raised when binding declarations are malformed or ambiguous."""

    def __init__(self, shape_id: str, message: str) -> None:
        super().__init__(f"{shape_id}: {message}")
        self.shape_id = shape_id
        self.message = message


class HttpLocation(StrEnum):
    HEADER = "header"
    PREFIX_HEADERS = "prefix_headers"
    QUERY = "query"
    QUERY_PARAMS = "query_params"
    LABEL = "label"
    PAYLOAD = "payload"
    DOCUMENT = "document"
    RESPONSE_CODE = "response_code"


class HttpMessageType(StrEnum):
    REQUEST = "request"
    RESPONSE = "response"


# Traits that bind a member, and the location each one selects
BINDING_TRAITS = {
    HTTP_HEADER: HttpLocation.HEADER,
    HTTP_PREFIX_HEADERS: HttpLocation.PREFIX_HEADERS,
    HTTP_QUERY: HttpLocation.QUERY,
    HTTP_QUERY_PARAMS: HttpLocation.QUERY_PARAMS,
    HTTP_LABEL: HttpLocation.LABEL,
    HTTP_PAYLOAD: HttpLocation.PAYLOAD,
    HTTP_RESPONSE_CODE: HttpLocation.RESPONSE_CODE,
}

# Locations that only make sense on one side of the exchange
_REQUEST_ONLY = frozenset([HttpLocation.QUERY, HttpLocation.QUERY_PARAMS, HttpLocation.LABEL])
_RESPONSE_ONLY = frozenset([HttpLocation.RESPONSE_CODE])

_PAYLOAD_TYPES = frozenset(
    [
        ShapeType.STRING,
        ShapeType.ENUM,
        ShapeType.BLOB,
        ShapeType.STRUCTURE,
        ShapeType.UNION,
        ShapeType.DOCUMENT,
    ]
)


@dataclass(frozen=True)
class BindingDescriptor:
    """Where one member lives in an HTTP message.

    ``location_name`` is the header name, header prefix, query key or URI
    label; ``positional_index`` is the 0-based path segment of a label.
    """

    member: Member
    location: HttpLocation
    location_name: str = ""
    positional_index: int | None = None
    greedy: bool = False


@dataclass(frozen=True)
class HttpTrait:
    method: str
    uri: UriPattern
    code: int = 200


@dataclass
class HttpBindingIndex:
    """Computes binding descriptors for the operations of a model.

    Nothing is cached across models; parsed URIs are cached per operation.
    """

    model: Model
    _uris: dict[str, HttpTrait | None] = field(default_factory=dict)

    def http_trait(self, operation: Shape) -> HttpTrait | None:
        if operation.id not in self._uris:
            trait = operation.get_trait(HTTP)
            if trait is None:
                self._uris[operation.id] = None
            else:
                try:
                    uri = parse_uri(trait["uri"])
                except (KeyError, UriPatternError) as err:
                    raise ClassificationError(operation.id, str(err)) from err
                self._uris[operation.id] = HttpTrait(
                    method=trait.get("method", "GET"), uri=uri, code=trait.get("code", 200)
                )
        return self._uris[operation.id]

    def request_bindings(self, operation: Shape) -> list[BindingDescriptor]:
        http = self.http_trait(operation)
        if http is None:
            logger.debug("%s has no http trait; skipping", operation.id)
            return []
        return classify(self.model, self.model.input_shape(operation), HttpMessageType.REQUEST, http.uri)

    def response_bindings(self, operation: Shape) -> list[BindingDescriptor]:
        if self.http_trait(operation) is None:
            return []
        return classify(self.model, self.model.output_shape(operation), HttpMessageType.RESPONSE)

    def error_bindings(self, operation: Shape, error: Shape) -> list[BindingDescriptor]:
        if self.http_trait(operation) is None:
            return []
        return classify(self.model, error, HttpMessageType.RESPONSE)


def _binding_traits(member: Member) -> list[str]:
    return [t for t in BINDING_TRAITS if member.has_trait(t)]


def _classify_member(
    model: Model,
    member: Member,
    message_type: HttpMessageType,
    uri: UriPattern | None,
) -> BindingDescriptor:
    traits = _binding_traits(member)
    if len(traits) > 1:
        names = ", ".join(t.split("#")[-1] for t in traits)
        raise ClassificationError(member.id, f"member has more than one binding trait ({names})")
    if not traits:
        return BindingDescriptor(member=member, location=HttpLocation.DOCUMENT)

    trait_id = traits[0]
    location = BINDING_TRAITS[trait_id]
    target = model.target(member)

    if message_type == HttpMessageType.RESPONSE and location in _REQUEST_ONLY:
        logger.debug("%s: %s binding ignored on a response", member.id, location)
        return BindingDescriptor(member=member, location=HttpLocation.DOCUMENT)
    if message_type == HttpMessageType.REQUEST and location in _RESPONSE_ONLY:
        logger.debug("%s: %s binding ignored on a request", member.id, location)
        return BindingDescriptor(member=member, location=HttpLocation.DOCUMENT)

    if location in (HttpLocation.PREFIX_HEADERS, HttpLocation.QUERY_PARAMS):
        if target.type != ShapeType.MAP:
            raise ClassificationError(member.id, f"{location} binding must target a map")
        name = member.get_trait(trait_id) if location == HttpLocation.PREFIX_HEADERS else ""
        return BindingDescriptor(member=member, location=location, location_name=name or "")

    if location in (HttpLocation.HEADER, HttpLocation.QUERY):
        name = member.get_trait(trait_id)
        if not name:
            raise ClassificationError(member.id, f"{location} binding needs a name")
        if target.type in AGGREGATE_TYPES or target.type == ShapeType.MAP:
            raise ClassificationError(member.id, f"{location} binding can't target a {target.type}")
        return BindingDescriptor(member=member, location=location, location_name=name)

    if location == HttpLocation.LABEL:
        segment = uri.label(member.name) if uri else None
        if segment is None:
            raise ClassificationError(member.id, f"label {member.name} not found in URI {uri}")
        if target.type in AGGREGATE_TYPES or target.type in COLLECTION_TYPES or target.type == ShapeType.MAP:
            raise ClassificationError(member.id, f"label binding can't target a {target.type}")
        return BindingDescriptor(
            member=member,
            location=location,
            location_name=member.name,
            positional_index=uri.label_indexes()[member.name],
            greedy=segment.kind == SegmentKind.GREEDY,
        )

    if location == HttpLocation.PAYLOAD:
        if target.type not in _PAYLOAD_TYPES:
            raise ClassificationError(member.id, f"payload binding can't target a {target.type}")
        return BindingDescriptor(member=member, location=location)

    if target.type not in (ShapeType.INTEGER, ShapeType.SHORT, ShapeType.BYTE, ShapeType.LONG):
        raise ClassificationError(member.id, "response code binding must target an integer")
    return BindingDescriptor(member=member, location=location)


def classify(
    model: Model,
    shape: Shape,
    message_type: HttpMessageType,
    uri: UriPattern | None = None,
) -> list[BindingDescriptor]:
    """Classify every member of an input, output or error structure.

    Raises ClassificationError on the first malformed declaration.
    """
    bindings = [_classify_member(model, m, message_type, uri) for m in shape.members]

    def of(location: HttpLocation) -> list[BindingDescriptor]:
        return [b for b in bindings if b.location == location]

    payloads = of(HttpLocation.PAYLOAD)
    if len(payloads) > 1:
        raise ClassificationError(shape.id, "more than one member is bound to the payload")
    if payloads and of(HttpLocation.DOCUMENT):
        names = ", ".join(b.member.name for b in of(HttpLocation.DOCUMENT))
        raise ClassificationError(
            shape.id, f"payload member {payloads[0].member.name} can't coexist with body members: {names}"
        )
    for single in (HttpLocation.PREFIX_HEADERS, HttpLocation.QUERY_PARAMS, HttpLocation.RESPONSE_CODE):
        if len(of(single)) > 1:
            raise ClassificationError(shape.id, f"more than one member is bound to {single}")

    if message_type == HttpMessageType.REQUEST and uri is not None:
        bound = {b.location_name for b in of(HttpLocation.LABEL)}
        for name in uri.label_indexes():
            if name not in bound:
                raise ClassificationError(shape.id, f"URI label {name} has no matching member")

    return bindings
