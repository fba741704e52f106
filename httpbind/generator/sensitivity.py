"""Find HTTP-bound members that must be redacted from logs.

Starting at an operation's input or output, the model is walked along
member targets. The walk stops at the first sensitive node on each path;
everything reachable from such a node is sensitive. Only bound members in
those subtrees end up in the descriptor.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from .bindings import BindingDescriptor, HttpLocation
from .types import SENSITIVE, Member, Model, Shape, ShapeType, is_sensitive

Node = Shape | Member

_STOP_TYPES = frozenset([ShapeType.OPERATION, ShapeType.SERVICE])


@dataclass(frozen=True)
class SensitivityDescriptor:
    """Which parts of a request/response exchange are redacted.

    Empty tuples and false flags mean the clause is left out of the
    generated descriptor altogether.
    """

    path_indexes: tuple[int, ...] = ()
    query_keys: tuple[str, ...] = ()
    query_params: bool = False
    request_headers: tuple[str, ...] = ()
    request_prefix_headers: tuple[str, ...] = ()
    response_headers: tuple[str, ...] = ()
    response_prefix_headers: tuple[str, ...] = ()
    status_code: bool = False

    @property
    def has_path(self) -> bool:
        return bool(self.path_indexes)

    @property
    def has_query(self) -> bool:
        return bool(self.query_keys) or self.query_params

    @property
    def has_request_headers(self) -> bool:
        return bool(self.request_headers or self.request_prefix_headers)

    @property
    def has_response_headers(self) -> bool:
        return bool(self.response_headers or self.response_prefix_headers)

    @property
    def is_empty(self) -> bool:
        return not (
            self.has_path
            or self.has_query
            or self.has_request_headers
            or self.has_response_headers
            or self.status_code
        )


def _children(model: Model, node: Node) -> Iterator[Node]:
    if isinstance(node, Member):
        yield model.target(node)
    elif node.type not in _STOP_TYPES:
        yield from node.members


def _node_is_sensitive(model: Model, node: Node) -> bool:
    if isinstance(node, Member):
        return is_sensitive(model, node)
    return node.has_trait(SENSITIVE)


def find_sensitive_nodes(model: Model, root: Shape) -> list[Node]:
    """Return the topmost sensitive nodes reachable from ``root``."""
    found: list[Node] = []
    seen: set[str] = set()
    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        if _node_is_sensitive(model, node):
            found.append(node)
            continue
        stack.extend(_children(model, node))
    return found


def reachable_members(model: Model, start: Node) -> set[str]:
    """Ids of every member in the subtree rooted at ``start``, itself included."""
    members: set[str] = set()
    seen: set[str] = set()
    stack: list[Node] = [start]
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        if isinstance(node, Member):
            members.add(node.id)
        stack.extend(_children(model, node))
    return members


def sensitive_member_ids(model: Model, root: Shape) -> set[str]:
    ids: set[str] = set()
    for node in find_sensitive_nodes(model, root):
        ids |= reachable_members(model, node)
    return ids


def sensitive_bindings(
    model: Model, root: Shape, bindings: list[BindingDescriptor]
) -> list[BindingDescriptor]:
    """Keep the bindings of ``root`` whose member sits in a sensitive subtree."""
    ids = sensitive_member_ids(model, root)
    return [
        b
        for b in bindings
        if b.member.id in ids and b.location not in (HttpLocation.DOCUMENT, HttpLocation.PAYLOAD)
    ]


def _names(bindings: list[BindingDescriptor], location: HttpLocation) -> tuple[str, ...]:
    return tuple(sorted({b.location_name.lower() for b in bindings if b.location == location}))


def sensitivity_descriptor(
    model: Model,
    input_shape: Shape,
    request_bindings: list[BindingDescriptor],
    output_shape: Shape,
    response_bindings: list[BindingDescriptor],
) -> SensitivityDescriptor:
    """Build the redaction descriptor of one operation."""
    request = sensitive_bindings(model, input_shape, request_bindings)
    response = sensitive_bindings(model, output_shape, response_bindings)

    return SensitivityDescriptor(
        path_indexes=tuple(
            sorted(b.positional_index for b in request if b.positional_index is not None)
        ),
        query_keys=tuple(
            sorted({b.location_name for b in request if b.location == HttpLocation.QUERY})
        ),
        query_params=any(b.location == HttpLocation.QUERY_PARAMS for b in request),
        request_headers=_names(request, HttpLocation.HEADER),
        request_prefix_headers=_names(request, HttpLocation.PREFIX_HEADERS),
        response_headers=_names(response, HttpLocation.HEADER),
        response_prefix_headers=_names(response, HttpLocation.PREFIX_HEADERS),
        status_code=any(b.location == HttpLocation.RESPONSE_CODE for b in response),
    )
