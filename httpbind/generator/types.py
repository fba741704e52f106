"""Type definitions for the service model consumed by the generator.

The model is an arena of shapes keyed by absolute shape id. Shapes are
immutable; transforms build a new :class:`Model` rather than mutating one.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from dataclasses_json import DataClassJsonMixin

PRELUDE = "smithy.api"

# Trait ids
HTTP = "smithy.api#http"
HTTP_HEADER = "smithy.api#httpHeader"
HTTP_PREFIX_HEADERS = "smithy.api#httpPrefixHeaders"
HTTP_QUERY = "smithy.api#httpQuery"
HTTP_QUERY_PARAMS = "smithy.api#httpQueryParams"
HTTP_LABEL = "smithy.api#httpLabel"
HTTP_PAYLOAD = "smithy.api#httpPayload"
HTTP_RESPONSE_CODE = "smithy.api#httpResponseCode"
HTTP_ERROR = "smithy.api#httpError"
ERROR = "smithy.api#error"
SENSITIVE = "smithy.api#sensitive"
MEDIA_TYPE = "smithy.api#mediaType"
TIMESTAMP_FORMAT = "smithy.api#timestampFormat"
STREAMING = "smithy.api#streaming"
REQUIRED = "smithy.api#required"
ENUM = "smithy.api#enum"
ENUM_VALUE = "smithy.api#enumValue"
JSON_NAME = "smithy.api#jsonName"
DOCUMENTATION = "smithy.api#documentation"
HTTP_CHECKSUM = "aws.protocols#httpChecksum"


class ShapeType(StrEnum):
    """Kinds of shapes in the model graph."""

    BLOB = "blob"
    BOOLEAN = "boolean"
    STRING = "string"
    ENUM = "enum"
    INT_ENUM = "intEnum"
    TIMESTAMP = "timestamp"
    BYTE = "byte"
    SHORT = "short"
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BIG_INTEGER = "bigInteger"
    BIG_DECIMAL = "bigDecimal"
    DOCUMENT = "document"
    LIST = "list"
    SET = "set"
    MAP = "map"
    STRUCTURE = "structure"
    UNION = "union"
    OPERATION = "operation"
    SERVICE = "service"


NUMBER_TYPES = frozenset(
    [
        ShapeType.BYTE,
        ShapeType.SHORT,
        ShapeType.INTEGER,
        ShapeType.LONG,
        ShapeType.FLOAT,
        ShapeType.DOUBLE,
        ShapeType.BIG_INTEGER,
        ShapeType.BIG_DECIMAL,
        ShapeType.INT_ENUM,
    ]
)

PRIMITIVE_TYPES = NUMBER_TYPES | {ShapeType.BOOLEAN}

COLLECTION_TYPES = frozenset([ShapeType.LIST, ShapeType.SET])

AGGREGATE_TYPES = frozenset([ShapeType.STRUCTURE, ShapeType.UNION])


@dataclass(frozen=True)
class Member(DataClassJsonMixin):
    """A named, typed slot inside a structure, union, list or map."""

    name: str
    target: str
    container: str
    traits: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.container}${self.name}"

    def has_trait(self, trait_id: str) -> bool:
        return trait_id in self.traits

    def get_trait(self, trait_id: str, default: Any = None) -> Any:
        return self.traits.get(trait_id, default)

    def without_trait(self, trait_id: str) -> "Member":
        if trait_id not in self.traits:
            return self
        return replace(self, traits={k: v for k, v in self.traits.items() if k != trait_id})


@dataclass(frozen=True)
class Shape(DataClassJsonMixin):
    """A node in the service type graph."""

    id: str
    type: ShapeType
    traits: dict[str, Any] = field(default_factory=dict)
    members: list[Member] = field(default_factory=list)
    input: str | None = None
    output: str | None = None
    errors: list[str] = field(default_factory=list)
    operations: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.id.split("#", 1)[-1]

    @property
    def namespace(self) -> str:
        return self.id.split("#", 1)[0]

    def has_trait(self, trait_id: str) -> bool:
        return trait_id in self.traits

    def get_trait(self, trait_id: str, default: Any = None) -> Any:
        return self.traits.get(trait_id, default)

    def member(self, name: str) -> Member | None:
        for member in self.members:
            if member.name == name:
                return member
        return None

    def without_trait(self, trait_id: str) -> "Shape":
        if trait_id not in self.traits:
            return self
        return replace(self, traits={k: v for k, v in self.traits.items() if k != trait_id})

    def map_members(self, fn: Callable[[Member], Member]) -> "Shape":
        members = [fn(m) for m in self.members]
        if all(a is b for a, b in zip(members, self.members, strict=True)):
            return self
        return replace(self, members=members)

    def enum_values(self) -> list[tuple[str, Any]]:
        """Return ``(name, wire value)`` pairs for enum shapes."""
        if self.type in (ShapeType.ENUM, ShapeType.INT_ENUM):
            return [(m.name, m.get_trait(ENUM_VALUE, m.name)) for m in self.members]
        legacy = self.get_trait(ENUM)
        if legacy:
            return [(d.get("name") or d["value"], d["value"]) for d in legacy]
        return []

    @property
    def is_enum(self) -> bool:
        return self.type in (ShapeType.ENUM, ShapeType.INT_ENUM) or (
            self.type == ShapeType.STRING and self.has_trait(ENUM)
        )

    @property
    def is_string(self) -> bool:
        return self.type in (ShapeType.STRING, ShapeType.ENUM)

    @property
    def is_streaming_blob(self) -> bool:
        return self.type == ShapeType.BLOB and self.has_trait(STREAMING)

    @property
    def is_event_stream(self) -> bool:
        return self.type == ShapeType.UNION and self.has_trait(STREAMING)


_PRELUDE_TYPES = {
    "String": ShapeType.STRING,
    "Blob": ShapeType.BLOB,
    "Boolean": ShapeType.BOOLEAN,
    "PrimitiveBoolean": ShapeType.BOOLEAN,
    "Byte": ShapeType.BYTE,
    "PrimitiveByte": ShapeType.BYTE,
    "Short": ShapeType.SHORT,
    "PrimitiveShort": ShapeType.SHORT,
    "Integer": ShapeType.INTEGER,
    "PrimitiveInteger": ShapeType.INTEGER,
    "Long": ShapeType.LONG,
    "PrimitiveLong": ShapeType.LONG,
    "Float": ShapeType.FLOAT,
    "PrimitiveFloat": ShapeType.FLOAT,
    "Double": ShapeType.DOUBLE,
    "PrimitiveDouble": ShapeType.DOUBLE,
    "BigInteger": ShapeType.BIG_INTEGER,
    "BigDecimal": ShapeType.BIG_DECIMAL,
    "Timestamp": ShapeType.TIMESTAMP,
    "Document": ShapeType.DOCUMENT,
    "Unit": ShapeType.STRUCTURE,
}

UNIT = f"{PRELUDE}#Unit"


def prelude_shapes() -> dict[str, Shape]:
    """Return the built-in shapes every model can target."""
    return {
        f"{PRELUDE}#{name}": Shape(id=f"{PRELUDE}#{name}", type=shape_type)
        for name, shape_type in _PRELUDE_TYPES.items()
    }


@dataclass(frozen=True)
class Model:
    """An immutable arena of shapes addressed by shape id."""

    shapes: dict[str, Shape]

    def get_shape(self, shape_id: str) -> Shape | None:
        return self.shapes.get(shape_id)

    def expect_shape(self, shape_id: str) -> Shape:
        shape = self.shapes.get(shape_id)
        if shape is None:
            raise KeyError(f"shape not found in model: {shape_id}")
        return shape

    def target(self, member: Member) -> Shape:
        return self.expect_shape(member.target)

    def shapes_of(self, shape_type: ShapeType) -> Iterator[Shape]:
        return (s for s in self.shapes.values() if s.type == shape_type)

    def services(self) -> list[Shape]:
        return sorted(self.shapes_of(ShapeType.SERVICE), key=lambda s: s.id)

    def operations(self, service: Shape | None = None) -> list[Shape]:
        if service is not None:
            return [self.expect_shape(op) for op in service.operations]
        return sorted(self.shapes_of(ShapeType.OPERATION), key=lambda s: s.id)

    def input_shape(self, operation: Shape) -> Shape:
        return self.expect_shape(operation.input or UNIT)

    def output_shape(self, operation: Shape) -> Shape:
        return self.expect_shape(operation.output or UNIT)

    def error_shapes(self, operation: Shape) -> list[Shape]:
        return [self.expect_shape(e) for e in operation.errors]

    def map_shapes(self, fn: Callable[[Shape], Shape]) -> "Model":
        """Apply ``fn`` to every shape, returning a new model.

        Returns ``self`` when ``fn`` leaves every shape untouched.
        """
        changed = False
        shapes: dict[str, Shape] = {}
        for shape_id, shape in self.shapes.items():
            mapped = fn(shape)
            changed = changed or mapped is not shape
            shapes[shape_id] = mapped
        if not changed:
            return self
        return Model(shapes=shapes)


def is_sensitive(model: Model, member: Member) -> bool:
    """A member is sensitive when it or its target carries the marker."""
    return member.has_trait(SENSITIVE) or model.target(member).has_trait(SENSITIVE)
