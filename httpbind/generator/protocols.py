"""Wire protocol descriptors and the protocol trait filter."""

import logging
from dataclasses import dataclass

from dataclasses_json import DataClassJsonMixin

from ..proto.timestamps import TimestampFormat
from .loader import ModelError
from .types import HTTP, HTTP_LABEL, HTTP_PAYLOAD, STREAMING, Member, Model, Shape, ShapeType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtocolDescriptor(DataClassJsonMixin):
    """What a wire dialect supports, enumerated once per protocol."""

    name: str
    trait: str
    supports_http_bindings: bool
    supports_label_binding: bool
    supports_streaming_blob: bool
    default_timestamp_format: TimestampFormat
    default_checksum_algorithm: str = "crc32"

    @property
    def supports_everything(self) -> bool:
        return (
            self.supports_http_bindings
            and self.supports_label_binding
            and self.supports_streaming_blob
        )


PROTOCOLS: dict[str, ProtocolDescriptor] = {
    p.name: p
    for p in (
        ProtocolDescriptor(
            name="restJson1",
            trait="aws.protocols#restJson1",
            supports_http_bindings=True,
            supports_label_binding=True,
            supports_streaming_blob=True,
            default_timestamp_format=TimestampFormat.EPOCH_SECONDS,
        ),
        ProtocolDescriptor(
            name="restXml",
            trait="aws.protocols#restXml",
            supports_http_bindings=True,
            supports_label_binding=True,
            supports_streaming_blob=True,
            default_timestamp_format=TimestampFormat.DATE_TIME,
        ),
        ProtocolDescriptor(
            name="awsJson1_0",
            trait="aws.protocols#awsJson1_0",
            supports_http_bindings=False,
            supports_label_binding=False,
            supports_streaming_blob=True,
            default_timestamp_format=TimestampFormat.EPOCH_SECONDS,
        ),
        ProtocolDescriptor(
            name="awsJson1_1",
            trait="aws.protocols#awsJson1_1",
            supports_http_bindings=False,
            supports_label_binding=False,
            supports_streaming_blob=True,
            default_timestamp_format=TimestampFormat.EPOCH_SECONDS,
        ),
        ProtocolDescriptor(
            name="awsQuery",
            trait="aws.protocols#awsQuery",
            supports_http_bindings=False,
            supports_label_binding=False,
            supports_streaming_blob=True,
            default_timestamp_format=TimestampFormat.DATE_TIME,
        ),
        ProtocolDescriptor(
            name="ec2Query",
            trait="aws.protocols#ec2Query",
            supports_http_bindings=False,
            supports_label_binding=False,
            supports_streaming_blob=True,
            default_timestamp_format=TimestampFormat.DATE_TIME,
        ),
        ProtocolDescriptor(
            name="rpcv2Cbor",
            trait="smithy.protocols#rpcv2Cbor",
            supports_http_bindings=False,
            supports_label_binding=False,
            supports_streaming_blob=False,
            default_timestamp_format=TimestampFormat.EPOCH_SECONDS,
        ),
    )
}


def get_protocol(name: str) -> ProtocolDescriptor:
    try:
        return PROTOCOLS[name]
    except KeyError:
        known = ", ".join(sorted(PROTOCOLS))
        raise ModelError(f"unknown protocol {name!r} (expected one of: {known})") from None


def resolve_protocol(service: Shape, override: str | None = None) -> ProtocolDescriptor:
    """Pick the protocol from ``override`` or the service's protocol trait."""
    if override:
        return get_protocol(override)
    for protocol in PROTOCOLS.values():
        if service.has_trait(protocol.trait):
            return protocol
    raise ModelError(f"service {service.id} has no supported protocol trait")


def filter_model(model: Model, protocol: ProtocolDescriptor) -> Model:
    """Strip bindings ``protocol`` can't express.

    Pure: the input model is untouched and a protocol that supports every
    binding gets the very same model back. Running the filter on its own
    output changes nothing.
    """
    if protocol.supports_everything:
        return model

    def filter_member(member: Member) -> Member:
        if not protocol.supports_label_binding:
            member = member.without_trait(HTTP_LABEL)
        if not protocol.supports_http_bindings:
            member = member.without_trait(HTTP_PAYLOAD)
        return member

    def filter_shape(shape: Shape) -> Shape:
        if shape.type == ShapeType.OPERATION and not protocol.supports_http_bindings:
            shape = shape.without_trait(HTTP)
        elif shape.type == ShapeType.BLOB and not protocol.supports_streaming_blob:
            shape = shape.without_trait(STREAMING)
        return shape.map_members(filter_member)

    filtered = model.map_shapes(filter_shape)
    if filtered is not model:
        changed = sum(1 for k, s in filtered.shapes.items() if s is not model.shapes[k])
        logger.debug("%s: removed unsupported traits from %d shapes", protocol.name, changed)
    return filtered
