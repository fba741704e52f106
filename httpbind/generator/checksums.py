"""Checksum policy of an operation, read from its httpChecksum trait."""

from dataclasses import dataclass

from ..proto.checksums import ChecksumAlgorithm
from .bindings import ClassificationError
from .protocols import ProtocolDescriptor
from .types import HTTP_CHECKSUM, Member, Model, Shape


@dataclass(frozen=True)
class ChecksumPolicy:
    """Request calculation and response validation settings for one operation."""

    default_algorithm: ChecksumAlgorithm
    request_algorithm_member: Member | None = None
    request_checksum_required: bool = False
    request_validation_mode_member: Member | None = None
    response_algorithms: tuple[str, ...] = ()

    @property
    def calculates_request_checksum(self) -> bool:
        return self.request_algorithm_member is not None or self.request_checksum_required

    @property
    def validates_response(self) -> bool:
        return bool(self.response_algorithms)

    def header_name(self, algorithm: str) -> str:
        return ChecksumAlgorithm.parse(algorithm).header_name

    def default_member_value(self, model: Model) -> str:
        """Wire value written to the algorithm member when the caller leaves it unset."""
        if self.request_algorithm_member is not None:
            target = model.target(self.request_algorithm_member)
            for _name, value in target.enum_values():
                if str(value).lower() == self.default_algorithm.value:
                    return str(value)
        return self.default_algorithm.value.upper()


def _input_member(model: Model, operation: Shape, name: str | None, what: str) -> Member | None:
    if name is None:
        return None
    member = model.input_shape(operation).member(name)
    if member is None:
        raise ClassificationError(operation.id, f"{what} {name!r} is not a member of the operation input")
    if not model.target(member).is_string:
        raise ClassificationError(member.id, f"{what} must target a string or enum")
    return member


def checksum_policy(model: Model, operation: Shape, protocol: ProtocolDescriptor) -> ChecksumPolicy | None:
    """Return the operation's checksum policy, or None when it has none."""
    trait = operation.get_trait(HTTP_CHECKSUM)
    if trait is None:
        return None

    response_algorithms: list[str] = []
    for name in trait.get("responseAlgorithms", []):
        try:
            response_algorithms.append(ChecksumAlgorithm.parse(name).value)
        except ValueError as err:
            raise ClassificationError(operation.id, str(err)) from err

    validation_member = _input_member(
        model, operation, trait.get("requestValidationModeMember"), "requestValidationModeMember"
    )
    if response_algorithms and validation_member is None:
        raise ClassificationError(
            operation.id, "responseAlgorithms needs a requestValidationModeMember"
        )

    return ChecksumPolicy(
        default_algorithm=ChecksumAlgorithm.parse(protocol.default_checksum_algorithm),
        request_algorithm_member=_input_member(
            model, operation, trait.get("requestAlgorithmMember"), "requestAlgorithmMember"
        ),
        request_checksum_required=bool(trait.get("requestChecksumRequired", False)),
        request_validation_mode_member=validation_member,
        response_algorithms=tuple(response_algorithms),
    )
