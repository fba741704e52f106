"""Per-operation generation plans.

A plan gathers everything derived for one HTTP-bound operation: its
bindings, checksum policy and redaction descriptor. Errors from every
operation are collected before anything is rendered.
"""

import logging
from dataclasses import dataclass

from .bindings import BindingDescriptor, ClassificationError, HttpBindingIndex, HttpTrait
from .checksums import ChecksumPolicy, checksum_policy
from .formatting import TEXT_LOCATIONS, FormatResolutionError, format_rule
from .loader import ModelError
from .protocols import ProtocolDescriptor
from .sensitivity import SensitivityDescriptor, sensitivity_descriptor
from .types import Model, Shape
from .util import to_snake_case

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Every binding error found in a model, reported together."""

    def __init__(self, errors: list[Exception]) -> None:
        details = "\n".join(f"  - {err}" for err in errors)
        super().__init__(f"model has {len(errors)} binding error(s):\n{details}")
        self.errors = errors


@dataclass(frozen=True)
class OperationPlan:
    shape: Shape
    http: HttpTrait
    input: Shape
    output: Shape
    request: list[BindingDescriptor]
    response: list[BindingDescriptor]
    errors: list[tuple[Shape, list[BindingDescriptor]]]
    checksum: ChecksumPolicy | None
    sensitivity: SensitivityDescriptor

    @property
    def name(self) -> str:
        return to_snake_case(self.shape.name)


def select_service(model: Model, service_id: str | None = None) -> Shape:
    """Return the requested service, or the only one in the model."""
    if service_id:
        service = model.get_shape(service_id)
        if service is None:
            raise ModelError(f"service {service_id} not found in model")
        return service
    services = model.services()
    if len(services) != 1:
        found = ", ".join(s.id for s in services) or "none"
        raise ModelError(f"expected exactly one service, found {found}; pick one with --service")
    return services[0]


def _check_formats(
    model: Model, bindings: list[BindingDescriptor], protocol: ProtocolDescriptor
) -> None:
    for binding in bindings:
        if binding.location in TEXT_LOCATIONS:
            format_rule(model, binding.member, binding.location, protocol)


def plan_operation(
    model: Model, index: HttpBindingIndex, operation: Shape, protocol: ProtocolDescriptor
) -> OperationPlan | None:
    http = index.http_trait(operation)
    if http is None:
        logger.debug("%s has no http trait; no bindings generated", operation.id)
        return None

    request = index.request_bindings(operation)
    response = index.response_bindings(operation)
    input_shape = model.input_shape(operation)
    output_shape = model.output_shape(operation)
    errors = [(e, index.error_bindings(operation, e)) for e in model.error_shapes(operation)]
    for bindings in [request, response, *(b for _, b in errors)]:
        _check_formats(model, bindings, protocol)

    return OperationPlan(
        shape=operation,
        http=http,
        input=input_shape,
        output=output_shape,
        request=request,
        response=response,
        errors=errors,
        checksum=checksum_policy(model, operation, protocol),
        sensitivity=sensitivity_descriptor(model, input_shape, request, output_shape, response),
    )


def plan_operations(
    model: Model, protocol: ProtocolDescriptor, service: Shape | None = None
) -> list[OperationPlan]:
    """Plan every operation of ``service`` (or of the model).

    Raises GenerationError carrying the errors of all operations.
    """
    index = HttpBindingIndex(model)
    plans: list[OperationPlan] = []
    errors: list[Exception] = []
    for operation in model.operations(service):
        try:
            plan = plan_operation(model, index, operation, protocol)
        except (ClassificationError, FormatResolutionError) as err:
            errors.append(err)
            continue
        if plan is not None:
            plans.append(plan)

    if errors:
        raise GenerationError(errors)
    logger.debug("planned %d HTTP-bound operations", len(plans))
    return plans
