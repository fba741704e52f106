"""Load a service model from its JSON AST."""

import json
import logging
from pathlib import Path
from typing import Any

from .types import Member, Model, Shape, ShapeType, prelude_shapes

logger = logging.getLogger(__name__)


class ModelError(RuntimeError):
    """Raised when a model document is malformed or references unknown shapes."""


def _member(container: str, name: str, node: dict[str, Any]) -> Member:
    if "target" not in node:
        raise ModelError(f"member {container}${name} has no target")
    return Member(name=name, target=node["target"], container=container, traits=node.get("traits", {}))


def _targets(nodes: list[dict[str, Any]]) -> list[str]:
    return [node["target"] for node in nodes]


def _shape(shape_id: str, node: dict[str, Any]) -> Shape:
    try:
        shape_type = ShapeType(node["type"])
    except (KeyError, ValueError):
        raise ModelError(f"{shape_id} has unsupported type {node.get('type')!r}") from None

    members: list[Member] = []
    if shape_type in (ShapeType.LIST, ShapeType.SET):
        members = [_member(shape_id, "member", node.get("member", {}))]
    elif shape_type == ShapeType.MAP:
        members = [
            _member(shape_id, "key", node.get("key", {})),
            _member(shape_id, "value", node.get("value", {})),
        ]
    else:
        members = [_member(shape_id, name, m) for name, m in node.get("members", {}).items()]

    return Shape(
        id=shape_id,
        type=shape_type,
        traits=node.get("traits", {}),
        members=members,
        input=node.get("input", {}).get("target"),
        output=node.get("output", {}).get("target"),
        errors=_targets(node.get("errors", [])),
        operations=_targets(node.get("operations", [])),
    )


def validate(model: Model) -> None:
    """Check that every reference in the model resolves."""
    for shape in model.shapes.values():
        refs = [m.target for m in shape.members if shape.type not in (ShapeType.ENUM, ShapeType.INT_ENUM)]
        refs += [r for r in (shape.input, shape.output) if r]
        refs += shape.errors + shape.operations
        for ref in refs:
            if ref not in model.shapes:
                raise ModelError(f"{shape.id} references {ref}, but it is not declared")


def load(text: str) -> Model:
    """Parse a JSON AST model document."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as err:
        raise ModelError(f"model is not valid JSON: {err}") from err

    if not isinstance(document, dict) or not isinstance(document.get("shapes"), dict):
        raise ModelError("model document must contain a 'shapes' object")

    shapes = prelude_shapes()
    for shape_id, node in document["shapes"].items():
        if "#" not in shape_id:
            raise ModelError(f"shape id {shape_id!r} is not absolute")
        shapes[shape_id] = _shape(shape_id, node)

    model = Model(shapes=shapes)
    validate(model)
    logger.debug("loaded %d shapes", len(document["shapes"]))
    return model


def load_file(path: str | Path) -> Model:
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as err:
        raise ModelError(f"can't read model file {path}: {err.strerror}") from err
    return load(text)
