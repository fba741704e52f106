"""Naming helpers for generated code."""

import keyword
import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_IDENT = re.compile(r"[^0-9a-zA-Z]+")

# Names a generated dataclass body or DataClassJsonMixin already uses
_RESERVED_FIELDS = frozenset(
    ["field", "config", "dataclass", "datetime", "to_dict", "from_dict", "to_json", "from_json", "schema"]
)


def to_snake_case(name: str) -> str:
    """GetObjectInput -> get_object_input, ETag -> e_tag, x-id -> x_id."""
    text = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    text = _WORD_BOUNDARY.sub(r"\1_\2", text)
    return _NON_IDENT.sub("_", text).strip("_").lower()


def to_camel_case(snake_str: str) -> str:
    """Convert snake_case to CamelCase."""
    return "".join(x[:1].upper() + x[1:] for x in _NON_IDENT.sub("_", snake_str).split("_"))


def safe_name(name: str) -> str:
    """Make ``name`` usable as a Python identifier."""
    if keyword.iskeyword(name) or keyword.issoftkeyword(name):
        return f"{name}_"
    if name[:1].isdigit():
        return f"_{name}"
    return name


def field_name(member_name: str) -> str:
    name = safe_name(to_snake_case(member_name) or "_")
    return f"{name}_" if name in _RESERVED_FIELDS else name


def class_name(shape_name: str) -> str:
    name = to_camel_case(shape_name)
    return safe_name(name) if name else "_"


def enum_member_name(name: str) -> str:
    return safe_name(to_snake_case(name).upper() or "_")
