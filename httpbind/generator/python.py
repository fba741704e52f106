"""Python code generator for HTTP-bound service models."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from importlib import resources

from jinja2 import Environment, PackageLoader

from ..proto.timestamps import TimestampFormat
from .bindings import BindingDescriptor, HttpLocation, HttpMessageType
from .customizations import (
    DEFAULT_CUSTOMIZATIONS,
    GenerationContext,
    HttpBindingCustomization,
    Section,
    render_section,
)
from .formatting import FormatSpec, ValueTransform, format_rule
from .plan import OperationPlan, plan_operations, select_service
from .protocols import ProtocolDescriptor, filter_model, resolve_protocol
from .settings import GeneratorSettings
from .types import (
    AGGREGATE_TYPES,
    COLLECTION_TYPES,
    DOCUMENTATION,
    ERROR,
    HTTP_ERROR,
    JSON_NAME,
    MEDIA_TYPE,
    REQUIRED,
    TIMESTAMP_FORMAT,
    Member,
    Model,
    Shape,
    ShapeType,
    is_sensitive,
)
from .util import class_name, enum_member_name, field_name, to_snake_case

logger = logging.getLogger(__name__)

RUNTIME_FILES = [
    "__init__.py",
    "checksums.py",
    "crc.py",
    "eventstream.py",
    "headers.py",
    "message.py",
    "payload.py",
    "primitives.py",
    "sensitivity.py",
    "timestamps.py",
    "uri.py",
]

env = Environment(
    loader=PackageLoader("httpbind.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

INDENT = "    "

# Map scalar shapes to Python type annotations
SCALAR_TYPE_MAP = {
    ShapeType.BLOB: "bytes",
    ShapeType.BOOLEAN: "bool",
    ShapeType.STRING: "str",
    ShapeType.TIMESTAMP: "datetime",
    ShapeType.BYTE: "int",
    ShapeType.SHORT: "int",
    ShapeType.INTEGER: "int",
    ShapeType.LONG: "int",
    ShapeType.BIG_INTEGER: "int",
    ShapeType.FLOAT: "float",
    ShapeType.DOUBLE: "float",
    ShapeType.BIG_DECIMAL: "Decimal",
    ShapeType.DOCUMENT: "Any",
}


@dataclass
class GenEnum:
    name: str
    base: str
    values: list[tuple[str, str]]


@dataclass
class GenField:
    name: str
    type: str
    config: str


@dataclass
class GenStruct:
    name: str
    doc: str | None
    fields: list[GenField]


def _str(value: str) -> str:
    """A double-quoted Python string literal."""
    return json.dumps(value)


def _docstring(text: str | None) -> str | None:
    if not text:
        return None
    return " ".join(text.split()).replace('"""', "'''").replace("\\", "\\\\")


def _ts_const(fmt: TimestampFormat | None) -> str:
    return f"_ts.TimestampFormat.{(fmt or TimestampFormat.DATE_TIME).name}"


def _function(signature: str, body: list[str]) -> str:
    lines = [signature]
    lines += [INDENT + line if line else "" for line in body]
    return "\n".join(lines)


def _encode_expr(spec: FormatSpec, var: str) -> str:
    """Expression turning one element in ``var`` into wire text."""
    if spec.transform == ValueTransform.ENUM:
        return f"_prim.enum_text({var})"
    if spec.transform == ValueTransform.BASE64:
        return f"_prim.base64_encode({var})"
    if spec.transform == ValueTransform.PRIMITIVE:
        return f"_prim.encode_primitive({var})"
    if spec.transform == ValueTransform.TIMESTAMP:
        return f"_ts.fmt_timestamp({var}, {_ts_const(spec.timestamp_format)})"
    return var


def _header_expr(spec: FormatSpec, var: str) -> str:
    """Expression producing the full header value for ``var``."""
    if spec.singular:
        # A bare string goes out verbatim, commas and all
        return _encode_expr(spec, var)
    item = _encode_expr(spec, "element")
    if spec.quote:
        item = f"_h.quote_header_value({item})"
    return f'", ".join({item} for element in {var})'


def _status_code(error: Shape) -> int:
    code = error.get_trait(HTTP_ERROR)
    if code:
        return int(code)
    return 400 if error.get_trait(ERROR) == "client" else 500


class PythonWriter:
    """Emits the Python source for one filtered model."""

    def __init__(
        self,
        model: Model,
        protocol: ProtocolDescriptor,
        customizations: Sequence[HttpBindingCustomization] = DEFAULT_CUSTOMIZATIONS,
    ) -> None:
        self.model = model
        self.protocol = protocol
        self.customizations = tuple(customizations)

    # Types

    def py_type(self, shape: Shape, defined: set[str] | None = None) -> str:
        """Annotation for values of ``shape``; not-yet-defined classes are quoted."""
        if shape.is_streaming_blob:
            return "_m.ByteStream"
        if shape.is_event_stream:
            return "Any"
        if shape.is_enum or shape.type in AGGREGATE_TYPES:
            name = class_name(shape.name)
            if defined is not None and shape.type in AGGREGATE_TYPES and shape.id not in defined:
                return f'"{name}"'
            return name
        if shape.type in COLLECTION_TYPES:
            return f"list[{self.py_type(self.model.target(shape.members[0]), defined)}]"
        if shape.type == ShapeType.MAP:
            return f"dict[str, {self.py_type(self.model.target(shape.members[1]), defined)}]"
        return SCALAR_TYPE_MAP[shape.type]

    def member_type(self, member: Member) -> str:
        return self.py_type(self.model.target(member))

    def collect_shapes(self, roots: list[Shape]) -> tuple[list[Shape], list[Shape]]:
        """Enums and structures reachable from ``roots``, dependencies first."""
        order: list[Shape] = []
        seen: set[str] = set()
        for root in roots:
            stack: list[tuple[Shape, bool]] = [(root, False)]
            while stack:
                shape, expanded = stack.pop()
                if expanded:
                    order.append(shape)
                    continue
                if shape.id in seen:
                    continue
                seen.add(shape.id)
                stack.append((shape, True))
                if shape.is_enum:
                    continue
                for member in reversed(shape.members):
                    stack.append((self.model.target(member), False))

        enums = [s for s in order if s.is_enum]
        structs = [s for s in order if s.type in AGGREGATE_TYPES]
        return enums, structs

    def gen_enum(self, shape: Shape) -> GenEnum:
        if shape.type == ShapeType.INT_ENUM:
            values = [(enum_member_name(n), str(int(v))) for n, v in shape.enum_values()]
            return GenEnum(name=class_name(shape.name), base="IntEnum", values=values)
        values = [(enum_member_name(n), _str(str(v))) for n, v in shape.enum_values()]
        return GenEnum(name=class_name(shape.name), base="StrEnum", values=values)

    def field_config(self, member: Member) -> str:
        args = [f"field_name={_str(member.get_trait(JSON_NAME, member.name))}"]
        target = self.model.target(member)
        if target.type == ShapeType.TIMESTAMP:
            fmt = member.get_trait(TIMESTAMP_FORMAT) or target.get_trait(TIMESTAMP_FORMAT)
            const = _ts_const(TimestampFormat(fmt) if fmt else self.protocol.default_timestamp_format)
            args += [f"encoder=_ts.field_encoder({const})", f"decoder=_ts.field_decoder({const})"]
        elif target.type == ShapeType.BLOB and not target.is_streaming_blob:
            args += ["encoder=_prim.encode_blob_field", "decoder=_prim.decode_blob_field"]
        return ", ".join(args)

    def gen_struct(self, shape: Shape, defined: set[str]) -> GenStruct:
        fields = [
            GenField(
                name=field_name(m.name),
                type=self.py_type(self.model.target(m), defined),
                config=self.field_config(m),
            )
            for m in shape.members
        ]
        return GenStruct(
            name=class_name(shape.name), doc=_docstring(shape.get_trait(DOCUMENTATION)), fields=fields
        )

    # Naming

    def fn_name(self, kind: str, op: OperationPlan, container: Shape, member: Member | None = None) -> str:
        parts = [kind, op.name, to_snake_case(container.name)]
        if member is not None:
            parts.append(to_snake_case(member.name))
        return "_".join(parts)

    def uri_const(self, op: OperationPlan) -> str:
        return f"_URI_{op.name.upper()}"

    # Value conversion

    def spec(self, binding: BindingDescriptor) -> FormatSpec:
        return format_rule(self.model, binding.member, binding.location, self.protocol)

    def converter(self, spec: FormatSpec, strict: bool) -> str:
        """Callable expression turning wire text into one element, or ``None``."""
        if spec.transform == ValueTransform.ENUM:
            return f"lambda text: _prim.parse_enum({class_name(spec.element.name)}, text, strict={strict})"
        if spec.transform == ValueTransform.BASE64:
            return "_prim.base64_decode_text" if spec.media else "_prim.base64_decode"
        if spec.transform == ValueTransform.PRIMITIVE:
            return f"lambda text: _prim.parse_primitive(text, {_str(spec.primitive_kind or 'int')})"
        if spec.transform == ValueTransform.TIMESTAMP:
            return f"lambda text: _ts.parse_timestamp(text, {_ts_const(spec.timestamp_format)})"
        return "None"

    def header_decode_expr(self, spec: FormatSpec, strict: bool, values: str = "values") -> str:
        if spec.transform == ValueTransform.STRINGIFY:
            if spec.singular:
                # No comma splitting: a single string may contain commas
                return f"_h.one_or_none({values})"
            parsed = f"_h.read_many_from_str({values})"
        elif spec.transform == ValueTransform.TIMESTAMP:
            parsed = f"_h.many_dates({values}, {_ts_const(spec.timestamp_format)})"
        elif spec.transform == ValueTransform.PRIMITIVE:
            parsed = f"_h.read_many_primitive({values}, {_str(spec.primitive_kind or 'int')})"
        elif spec.transform == ValueTransform.BASE64 and spec.media:
            parsed = f"_h.read_many_media({values})"
        else:
            parsed = f"_h.read_many_from_str({values}, {self.converter(spec, strict)})"

        if spec.singular:
            return f"_h.expect_at_most_one({parsed})"
        return f"_h.none_if_empty({parsed})"

    def media_type_expr(self, target: Shape) -> str:
        if target.type == ShapeType.BLOB:
            return _str(target.get_trait(MEDIA_TYPE, "application/octet-stream"))
        if target.is_string:
            return _str(target.get_trait(MEDIA_TYPE, "text/plain"))
        if target.is_event_stream:
            return _str("application/vnd.amazon.eventstream")
        return "codec.media_type"

    # Headers

    def _header_lines(self, binding: BindingDescriptor) -> list[str]:
        member = binding.member
        name = field_name(member.name)
        attr = f"value.{name}"
        spec = self.spec(binding)
        sensitive = is_sensitive(self.model, member)
        lines: list[str] = []
        if member.has_trait(REQUIRED):
            lines += [
                f"if {attr} is None:",
                f'    raise _m.BuildError.missing_field("{name}", "cannot be empty or unset")',
            ]
        lines += [
            f"if {attr} is not None:",
            f"    formatted = {_header_expr(spec, attr)}",
            "    if formatted:",
            f"        builder.header({_str(binding.location_name)}, "
            f'_h.checked_header_value("{name}", formatted, sensitive={sensitive}))',
        ]
        return lines

    def _prefix_header_lines(
        self, op: OperationPlan, container: Shape, binding: BindingDescriptor, message_type: HttpMessageType
    ) -> list[str]:
        name = field_name(binding.member.name)
        attr = f"value.{name}"
        spec = self.spec(binding)
        sensitive = is_sensitive(self.model, binding.member)
        context = GenerationContext(
            model=self.model,
            operation=op.shape,
            container=container,
            binding=binding,
            message_type=message_type,
        )
        hook = render_section(self.customizations, Section.BEFORE_SERIALIZING_PREFIX_HEADERS, context)
        return [
            f"if {attr} is not None:",
            f"    items = list({attr}.items())",
            *[INDENT + line for line in hook],
            "    for key, item in items:",
            f'        name = _h.checked_header_name("{name}", {_str(binding.location_name)} + key)',
            f"        formatted = {_header_expr(spec, 'item')}",
            "        if formatted:",
            f'            builder.header(name, _h.checked_header_value("{name}", formatted, sensitive={sensitive}))',
        ]

    def gen_add_headers(
        self,
        op: OperationPlan,
        container: Shape,
        bindings: list[BindingDescriptor],
        message_type: HttpMessageType,
    ) -> str:
        builder = "_m.HttpRequestBuilder" if message_type == HttpMessageType.REQUEST else "_m.HttpResponseBuilder"
        body: list[str] = []
        for binding in bindings:
            if binding.location == HttpLocation.HEADER:
                body += self._header_lines(binding)
            elif binding.location == HttpLocation.PREFIX_HEADERS:
                body += self._prefix_header_lines(op, container, binding, message_type)
        body.append("return builder")
        signature = (
            f"def {self.fn_name('add_headers', op, container)}"
            f"(value: {class_name(container.name)}, builder: {builder}) -> {builder}:"
        )
        return _function(signature, body)

    def gen_deser_header(self, op: OperationPlan, container: Shape, binding: BindingDescriptor, strict: bool) -> str:
        spec = self.spec(binding)
        signature = (
            f"def {self.fn_name('deser_header', op, container, binding.member)}"
            f"(headers: _m.Headers) -> Optional[{self.member_type(binding.member)}]:"
        )
        return _function(
            signature,
            [
                f"values = headers.get_all({_str(binding.location_name)})",
                f"return {self.header_decode_expr(spec, strict)}",
            ],
        )

    def gen_deser_prefix_header(
        self,
        op: OperationPlan,
        container: Shape,
        binding: BindingDescriptor,
        message_type: HttpMessageType,
        strict: bool,
    ) -> str:
        spec = self.spec(binding)
        context = GenerationContext(
            model=self.model,
            operation=op.shape,
            container=container,
            binding=binding,
            message_type=message_type,
        )
        map_type = self.member_type(binding.member)
        body = [
            f"pairs = list(_h.headers_for_prefix(headers.names(), {_str(binding.location_name)}))",
            *render_section(self.customizations, Section.BEFORE_ITERATING_OVER_PREFIX_HEADERS, context),
            f"out: {map_type} = {{}}",
            "for key, name in pairs:",
            "    values = headers.get_all(name)",
            f"    out[key] = {self.header_decode_expr(spec, strict)}",
            *render_section(self.customizations, Section.AFTER_DESERIALIZING_PREFIX_HEADERS, context),
            "return out",
        ]
        signature = (
            f"def {self.fn_name('deser_prefix_header', op, container, binding.member)}"
            f"(headers: _m.Headers) -> Optional[{map_type}]:"
        )
        return _function(signature, body)

    # Path and query

    def gen_uri_const(self, op: OperationPlan) -> str:
        segments = tuple((str(s.kind), s.content) for s in op.http.uri.segments)
        return f"{self.uri_const(op)} = {segments!r}"

    def gen_ser_path(self, op: OperationPlan) -> str:
        labels = {b.location_name: b for b in op.request if b.location == HttpLocation.LABEL}
        body: list[str] = []
        parts: list[str] = []
        for segment in op.http.uri.segments:
            if not segment.is_label:
                parts.append(_str(segment.content))
                continue
            binding = labels[segment.content]
            name = field_name(binding.member.name)
            spec = self.spec(binding)
            encode = "" if spec.transform == ValueTransform.STRINGIFY else f", lambda v: {_encode_expr(spec, 'v')}"
            body.append(f'label_{name} = _uri.label_text(value.{name}, "{name}"{encode})')
            greedy = ", greedy=True" if binding.greedy else ""
            parts.append(f"_uri.encode_label(label_{name}{greedy})")

        path = f'"/" + "/".join([{", ".join(parts)}])' if parts else '"/"'
        if op.http.uri.trailing_slash and parts:
            path += ' + "/"'
        body.append(f"return {path}")
        return _function(f"def ser_path_{op.name}(value: {class_name(op.input.name)}) -> str:", body)

    def gen_ser_query(self, op: OperationPlan) -> str:
        body = [f"builder.query_param({_str(k)}, {_str(v)})" for k, v in op.http.uri.query_literals]
        queries = [b for b in op.request if b.location == HttpLocation.QUERY]
        params = [b for b in op.request if b.location == HttpLocation.QUERY_PARAMS]

        for binding in queries:
            attr = f"value.{field_name(binding.member.name)}"
            spec = self.spec(binding)
            key = _str(binding.location_name)
            body.append(f"if {attr} is not None:")
            if spec.singular:
                body.append(f"    builder.query_param({key}, {_encode_expr(spec, attr)})")
            else:
                body += [f"    for item in {attr}:", f"        builder.query_param({key}, {_encode_expr(spec, 'item')})"]

        bound_keys = tuple(b.location_name for b in queries)
        for binding in params:
            attr = f"value.{field_name(binding.member.name)}"
            spec = self.spec(binding)
            body += [f"if {attr} is not None:", f"    for key, item in {attr}.items():"]
            if bound_keys:
                # httpQuery wins over a map entry with the same key
                body += [f"        if key in {bound_keys!r}:", "            continue"]
            if spec.collection:
                body += ["        for element in item:", f"            builder.query_param(key, {_encode_expr(spec, 'element')})"]
            else:
                body.append(f"        builder.query_param(key, {_encode_expr(spec, 'item')})")

        body.append("return builder")
        signature = (
            f"def ser_query_{op.name}(value: {class_name(op.input.name)}, "
            "builder: _m.HttpRequestBuilder) -> _m.HttpRequestBuilder:"
        )
        return _function(signature, body)

    # Payloads

    def gen_ser_payload(self, op: OperationPlan, container: Shape, binding: BindingDescriptor) -> str:
        target = self.model.target(binding.member)
        body = ["if payload is None:", '    return _m.Body(b"")']
        if target.is_streaming_blob:
            body.append("return payload.into_body()")
        elif target.is_event_stream:
            body.append(f"return _es.as_sender(payload).into_body(codec.event_marshaller({class_name(target.name)}))")
        elif target.type == ShapeType.BLOB:
            body.append("return _m.Body(payload)")
        elif target.is_enum:
            body.append('return _m.Body(_prim.enum_text(payload).encode("utf-8"))')
        elif target.type == ShapeType.STRING:
            body.append('return _m.Body(payload.encode("utf-8"))')
        else:
            body.append("return _m.Body(codec.encode(payload))")
        signature = (
            f"def {self.fn_name('ser_payload', op, container, binding.member)}"
            f"(payload: Optional[{self.py_type(target)}], codec: _p.Codec) -> _m.Body:"
        )
        return _function(signature, body)

    def gen_deser_payload(
        self, op: OperationPlan, container: Shape, binding: BindingDescriptor, strict: bool
    ) -> str:
        target = self.model.target(binding.member)
        name = self.fn_name("deser_payload", op, container, binding.member)
        if target.is_streaming_blob:
            signature = f"def {name}(body: _m.Body, codec: _p.Codec) -> _m.ByteStream:"
            return _function(signature, ["return _m.ByteStream(body.take())"])
        if target.is_event_stream:
            signature = f"def {name}(body: _m.Body, codec: _p.Codec) -> _es.EventStreamReceiver:"
            unmarshaller = f"codec.event_unmarshaller({class_name(target.name)})"
            return _function(signature, [f"return _es.EventStreamReceiver({unmarshaller}, body.take())"])

        # Empty bytes mean absent, never an empty value
        body = ["data = body.read()", "if not data:", "    return None"]
        if target.type == ShapeType.BLOB:
            body.append("return data")
        elif target.is_enum:
            body.append(f"return _p.decode_enum(data, {class_name(target.name)}, strict={strict})")
        elif target.type == ShapeType.STRING:
            body.append("return _p.decode_utf8(data)")
        elif target.type == ShapeType.DOCUMENT:
            body.append("return codec.decode(data, object)")
        else:
            body.append(f"return codec.decode(data, {class_name(target.name)})")
        signature = f"def {name}(body: _m.Body, codec: _p.Codec) -> Optional[{self.py_type(target)}]:"
        return _function(signature, body)

    def _body_lines(self, op: OperationPlan, container: Shape, bindings: list[BindingDescriptor]) -> list[str]:
        payload = next((b for b in bindings if b.location == HttpLocation.PAYLOAD), None)
        if payload is not None:
            target = self.model.target(payload.member)
            return [
                f"builder.body({self.fn_name('ser_payload', op, container, payload.member)}"
                f"(value.{field_name(payload.member.name)}, codec))",
                f"_m.default_content_type(builder, {self.media_type_expr(target)})",
            ]
        documents = tuple(field_name(b.member.name) for b in bindings if b.location == HttpLocation.DOCUMENT)
        if not documents:
            return []
        return [
            f"builder.body(_m.Body(codec.encode(value, members={documents!r})))",
            "_m.default_content_type(builder, codec.media_type)",
        ]

    def _result_lines(
        self,
        op: OperationPlan,
        container: Shape,
        bindings: list[BindingDescriptor],
        message: str,
        strict: bool,
    ) -> list[str]:
        cls = class_name(container.name)
        if any(b.location == HttpLocation.DOCUMENT for b in bindings):
            lines = [f"result = _p.decode_document(codec, {message}.body, {cls})"]
        else:
            lines = [f"result = {cls}()"]

        assignments: list[str] = []
        for binding in bindings:
            name = field_name(binding.member.name)
            location = binding.location
            if location == HttpLocation.HEADER:
                fn = self.fn_name("deser_header", op, container, binding.member)
                assignments.append(f"{name}={fn}({message}.headers)")
            elif location == HttpLocation.PREFIX_HEADERS:
                fn = self.fn_name("deser_prefix_header", op, container, binding.member)
                assignments.append(f"{name}={fn}({message}.headers)")
            elif location == HttpLocation.QUERY:
                spec = self.spec(binding)
                values = f"_uri.query_values({message}.query, {_str(binding.location_name)})"
                assignments.append(
                    f"{name}=_uri.read_query({values}, {self.converter(spec, strict)}, singular={spec.singular})"
                )
            elif location == HttpLocation.QUERY_PARAMS:
                spec = self.spec(binding)
                assignments.append(
                    f"{name}=_uri.read_query_params({message}.query, "
                    f"{self.converter(spec, strict)}, multi={spec.collection})"
                )
            elif location == HttpLocation.LABEL:
                spec = self.spec(binding)
                converter = self.converter(spec, strict)
                assignments.append(f"{name}=_uri.read_label(labels, {_str(binding.location_name)}, {converter})")
            elif location == HttpLocation.PAYLOAD:
                fn = self.fn_name("deser_payload", op, container, binding.member)
                assignments.append(f"{name}={fn}({message}.body, codec)")
            elif location == HttpLocation.RESPONSE_CODE:
                assignments.append(f"{name}={message}.status")

        if not assignments:
            return [*lines, "return result"]
        return [*lines, "return dataclasses.replace(", "    result,", *[f"    {a}," for a in assignments], ")"]

    # Whole messages

    def _checksum_default_lines(self, op: OperationPlan) -> list[str]:
        policy = op.checksum
        if policy is None or policy.request_algorithm_member is None:
            return []
        member = policy.request_algorithm_member
        name = field_name(member.name)
        target = self.model.target(member)
        default = _str(policy.default_member_value(self.model))
        if target.is_enum:
            default = f"{class_name(target.name)}({default})"
        required = policy.request_checksum_required
        return [
            f"explicit = value.{name} is not None",
            f"if not explicit and _ck.request_checksum_enabled(checksum_config, required={required}, explicit=False):",
            f"    value = dataclasses.replace(value, {name}={default})",
        ]

    def _checksum_apply_lines(self, op: OperationPlan) -> list[str]:
        policy = op.checksum
        if policy is None:
            return []
        required = policy.request_checksum_required
        if policy.request_algorithm_member is None:
            if not required:
                return []
            return [
                f"_ck.apply_request_checksum(builder, {_str(policy.default_algorithm.value)}, "
                "required=True, explicit=False, config=checksum_config)"
            ]
        name = field_name(policy.request_algorithm_member.name)
        return [
            f"if value.{name} is not None:",
            "    try:",
            "        _ck.apply_request_checksum(",
            "            builder,",
            f"            _prim.enum_text(value.{name}),",
            f"            required={required},",
            "            explicit=explicit,",
            "            config=checksum_config,",
            "        )",
            "    except ValueError as err:",
            f'        raise _m.BuildError.invalid_field("{name}", str(err)) from err',
        ]

    def gen_ser_request(self, op: OperationPlan) -> str:
        body = self._checksum_default_lines(op)
        body += [
            f"builder = _m.HttpRequestBuilder({_str(op.http.method)}, ser_path_{op.name}(value))",
            f"ser_query_{op.name}(value, builder)",
            f"{self.fn_name('add_headers', op, op.input)}(value, builder)",
        ]
        body += self._body_lines(op, op.input, op.request)
        body += self._checksum_apply_lines(op)
        body.append("return builder.build()")
        signature = (
            f"def ser_request_{op.name}(\n"
            f"    value: {class_name(op.input.name)},\n"
            "    codec: _p.Codec,\n"
            "    checksum_config: Optional[_ck.ChecksumConfig] = None,\n"
            ") -> _m.HttpRequest:"
        )
        return _function(signature, body)

    def gen_deser_request(self, op: OperationPlan) -> str:
        method = op.http.method.upper()
        body = [
            f"if request.method.upper() != {_str(method)}:",
            f'    raise _h.ParseError(f"expected method {method} but got {{request.method}}")',
        ]
        match = f"_uri.match_path({self.uri_const(op)}, request.path)"
        if any(b.location == HttpLocation.LABEL for b in op.request):
            body.append(f"labels = {match}")
        else:
            body.append(match)
        body += self._result_lines(op, op.input, op.request, "request", strict=True)
        signature = (
            f"def deser_request_{op.name}(request: _m.HttpRequest, codec: _p.Codec) "
            f"-> {class_name(op.input.name)}:"
        )
        return _function(signature, body)

    def _response_builder_lines(self, container: Shape, bindings: list[BindingDescriptor], status: int) -> list[str]:
        lines = [f"builder = _m.HttpResponseBuilder({status})"]
        for binding in bindings:
            if binding.location == HttpLocation.RESPONSE_CODE:
                attr = f"value.{field_name(binding.member.name)}"
                lines += [f"if {attr} is not None:", f"    builder.status = {attr}"]
        return lines

    def gen_ser_response(self, op: OperationPlan) -> str:
        body = self._response_builder_lines(op.output, op.response, op.http.code)
        body.append(f"{self.fn_name('add_headers', op, op.output)}(value, builder)")
        body += self._body_lines(op, op.output, op.response)
        body.append("return builder.build()")
        signature = (
            f"def ser_response_{op.name}(value: {class_name(op.output.name)}, codec: _p.Codec) "
            "-> _m.HttpResponse:"
        )
        return _function(signature, body)

    def gen_deser_response(self, op: OperationPlan) -> str:
        body: list[str] = []
        policy = op.checksum
        if policy is not None and policy.validates_response and policy.request_validation_mode_member:
            mode = field_name(policy.request_validation_mode_member.name)
            body += [
                "_ck.validate_response_checksum(",
                "    response,",
                f"    {policy.response_algorithms!r},",
                f"    validation_enabled=request_input is not None and request_input.{mode} is not None,",
                "    config=checksum_config,",
                ")",
            ]
        body += self._result_lines(op, op.output, op.response, "response", strict=False)
        signature = (
            f"def deser_response_{op.name}(\n"
            "    response: _m.HttpResponse,\n"
            "    codec: _p.Codec,\n"
            "    checksum_config: Optional[_ck.ChecksumConfig] = None,\n"
            f"    request_input: Optional[{class_name(op.input.name)}] = None,\n"
            f") -> {class_name(op.output.name)}:"
        )
        return _function(signature, body)

    def gen_ser_error(self, op: OperationPlan, error: Shape, bindings: list[BindingDescriptor]) -> str:
        body = self._response_builder_lines(error, bindings, _status_code(error))
        body.append(f"{self.fn_name('add_headers', op, error)}(value, builder)")
        body += self._body_lines(op, error, bindings)
        body.append("return builder.build()")
        signature = (
            f"def {self.fn_name('ser_error', op, error)}(value: {class_name(error.name)}, codec: _p.Codec) "
            "-> _m.HttpResponse:"
        )
        return _function(signature, body)

    def gen_deser_error(self, op: OperationPlan, error: Shape, bindings: list[BindingDescriptor]) -> str:
        body = self._result_lines(op, error, bindings, "response", strict=False)
        signature = (
            f"def {self.fn_name('deser_error', op, error)}(response: _m.HttpResponse, codec: _p.Codec) "
            f"-> {class_name(error.name)}:"
        )
        return _function(signature, body)

    # Sensitivity

    def _header_marker(self, fn: str, names: tuple[str, ...], prefixes: tuple[str, ...]) -> list[str]:
        lines = [f"def {fn}(name: str) -> _s.HeaderMarker:"]
        if names:
            lines += [f"    if name in {names!r}:", "        return _s.HeaderMarker(value=True)"]
        for prefix in prefixes:
            lines += [
                f"    if name.startswith({_str(prefix)}):",
                f"        return _s.HeaderMarker(value=True, key_suffix={len(prefix)})",
            ]
        lines.append("    return _s.HeaderMarker(value=False)")
        return lines

    def gen_sensitivity(self, op: OperationPlan) -> str:
        descriptor = op.sensitivity
        body: list[str] = []
        chain = ["_s.Sensitivity()"]
        if descriptor.has_request_headers:
            body += self._header_marker(
                "request_header", descriptor.request_headers, descriptor.request_prefix_headers
            )
            chain.append(".request_header(request_header)")
        if descriptor.has_response_headers:
            body += self._header_marker(
                "response_header", descriptor.response_headers, descriptor.response_prefix_headers
            )
            chain.append(".response_header(response_header)")
        if descriptor.has_path:
            chain.append(f".path(lambda index: index in {descriptor.path_indexes!r})")
        if descriptor.query_params:
            chain.append(".query(lambda key: _s.QueryMarker(key=True, value=True))")
        elif descriptor.query_keys:
            chain.append(f".query(lambda key: _s.QueryMarker(key=False, value=key in {descriptor.query_keys!r}))")
        if descriptor.status_code:
            chain.append(".status_code()")

        if len(chain) == 1:
            body.append("return _s.Sensitivity()")
        else:
            body += ["return (", *[INDENT + c for c in chain], ")"]
        return _function(f"def sensitivity_{op.name}() -> _s.Sensitivity:", body)

    # Per operation

    def gen_operation(self, op: OperationPlan) -> list[str]:
        functions = [
            self.gen_add_headers(op, op.input, op.request, HttpMessageType.REQUEST),
            self.gen_ser_path(op),
            self.gen_ser_query(op),
        ]
        functions += self._container_functions(op, op.input, op.request, HttpMessageType.REQUEST, strict=True)
        functions += [self.gen_ser_request(op), self.gen_deser_request(op)]

        functions.append(self.gen_add_headers(op, op.output, op.response, HttpMessageType.RESPONSE))
        functions += self._container_functions(op, op.output, op.response, HttpMessageType.RESPONSE, strict=False)
        functions += [self.gen_ser_response(op), self.gen_deser_response(op)]

        for error, bindings in op.errors:
            functions.append(self.gen_add_headers(op, error, bindings, HttpMessageType.RESPONSE))
            functions += self._container_functions(op, error, bindings, HttpMessageType.RESPONSE, strict=False)
            functions += [self.gen_ser_error(op, error, bindings), self.gen_deser_error(op, error, bindings)]

        functions.append(self.gen_sensitivity(op))
        return functions

    def _container_functions(
        self,
        op: OperationPlan,
        container: Shape,
        bindings: list[BindingDescriptor],
        message_type: HttpMessageType,
        strict: bool,
    ) -> list[str]:
        functions: list[str] = []
        for binding in bindings:
            if binding.location == HttpLocation.HEADER:
                functions.append(self.gen_deser_header(op, container, binding, strict))
            elif binding.location == HttpLocation.PREFIX_HEADERS:
                functions.append(self.gen_deser_prefix_header(op, container, binding, message_type, strict))
            elif binding.location == HttpLocation.PAYLOAD:
                functions.append(self.gen_ser_payload(op, container, binding))
                functions.append(self.gen_deser_payload(op, container, binding, strict))
        return functions


def render(
    model: Model,
    protocol: ProtocolDescriptor,
    operations: list[OperationPlan],
    *,
    service_name: str = "",
    runtime_import: str = "httpbind.proto",
    module_doc: str | None = None,
    customizations: Sequence[HttpBindingCustomization] = DEFAULT_CUSTOMIZATIONS,
) -> str:
    """Render planned operations of a filtered model to Python source code."""
    writer = PythonWriter(model, protocol, customizations)

    roots: list[Shape] = []
    for op in operations:
        roots += [op.input, op.output, *(error for error, _ in op.errors)]
    enum_shapes, struct_shapes = writer.collect_shapes(roots)

    defined: set[str] = set()
    structs: list[GenStruct] = []
    for shape in struct_shapes:
        structs.append(writer.gen_struct(shape, defined))
        defined.add(shape.id)

    functions: list[str] = []
    for op in operations:
        functions += writer.gen_operation(op)

    return template.render(
        module_doc=_docstring(module_doc) or f"HTTP bindings for {service_name or 'the service'}.",
        service_name=service_name,
        protocol=protocol,
        runtime_import=runtime_import,
        enums=[writer.gen_enum(s) for s in enum_shapes],
        structs=structs,
        uris=[writer.gen_uri_const(op) for op in operations],
        functions=functions,
    )


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("httpbind.proto").joinpath(filename).read_text()
        result[filename] = content
    return result


def generate(
    model: Model,
    settings: GeneratorSettings | None = None,
    customizations: Sequence[HttpBindingCustomization] = DEFAULT_CUSTOMIZATIONS,
) -> str:
    """Resolve, filter, plan and render ``model`` in one go.

    Raises ModelError for an unusable model or settings, and GenerationError
    carrying every binding error found.
    """
    settings = settings or GeneratorSettings()
    service = select_service(model, settings.service)
    protocol = resolve_protocol(service, settings.protocol)
    logger.info("generating %s with protocol %s", service.id, protocol.name)

    filtered = filter_model(model, protocol)
    service = filtered.expect_shape(service.id)
    plans = plan_operations(filtered, protocol, service)
    return render(
        filtered,
        protocol,
        plans,
        service_name=service.name,
        runtime_import=settings.runtime_import,
        module_doc=settings.module_doc,
        customizations=customizations,
    )
