"""Protobuf source parser using Lark.

Parses the subset of the protobuf language that service definitions use
into FileDescriptorProtos, the same form protoc hands to plugins.
"""

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from google.protobuf import (
    any_pb2,
    duration_pb2,
    empty_pb2,
    field_mask_pb2,
    struct_pb2,
    timestamp_pb2,
    wrappers_pb2,
)
from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
    MethodDescriptorProto,
    ServiceDescriptorProto,
    SourceCodeInfo,
)
from lark import Lark, Token, UnexpectedInput
from lark.visitors import Transformer

from ..log import get_logger
from .errors import DescriptorError
from .naming import go_camel_case

logger = get_logger(__name__)

_g_parser: Lark | None = None
_g_comments: list[Token] = []

SCALAR_TYPES: dict[str, int] = {
    "double": FieldDescriptorProto.TYPE_DOUBLE,
    "float": FieldDescriptorProto.TYPE_FLOAT,
    "int64": FieldDescriptorProto.TYPE_INT64,
    "uint64": FieldDescriptorProto.TYPE_UINT64,
    "int32": FieldDescriptorProto.TYPE_INT32,
    "fixed64": FieldDescriptorProto.TYPE_FIXED64,
    "fixed32": FieldDescriptorProto.TYPE_FIXED32,
    "bool": FieldDescriptorProto.TYPE_BOOL,
    "string": FieldDescriptorProto.TYPE_STRING,
    "bytes": FieldDescriptorProto.TYPE_BYTES,
    "uint32": FieldDescriptorProto.TYPE_UINT32,
    "sfixed32": FieldDescriptorProto.TYPE_SFIXED32,
    "sfixed64": FieldDescriptorProto.TYPE_SFIXED64,
    "sint32": FieldDescriptorProto.TYPE_SINT32,
    "sint64": FieldDescriptorProto.TYPE_SINT64,
}

_LABELS = {
    "optional": FieldDescriptorProto.LABEL_OPTIONAL,
    "required": FieldDescriptorProto.LABEL_REQUIRED,
    "repeated": FieldDescriptorProto.LABEL_REPEATED,
}

# Well-known types shipped with the protobuf runtime, importable without
# an include directory.
WELL_KNOWN_FILES = {
    module.DESCRIPTOR.name: module.DESCRIPTOR
    for module in (
        any_pb2,
        duration_pb2,
        empty_pb2,
        field_mask_pb2,
        struct_pb2,
        timestamp_pb2,
        wrappers_pb2,
    )
}


@dataclass
class _Syntax:
    value: str


@dataclass
class _Package:
    value: str


@dataclass
class _Import:
    path: str
    kind: str | None


@dataclass
class _Option:
    name: str
    value: Any


@dataclass
class _String:
    value: str


@dataclass
class _TypeRef:
    name: str
    absolute: bool

    @property
    def type_name(self) -> str:
        return "." + self.name if self.absolute else self.name


@dataclass
class _Field:
    name: str
    number: int
    type: _TypeRef
    label: str | None


@dataclass
class _MapField:
    name: str
    number: int
    key: str
    value: _TypeRef


@dataclass
class _Oneof:
    name: str
    fields: list[_Field]


@dataclass
class _Message:
    name: str
    items: list[Any]


@dataclass
class _EnumValue:
    name: str
    number: int


@dataclass
class _Enum:
    name: str
    values: list[_EnumValue]


@dataclass
class _Rpc:
    name: str
    line: int
    input: _TypeRef
    output: _TypeRef
    client_streaming: bool
    server_streaming: bool


@dataclass
class _Service:
    name: str
    line: int
    rpcs: list[_Rpc] = field(default_factory=list)


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[TFilter]) -> TFilter | None:
    filtered = _filter(args, class_type)
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    return filtered[0] if filtered else None


def _int(token: str) -> int:
    if token[:2] in ("0x", "0X"):
        return int(token, 16)
    return int(token)


def _unquote(token: str) -> str:
    body = token[1:-1]
    return body.encode("latin-1", "backslashreplace").decode("unicode-escape")


class TreeTransformer(Transformer):
    """Transform the parse tree into intermediate declarations."""

    def syntax(self, args: list[Any]) -> _Syntax:
        return _Syntax(_unquote(args[0]))

    def package(self, args: list[Any]) -> _Package:
        return _Package(args[0])

    def import_kind(self, args: list[Any]) -> str:
        return str(args[0])

    def import_decl(self, args: list[Any]) -> _Import:
        return _Import(path=_unquote(args[1]), kind=args[0])

    def option(self, args: list[Any]) -> _Option:
        return _Option(name=args[0], value=args[1])

    def field_option(self, args: list[Any]) -> _Option:
        return _Option(name=args[0], value=args[1])

    def field_options(self, args: list[Any]) -> list[_Option]:
        return list(args)

    def option_name(self, args: list[Any]) -> str:
        parts = [str(a) if isinstance(a, Token) else f"({a})" for a in args]
        return ".".join(parts)

    def strings(self, args: list[Any]) -> _String:
        return _String("".join(_unquote(a) for a in args))

    def neg(self, args: list[Any]) -> str:
        return "-"

    def signed_number(self, args: list[Any]) -> float | int:
        sign = -1 if args[0] == "-" else 1
        number = args[-1]
        if number.type == "FLOAT":
            return sign * float(number)
        return sign * _int(number)

    def aggregate(self, args: list[Any]) -> None:
        return None

    def full_ident(self, args: list[Any]) -> str:
        return ".".join(str(a) for a in args)

    def relative_type(self, args: list[Any]) -> _TypeRef:
        return _TypeRef(args[0], absolute=False)

    def absolute_type(self, args: list[Any]) -> _TypeRef:
        return _TypeRef(args[0], absolute=True)

    def label(self, args: list[Any]) -> str:
        return str(args[0])

    def field(self, args: list[Any]) -> _Field:
        label, type_ref, name, number, _options = args
        return _Field(name=str(name), number=_int(number), type=type_ref, label=label)

    def oneof_field(self, args: list[Any]) -> _Field:
        type_ref, name, number, _options = args
        return _Field(name=str(name), number=_int(number), type=type_ref, label=None)

    def map_field(self, args: list[Any]) -> _MapField:
        key, value, name, number, _options = args
        return _MapField(name=str(name), number=_int(number), key=str(key), value=value)

    def oneof(self, args: list[Any]) -> _Oneof:
        return _Oneof(name=str(args[0]), fields=_filter(args[1:], _Field))

    def message(self, args: list[Any]) -> _Message:
        return _Message(name=str(args[0]), items=list(args[1:]))

    def enum_value(self, args: list[Any]) -> _EnumValue:
        name, sign, number, _options = args
        value = _int(number)
        return _EnumValue(name=str(name), number=-value if sign else value)

    def enum(self, args: list[Any]) -> _Enum:
        return _Enum(name=str(args[0]), values=_filter(args[1:], _EnumValue))

    def stream(self, args: list[Any]) -> bool:
        return True

    def rpc(self, args: list[Any]) -> _Rpc:
        name, client_stream, input_type, server_stream, output_type = args[:5]
        return _Rpc(
            name=str(name),
            line=name.line,
            input=input_type,
            output=output_type,
            client_streaming=bool(client_stream),
            server_streaming=bool(server_stream),
        )

    def service(self, args: list[Any]) -> _Service:
        name = args[0]
        return _Service(name=str(name), line=name.line, rpcs=_filter(args[1:], _Rpc))

    def reserved(self, args: list[Any]) -> None:
        return None

    def extensions(self, args: list[Any]) -> None:
        return None

    def extend(self, args: list[Any]) -> None:
        return None


def _field_proto(f: _Field, syntax: str) -> FieldDescriptorProto:
    proto = FieldDescriptorProto(name=f.name, number=f.number, json_name=_json_name(f.name))
    if f.label == "required" and syntax == "proto3":
        raise DescriptorError(f"field {f.name}: required fields are not allowed in proto3")
    proto.label = _LABELS.get(f.label or "optional", FieldDescriptorProto.LABEL_OPTIONAL)
    if f.label == "optional" and syntax == "proto3":
        proto.proto3_optional = True
    if not f.type.absolute and f.type.name in SCALAR_TYPES:
        proto.type = SCALAR_TYPES[f.type.name]
    else:
        proto.type_name = f.type.type_name
    return proto


def _json_name(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _map_entry(m: _MapField, syntax: str) -> DescriptorProto:
    if m.key not in SCALAR_TYPES or m.key in ("double", "float", "bytes"):
        raise DescriptorError(f"field {m.name}: invalid map key type {m.key}")
    entry = DescriptorProto(name=go_camel_case(m.name) + "Entry")
    entry.options.map_entry = True
    entry.field.append(_field_proto(_Field("key", 1, _TypeRef(m.key, False), None), syntax))
    entry.field.append(_field_proto(_Field("value", 2, m.value, None), syntax))
    return entry


def _message_proto(message: _Message, syntax: str) -> DescriptorProto:
    proto = DescriptorProto(name=message.name)
    for item in message.items:
        if isinstance(item, _Field):
            proto.field.append(_field_proto(item, syntax))
        elif isinstance(item, _MapField):
            entry = _map_entry(item, syntax)
            proto.nested_type.append(entry)
            proto.field.append(
                FieldDescriptorProto(
                    name=item.name,
                    number=item.number,
                    json_name=_json_name(item.name),
                    label=FieldDescriptorProto.LABEL_REPEATED,
                    type=FieldDescriptorProto.TYPE_MESSAGE,
                    type_name=entry.name,
                )
            )
        elif isinstance(item, _Oneof):
            index = len(proto.oneof_decl)
            proto.oneof_decl.add(name=item.name)
            for f in item.fields:
                field_proto = _field_proto(f, syntax)
                field_proto.oneof_index = index
                proto.field.append(field_proto)
        elif isinstance(item, _Message):
            proto.nested_type.append(_message_proto(item, syntax))
        elif isinstance(item, _Enum):
            proto.enum_type.append(_enum_proto(item))
    return proto


def _enum_proto(enum: _Enum) -> EnumDescriptorProto:
    proto = EnumDescriptorProto(name=enum.name)
    for value in enum.values:
        proto.value.add(name=value.name, number=value.number)
    return proto


def _leading_comments(comments: list[Token], lines: list[str], line: int) -> str | None:
    """Return the comment block ending on the line right above ``line``."""
    own_line = {
        tok.end_line: tok for tok in comments if not lines[tok.line - 1][: tok.column - 1].strip()
    }
    block: list[str] = []
    current = line - 1
    while current in own_line:
        tok = own_line[current]
        if tok.type == "BLOCK_COMMENT":
            if block:
                break
            inner = tok.value[2:-2].split("\n")
            block = [inner[0]] + [re.sub(r"^\s*\* ?", " ", ln, count=1) for ln in inner[1:]]
            if len(block) > 1 and not block[-1].strip():
                block.pop()
            break
        block.insert(0, tok.value[2:])
        current = tok.line - 1
    if not block:
        return None
    return "\n".join(block) + "\n"


def _service_proto(service: _Service) -> ServiceDescriptorProto:
    proto = ServiceDescriptorProto(name=service.name)
    for rpc in service.rpcs:
        proto.method.append(
            MethodDescriptorProto(
                name=rpc.name,
                input_type=rpc.input.type_name,
                output_type=rpc.output.type_name,
                client_streaming=rpc.client_streaming,
                server_streaming=rpc.server_streaming,
            )
        )
    return proto


def _add_location(info: SourceCodeInfo, path: list[int], line: int, comments: str | None) -> None:
    if comments:
        info.location.add(path=path, span=[line - 1, 0, 0], leading_comments=comments)


def parse(text: str, name: str = "input.proto") -> FileDescriptorProto:
    """Parse protobuf source into a FileDescriptorProto named ``name``."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/proto.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(
            grammar,
            parser="lalr",
            lexer_callbacks={
                "LINE_COMMENT": _g_comments.append,
                "BLOCK_COMMENT": _g_comments.append,
            },
        )

    _g_comments.clear()
    try:
        tree = _g_parser.parse(text)
    except UnexpectedInput as err:
        raise DescriptorError(f"{name}:{err.line}:{err.column}: syntax error") from err
    comments = list(_g_comments)
    items = TreeTransformer().transform(tree).children

    syntax_decl = _find_one(items, _Syntax)
    syntax = syntax_decl.value if syntax_decl else "proto2"
    if syntax not in ("proto2", "proto3"):
        raise DescriptorError(f"{name}: unsupported syntax {syntax!r}")
    package = _find_one(items, _Package)

    proto = FileDescriptorProto(name=name, syntax=syntax)
    if package:
        proto.package = package.value
    for index, imp in enumerate(_filter(items, _Import)):
        proto.dependency.append(imp.path)
        if imp.kind == "public":
            proto.public_dependency.append(index)
        elif imp.kind == "weak":
            proto.weak_dependency.append(index)
    for option in _filter(items, _Option):
        if option.name == "go_package" and isinstance(option.value, _String):
            proto.options.go_package = option.value.value

    for message in _filter(items, _Message):
        proto.message_type.append(_message_proto(message, syntax))
    for enum in _filter(items, _Enum):
        proto.enum_type.append(_enum_proto(enum))

    lines = text.split("\n")
    info = SourceCodeInfo()
    for service_index, service in enumerate(_filter(items, _Service)):
        proto.service.append(_service_proto(service))
        _add_location(
            info, [6, service_index], service.line, _leading_comments(comments, lines, service.line)
        )
        for method_index, rpc in enumerate(service.rpcs):
            _add_location(
                info,
                [6, service_index, 2, method_index],
                rpc.line,
                _leading_comments(comments, lines, rpc.line),
            )
    if info.location:
        proto.source_code_info.CopyFrom(info)
    return proto


def _well_known(name: str) -> FileDescriptorProto | None:
    descriptor = WELL_KNOWN_FILES.get(name)
    if descriptor is None:
        return None
    proto = FileDescriptorProto()
    descriptor.CopyToProto(proto)
    return proto


def _proto_name(path: Path, include_dirs: list[Path]) -> tuple[str, Path | None]:
    """Name a source file relative to the include directory containing it."""
    resolved = path.resolve()
    for include in include_dirs:
        try:
            return resolved.relative_to(include.resolve()).as_posix(), None
        except ValueError:
            continue
    return path.name, path.parent


def parse_files(
    paths: Iterable[str | Path], include_dirs: Iterable[str | Path] = ()
) -> tuple[list[FileDescriptorProto], list[str]]:
    """Parse source files and everything they import.

    Returns the FileDescriptorProtos, inputs first, and the names of the
    input files, which are the ones to generate.
    """
    includes = [Path(p) for p in include_dirs]
    protos: dict[str, FileDescriptorProto] = {}
    to_generate: list[str] = []

    for path in paths:
        path = Path(path)
        name, extra_include = _proto_name(path, includes)
        if extra_include is not None and extra_include not in includes:
            includes.append(extra_include)
        if name not in protos:
            protos[name] = parse(path.read_text(encoding="utf-8"), name)
            to_generate.append(name)
            logger.debug("parsed %s as %s", path, name)

    pending = [dep for proto in list(protos.values()) for dep in proto.dependency]
    while pending:
        dep = pending.pop(0)
        if dep in protos:
            continue
        proto = _find_import(dep, includes)
        protos[dep] = proto
        pending.extend(proto.dependency)

    return list(protos.values()), to_generate


def _find_import(name: str, includes: list[Path]) -> FileDescriptorProto:
    for include in includes:
        candidate = include / name
        if candidate.is_file():
            logger.debug("resolved import %s to %s", name, candidate)
            return parse(candidate.read_text(encoding="utf-8"), name)
    proto = _well_known(name)
    if proto is None:
        raise DescriptorError(f"import {name} not found")
    return proto
