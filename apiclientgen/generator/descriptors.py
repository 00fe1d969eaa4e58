"""Build the generator's descriptor model from protobuf FileDescriptorProtos."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
    ServiceDescriptorProto,
)

from ..log import get_logger
from .errors import DescriptorError
from .naming import go_camel_case, parse_go_package
from .types import Field, FieldKind, FieldType, File, GoIdent, Message, Method, Service

logger = get_logger(__name__)

_SCALAR_KINDS: dict[int, FieldKind] = {
    FieldDescriptorProto.TYPE_DOUBLE: FieldKind.DOUBLE,
    FieldDescriptorProto.TYPE_FLOAT: FieldKind.FLOAT,
    FieldDescriptorProto.TYPE_INT64: FieldKind.INT64,
    FieldDescriptorProto.TYPE_UINT64: FieldKind.UINT64,
    FieldDescriptorProto.TYPE_INT32: FieldKind.INT32,
    FieldDescriptorProto.TYPE_FIXED64: FieldKind.FIXED64,
    FieldDescriptorProto.TYPE_FIXED32: FieldKind.FIXED32,
    FieldDescriptorProto.TYPE_BOOL: FieldKind.BOOL,
    FieldDescriptorProto.TYPE_STRING: FieldKind.STRING,
    FieldDescriptorProto.TYPE_BYTES: FieldKind.BYTES,
    FieldDescriptorProto.TYPE_UINT32: FieldKind.UINT32,
    FieldDescriptorProto.TYPE_SFIXED32: FieldKind.SFIXED32,
    FieldDescriptorProto.TYPE_SFIXED64: FieldKind.SFIXED64,
    FieldDescriptorProto.TYPE_SINT32: FieldKind.SINT32,
    FieldDescriptorProto.TYPE_SINT64: FieldKind.SINT64,
}

# Field numbers used in SourceCodeInfo location paths.
_FILE_SERVICE = 6
_SERVICE_METHOD = 2


@dataclass
class _Symbol:
    full_name: str
    go_name: str
    file: FileDescriptorProto
    message: DescriptorProto | None = None
    enum: EnumDescriptorProto | None = None

    @property
    def kind(self) -> FieldKind:
        return FieldKind.MESSAGE if self.message is not None else FieldKind.ENUM


def _join(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


class DescriptorLoader:
    """Resolve a set of FileDescriptorProtos into model Files.

    Every file takes part in type resolution; only the ones listed in
    ``files_to_generate`` are marked for generation.
    """

    def __init__(
        self, proto_files: Iterable[FileDescriptorProto], files_to_generate: Iterable[str]
    ):
        self.proto_files = list(proto_files)
        self.files_to_generate = list(files_to_generate)
        self._symbols: dict[str, _Symbol] = {}
        self._go_packages: dict[str, tuple[str, str]] = {}
        self._messages: dict[str, Message] = {}

    def load(self) -> list[File]:
        by_name = {f.name: f for f in self.proto_files}
        for name in self.files_to_generate:
            if name not in by_name:
                raise DescriptorError(f"file to generate {name} is not part of the request")

        for f in self.proto_files:
            self._register_file(f)

        generate = set(self.files_to_generate)
        files = [self._file(f, f.name in generate) for f in self.proto_files]
        logger.debug("loaded %d files, %d marked for generation", len(files), len(generate))
        return files

    def _register_file(self, f: FileDescriptorProto) -> None:
        for message in f.message_type:
            self._register_message(f, f.package, "", message)
        for enum in f.enum_type:
            self._add_symbol(
                _Symbol(_join(f.package, enum.name), go_camel_case(enum.name), f, enum=enum)
            )

    def _register_message(
        self, f: FileDescriptorProto, scope: str, go_prefix: str, message: DescriptorProto
    ) -> None:
        full_name = _join(scope, message.name)
        go_name = go_prefix + go_camel_case(message.name)
        self._add_symbol(_Symbol(full_name, go_name, f, message=message))
        for nested in message.nested_type:
            self._register_message(f, full_name, go_name + "_", nested)
        for enum in message.enum_type:
            self._add_symbol(
                _Symbol(
                    _join(full_name, enum.name),
                    go_name + "_" + go_camel_case(enum.name),
                    f,
                    enum=enum,
                )
            )

    def _add_symbol(self, symbol: _Symbol) -> None:
        existing = self._symbols.get(symbol.full_name)
        if existing is not None:
            raise DescriptorError(
                f"{symbol.full_name} is declared in both {existing.file.name} and {symbol.file.name}"
            )
        self._symbols[symbol.full_name] = symbol

    def _go_package(self, f: FileDescriptorProto) -> tuple[str, str]:
        """(import path, package name) of a file, from its go_package option."""
        if f.name not in self._go_packages:
            option = f.options.go_package if f.HasField("options") else ""
            if not option:
                raise DescriptorError(
                    f"unable to determine Go import path for {f.name}, set option go_package"
                )
            self._go_packages[f.name] = parse_go_package(option)
        return self._go_packages[f.name]

    def _ident(self, symbol: _Symbol) -> GoIdent:
        import_path, _ = self._go_package(symbol.file)
        return GoIdent(go_name=symbol.go_name, go_import_path=import_path)

    def _resolve(self, type_name: str, scope: str, context: str) -> _Symbol:
        """Find a type by name following protobuf scoping rules.

        ``.pkg.Type`` is absolute; otherwise the name is searched from the
        innermost scope outwards.
        """
        if type_name.startswith("."):
            symbol = self._symbols.get(type_name[1:])
        else:
            symbol = None
            parts = scope.split(".") if scope else []
            first, _, rest = type_name.partition(".")
            for i in range(len(parts), -1, -1):
                candidate = _join(".".join(parts[:i]), first)
                if candidate in self._symbols or any(
                    s.startswith(candidate + ".") for s in self._symbols
                ):
                    symbol = self._symbols.get(_join(candidate, rest) if rest else candidate)
                    break
        if symbol is None:
            raise DescriptorError(f"{context}: unknown type {type_name}")
        return symbol

    def _file(self, f: FileDescriptorProto, generate: bool) -> File:
        services: tuple[Service, ...] = ()
        if generate:
            import_path, package_name = self._go_package(f)
            services = tuple(self._service(f, index, s) for index, s in enumerate(f.service))
        else:
            option = f.options.go_package if f.HasField("options") else ""
            import_path, package_name = parse_go_package(option) if option else ("", "")
        return File(
            name=f.name,
            proto_package=f.package,
            go_import_path=import_path,
            go_package_name=package_name,
            services=services,
            generate=generate,
        )

    def _service(
        self, f: FileDescriptorProto, index: int, service: ServiceDescriptorProto
    ) -> Service:
        full_name = _join(f.package, service.name)
        comments = _comments(f)
        methods = []
        for method_index, method in enumerate(service.method):
            context = f"{full_name}.{method.name}"
            methods.append(
                Method(
                    name=method.name,
                    go_name=go_camel_case(method.name),
                    full_name=context,
                    input=self._message(self._resolve(method.input_type, f.package, context)),
                    output=self._message(self._resolve(method.output_type, f.package, context)),
                    client_streaming=method.client_streaming,
                    server_streaming=method.server_streaming,
                    comments=comments.get((_FILE_SERVICE, index, _SERVICE_METHOD, method_index)),
                )
            )
        return Service(
            name=service.name,
            go_name=go_camel_case(service.name),
            full_name=full_name,
            methods=tuple(methods),
            comments=comments.get((_FILE_SERVICE, index)),
        )

    def _message(self, symbol: _Symbol) -> Message:
        if symbol.message is None:
            raise DescriptorError(f"{symbol.full_name} is an enum, not a message")
        if symbol.full_name in self._messages:
            return self._messages[symbol.full_name]

        message = symbol.message
        fields = tuple(self._field(symbol, fd) for fd in message.field)
        result = Message(full_name=symbol.full_name, ident=self._ident(symbol), fields=fields)
        self._messages[symbol.full_name] = result
        return result

    def _field_type(self, owner: _Symbol, fd: FieldDescriptorProto) -> tuple[FieldType, _Symbol | None]:
        context = f"{owner.full_name}.{fd.name}"
        # parsed sources name enum and message types without setting type
        if fd.HasField("type") and fd.type == FieldDescriptorProto.TYPE_GROUP:
            raise DescriptorError(f"{context}: groups are not supported")
        if not fd.type_name:
            if not fd.HasField("type") or fd.type not in _SCALAR_KINDS:
                raise DescriptorError(f"{context}: field has no type")
            return FieldType(kind=_SCALAR_KINDS[fd.type]), None
        symbol = self._resolve(fd.type_name, owner.full_name, context)
        return FieldType(kind=symbol.kind, ident=self._ident(symbol)), symbol

    def _field(self, owner: _Symbol, fd: FieldDescriptorProto) -> Field:
        assert owner.message is not None
        field_type, symbol = self._field_type(owner, fd)
        repeated = fd.label == FieldDescriptorProto.LABEL_REPEATED

        map_key = map_value = None
        if (
            repeated
            and symbol is not None
            and symbol.message is not None
            and symbol.message.options.map_entry
        ):
            entry = {entry_field.name: entry_field for entry_field in symbol.message.field}
            map_key, _ = self._field_type(symbol, entry["key"])
            map_value, _ = self._field_type(symbol, entry["value"])
            repeated = False

        optional = fd.proto3_optional or (
            owner.file.syntax in ("", "proto2") and not repeated and map_key is None
        )
        oneof = None
        if fd.HasField("oneof_index") and not fd.proto3_optional:
            oneof = owner.message.oneof_decl[fd.oneof_index].name
            optional = False

        return Field(
            name=fd.name,
            go_name=go_camel_case(fd.name),
            type=field_type,
            repeated=repeated,
            optional=optional,
            map_key=map_key,
            map_value=map_value,
            oneof=oneof,
        )


def _comments(f: FileDescriptorProto) -> dict[tuple[int, ...], str]:
    """Leading comments of a file keyed by location path."""
    if not f.HasField("source_code_info"):
        return {}
    return {
        tuple(location.path): location.leading_comments
        for location in f.source_code_info.location
        if location.leading_comments
    }
