"""Descriptor model consumed by the Go client generator."""

from dataclasses import dataclass, field
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin


@dataclass(frozen=True)
class GoIdent(DataClassJsonMixin):
    """A Go identifier and the import path of the package declaring it."""

    go_name: str
    go_import_path: str

    def __str__(self) -> str:
        return f'"{self.go_import_path}".{self.go_name}'


class FieldKind(StrEnum):
    """Protobuf field kinds."""

    DOUBLE = "double"
    FLOAT = "float"
    INT64 = "int64"
    UINT64 = "uint64"
    INT32 = "int32"
    FIXED64 = "fixed64"
    FIXED32 = "fixed32"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    UINT32 = "uint32"
    SFIXED32 = "sfixed32"
    SFIXED64 = "sfixed64"
    SINT32 = "sint32"
    SINT64 = "sint64"
    ENUM = "enum"
    MESSAGE = "message"


@dataclass(frozen=True)
class FieldType(DataClassJsonMixin):
    """The type of a field, map key or map value.

    ident is set for enum and message kinds only.
    """

    kind: FieldKind
    ident: GoIdent | None = None


@dataclass(frozen=True)
class Field(DataClassJsonMixin):
    """A message field.

    For maps, type is the generated entry message and map_key/map_value
    carry the entry's key and value types.
    oneof is the name of the enclosing oneof, synthetic oneofs excluded.
    """

    name: str
    go_name: str
    type: FieldType
    repeated: bool = False
    optional: bool = False
    map_key: FieldType | None = None
    map_value: FieldType | None = None
    oneof: str | None = None

    @property
    def is_map(self) -> bool:
        return self.map_key is not None and self.map_value is not None


@dataclass(frozen=True)
class Message(DataClassJsonMixin):
    """A message type with its fields in declaration order."""

    full_name: str
    ident: GoIdent
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Method(DataClassJsonMixin):
    """An RPC method."""

    name: str
    go_name: str
    full_name: str
    input: Message
    output: Message
    client_streaming: bool = False
    server_streaming: bool = False
    comments: str | None = None


@dataclass(frozen=True)
class Service(DataClassJsonMixin):
    """A service and its methods in declaration order."""

    name: str
    go_name: str
    full_name: str
    methods: tuple[Method, ...] = ()
    comments: str | None = None


@dataclass(frozen=True)
class File(DataClassJsonMixin):
    """A protobuf source file.

    generate is False for files loaded only to resolve imported types.
    """

    name: str
    proto_package: str
    go_import_path: str
    go_package_name: str
    services: tuple[Service, ...] = ()
    generate: bool = True


@dataclass(frozen=True)
class GenerationUnit(DataClassJsonMixin):
    """All generated files sharing one Go import path."""

    go_import_path: str
    go_package_name: str
    files: tuple[File, ...] = field(default_factory=tuple)

    @property
    def services(self) -> list[Service]:
        return [service for f in self.files for service in f.services]


SCALAR_GO_TYPES: dict[FieldKind, str] = {
    FieldKind.DOUBLE: "float64",
    FieldKind.FLOAT: "float32",
    FieldKind.INT64: "int64",
    FieldKind.SINT64: "int64",
    FieldKind.SFIXED64: "int64",
    FieldKind.UINT64: "uint64",
    FieldKind.FIXED64: "uint64",
    FieldKind.INT32: "int32",
    FieldKind.SINT32: "int32",
    FieldKind.SFIXED32: "int32",
    FieldKind.UINT32: "uint32",
    FieldKind.FIXED32: "uint32",
    FieldKind.BOOL: "bool",
    FieldKind.STRING: "string",
    FieldKind.BYTES: "[]byte",
}


def is_scalar(kind: FieldKind) -> bool:
    """Check if a field kind maps directly to a Go builtin type."""
    return kind in SCALAR_GO_TYPES
