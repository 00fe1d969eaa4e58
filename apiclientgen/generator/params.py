"""Flatten request and response messages into Go parameter lists."""

from dataclasses import dataclass

from .errors import UnsupportedFieldError
from .imports import ImportResolver
from .naming import GO_KEYWORDS, unexport
from .types import SCALAR_GO_TYPES, Field, FieldKind, FieldType, Message

# Names the generated method body refers to, which parameters must not shadow.
BODY_LOCALS = frozenset(["ctx", "s", "response", "err", "nil", "false", "true"])


@dataclass(frozen=True)
class Parameter:
    """A named, typed entry of a Go parameter or result list."""

    name: str
    go_type: str
    field: Field

    def __str__(self) -> str:
        return f"{self.name} {self.go_type}"


def parameter_name(field: Field) -> str:
    """Name of the Go parameter carrying ``field``."""
    name = unexport(field.go_name)
    if name in GO_KEYWORDS or name in BODY_LOCALS:
        return name + "_"
    return name


def _unique(name: str, taken: set[str]) -> str:
    while name in taken:
        name += "_"
    return name


class ParameterFlattener:
    """Map message fields to Go parameters, results and zero values."""

    def __init__(self, resolver: ImportResolver):
        self.resolver = resolver

    def parameters(
        self, message: Message, taken: set[str] | frozenset[str] = frozenset()
    ) -> list[Parameter]:
        """One parameter per field of ``message``, in field order."""
        used = set(taken)
        params = []
        for f in message.fields:
            name = _unique(parameter_name(f), used)
            used.add(name)
            params.append(Parameter(name, self.go_type(message, f), f))
        return params

    def returns(self, message: Message, taken: set[str] | frozenset[str] = frozenset()) -> list[Parameter]:
        """One named result per field of ``message``, in field order.

        Names already in ``taken`` (usually the parameter names) get
        underscores appended until unique.
        """
        used = set(taken)
        results = []
        for f in message.fields:
            name = _unique(parameter_name(f), used)
            used.add(name)
            results.append(Parameter(name, self.go_type(message, f), f))
        return results

    def error_return(self, message: Message, error_expr: str) -> str:
        """A return statement yielding zero values for every field plus the error."""
        values = [self.zero_value(message, f) for f in message.fields]
        values.append(error_expr)
        return "return " + ", ".join(values)

    def go_type(self, message: Message, field: Field) -> str:
        self._check_supported(message, field)
        if field.map_key is not None and field.map_value is not None:
            key = self._element_type(message, field, field.map_key)
            value = self._element_type(message, field, field.map_value)
            return f"map[{key}]{value}"
        element = self._element_type(message, field, field.type)
        if field.repeated:
            return f"[]{element}"
        if field.optional and field.type.kind not in (FieldKind.MESSAGE, FieldKind.BYTES):
            return f"*{element}"
        return element

    def zero_value(self, message: Message, field: Field) -> str:
        self._check_supported(message, field)
        if field.repeated or field.is_map or field.optional:
            return "nil"
        kind = field.type.kind
        if kind in (FieldKind.MESSAGE, FieldKind.BYTES):
            return "nil"
        if kind == FieldKind.BOOL:
            return "false"
        if kind == FieldKind.STRING:
            return '""'
        # numeric scalars and enums
        return "0"

    def _element_type(self, message: Message, field: Field, field_type: FieldType) -> str:
        if field_type.kind in SCALAR_GO_TYPES:
            return SCALAR_GO_TYPES[field_type.kind]
        if field_type.ident is None:
            raise UnsupportedFieldError(
                message.full_name, field.name, f"{field_type.kind} type has no type reference"
            )
        qualified = self.resolver.qualified(field_type.ident)
        if field_type.kind == FieldKind.MESSAGE:
            return "*" + qualified
        return qualified

    def _check_supported(self, message: Message, field: Field) -> None:
        if field.oneof is not None:
            raise UnsupportedFieldError(
                message.full_name, field.name, f"oneof {field.oneof} fields are not supported"
            )
