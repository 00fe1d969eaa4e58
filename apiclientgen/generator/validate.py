"""Method shape classification.

Only unary methods can be wrapped: every other shape is rejected with a
ShapeError naming the method before anything is emitted for it.
"""

from dataclasses import dataclass
from enum import StrEnum

from .errors import ShapeError
from .types import Method


class MethodShape(StrEnum):
    UNARY = "unary"
    CLIENT_STREAMING = "client-streaming"
    SERVER_STREAMING = "server-streaming"
    BIDI_STREAMING = "bidi-streaming"


@dataclass(frozen=True)
class UnaryMethod:
    """A method that passed validation."""

    method: Method


def method_shape(method: Method) -> MethodShape:
    if method.client_streaming and method.server_streaming:
        return MethodShape.BIDI_STREAMING
    if method.client_streaming:
        return MethodShape.CLIENT_STREAMING
    if method.server_streaming:
        return MethodShape.SERVER_STREAMING
    return MethodShape.UNARY


def validate_method(method: Method) -> UnaryMethod:
    """Return the unary variant of a method or raise ShapeError."""
    shape = method_shape(method)
    if shape is not MethodShape.UNARY:
        raise ShapeError(method.full_name, shape.value)
    return UnaryMethod(method)
