"""Errors raised while turning descriptors into Go source."""


class GenerationError(RuntimeError):
    """Base class for every failure that aborts a generation run.

    ``unit`` is the Go import path of the generation unit being emitted
    when the error surfaced, filled in by the generator on the way out.
    """

    def __init__(self, message: str, *, unit: str | None = None):
        super().__init__(message)
        self.message = message
        self.unit = unit

    def __str__(self) -> str:
        if self.unit:
            return f"{self.unit}: {self.message}"
        return self.message


class ShapeError(GenerationError):
    """Raised when a method is not unary."""

    def __init__(self, method: str, shape: str):
        super().__init__(f"method {method} is {shape}, only unary methods are supported")
        self.method = method
        self.shape = shape


class UnsupportedFieldError(GenerationError):
    """Raised when a message field cannot be flattened into a parameter."""

    def __init__(self, message_name: str, field: str, reason: str):
        super().__init__(f"field {message_name}.{field}: {reason}")
        self.field = field


class GroupingConflict(GenerationError):
    """Raised when inputs or outputs of a run cannot be grouped consistently."""


class ResolutionConflict(GenerationError):
    """Raised when no collision-free Go identifier can be produced."""


class DescriptorError(GenerationError):
    """Raised when input descriptors are malformed or incomplete."""


class ConfigError(GenerationError):
    """Raised for invalid generator options."""
