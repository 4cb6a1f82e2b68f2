"""Public error types raised by record compilation, construction, and assignment."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

from volan.constants import VALIDATION_MESSAGE_TEMPLATE


class VolanError(Exception):
    """Root of every error raised by volan itself."""


class ValidationError(VolanError, TypeError):
    """Raised when a field receives a value its predicate rejects.

    A required field that was never supplied is reported the same way, with the
    ``UNSET`` sentinel as the offending value.
    """

    def __init__(self, field: str, value: object, expected_type: str) -> None:
        self.field = field
        self.value = value
        self.expected_type = expected_type
        super().__init__(format_validation_message(field, value, expected_type))


class SealedError(VolanError, FrozenInstanceError):
    """Raised when a sealed record instance or a compiled record type is mutated."""


class SchemaError(VolanError, ValueError):
    """Raised when a schema cannot be compiled into a record type."""


def format_validation_message(field: str, value: object, expected_type: str) -> str:
    return VALIDATION_MESSAGE_TEMPLATE.format(field=field, value=value, expected_type=expected_type)


__all__ = [
    "SchemaError",
    "SealedError",
    "ValidationError",
    "VolanError",
    "format_validation_message",
]
