"""Exception hierarchy for programmer errors raised by veto.

Validation failures are never raised; they are reported through
``ValidationResult``. Everything here signals misuse or a malformed schema.
"""

from __future__ import annotations

from collections.abc import Sequence


class VetoError(Exception):
    """Base exception for veto programmer errors."""


class SchemaDefinitionError(VetoError):
    """Raised when a schema cannot be used for validation."""


class SchemaSerializationError(SchemaDefinitionError):
    """Raised when a schema cannot be serialized into its declarative tree."""


class SchemaPathError(VetoError):
    """Raised for path expressions that are not made of field names and indexes."""

    def __init__(self, message: str, *, path: Sequence[object]) -> None:
        super().__init__(message)
        self.message = message
        self.path = tuple(path)


class ValidatorUsageError(VetoError):
    """Raised when a validator is called with arguments it cannot handle."""
