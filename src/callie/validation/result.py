"""Validation result — immutable container for validated data or errors."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating request data against a schema.

    ``is_valid`` is True when there are no errors.
    The result is falsy when invalid, so you can write::

        result = validate(ctx.body, schema)
        if not result:
            ctx.error("Validation failed", 400, result.errors)

    ``data`` contains the values of every field named in the schema that
    passed its rules.

    ``errors`` maps field names to lists of error messages::

        {"name": ["name is required"],
         "email": ["email must be a valid email"]}
    """

    data: dict[str, Any]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def __bool__(self) -> bool:
        """Falsy when invalid — enables ``if not result:`` pattern."""
        return self.is_valid
