"""Request data validation — composable rules, clean results.

Usage::

    from callie.validation import validate, required, at_most, email

    result = validate(ctx.body, {
        "name": "required|string|min:2|max:100",
        "email": [required, email],
        "role": "in:admin,hr,staff",
    })
    if not result:
        raise ValidationError("Validation failed", result.errors)
"""

from collections.abc import Mapping, Sequence
from typing import Any

from callie.validation.result import ValidationResult
from callie.validation.rules import (
    Validator,
    add_rule,
    alpha,
    alphanumeric,
    at_least,
    at_most,
    between,
    date,
    email,
    is_array,
    is_boolean,
    is_empty,
    is_integer,
    is_number,
    is_object,
    is_string,
    matches,
    none_of,
    numeric,
    one_of,
    parse_rules,
    required,
    url,
    uuid,
)

__all__ = [
    "Schema",
    "ValidationResult",
    "Validator",
    "add_rule",
    "alpha",
    "alphanumeric",
    "at_least",
    "at_most",
    "between",
    "date",
    "email",
    "is_array",
    "is_boolean",
    "is_integer",
    "is_number",
    "is_object",
    "is_string",
    "matches",
    "none_of",
    "numeric",
    "one_of",
    "parse_rules",
    "required",
    "url",
    "uuid",
    "validate",
]

type Schema = Mapping[str, str | Sequence[Validator]]


def validate(data: Mapping[str, Any] | None, schema: Schema) -> ValidationResult:
    """Validate data against a schema.

    Args:
        data: Any mapping of field names to values — a parsed JSON body,
            ``ctx.query``, ``ctx.params``, or a plain ``dict``.
        schema: A dict mapping field names to either a rule string
            (``"required|email"``) or a list of validator functions.
            Each validator returns an error message on failure, or
            ``None`` on success.

    Missing or empty values (``None``, ``""``) are only checked by
    ``required``; every other rule is skipped for them.

    Returns:
        A ``ValidationResult`` with ``.data`` (validated values) and
        ``.errors`` (field → list of error messages).
    """
    source: Mapping[str, Any] = data if isinstance(data, Mapping) else {}
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, Any] = {}

    for field_name, rules in schema.items():
        validators = parse_rules(rules) if isinstance(rules, str) else list(rules)
        value = source.get(field_name)
        empty = is_empty(value)

        field_errors: list[str] = []
        for validator in validators:
            if empty and validator is not required:
                continue
            error = validator(value)
            if error is not None:
                field_errors.append(error.replace("{field}", field_name))
                # No point checking length or format of a missing value
                if validator is required:
                    break

        if field_errors:
            errors[field_name] = field_errors
        elif field_name in source:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
