"""Validation middleware.

Validates ``ctx.body``, ``ctx.query`` or ``ctx.params`` against a schema
before the handler runs and raises ``ValidationError`` (400) with the
per-field messages on failure::

    app.post(
        "/api/employees",
        validate_body({"name": "required|string|min:2", "email": "required|email"}),
        create_employee,
    )
"""

from typing import Any, Literal

from callie.context import Context
from callie.errors import ValidationError
from callie.middleware.protocol import Middleware, Next
from callie.validation import Schema
from callie.validation import validate as validate_data

type Source = Literal["body", "query", "params"]


def validate(schema: Schema, source: Source = "body") -> Middleware:
    """Middleware that validates ``ctx.<source>`` against *schema*."""
    if source not in ("body", "query", "params"):
        msg = f"Unknown validation source: {source!r}"
        raise ValueError(msg)

    async def validator(ctx: Context, next: Next) -> Any:
        result = validate_data(getattr(ctx, source), schema)
        if not result:
            raise ValidationError("Validation failed", result.errors)
        return await next()

    return validator


def validate_body(schema: Schema) -> Middleware:
    return validate(schema, "body")


def validate_query(schema: Schema) -> Middleware:
    return validate(schema, "query")


def validate_params(schema: Schema) -> Middleware:
    return validate(schema, "params")
