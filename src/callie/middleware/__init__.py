"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(ctx: Context, next: Next) -> Any

Composition:
    compose -- Run a list of middleware as one (onion model)
    when / for_methods / for_paths -- Conditional wrappers

Built-in middleware:
    RequestLogger -- One log line per request on the ``callie.access`` logger
    Timing -- ``X-Response-Time`` header
    validate_body / validate_query / validate_params -- Schema validation
"""

from callie.middleware.builtin import (
    RequestLogger,
    RequestLoggerConfig,
    Timing,
    request_logger,
    timing,
)
from callie.middleware.compose import compose, for_methods, for_paths, when
from callie.middleware.protocol import Middleware, Next
from callie.middleware.validate import (
    validate,
    validate_body,
    validate_params,
    validate_query,
)

__all__ = [
    "Middleware",
    "Next",
    "RequestLogger",
    "RequestLoggerConfig",
    "Timing",
    "compose",
    "for_methods",
    "for_paths",
    "request_logger",
    "timing",
    "validate",
    "validate_body",
    "validate_params",
    "validate_query",
    "when",
]
