"""Error handling pipeline for callie requests.

Maps HTTPError exceptions and unexpected failures to JSON error
responses, using registered error handlers or the default envelope::

    {"success": false, "message": "...", "errors": {...}}
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from callie.context import Context
from callie.errors import HTTPError
from callie.server.negotiation import negotiate

logger = logging.getLogger("callie.server")

type ErrorHandlers = dict[int | type, Callable[..., Any]]


def find_error_handler(
    exc: Exception, status: int, error_handlers: ErrorHandlers
) -> Callable[..., Any] | None:
    """Most specific handler for *exc*: its class (or a base class), then *status*."""
    for cls in type(exc).__mro__:
        handler = error_handlers.get(cls)
        if handler is not None:
            return handler
    return error_handlers.get(status)


async def call_error_handler(handler: Callable[..., Any], ctx: Context, exc: Exception) -> None:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (ctx), or two (ctx, exc) args.
    Supports both sync and async error handlers. A returned value is
    sent like a route handler's return value.
    """
    sig = inspect.signature(handler)
    params = list(sig.parameters.values())

    if len(params) >= 2:
        result = handler(ctx, exc)
    elif len(params) == 1:
        result = handler(ctx)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result

    negotiate(ctx, result)


async def handle_http_error(
    exc: HTTPError,
    ctx: Context,
    error_handlers: ErrorHandlers,
    debug: bool,
) -> None:
    """Write the response for an HTTPError raised during the request."""
    logger.debug("%d %s %s — %s", exc.status, ctx.method, ctx.path, exc.detail)

    ctx.discard_response()
    for name, value in exc.headers:
        ctx.set(name, value)
    # A handler that writes without a status keeps the exception's
    ctx.status(exc.status)

    handler = find_error_handler(exc, exc.status, error_handlers)
    if handler is not None:
        await call_error_handler(handler, ctx, exc)
        if ctx.responded:
            return

    ctx.json(exc.to_dict(), exc.status)


async def handle_internal_error(
    exc: Exception,
    ctx: Context,
    error_handlers: ErrorHandlers,
    debug: bool,
) -> None:
    """Handle unexpected exceptions as 500 errors.

    The exception text is only sent back when ``debug`` is on.
    """
    logger.exception("500 %s %s", ctx.method, ctx.path)

    ctx.discard_response()
    ctx.status(500)

    handler = find_error_handler(exc, 500, error_handlers)
    if handler is not None:
        await call_error_handler(handler, ctx, exc)
        if ctx.responded:
            return

    message = (str(exc) or type(exc).__name__) if debug else "Internal server error"
    ctx.error(message, 500)
