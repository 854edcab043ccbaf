"""ASGI handler — translates ASGI scope/messages to callie types.

The only component that touches raw ASGI directly. Builds a ``Context``
from the scope, runs global middleware around route dispatch, and sends
the response the chain built back through ASGI ``send()``.
"""

from collections.abc import Callable
from contextvars import Token
from typing import Any

from callie._internal.asgi import Receive, Scope, Send
from callie.config import AppConfig
from callie.context import Context, context_var
from callie.errors import HTTPError, NotFound
from callie.middleware.compose import compose
from callie.middleware.protocol import Next
from callie.routing.router import Router
from callie.server.errors import ErrorHandlers, handle_http_error, handle_internal_error
from callie.server.negotiation import negotiate
from callie.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: ErrorHandlers,
    config: AppConfig,
    db: Any = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    ctx = Context.from_asgi(scope, receive, max_body_size=config.max_body_size)

    # Set request context var (reset after dispatch)
    token: Token[Context] = context_var.set(ctx)

    # Set database context var per-request (lifespan sets it only in its task)
    db_token: Token[Any] | None = None
    if db is not None:
        from callie.data.database import _db_var

        db_token = _db_var.set(db)

    try:
        # Innermost step of the global chain: route dispatch
        async def dispatch(ctx: Context, next: Next) -> Any:
            if ctx.has_body:
                await ctx.parse_body()

            match = router.match(ctx.method, ctx.path)
            if match is None:
                msg = f"Route {ctx.method} {ctx.path} not found"
                raise NotFound(msg)

            ctx.params = match.params
            return await compose(match.handlers)(ctx)

        result = await compose([*middleware, dispatch])(ctx)
        negotiate(ctx, result)

    except HTTPError as exc:
        await handle_http_error(exc, ctx, error_handlers, config.debug)
    except Exception as exc:
        await handle_internal_error(exc, ctx, error_handlers, config.debug)
    finally:
        if db_token is not None:
            from callie.data.database import _db_var

            _db_var.reset(db_token)
        context_var.reset(token)

    await send_response(ctx, send)
