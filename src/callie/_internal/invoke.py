"""Invoke helpers — call sync or async handlers uniformly.

Callie middleware and handlers can be ``def`` or ``async def``. Any code
that calls a user-provided callable must handle both cases. This module
provides a single helper so the sync/async check lives in exactly one place.

Usage::

    from callie._internal.invoke import invoke

    result = await invoke(handler, ctx, next)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        def ping(ctx, next):
            ctx.text("pong")

        async def employees(ctx, next):
            ctx.success(await db.table("employees").get())
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
