"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(ctx: Context, next: Next) -> Any: ...

No base class required. The framework checks the shape, not the lineage.
Route handlers have the same shape; a handler is simply the last
middleware in its chain and usually does not call ``next``.

Code before ``await next()`` runs on the way in, code after it runs on
the way out (the onion model). Not calling ``next`` short-circuits the
rest of the chain.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from callie.context import Context

# Continuation handed to each middleware: runs the rest of the chain
type Next = Callable[[], Awaitable[Any]]


class Middleware(Protocol):
    """Protocol for callie middleware.

    Accepts both functions and callable objects, sync or async::

        # Function middleware
        async def timing(ctx: Context, next: Next) -> None:
            start = time.perf_counter()
            await next()
            ctx.set("X-Time", f"{time.perf_counter() - start:.3f}")

        # Class middleware
        class RequireJson:
            async def __call__(self, ctx: Context, next: Next) -> Any:
                ...
    """

    def __call__(self, ctx: Context, next: Next) -> Any: ...
