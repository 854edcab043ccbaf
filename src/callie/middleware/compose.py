"""Compose a list of middleware into a single callable.

``compose([a, b, c])`` returns ``composed(ctx, next=None)``. Calling it
runs ``a``; each ``next()`` runs the following member, and ``next()``
inside ``c`` calls the optional ``next`` passed to ``composed`` (or
resolves to ``None``). That final ``next`` may be a zero-argument
continuation, which makes a composed chain itself a middleware that
nests in another chain, or a handler taking ``(ctx)`` or ``(ctx, next)``.

Every member gets its own one-shot continuation: calling it a second
time raises ``MiddlewareError``.

Usage::

    chain = compose([request_logger(), authenticate])
    await chain(ctx, show_employee)
"""

import inspect
import re
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from callie._internal.invoke import invoke
from callie.context import Context
from callie.errors import MiddlewareError
from callie.middleware.protocol import Middleware, Next

type Composed = Callable[..., Awaitable[Any]]

# ``:param`` segments in for_paths() patterns
_PARAM_SEGMENT_RE = re.compile(r":[^/]+")


def compose(middleware: Sequence[Middleware]) -> Composed:
    """Build one middleware out of *middleware*, run in order.

    Raises ``TypeError`` immediately if *middleware* is not a list/tuple
    or contains something that isn't callable.
    """
    if not isinstance(middleware, (list, tuple)):
        msg = "Middleware must be a list or tuple"
        raise TypeError(msg)
    chain = tuple(middleware)
    for fn in chain:
        if not callable(fn):
            msg = "Each middleware must be callable"
            raise TypeError(msg)

    async def composed(ctx: Context, next: Callable[..., Any] | None = None) -> Any:
        async def run(index: int) -> Any:
            if index < len(chain):
                return await invoke(chain[index], ctx, _once(lambda: run(index + 1)))
            if next is not None:
                return await _call_final(next, ctx)
            return None

        return await run(0)

    return composed


def _once(step: Callable[[], Awaitable[Any]]) -> Next:
    called = False

    async def proceed() -> Any:
        nonlocal called
        if called:
            msg = "next() called multiple times"
            raise MiddlewareError(msg)
        called = True
        return await step()

    return proceed


async def _nothing() -> None:
    return None


async def _call_final(next: Callable[..., Any], ctx: Context) -> Any:
    """Call the ``next`` handed to a composed chain, by its arity.

    Two or more parameters get ``(ctx, next)`` with a one-shot ``next``
    that resolves to ``None``; one gets ``(ctx)``; none is awaited as is.
    """
    try:
        params = list(inspect.signature(next).parameters.values())
    except (TypeError, ValueError):
        params = []

    if len(params) >= 2:
        return await invoke(next, ctx, _once(_nothing))
    if len(params) == 1:
        return await invoke(next, ctx)
    return await invoke(next)


# -- Conditional wrappers --


def when(condition: Callable[[Context], object], middleware: Middleware) -> Middleware:
    """Run *middleware* only when ``condition(ctx)`` is truthy.

    Otherwise the chain continues as if *middleware* were not there.
    """

    async def conditional(ctx: Context, next: Next) -> Any:
        if condition(ctx):
            return await invoke(middleware, ctx, next)
        return await next()

    return conditional


def for_methods(methods: str | Sequence[str], middleware: Middleware) -> Middleware:
    """Run *middleware* only for the given HTTP method(s).

    ::

        app.use(for_methods(["POST", "PUT"], require_json))
    """
    names = [methods] if isinstance(methods, str) else list(methods)
    allowed = frozenset(m.upper() for m in names)
    return when(lambda ctx: ctx.method in allowed, middleware)


def for_paths(pattern: str | re.Pattern[str], middleware: Middleware) -> Middleware:
    """Run *middleware* only when the request path matches *pattern*.

    A string pattern may contain ``:param`` segments and must match the
    whole path; a compiled regex is searched as given::

        app.use(for_paths("/api/employees/:id", audit))
        app.use(for_paths(re.compile(r"^/admin"), require_admin))
    """
    if isinstance(pattern, str):
        regex = re.compile(_PARAM_SEGMENT_RE.sub("[^/]+", pattern))
        return when(lambda ctx: regex.fullmatch(ctx.path) is not None, middleware)
    return when(lambda ctx: pattern.search(ctx.path) is not None, middleware)

