"""Ordered regex router.

Routes are registered during setup, per HTTP method, in the order they are
added. Matching walks a method's entries in that order and the first
template that matches wins, so register ``/employees/me`` before
``/employees/:id``.

Path templates::

    /employees              static
    /employees/:id          named parameter, one segment
    /files/*                wildcard, rest of the path (not exposed as a param)
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any
from urllib.parse import unquote

from callie.errors import ConfigurationError
from callie.routing.route import RouteEntry, RouteMatch

type Handler = Callable[..., Any]

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")

# ``:name`` parameters and bare ``*`` wildcards
_TOKEN_RE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)|\*")


def normalize_path(path: str) -> str:
    """Ensure exactly one leading ``/`` and no trailing ``/`` (except root).

    ::

        normalize_path("users/")   -> "/users"
        normalize_path("")         -> "/"
    """
    path = path.strip("/")
    return f"/{path}"


def compile_path(path: str) -> tuple[re.Pattern[str], tuple[str, ...]]:
    """Compile a path template into an anchored regex and its parameter names.

    Literal text is escaped, ``:name`` becomes a one-segment capture and
    ``*`` matches anything (including ``/``).

    Raises ``ConfigurationError`` if a parameter name appears twice.
    """
    parts: list[str] = []
    names: list[str] = []
    pos = 0
    for token in _TOKEN_RE.finditer(path):
        parts.append(re.escape(path[pos : token.start()]))
        name = token.group(1)
        if name is None:
            parts.append("(?:.*)")
        else:
            if name in names:
                msg = f"Duplicate parameter {name!r} in route {path!r}"
                raise ConfigurationError(msg)
            names.append(name)
            parts.append(f"(?P<{name}>[^/]+)")
        pos = token.end()
    parts.append(re.escape(path[pos:]))
    return re.compile("".join(parts)), tuple(names)


class Router:
    """Per-method ordered route table with groups.

    Usage::

        router = Router()
        router.get("/health", health)

        with router.group("/api", authenticate) as api:
            api.get("/employees", list_employees)
            api.get("/employees/:id", show_employee)

        match = router.match("GET", "/api/employees/42")
        match.params  # {"id": "42"}

    ``match()`` returns ``None`` when nothing matches; deciding what a
    miss means (usually a 404) is the caller's job.
    """

    __slots__ = ("_frozen", "_routes", "middleware", "prefix")

    def __init__(self, prefix: str = "", middleware: Sequence[Handler] = ()) -> None:
        self.prefix = prefix
        self.middleware: tuple[Handler, ...] = tuple(middleware)
        self._routes: dict[str, list[RouteEntry]] = {}
        self._frozen = False

    # -- Registration --

    def add(self, method: str, path: str, handlers: Sequence[Handler]) -> Router:
        """Register *handlers* for ``method`` on ``prefix + path``.

        The stored chain is the router's middleware followed by *handlers*.
        """
        self._check_not_frozen()
        pattern = normalize_path(self.prefix + path)
        regex, param_names = compile_path(pattern)
        entry = RouteEntry(
            method=method.upper(),
            pattern=pattern,
            regex=regex,
            param_names=param_names,
            handlers=(*self.middleware, *handlers),
        )
        self._routes.setdefault(entry.method, []).append(entry)
        return self

    def route(self, method: str, path: str, *handlers: Handler) -> Any:
        """Register handlers, or return a decorator when none are given.

        ::

            router.route("GET", "/ping", ping)

            @router.route("GET", "/pong")
            async def pong(ctx, next): ...
        """
        if handlers:
            return self.add(method, path, handlers)

        def decorator(func: Handler) -> Handler:
            self.add(method, path, (func,))
            return func

        return decorator

    def get(self, path: str, *handlers: Handler) -> Any:
        return self.route("GET", path, *handlers)

    def post(self, path: str, *handlers: Handler) -> Any:
        return self.route("POST", path, *handlers)

    def put(self, path: str, *handlers: Handler) -> Any:
        return self.route("PUT", path, *handlers)

    def patch(self, path: str, *handlers: Handler) -> Any:
        return self.route("PATCH", path, *handlers)

    def delete(self, path: str, *handlers: Handler) -> Any:
        return self.route("DELETE", path, *handlers)

    def options(self, path: str, *handlers: Handler) -> Any:
        return self.route("OPTIONS", path, *handlers)

    @contextmanager
    def group(self, prefix: str, *middleware: Handler) -> Iterator[Router]:
        """Register a block of routes under a shared prefix and middleware.

        The child router's routes are merged into this one when the
        block exits cleanly. Groups nest::

            with router.group("/api", authenticate) as api:
                with api.group("/admin", require_role("admin")) as admin:
                    admin.delete("/employees/:id", remove_employee)
        """
        child = Router(self.prefix + prefix, (*self.middleware, *middleware))
        yield child
        self.merge(child)

    def merge(self, other: Router) -> Router:
        """Append every route of *other*, keeping each method's order."""
        self._check_not_frozen()
        for method, entries in other._routes.items():
            self._routes.setdefault(method, []).extend(entries)
        return self

    # -- Lookup --

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Find the first route registered for *method* that matches *path*.

        Captured parameters are percent-decoded. Returns ``None`` on a miss.
        """
        entries = self._routes.get(method.upper())
        if not entries:
            return None
        normalized = normalize_path(path)
        for entry in entries:
            m = entry.regex.fullmatch(normalized)
            if m is not None:
                params = {name: unquote(m.group(name)) for name in entry.param_names}
                return RouteMatch(route=entry, params=params)
        return None

    @property
    def routes(self) -> list[tuple[str, str, int]]:
        """``(method, pattern, handler_count)`` for every route, in order."""
        return [
            (method, entry.pattern, len(entry.handlers))
            for method, entries in self._routes.items()
            for entry in entries
        ]

    def entries(self, method: str) -> tuple[RouteEntry, ...]:
        """Registered entries for *method*, in match order."""
        return tuple(self._routes.get(method.upper(), ()))

    # -- Lifecycle --

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the table read-only. Called when the app starts serving."""
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot add routes after the router has been frozen."
            raise RuntimeError(msg)
