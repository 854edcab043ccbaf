"""Callie exception hierarchy.

Shared across Router, App, handler, and middleware so every module
raises and catches the same types.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


class CallieError(Exception):
    """Base for all callie-specific errors."""


class ConfigurationError(CallieError):
    """Raised when app configuration is invalid.

    Typically raised while registering routes, e.g. a path template that
    repeats a parameter name.
    """


class MiddlewareError(CallieError):
    """Raised when a middleware chain is driven incorrectly."""


@dataclass(slots=True, eq=False)
class HTTPError(CallieError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatcher, middleware, or handlers. The ASGI handler
    catches these, dispatches to a matching ``@app.error()`` handler, or
    renders the default JSON error envelope.
    """

    status: int
    detail: str = ""
    errors: Mapping[str, Any] | None = None
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    def to_dict(self) -> dict[str, Any]:
        """Body of the JSON error envelope."""
        body: dict[str, Any] = {"success": False, "message": self.detail or f"Error {self.status}"}
        if self.errors:
            body["errors"] = dict(self.errors)
        return body


class BadRequest(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """400 — the request could not be understood."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class ValidationError(HTTPError):
    """400 — request data failed validation.

    ``errors`` maps field names to lists of messages.
    """

    def __init__(
        self,
        detail: str = "Validation failed",
        errors: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(status=400, detail=detail, errors=errors)


class Unauthorized(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """401 — missing or invalid credentials."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status=401, detail=detail)


class Forbidden(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """403 — authenticated but not allowed."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route or resource matched the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Conflict(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """409 — the request conflicts with current state."""

    def __init__(self, detail: str = "Conflict") -> None:
        super().__init__(status=409, detail=detail)


class InternalError(HTTPError):
    """500 — raised deliberately by application code."""

    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(status=500, detail=detail)


# Status -> exception class used by ensure()
_BY_STATUS: dict[int, type[HTTPError]] = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
    500: InternalError,
}


def ensure(condition: object, message: str, status: int = 400) -> None:
    """Raise an ``HTTPError`` for *status* unless *condition* is truthy.

    ::

        ensure(body.get("email"), "Email is required")
        ensure(user.is_admin, "Admins only", 403)
    """
    if condition:
        return
    cls = _BY_STATUS.get(status)
    if cls is None:
        raise HTTPError(status=status, detail=message)
    raise cls(message)


def ensure_found[T](resource: T | None, message: str = "Resource not found") -> T:
    """Return *resource*, or raise ``NotFound`` when it is ``None``."""
    if resource is None:
        raise NotFound(message)
    return resource
