"""Per-request context.

One ``Context`` is created for each HTTP request and handed to every
middleware and handler in the chain as ``ctx``. It carries the parsed
request (method, path, headers, query, route params, body), a ``state``
dict for passing data down the chain, and the response being built.

The response helpers (``json``, ``success``, ``error``, ``text``,
``html``, ``redirect``) write at most once; later calls are ignored so an
outer middleware cannot clobber a response a handler already produced.

The current context is also reachable through ``get_context()`` for code
that does not receive ``ctx`` directly.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any
from urllib.parse import parse_qsl

from callie._internal.asgi import Receive, Scope
from callie._internal.encoding import dumps
from callie.errors import BadRequest, HTTPError
from callie.responses import error, success

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class Context:
    """Request data plus the mutable response state for one request."""

    __slots__ = (
        "_raw_body",
        "_receive",
        "_responded",
        "body",
        "client",
        "headers",
        "max_body_size",
        "method",
        "params",
        "path",
        "query",
        "response_body",
        "response_headers",
        "state",
        "status_code",
        "url",
    )

    def __init__(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
        url: str | None = None,
        client: tuple[str, int] | None = None,
        receive: Receive | None = None,
        max_body_size: int = 1024 * 1024,
    ) -> None:
        self.method = method.upper()
        self.path = path
        self.url = url or path
        self.headers: dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.query: dict[str, str] = dict(query or {})
        self.params: dict[str, str] = {}
        self.body: Any = None
        self.state: dict[str, Any] = {}
        self.client = client
        self.max_body_size = max_body_size
        self._receive = receive
        self._raw_body: bytes | None = None

        # Response state
        self.status_code: int | None = None
        self.response_headers: list[tuple[str, str]] = []
        self.response_body: bytes = b""
        self._responded = False

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive, *, max_body_size: int = 1024 * 1024) -> Context:
        """Build a context from an ASGI HTTP scope.

        ``path`` keeps its percent-encoding (from ``raw_path`` when the
        server provides it) so the router can decode parameters itself.
        """
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else scope["path"]

        headers: dict[str, str] = {}
        for name_b, value_b in scope.get("headers", ()):
            name = name_b.decode("latin-1").lower()
            value = value_b.decode("latin-1")
            headers[name] = f"{headers[name]}, {value}" if name in headers else value

        query_string = scope.get("query_string", b"").decode("latin-1")
        query = dict(parse_qsl(query_string, keep_blank_values=True))
        url = f"{path}?{query_string}" if query_string else path
        client = scope.get("client")

        return cls(
            scope["method"],
            path,
            headers=headers,
            query=query,
            url=url,
            client=tuple(client) if client else None,
            receive=receive,
            max_body_size=max_body_size,
        )

    # -- Request --

    def get(self, header: str, default: str | None = None) -> str | None:
        """Request header lookup, case-insensitive."""
        return self.headers.get(header.lower(), default)

    @property
    def has_body(self) -> bool:
        return self.method in _BODY_METHODS

    async def read_body(self) -> bytes:
        """Read the full request body once and cache it.

        Raises a 413 ``HTTPError`` when the body exceeds ``max_body_size``.
        """
        if self._raw_body is not None:
            return self._raw_body
        if self._receive is None:
            self._raw_body = b""
            return self._raw_body

        chunks: list[bytes] = []
        size = 0
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_size:
                raise HTTPError(status=413, detail="Request body too large")
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        self._raw_body = b"".join(chunks)
        return self._raw_body

    async def parse_body(self) -> Any:
        """Parse the request body into ``ctx.body`` and return it.

        - empty body → ``{}``
        - ``application/json`` → decoded JSON (malformed → ``BadRequest``)
        - ``application/x-www-form-urlencoded`` → ``dict``
        - anything else → JSON if it parses, otherwise ``{"raw": text}``
        """
        raw = (await self.read_body()).decode("utf-8", errors="replace")
        if not raw:
            self.body = {}
            return self.body

        content_type = self.get("content-type", "") or ""
        if "application/json" in content_type:
            try:
                self.body = json.loads(raw)
            except ValueError:
                raise BadRequest("Failed to parse request body") from None
        elif "application/x-www-form-urlencoded" in content_type:
            self.body = dict(parse_qsl(raw, keep_blank_values=True))
        else:
            try:
                self.body = json.loads(raw)
            except ValueError:
                self.body = {"raw": raw}
        return self.body

    @property
    def bearer_token(self) -> str | None:
        """Token from an ``Authorization: Bearer <token>`` header."""
        auth = self.get("authorization")
        if auth and auth.startswith("Bearer "):
            return auth[7:]
        return None

    @property
    def ip(self) -> str:
        """Client address: ``X-Forwarded-For`` (first hop), ``X-Real-IP``, then socket."""
        forwarded = self.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = self.get("x-real-ip")
        if real_ip:
            return real_ip
        if self.client:
            return self.client[0]
        return "unknown"

    # -- Response --

    @property
    def responded(self) -> bool:
        return self._responded

    def set(self, header: str, value: str) -> Context:
        """Set a response header, replacing any existing value."""
        lowered = header.lower()
        self.response_headers = [(k, v) for k, v in self.response_headers if k.lower() != lowered]
        self.response_headers.append((header, str(value)))
        return self

    def get_response_header(self, header: str) -> str | None:
        lowered = header.lower()
        for k, v in self.response_headers:
            if k.lower() == lowered:
                return v
        return None

    def status(self, code: int) -> Context:
        """Set the response status; chainable: ``ctx.status(201).json(row)``."""
        self.status_code = code
        return self

    def _write(self, body: bytes, content_type: str | None, status: int | None) -> None:
        self._responded = True
        if status is not None:
            self.status_code = status
        elif self.status_code is None:
            self.status_code = 200
        if content_type is not None:
            self.set("Content-Type", content_type)
        self.response_body = body

    def json(self, data: Any, status: int | None = None) -> None:
        """Send *data* as JSON, without the success envelope."""
        if self._responded:
            return
        self._write(dumps(data), "application/json; charset=utf-8", status)

    def success(self, data: Any = None, message: str = "OK", status: int = 200) -> None:
        """Send ``{"success": true, "data": ..., "message": ...}``."""
        if self._responded:
            return
        self._write(dumps(success(data, message)), "application/json; charset=utf-8", status)

    def error(
        self,
        message: str = "Error",
        status: int = 400,
        errors: Mapping[str, Any] | None = None,
    ) -> None:
        """Send ``{"success": false, "message": ..., "errors": ...}``."""
        if self._responded:
            return
        self._write(dumps(error(message, errors)), "application/json; charset=utf-8", status)

    def text(self, data: Any, status: int | None = None) -> None:
        if self._responded:
            return
        self._write(str(data).encode("utf-8"), "text/plain; charset=utf-8", status)

    def html(self, data: Any, status: int | None = None) -> None:
        if self._responded:
            return
        self._write(str(data).encode("utf-8"), "text/html; charset=utf-8", status)

    def redirect(self, url: str, status: int = 302) -> None:
        if self._responded:
            return
        self.set("Location", url)
        self._write(b"", None, status)

    def send(
        self,
        body: bytes,
        content_type: str = "application/octet-stream",
        status: int | None = None,
    ) -> None:
        """Send raw bytes with an explicit content type."""
        if self._responded:
            return
        self._write(body, content_type, status)

    def discard_response(self) -> None:
        """Forget any written body and status so an error response can replace them.

        Response headers are kept.
        """
        self._responded = False
        self.status_code = None
        self.response_body = b""


# -- Request context --

context_var: ContextVar[Context] = ContextVar("callie_context")
"""The current request context. Set by the ASGI handler before dispatch."""


def get_context() -> Context:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
