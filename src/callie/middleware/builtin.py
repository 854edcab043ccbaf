"""Built-in middleware: request logging and response timing."""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from callie.context import Context
from callie.errors import HTTPError
from callie.middleware.protocol import Next
from callie.server.sender import response_status

logger = logging.getLogger("callie.access")

type LogFormat = Literal["simple", "detailed", "json"]


@dataclass(frozen=True, slots=True)
class RequestLoggerConfig:
    """Request logger configuration.

    ``format`` picks the line layout:

    - ``simple``: ``GET /api/employees 200 3ms``
    - ``detailed``: timestamp and client IP added
    - ``json``: one JSON object per request

    ``skip`` returns True for requests that should not be logged
    (health checks, static assets).
    """

    format: LogFormat = "simple"
    skip: Callable[[Context], bool] | None = None
    level: int = logging.INFO


class RequestLogger:
    """Log one line per request after the rest of the chain has run.

    Usage::

        app.use(RequestLogger(RequestLoggerConfig(format="json")))
        app.use(request_logger(skip=lambda ctx: ctx.path == "/health"))
    """

    __slots__ = ("config",)

    def __init__(self, config: RequestLoggerConfig | None = None) -> None:
        self.config = config or RequestLoggerConfig()

    async def __call__(self, ctx: Context, next: Next) -> Any:
        cfg = self.config
        if cfg.skip is not None and cfg.skip(ctx):
            return await next()

        start = time.perf_counter()
        status: int | None = None
        try:
            return await next()
        except HTTPError as exc:
            status = exc.status
            raise
        except Exception:
            status = 500
            raise
        finally:
            duration = round((time.perf_counter() - start) * 1000)
            status = status or response_status(ctx)
            logger.log(cfg.level, "%s", self._format(ctx, status, duration))

    def _format(self, ctx: Context, status: int, duration: int) -> str:
        if self.config.format == "json":
            return json.dumps(
                {
                    "method": ctx.method,
                    "path": ctx.path,
                    "status": status,
                    "duration": duration,
                    "ip": ctx.ip,
                }
            )
        if self.config.format == "detailed":
            stamp = datetime.now(UTC).isoformat(timespec="milliseconds")
            return f"[{stamp}] {ctx.method} {ctx.path} {status} {duration}ms - {ctx.ip}"
        return f"{ctx.method} {ctx.path} {status} {duration}ms"


def request_logger(
    format: LogFormat = "simple",  # noqa: A002
    skip: Callable[[Context], bool] | None = None,
) -> RequestLogger:
    """Shortcut for ``RequestLogger(RequestLoggerConfig(...))``."""
    return RequestLogger(RequestLoggerConfig(format=format, skip=skip))


class Timing:
    """Set ``X-Response-Time: <ms>ms`` once the rest of the chain completes."""

    __slots__ = ()

    async def __call__(self, ctx: Context, next: Next) -> Any:
        start = time.perf_counter()
        result = await next()
        duration = round((time.perf_counter() - start) * 1000)
        ctx.set("X-Response-Time", f"{duration}ms")
        return result


def timing() -> Timing:
    return Timing()
