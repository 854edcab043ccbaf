"""Callie application class.

Mutable during setup (routes, groups, middleware, error handlers, hooks).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from callie._internal.asgi import Receive, Scope, Send
from callie.config import AppConfig
from callie.routing.router import Handler, Router
from callie.server.handler import handle_request

if TYPE_CHECKING:
    from callie.data.database import Database

logger = logging.getLogger("callie.server")

type ErrorHandler = Callable[..., Any]


class App:
    """The callie application.

    Usage::

        app = App(db="sqlite:///app.db")
        app.use(request_logger())

        @app.get("/health")
        async def health(ctx, next):
            ctx.success({"status": "ok"})

        with app.group("/api", authenticate) as api:
            api.get("/employees", list_employees)
            api.post("/employees", validate_body(EMPLOYEE), create_employee)

        app.run()

    Global middleware registered with ``use()`` wraps every request,
    including the 404 raised for unmatched paths. Route handlers run after
    it, in registration order, each receiving ``(ctx, next)``.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the app, even when several ASGI workers call
        ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_db",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        # Compiled state (populated by _freeze)
        "_middleware",
        "_middleware_list",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        db: Database | str | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router()
        self._middleware_list: list[Callable[..., Any]] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._middleware: tuple[Callable[..., Any], ...] = ()

        # A Database instance, a connection URL, or config.database.
        # When set, lifespan connects it at startup and disconnects at shutdown.
        if isinstance(db, str):
            from callie.data.database import Database as _Database

            self._db: Database | None = _Database(db)
        elif db is None and self.config.database is not None:
            from callie.data.database import Database as _Database

            self._db = _Database.from_config(self.config.database)
        else:
            self._db = db

    # -- Middleware --

    def use(self, middleware: Callable[..., Any] | Router) -> App:
        """Add global middleware, or mount a ``Router``'s routes.

        ::

            app.use(request_logger())
            app.use(employees_router)
        """
        self._check_not_frozen()
        if isinstance(middleware, Router):
            self._router.merge(middleware)
        elif callable(middleware):
            self._middleware_list.append(middleware)
        else:
            msg = f"use() takes a middleware callable or a Router, got {type(middleware).__name__}"
            raise TypeError(msg)
        return self

    # -- Route registration --

    def route(self, method: str, path: str, *handlers: Handler) -> Any:
        """Register a handler chain for *method* and *path*.

        Called with handlers it registers them and returns the app; called
        without, it returns a decorator::

            app.route("GET", "/employees/:id", authenticate, show_employee)

            @app.route("GET", "/ping")
            async def ping(ctx, next):
                return "pong"
        """
        self._check_not_frozen()
        if handlers:
            self._router.add(method, path, handlers)
            return self
        return self._router.route(method, path)

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
        """Register routes under a shared prefix and middleware.

        ::

            with app.group("/api/admin", authenticate, require_role("admin")) as admin:
                admin.get("/users", list_users)
        """
        self._check_not_frozen()
        with self._router.group(prefix, *middleware) as child:
            yield child

    @property
    def router(self) -> Router:
        return self._router

    @property
    def db(self) -> Database:
        """The database instance, if configured.

        Raises ``RuntimeError`` if no database was configured on this app.
        """
        if self._db is None:
            msg = (
                "No database configured. Pass db= to App() or use "
                "Database directly: from callie.data import Database"
            )
            raise RuntimeError(msg)
        return self._db

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator.

        Handlers take ``(ctx, exc)`` (or fewer arguments), and either
        write through ``ctx`` or return a value to send::

            @app.error(404)
            def not_found(ctx, exc):
                return {"success": False, "message": "Nothing here"}

            @app.error(PermissionError)
            async def denied(ctx):
                ctx.error("Not allowed", 403)
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the database (if any) is connected.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown,
        before the database is disconnected.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve the app with uvicorn.

        Freezes the app, then blocks until the server stops.
        """
        import uvicorn

        self._ensure_frozen()

        _host = host or self.config.host
        _port = port or self.config.port
        logger.info("Callie server running at http://%s:%s", _host, _port)
        uvicorn.run(self, host=_host, port=_port, log_level=self.config.log_level)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles the lifespan scope directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            config=self.config,
            db=self._db,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self._startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Application startup failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                await self._shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _startup(self) -> None:
        """Connect the database and run startup hooks."""
        if self._db is not None:
            await self._db.connect()
            from callie.data.database import _db_var

            _db_var.set(self._db)

        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def _shutdown(self) -> None:
        """Run shutdown hooks, then disconnect the database."""
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

        if self._db is not None:
            await self._db.disconnect()

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        self._router.freeze()
        self._middleware = tuple(self._middleware_list)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and error handlers before calling app.run()."
            )
            raise RuntimeError(msg)
