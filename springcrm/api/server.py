"""HTTP API server using aiohttp."""

from __future__ import annotations

from aiohttp import web

from springcrm.api.ai import AssistantHandlers
from springcrm.api.records import RecordHandlers
from springcrm.api.responses import ApiError, fail
from springcrm.config import ServerConfig
from springcrm.core.assistant import Assistant
from springcrm.core.auth import AuthManager
from springcrm.store import JsonStore
from springcrm.utils.logging import get_logger

log = get_logger(__name__)

PUBLIC_PATHS = frozenset({"/api/login"})


class ApiServer:
    """Serves the CRM and assistant endpoints under /api."""

    def __init__(
        self,
        config: ServerConfig,
        store: JsonStore,
        auth: AuthManager,
        assistant: Assistant,
    ) -> None:
        self._config = config
        self._auth = auth
        self._records = RecordHandlers(store, auth)
        self._assistant = AssistantHandlers(assistant)
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self.build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info("api_server_started", bind=self._config.bind, port=self._config.port)

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("api_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        auth = self._auth

        @web.middleware
        async def error_middleware(request: web.Request, handler):  # type: ignore[no-untyped-def]
            try:
                return await handler(request)
            except ApiError as e:
                return fail(e.status, e.message)
            except web.HTTPException:
                raise
            except Exception:
                log.exception("request_failed", method=request.method, path=request.path)
                return fail(500, "Internal server error")

        @web.middleware
        async def auth_middleware(request: web.Request, handler):  # type: ignore[no-untyped-def]
            if request.path in PUBLIC_PATHS or not request.path.startswith("/api/"):
                return await handler(request)
            header = request.headers.get("Authorization", "")
            scheme, _, token = header.partition(" ")
            if scheme.lower() != "bearer" or not token:
                raise ApiError(401, "Please log in first")
            user = auth.authenticate(token.strip())
            if user is None:
                raise ApiError(401, "Session expired or invalid, please log in again")
            request["user"] = user
            return await handler(request)

        app = web.Application(middlewares=[error_middleware, auth_middleware])
        self._records.register(app.router)
        self._assistant.register(app.router)
        return app
