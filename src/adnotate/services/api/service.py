"""HTTP trigger surface for the syncer, served by FastAPI.

Three routes, each running one sync to completion before answering:

* ``GET /sync``: incremental sync.
* ``GET /sync/7days``: 7-day historical sync.
* ``GET /sync/{days}``: N-day historical sync. A ``days`` value that is
  not a positive integer is answered with ``400`` before any network call.

Responses are plain-text acknowledgements. Whatever happened during the
run (aborts, delivery failures) is reported only in the logs.

The HTTP server runs as a background ``asyncio.Task`` alongside the
standard ``run_forever()`` cycle. Each ``run()`` cycle logs trigger
statistics and updates Prometheus metrics.

See Also:
    [Syncer][adnotate.services.syncer.Syncer]: The service each trigger
        drives.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING, Any, ClassVar

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from adnotate.core.base_service import BaseService
from adnotate.models import parse_lookback_days
from adnotate.models.constants import ServiceName
from adnotate.services.syncer import Syncer

from .configs import ApiConfig


if TYPE_CHECKING:
    from types import TracebackType

    from adnotate.core.state import StateStore

_HTTP_ERROR_THRESHOLD = 400
INVALID_DAYS_MESSAGE = "Invalid days parameter. Must be a positive number."


class Api(BaseService[ApiConfig]):
    """HTTP service that triggers sync runs.

    Lifecycle:
        1. ``__aenter__``: build the FastAPI app, start uvicorn.
        2. ``run()``: log trigger statistics and update Prometheus counters.
        3. ``__aexit__``: cancel the HTTP server task.

    Note:
        Concurrent requests run concurrent syncs. Nothing serializes them,
        so overlapping incremental runs may deliver the same activity twice.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.API
    CONFIG_CLASS: ClassVar[type[ApiConfig]] = ApiConfig

    def __init__(
        self,
        state: StateStore,
        config: ApiConfig | None = None,
        *,
        syncer: Syncer | None = None,
    ) -> None:
        super().__init__(state=state, config=config or ApiConfig())
        self._config: ApiConfig
        self._syncer = syncer or Syncer(state=state, config=self._config.syncer)
        self._server_task: asyncio.Task[None] | None = None
        self._requests_total = 0
        self._requests_failed = 0
        self._syncs_triggered = 0

    @property
    def syncer(self) -> Syncer:
        return self._syncer

    async def __aenter__(self) -> Api:
        await super().__aenter__()

        app = self._build_app()
        self._server_task = asyncio.create_task(self._run_server(app))
        self._logger.info(
            "http_server_started",
            host=self._config.host,
            port=self._config.port,
        )

        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._server_task is not None:
            self._server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._server_task
            self._server_task = None
        self._logger.info("http_server_stopped")
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    async def run(self) -> None:
        """Log trigger stats and update Prometheus counters."""
        if self._server_task is not None and self._server_task.done():
            exc = self._server_task.exception() if not self._server_task.cancelled() else None
            self._logger.error("http_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("HTTP server task has stopped unexpectedly") from exc

        total = self._requests_total
        failed = self._requests_failed
        triggered = self._syncs_triggered
        self._requests_total = 0
        self._requests_failed = 0
        self._syncs_triggered = 0

        self._logger.info(
            "cycle_stats",
            requests_total=total,
            requests_failed=failed,
            syncs_triggered=triggered,
        )
        self.inc_counter("requests_total", total)
        self.inc_counter("requests_failed", failed)
        self.inc_counter("syncs_triggered", triggered)

    async def _trigger(self, lookback_days: int | None) -> None:
        self._syncs_triggered += 1
        await self._syncer.sync(lookback_days)

    def _build_app(self) -> FastAPI:
        """Construct the FastAPI application with the trigger routes."""
        app = FastAPI(title="adnotate")

        @app.middleware("http")
        async def log_requests(request: Request, call_next: Any) -> Response:
            start = time.monotonic()
            self._logger.info(
                "request_received",
                method=request.method,
                path=request.url.path,
            )
            try:
                response: Response = await call_next(request)
            except Exception as exc:  # HTTP request error boundary
                self._logger.error(
                    "unhandled_error",
                    error=str(exc),
                    path=request.url.path,
                )
                response = PlainTextResponse("Internal server error", status_code=500)
            duration_ms = (time.monotonic() - start) * 1000
            self._requests_total += 1
            if response.status_code >= _HTTP_ERROR_THRESHOLD:
                self._requests_failed += 1
                self._logger.warning(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 1),
                )
            else:
                self._logger.info(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=round(duration_ms, 1),
                )
            return response

        @app.get("/health")
        async def health() -> dict[str, str]:
            return {"status": "ok"}

        # /sync/7days must be registered before the /sync/{days} catch-all
        @app.get("/sync", response_class=PlainTextResponse)
        async def sync() -> str:
            self._logger.info("sync_triggered", lookback_days=None)
            await self._trigger(None)
            return "Sync process triggered"

        @app.get("/sync/7days", response_class=PlainTextResponse)
        async def sync_7days() -> str:
            self._logger.info("sync_triggered", lookback_days=7)
            await self._trigger(7)
            return "7-day sync process triggered"

        @app.get("/sync/{days}", response_class=PlainTextResponse)
        async def sync_days(days: str) -> Response:
            try:
                lookback = parse_lookback_days(days)
            except ValueError:
                self._logger.warning("sync_rejected", days=days)
                return PlainTextResponse(INVALID_DAYS_MESSAGE, status_code=400)
            self._logger.info("sync_triggered", lookback_days=lookback)
            await self._trigger(lookback)
            return PlainTextResponse(f"{lookback}-day sync process triggered")

        return app

    async def _run_server(self, app: FastAPI) -> None:
        """Run uvicorn as an asyncio server."""
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        await server.serve()
