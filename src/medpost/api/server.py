"""HTTP API app factory and uvicorn lifecycle for MedPost."""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from medpost import __version__
from medpost.api.errors import register_exception_handlers
from medpost.api.routes import register_routes

if TYPE_CHECKING:
    from medpost.app import Application
    from medpost.models.config import FastAPIServerConfig

logger = logging.getLogger(__name__)


def create_app(app_instance: Application | None = None) -> FastAPI:
    """Build the MedPost HTTP API.

    Without an Application every route answers 503 APP_NOT_INITIALIZED; the
    error envelope and routing still apply.
    """
    api = FastAPI(title="MedPost API", version=__version__)
    register_exception_handlers(api)
    register_routes(api)
    if app_instance is None:
        return api

    api.state.medpost = app_instance
    origins = app_instance.config.server.cors_origins
    # Browsers reject credentialed requests against a wildcard origin.
    api.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    return api


class _ManagedServer(uvicorn.Server):
    """uvicorn server that reports readiness and leaves signals to the Application."""

    def __init__(self, config: uvicorn.Config) -> None:
        super().__init__(config)
        self.ready = asyncio.Event()

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        return None

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        try:
            await super().startup(sockets=sockets)
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind.
            raise RuntimeError(
                f"API server failed to bind {self.config.host}:{self.config.port}"
            ) from exc
        if self.started:
            self.ready.set()


class APIServer:
    """Runs the API in the Application's event loop."""

    def __init__(
        self,
        app: FastAPI,
        server_config: FastAPIServerConfig,
        *,
        startup_timeout_s: float = 5.0,
    ) -> None:
        self._app = app
        self._host = server_config.host
        self._port = server_config.port
        self._startup_timeout_s = startup_timeout_s
        self._server: _ManagedServer | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start serving and return once uvicorn is listening.

        Raises:
            RuntimeError: If the server cannot bind or exits during startup.
            TimeoutError: If startup takes longer than `startup_timeout_s`.
        """
        if self._task is not None:
            return

        server = _ManagedServer(
            uvicorn.Config(
                self._app,
                host=self._host,
                port=self._port,
                log_config=None,
                access_log=False,
            )
        )
        self._server = server
        self._task = asyncio.create_task(server.serve(), name="medpost-api")
        try:
            await self._wait_until_ready(server, self._task)
        except BaseException:
            await self._abort()
            raise

        logger.info("API server listening on http://%s:%d", self._host, self._port)

    async def _wait_until_ready(self, server: _ManagedServer, task: asyncio.Task[None]) -> None:
        ready = asyncio.create_task(server.ready.wait())
        try:
            done, _ = await asyncio.wait(
                {task, ready},
                timeout=self._startup_timeout_s,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            ready.cancel()

        if ready in done:
            return
        if task in done:
            task.result()
            raise RuntimeError("API server exited before startup completed")
        raise TimeoutError(
            f"Timed out waiting for API server startup on {self._host}:{self._port}"
        )

    async def _abort(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            with suppress(Exception):
                await self._task
        self._task = None
        self._server = None

    async def stop(self) -> None:
        """Ask uvicorn to finish in-flight requests and exit."""
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        try:
            await self._task
        except Exception as exc:
            logger.error("API server stopped with error: %s", exc, exc_info=True)
        self._task = None
        self._server = None
        logger.info("API server stopped")
