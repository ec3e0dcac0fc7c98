"""Main application that wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import TYPE_CHECKING

from medpost.api import APIServer, create_app
from medpost.config import load_config, resolve_database_dsn, resolve_env_var
from medpost.feed import AnnouncementFeed
from medpost.identity import IdentityResolver
from medpost.pipeline import SubmissionPipeline
from medpost.plugins.storage import load_storage_plugin
from medpost.session import JWTSessionProvider
from medpost.store import SQLAlchemyStore
from medpost.uploader import AssetUploader

if TYPE_CHECKING:
    from medpost.interfaces import ObjectStore, SessionProvider
    from medpost.models.config import Config

logger = logging.getLogger(__name__)


class Application:
    """Main application that orchestrates all components.

    Handles component creation, lifecycle, and graceful shutdown.
    """

    def __init__(self, config_path: Path) -> None:
        self._config_path = config_path
        self._config: Config | None = None

        # Components (created in _create_components)
        self._storage: ObjectStore | None = None
        self._store: SQLAlchemyStore | None = None
        self._session_provider: SessionProvider | None = None
        self._resolver: IdentityResolver | None = None
        self._pipeline: SubmissionPipeline | None = None
        self._feed: AnnouncementFeed | None = None
        self._api_server: APIServer | None = None

        # Shutdown state
        self._shutdown_event = asyncio.Event()
        self._shutdown_started = False

    async def run(self) -> None:
        """Run the application.

        Loads config, creates components, and serves until a shutdown signal.
        """
        logger.info("Starting MedPost application...")

        self._config = load_config(self._config_path)
        logger.info("Config loaded from %s", self._config_path)

        await self._create_components()
        self._setup_signal_handlers()

        if self._api_server:
            await self._api_server.start()
        else:
            logger.warning("API server disabled by config; nothing to serve")

        logger.info("Application started")
        await self._shutdown_event.wait()
        await self.shutdown()

    async def _create_components(self) -> None:
        """Create all components based on config."""
        config = self._require_config()

        self._storage = load_storage_plugin(config.storage)
        self._store = await self._create_store(config)
        self._session_provider = self._create_session_provider(config)

        self._resolver = IdentityResolver(self._store)
        uploader = AssetUploader(self._storage, config.storage.paths)
        self._pipeline = SubmissionPipeline(
            uploader,
            self._store,
            self._storage,
            ledger=self._store,
            config=config.submission,
        )
        self._feed = AnnouncementFeed(self._store)

        if config.server.enabled:
            self._api_server = APIServer(create_app(self), config.server)

        logger.info(
            "Components created: storage=%s orphan_policy=%s",
            config.storage.backend,
            config.submission.orphan_policy.value,
        )

    async def _create_store(self, config: Config) -> SQLAlchemyStore:
        store = SQLAlchemyStore(resolve_database_dsn(config))
        if not await store.initialize():
            # Lookups fail closed and inserts fail until the DB is reachable again.
            logger.warning("Database unavailable at startup; continuing degraded")
        return store

    def _create_session_provider(self, config: Config) -> SessionProvider:
        secret = resolve_env_var(config.session.jwt_secret_env)
        return JWTSessionProvider(
            str(secret),
            audience=config.session.audience,
            leeway_s=config.session.leeway_s,
        )

    def _require_config(self) -> Config:
        if self._config is None:
            raise RuntimeError("Config not loaded")
        return self._config

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        if self._shutdown_started:
            logger.warning("Shutdown already in progress, ignoring signal")
            return

        logger.info("Received signal %s, initiating shutdown...", sig.name)
        self._shutdown_started = True
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Graceful shutdown of all components."""
        logger.info("Shutting down application...")

        # Stop API server first to prevent new requests during shutdown.
        if self._api_server:
            await self._api_server.stop()

        if self._store:
            await self._store.shutdown()

        if self._storage:
            await self._storage.shutdown()

        logger.info("Application shutdown complete")

    @property
    def config(self) -> Config:
        return self._require_config()

    @property
    def storage(self) -> ObjectStore:
        if self._storage is None:
            raise RuntimeError("Storage not initialized")
        return self._storage

    @property
    def store(self) -> SQLAlchemyStore:
        if self._store is None:
            raise RuntimeError("Store not initialized")
        return self._store

    @property
    def session_provider(self) -> SessionProvider:
        if self._session_provider is None:
            raise RuntimeError("Session provider not initialized")
        return self._session_provider

    @property
    def resolver(self) -> IdentityResolver:
        if self._resolver is None:
            raise RuntimeError("Identity resolver not initialized")
        return self._resolver

    @property
    def pipeline(self) -> SubmissionPipeline:
        if self._pipeline is None:
            raise RuntimeError("Pipeline not initialized")
        return self._pipeline

    @property
    def feed(self) -> AnnouncementFeed:
        if self._feed is None:
            raise RuntimeError("Feed not initialized")
        return self._feed
