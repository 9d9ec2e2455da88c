"""Application factory for the folio HTTP service."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config import FolioConfig
from ..expiration import ExpirationManager, Scheduler, create_scheduler
from ..ids import IdGenerator
from ..paths import PathResolver
from ..store import FileStore
from ..uploads import FILES_PREFIX, UploadCoordinator
from . import files, health, uploads
from .errors import register_error_handlers

logger = logging.getLogger(__name__)


def create_app(
    config: FolioConfig | None = None,
    *,
    scheduler: Scheduler | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration (default: loaded from env/YAML)
        scheduler: Expiration scheduler to use instead of the configured
            durable one; no embedded worker is started for it
        rng: Random source for upload ids

    Returns:
        Configured FastAPI app; the lifespan prepares the storage root,
        sweeps garbage files and runs the embedded expiration worker
    """
    config = config or FolioConfig()

    file_store = FileStore(PathResolver(config.uploads_path))

    manager: ExpirationManager | None = None
    if scheduler is None:
        durable = create_scheduler(config.expiration, file_store)
        scheduler = durable
        if config.expiration.embedded:
            manager = ExpirationManager(config.expiration, durable)

    coordinator = UploadCoordinator(
        store=file_store,
        ids=IdGenerator(rng, config.upload_id_length),
        scheduler=scheduler,
        max_attempts=config.upload_id_attempts,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        file_store.root.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(file_store.collect_garbage, config.garbage_patterns())

        if manager:
            await manager.start()
        logger.info(f"Serving files from {file_store.root}")
        try:
            yield
        finally:
            if manager:
                await manager.stop()

    app = FastAPI(title="folio", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.file_store = file_store
    app.state.scheduler = scheduler
    app.state.coordinator = coordinator
    app.state.expiration_manager = manager

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(files.router, prefix=FILES_PREFIX)
    app.include_router(uploads.router, prefix="/uploads")

    # GET /files/<path> falls through the method-specific routes above
    app.mount(
        FILES_PREFIX,
        StaticFiles(directory=file_store.root, check_dir=False),
        name="files",
    )
    if config.web_path.is_dir():
        app.mount("/", StaticFiles(directory=config.web_path, html=True), name="web")
    else:
        logger.info(f"Web assets not found at {config.web_path}, not serving /")

    return app
