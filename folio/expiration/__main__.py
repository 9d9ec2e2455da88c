"""Standalone expiration worker entry point.

Usage:
    python -m folio.expiration

    Or via the console script:
    folio-expiration-worker

Runs the expiration poller without the HTTP service. Point it at the same
FOLIO_UPLOADS_PATH and FOLIO_EXPIRATION__DATABASE_PATH as the service, and
set FOLIO_EXPIRATION__EMBEDDED=false on the service so only this process
dispatches deletions.
"""

import asyncio
import logging
import sys

from folio.config import FolioConfig
from folio.paths import PathResolver
from folio.store import FileStore

from .manager import ExpirationManager
from .scheduler import create_scheduler

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the standalone expiration worker."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = FolioConfig()
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)

    if config.expiration.backend == "memory":
        logger.warning(
            "Expiration backend is 'memory': a standalone worker cannot see "
            "tasks submitted by the HTTP service"
        )

    file_store = FileStore(PathResolver(config.uploads_path))
    scheduler = create_scheduler(config.expiration, file_store)
    manager = ExpirationManager(config.expiration, scheduler)

    logger.info(f"Starting expiration worker for {file_store.root}")

    try:
        asyncio.run(manager.run_until_shutdown())
    except KeyboardInterrupt:
        logger.info("Worker interrupted")
    except Exception as e:
        logger.error(f"Worker failed: {e}")
        sys.exit(1)

    logger.info("Worker stopped")


if __name__ == "__main__":
    main()
