"""Folio HTTP service entry point.

Usage:
    python -m folio

    Or via the console script:
    folio

Configuration comes from FOLIO_* environment variables and an optional
folio.yaml (see folio.config.FolioConfig).
"""

import logging
import sys

import uvicorn

from folio.api import create_app
from folio.config import FolioConfig

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the folio HTTP service."""
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

    app = create_app(config)

    logger.info(f"Starting folio on {config.host}:{config.port}")
    try:
        uvicorn.run(app, host=config.host, port=config.port, log_config=None)
    except Exception as e:
        logger.error(f"Server failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
