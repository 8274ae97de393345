"""Main entry point for the ranking server."""
import logging

import uvicorn

from vocabplan.app import create_app
from vocabplan.config import ensure_directories, settings
from vocabplan.logging_config import setup_logging
from vocabplan.models.base import init_db
from vocabplan.monitoring import start_monitoring

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the ranking server."""
    ensure_directories()
    setup_logging("Starting vocabplan ranking server ...")

    init_db()
    logger.info("Database initialized")

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)
        logger.info(f"Metrics exported on port {settings.monitoring.port}")

    try:
        uvicorn.run(
            create_app(),
            host=settings.server.host,
            port=settings.server.port,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")


if __name__ == "__main__":
    main()
