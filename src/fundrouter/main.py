"""Main entry point - runs the API server."""

import logging

import uvicorn

from fundrouter.api.app import create_app
from fundrouter.config import get_settings

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Starting Fundrouter...")
    logger.info(f"Environment: {settings.environment}")
    if not settings.dry_run:
        logger.warning("DRY_RUN=false but only in-memory custody is available; using it")
    if not settings.admin_token:
        logger.warning("ADMIN_TOKEN not set - admin endpoints are unprotected")

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
