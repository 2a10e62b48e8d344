"""Entry point for the relay HTTP server."""

import logging
import sys

import uvicorn

from . import __version__
from .app import create_app
from .config import RelaySettings, load_env_file
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    env_path = load_env_file()
    settings = RelaySettings.from_env()
    log_file = configure_logging(settings.log_dir, debug=settings.debug)
    if env_path:
        logger.info(f"Loaded environment from {env_path}")
    logger.info(f"Logging to file: {log_file}")

    if settings.openai_api_key:
        logger.info(f"OPENAI_API_KEY configured (length: {len(settings.openai_api_key)})")
    else:
        logger.warning("No OPENAI_API_KEY found in environment; chat requests will fail")
    if not settings.local_dataset.is_file():
        logger.warning(f"Bundled dataset not found at {settings.local_dataset}")

    logger.info(f"Starting relay server v{__version__} on {settings.host}:{settings.port}")
    try:
        app = create_app(settings)
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
