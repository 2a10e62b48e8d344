"""Process-wide logging setup."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(log_dir: Optional[str] = None, debug: Optional[bool] = None) -> str:
    """Log to stderr and to a rotating file.

    Args:
        log_dir: Directory for the log file. Defaults to RELAY_LOG_DIR or ~/.relay/logs.
        debug: Use DEBUG level. Defaults to whether RELAY_DEBUG is set.

    Returns:
        Path of the log file.
    """
    log_dir = os.path.expanduser(log_dir or os.getenv("RELAY_LOG_DIR", "~/.relay/logs"))
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "relay-server.log")

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stderr),
        RotatingFileHandler(
            log_file,
            mode="a",
            encoding="utf-8",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        ),
    ]

    if debug is None:
        debug = bool(os.getenv("RELAY_DEBUG"))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_file
