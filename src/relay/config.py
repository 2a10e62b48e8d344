"""Environment-driven configuration for the relay service."""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .dataset.sources import DEFAULT_DATASET_URL
from .providers.openai_chat import DEFAULT_MODEL

logger = logging.getLogger(__name__)

# Bundled copy shipped at the project root, independent of the working directory
DEFAULT_LOCAL_DATASET_PATH = str(
    Path(__file__).resolve().parents[2] / "data" / "Master_Excel.csv"
)

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly, patient assistant for an online learning platform. "
    "Stay in character, answer concisely, and ask a clarifying question when "
    "the user's request is ambiguous."
)


def load_env_file() -> Optional[str]:
    """Load the first .env file found in the usual locations.

    Returns:
        The path that was loaded, or None if no file was found.
    """
    # 1. Directory of the main entry point
    main_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
    # 2. Parent directory of main (in case we're in a subdirectory)
    parent_dir = os.path.dirname(main_dir)
    # 3. Current working directory
    cwd = os.getcwd()
    # 4. Package directory
    package_dir = os.path.dirname(os.path.abspath(__file__))

    for directory in (main_dir, parent_dir, cwd, package_dir):
        env_path = os.path.join(directory, ".env")
        if os.path.exists(env_path):
            logger.info(f"Loading .env from {env_path}")
            load_dotenv(env_path)
            return env_path

    logger.info("No .env file found in expected locations")
    return None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_ms(name: str, default_ms: int) -> float:
    """Read a millisecond duration and return seconds."""
    return _env_int(name, default_ms) / 1000


@dataclass
class RelaySettings:
    """Runtime settings. Durations are in seconds."""

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    dataset_url: str = DEFAULT_DATASET_URL
    local_dataset_path: str = DEFAULT_LOCAL_DATASET_PATH
    dataset_timeout: float = 10.0
    model: str = DEFAULT_MODEL
    completion_timeout: float = 30.0
    max_retries: int = 3
    max_history: int = 20
    max_tokens: int = 500
    backoff_base: float = 1.0
    backoff_max: float = 8.0
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_dir: str = "~/.relay/logs"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Build settings from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            dataset_url=os.getenv("RELAY_DATASET_URL", DEFAULT_DATASET_URL),
            local_dataset_path=(
                os.getenv("RELAY_LOCAL_DATASET_PATH") or DEFAULT_LOCAL_DATASET_PATH
            ),
            dataset_timeout=_env_ms("RELAY_DATASET_TIMEOUT", 10000),
            model=os.getenv("RELAY_MODEL", DEFAULT_MODEL),
            completion_timeout=_env_ms("RELAY_COMPLETION_TIMEOUT", 30000),
            max_retries=_env_int("RELAY_MAX_RETRIES", 3),
            max_history=_env_int("RELAY_MAX_HISTORY", 20),
            max_tokens=_env_int("RELAY_MAX_TOKENS", 500),
            backoff_base=_env_ms("RELAY_BACKOFF_BASE", 1000),
            backoff_max=_env_ms("RELAY_BACKOFF_MAX", 8000),
            system_prompt=os.getenv("RELAY_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
            host=os.getenv("RELAY_HOST", "0.0.0.0"),
            port=_env_int("PORT", 8080),
            debug=bool(os.getenv("RELAY_DEBUG")),
            log_dir=os.getenv("RELAY_LOG_DIR", "~/.relay/logs"),
        )

    @property
    def local_dataset(self) -> Path:
        return Path(self.local_dataset_path).expanduser()
