import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Only override environment variables in explicit local/test scenarios to prevent overwriting deploy-time env vars
should_override = os.environ.get("ENVIRONMENT", "") in ["local", "dev", "development", "test"]
load_dotenv(override=should_override)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class Settings:
    history_dir: Path
    output_dir: Path
    log_level: str


def get_settings() -> Settings:
    """Read runtime settings from the environment (and `.env`).

    Keys: LISTENING_HISTORY_DIR, REPORT_OUTPUT_DIR, LOG_LEVEL.
    """
    history_dir = os.getenv("LISTENING_HISTORY_DIR", "listening_history")
    output_dir = os.getenv("REPORT_OUTPUT_DIR", "tmp")
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if logging.getLevelName(log_level) == f"Level {log_level}":
        logger.warning("Unknown LOG_LEVEL %r, falling back to INFO", log_level)
        log_level = "INFO"

    return Settings(
        history_dir=Path(os.path.expanduser(os.path.expandvars(history_dir))),
        output_dir=Path(os.path.expanduser(os.path.expandvars(output_dir))),
        log_level=log_level,
    )
