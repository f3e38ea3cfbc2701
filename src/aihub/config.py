"""Configuration settings for the AI Hub conversation store.

This module provides Pydantic Settings for configuration management.
All settings are loaded from environment variables with the AIHUB_ prefix
(or a .env file) and fall back to defaults suitable for a desktop install.
"""

import logging
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aihub.constants import DEFAULT_DATA_DIR_NAME, DEFAULT_DB_FILENAME

logger = logging.getLogger(__name__)


class AIHubSettings(BaseSettings):
    """Configuration settings for the conversation store.

    Attributes:
        data_dir: Application private data directory
        db_filename: Name of the SQLite file inside data_dir
        log_level: Logging level
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    model_config = SettingsConfigDict(
        env_prefix="AIHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without error
    )

    data_dir: Path = Field(
        default_factory=lambda: Path.home() / DEFAULT_DATA_DIR_NAME,
        description="Directory holding the conversation database",
    )
    db_filename: str = Field(
        default=DEFAULT_DB_FILENAME,
        min_length=1,
        description="SQLite database file name",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    busy_timeout_ms: int = Field(
        default=5000,
        ge=0,
        description="How long SQLite waits on a locked database",
    )

    def get_db_path(self) -> Path:
        """Get the database path, expanding user home."""
        return (self.data_dir.expanduser() / self.db_filename).resolve()


def setup_logging(log_level: str) -> None:
    """Configure root logging to stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.info(f"Logging initialized at {log_level.upper()} level")
