"""Configuration management for readledger.

Loads configuration from environment variables and provides defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_HOME = Path.home() / ".readledger"


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Owner of every book and event written by this process
    user_id: str

    # Goals
    goals_file: Path

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path = Path(
            os.environ.get("READLEDGER_DB_PATH", str(DEFAULT_HOME / "ledger.db"))
        ).expanduser()
        goals_file = Path(
            os.environ.get("READLEDGER_GOALS_FILE", str(DEFAULT_HOME / "goals.json"))
        ).expanduser()

        return cls(
            db_path=db_path,
            user_id=os.environ.get("READLEDGER_USER_ID", "local"),
            goals_file=goals_file,
            log_level=os.environ.get("READLEDGER_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if not self.user_id.strip():
            errors.append("READLEDGER_USER_ID cannot be empty")

        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown log level: {self.log_level}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
