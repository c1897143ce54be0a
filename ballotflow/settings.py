"""Ballotflow settings and TOML configuration loader.

Loads runtime settings from defaults.toml: where ballots are stored and
how verbosely the CLI logs.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

# Default config directory relative to the ballotflow package
_CONFIG_DIR = Path(__file__).parent / "config"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class BallotSettings(BaseModel):
    """Runtime settings for the store and CLI."""

    db_path: str = Field(
        default="~/.ballotflow/ballots.db",
        description="SQLite database file holding all ballots",
    )
    log_level: str = Field(
        default="WARNING", description="Logging level name (e.g. 'INFO')",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def log_level_value(self) -> int:
        """Numeric logging level for ``log_level``."""
        return logging.getLevelName(self.log_level)


def load_settings(config_path: Path | None = None) -> BallotSettings:
    """Load settings from a TOML file.

    Args:
        config_path: Path to the TOML file. Defaults to
            ballotflow/config/defaults.toml.

    Returns:
        BallotSettings with values from the ``[ballotflow]`` section.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the ``[ballotflow]`` section is malformed.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Ballotflow config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("ballotflow", {})
    if not isinstance(section, dict):
        raise ValueError(f"[ballotflow] in {path} must be a table")

    try:
        return BallotSettings(**section)
    except ValidationError as e:
        raise ValueError(f"Invalid [ballotflow] settings in {path}: {e}") from None
