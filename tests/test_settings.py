"""Tests for ballotflow.settings: TOML settings loading."""

import logging
from pathlib import Path

import pytest

from ballotflow.settings import BallotSettings, load_settings

# Path to the real config file shipped with the package
_CONFIG_DIR = Path(__file__).parent.parent / "ballotflow" / "config"


class TestLoadSettings:
    def test_loads_shipped_defaults(self):
        settings = load_settings(_CONFIG_DIR / "defaults.toml")
        assert settings.db_path == "~/.ballotflow/ballots.db"
        assert settings.log_level == "WARNING"

    def test_default_path(self):
        assert load_settings() == load_settings(_CONFIG_DIR / "defaults.toml")

    def test_custom_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('[ballotflow]\ndb_path = "/tmp/x.db"\nlog_level = "debug"\n')
        settings = load_settings(path)
        assert settings.db_path == "/tmp/x.db"
        assert settings.log_level == "DEBUG"
        assert settings.log_level_value == logging.DEBUG

    def test_missing_section_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.toml"
        path.write_text("")
        assert load_settings(path) == BallotSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.toml")

    def test_invalid_log_level(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[ballotflow]\nlog_level = "LOUD"\n')
        with pytest.raises(ValueError, match="Invalid"):
            load_settings(path)

    def test_section_must_be_table(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('ballotflow = "nope"\n')
        with pytest.raises(ValueError, match="must be a table"):
            load_settings(path)
