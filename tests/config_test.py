"""Tests for environment-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from agrofund.config import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.db_path == Path.home() / ".agrofund" / "data" / "agrofund.duckdb"
        assert settings.enforce_funding_cap is True
        assert settings.verbose is False

    def test_data_dir(self, tmp_path):
        settings = Settings.from_env({"AGROFUND_DATA_DIR": str(tmp_path)})
        assert settings.db_path == tmp_path / "agrofund.duckdb"

    def test_db_path_wins(self, tmp_path):
        settings = Settings.from_env(
            {
                "AGROFUND_DATA_DIR": str(tmp_path / "ignored"),
                "AGROFUND_DB_PATH": str(tmp_path / "custom.duckdb"),
            }
        )
        assert settings.db_path == tmp_path / "custom.duckdb"

    def test_flags(self):
        settings = Settings.from_env(
            {"AGROFUND_ENFORCE_FUNDING_CAP": "false", "AGROFUND_LOG_VERBOSE": "YES"}
        )
        assert settings.enforce_funding_cap is False
        assert settings.verbose is True

    def test_bad_flag(self):
        with pytest.raises(ValueError, match="AGROFUND_LOG_VERBOSE"):
            Settings.from_env({"AGROFUND_LOG_VERBOSE": "maybe"})

    def test_export_dir_defaults_next_to_store(self, tmp_path):
        settings = Settings.from_env({"AGROFUND_DATA_DIR": str(tmp_path)})
        assert settings.export_dir == tmp_path / "exports"

    def test_export_dir_override(self, tmp_path):
        settings = Settings.from_env({"AGROFUND_EXPORT_DIR": str(tmp_path / "out")})
        assert settings.export_dir == tmp_path / "out"
