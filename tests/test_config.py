"""Tests for settings and logging setup."""

import json

import pytest
from pydantic import ValidationError

from budgetlens.config import Settings
from budgetlens.utils.logging import configure_logging, get_logger


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        """In-memory duckdb, 30s timeout, quiet logging."""
        for name in ("DUCKDB_PATH", "SQL_DIALECT", "QUERY_TIMEOUT_MS", "LOG_LEVEL", "LOG_FORMAT"):
            monkeypatch.delenv(f"BUDGETLENS_{name}", raising=False)
        settings = Settings(_env_file=None)
        assert settings.duckdb_path is None
        assert settings.sql_dialect == "duckdb"
        assert settings.query_timeout_ms == 30_000
        assert settings.log_level == "WARNING"

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch):
        """Values come from BUDGETLENS_ variables."""
        monkeypatch.setenv("BUDGETLENS_QUERY_TIMEOUT_MS", "5000")
        monkeypatch.setenv("BUDGETLENS_SQL_DIALECT", "postgres")
        monkeypatch.setenv("BUDGETLENS_LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.query_timeout_ms == 5000
        assert settings.sql_dialect == "postgres"
        assert settings.log_level == "DEBUG"

    def test_timeout_bounds(self, monkeypatch: pytest.MonkeyPatch):
        """Out of range timeouts fail at startup."""
        monkeypatch.setenv("BUDGETLENS_QUERY_TIMEOUT_MS", "10")
        with pytest.raises(ValidationError, match="timeout_ms"):
            Settings(_env_file=None)

    def test_unknown_dialect(self, monkeypatch: pytest.MonkeyPatch):
        """Only duckdb and postgres are accepted."""
        monkeypatch.setenv("BUDGETLENS_SQL_DIALECT", "oracle")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestLogging:
    @pytest.fixture(autouse=True)
    def restore_logging(self):
        yield
        configure_logging(log_level="WARNING", log_format="console")

    def test_json_records(self, caplog: pytest.LogCaptureFixture):
        """JSON format renders bound context into each record."""
        configure_logging(log_level="INFO", log_format="json")
        get_logger("budgetlens.tests", request_id="abc").info("filter_compiled", conditions=4)

        record = json.loads(caplog.records[-1].getMessage())
        assert record["event"] == "filter_compiled"
        assert record["request_id"] == "abc"
        assert record["conditions"] == 4
        assert record["level"] == "info"

    def test_level_filters(self, caplog: pytest.LogCaptureFixture):
        """Records below the configured level are dropped."""
        configure_logging(log_level="WARNING", log_format="json")
        get_logger("budgetlens.tests").info("quiet")
        assert not [r for r in caplog.records if "quiet" in r.getMessage()]
