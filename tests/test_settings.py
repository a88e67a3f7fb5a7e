"""
PaperDesk Settings and Logging Tests
"""

import json

import pytest
from unittest.mock import patch
from loguru import logger
from pydantic import ValidationError

from config.settings import Environment, ProfileStoreBackend, Settings
from utils.logger import ContextLogger, setup_logging


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self):
        """Test default settings values."""
        settings = Settings(_env_file=None)

        assert settings.initial_cash == 100000.0
        assert settings.poll_interval_seconds == 10.0
        assert settings.history_max_points == 100
        assert settings.default_symbol == "BTC"
        assert settings.profile_store_backend == ProfileStoreBackend.MEMORY

    def test_environment_overrides(self, monkeypatch):
        """Test PAPERDESK_ environment variables override defaults."""
        monkeypatch.setenv("PAPERDESK_INITIAL_CASH", "5000")
        monkeypatch.setenv("PAPERDESK_POLL_INTERVAL_SECONDS", "2.5")
        monkeypatch.setenv("PAPERDESK_ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert settings.initial_cash == 5000.0
        assert settings.poll_interval_seconds == 2.5
        assert settings.is_production()

    def test_watchlist_is_normalized(self):
        """Test watch-list symbols are upper-cased and deduplicated."""
        settings = Settings(_env_file=None, default_watchlist=[" btc", "ETH", "eth", ""])

        assert settings.default_watchlist == ["BTC", "ETH"]

    def test_default_symbol_upper_cased(self):
        """Test default symbol is upper-cased."""
        assert Settings(_env_file=None, default_symbol="sol").default_symbol == "SOL"

    @pytest.mark.parametrize("field,value", [
        ("poll_interval_seconds", 0),
        ("initial_cash", -1),
        ("quote_source_url", "ftp://prices"),
        ("redis_url", "localhost:6379"),
        ("default_symbol", "  "),
    ])
    def test_invalid_values_rejected(self, field, value):
        """Test invalid values fail validation."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_redis_backend_requires_prefix(self):
        """Test redis backend requires a key prefix."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, profile_store_backend="redis", redis_key_prefix="")


class TestLogging:
    """Test suite for logging setup."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        """Remove handlers added by the test."""
        yield
        logger.remove()

    def test_json_output(self, capsys):
        """Test JSON formatter output and bound context."""
        settings = Settings(_env_file=None, log_json_format=True, environment=Environment.TESTING)
        with patch("utils.logger.get_settings", return_value=settings):
            setup_logging("INFO")

        ContextLogger("ledger").info("cash {unchanged}", symbol="BTC")

        lines = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.strip()]
        record = lines[-1]
        assert record["message"] == "cash {unchanged}"
        assert record["component"] == "ledger"
        assert record["symbol"] == "BTC"
        assert record["level"] == "INFO"

    def test_file_sink(self, tmp_path):
        """Test file sink creates the log file."""
        log_path = tmp_path / "logs" / "paperdesk.log"
        settings = Settings(_env_file=None, log_to_file=True, log_file_path=str(log_path))
        with patch("utils.logger.get_settings", return_value=settings):
            setup_logging()

        ContextLogger("feed").warning("quote source slow")
        logger.complete()

        assert log_path.exists()
        assert "quote source slow" in log_path.read_text()
