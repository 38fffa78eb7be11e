"""
Tests for configuration and logging setup.
"""
import logging

from bulkads.config import Settings
from bulkads.utils.logging import LogConfig, setup_logger

class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.jobs.call_timeout == 10.0
        assert settings.jobs.fallback_ad_set_id == "default-adset-id"
        assert settings.media.max_files == 20
        assert settings.facebook.api_version == "v18.0"
        assert settings.redis.enabled is False

    def test_nested_environment_override(self, monkeypatch):
        """Test nested sections can be overridden with a double underscore."""
        monkeypatch.setenv("JOBS__CALL_TIMEOUT", "2.5")
        monkeypatch.setenv("FACEBOOK__ACCESS_TOKEN", "env-token")

        settings = Settings()

        assert settings.jobs.call_timeout == 2.5
        assert settings.facebook.access_token == "env-token"

class TestSetupLogger:
    """Tests for setup_logger."""

    def test_handlers_added_once(self):
        name = "bulkads.tests.logger_once"

        logger = setup_logger(name, LogConfig(level="DEBUG"))
        again = setup_logger(name)

        assert logger is again
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "bulkads.log"

        logger = setup_logger("bulkads.tests.logger_file", LogConfig(file_path=str(log_file)))
        logger.warning("written to file")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "written to file" in log_file.read_text()
