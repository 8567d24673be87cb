"""Tests for settings and logging setup."""
import json
import logging

import pytest
from pydantic import ValidationError

from core.config import Settings
from core.logging import BookingJsonFormatter, LogContext, build_formatter, setup_logging


@pytest.mark.unit
class TestSettings:
    """Settings validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.default_slot_capacity == 3
        assert settings.timezone == "Europe/Madrid"
        assert settings.database_url.startswith("sqlite+aiosqlite")
        assert settings.is_development

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, app_env="qa")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            Settings(_env_file=None, timezone="Mars/Olympus")

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_slot_capacity=0)

    def test_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_SLOT_CAPACITY", "5")
        monkeypatch.setenv("APP_ENV", "Production")

        settings = Settings(_env_file=None)

        assert settings.default_slot_capacity == 5
        assert settings.is_production


@pytest.mark.unit
class TestLogging:
    """Logging setup and structured fields."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_formatter_in_production(self):
        setup_logging(Settings(_env_file=None, app_env="production"))

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, BookingJsonFormatter)

    def test_plain_formatter_in_development(self):
        setup_logging(Settings(_env_file=None, app_env="development", log_level="WARNING"))

        root = logging.getLogger()
        assert not isinstance(root.handlers[0].formatter, BookingJsonFormatter)
        assert root.level == logging.WARNING

    def test_build_formatter_by_environment(self):
        assert isinstance(build_formatter(Settings(_env_file=None, app_env="staging")), BookingJsonFormatter)
        assert not isinstance(build_formatter(Settings(_env_file=None)), BookingJsonFormatter)

    def test_json_record_fields(self):
        settings = Settings(_env_file=None, app_env="staging", app_name="Bookings")
        formatter = BookingJsonFormatter("%(message)s", app_settings=settings)
        record = logging.LogRecord("services.booking_service", logging.INFO, __file__, 10, "created", None, None)
        record.reservation_id = "abc"

        data = json.loads(formatter.format(record))

        assert data["message"] == "created"
        assert data["level"] == "INFO"
        assert data["app_name"] == "Bookings"
        assert data["environment"] == "staging"
        assert data["reservation_id"] == "abc"
        assert data["source"].startswith("test_config.")

    def test_log_context_adds_fields(self, caplog):
        logger = logging.getLogger("tests.log_context")

        with caplog.at_level(logging.INFO, logger="tests.log_context"):
            LogContext(logger, reservation_id="abc").log("info", "hello", action="confirm")

        record = caplog.records[-1]
        assert record.reservation_id == "abc"
        assert record.action == "confirm"

    def test_log_context_logs_exceptions(self, caplog):
        logger = logging.getLogger("tests.log_context")

        with pytest.raises(RuntimeError):
            with LogContext(logger, business_id="b"):
                raise RuntimeError("boom")

        assert "RuntimeError while handling business_id=b" in caplog.text

    def test_bind_extends_fields(self):
        context = LogContext(business_id="b", user_id=None).bind(reservation_id="r")

        assert context.fields == {"business_id": "b", "reservation_id": "r"}
