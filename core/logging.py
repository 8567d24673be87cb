"""
Structured logging for the booking engine.

Staging and production emit one JSON object per line; development keeps a
readable single-line format. Booking identifiers passed through LogContext
end up as top-level JSON keys.
"""
import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from core.config import Settings, settings as default_settings


JSON_ENVIRONMENTS = ("production", "staging")

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = '%(timestamp)s %(level)s %(name)s %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Fields every booking log line may carry, in display order
BOOKING_FIELDS = ("business_id", "reservation_id", "user_id", "actor_id", "action")


class BookingJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps records with source and application fields."""

    def __init__(self, *args: Any, app_settings: Optional[Settings] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.app_settings = app_settings or default_settings

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            source=f"{record.module}.{record.funcName}:{record.lineno}",
            app_name=self.app_settings.app_name,
            environment=self.app_settings.app_env,
        )

        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)


def build_formatter(app_settings: Settings) -> logging.Formatter:
    """Pick the formatter for the configured environment."""
    if app_settings.app_env in JSON_ENVIRONMENTS:
        return BookingJsonFormatter(JSON_FORMAT, datefmt=DATE_FORMAT, app_settings=app_settings)
    return logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(app_settings: Optional[Settings] = None) -> None:
    """
    Configure the root logger.

    Replaces any existing root handlers with a single stdout handler and
    quiets the database drivers unless SQL echo is enabled.
    """
    app_settings = app_settings or default_settings
    formatter = build_formatter(app_settings)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(app_settings.log_level)

    sql_level = logging.INFO if app_settings.db_echo else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "log_level": app_settings.log_level,
            "environment": app_settings.app_env,
            "json_logging": isinstance(formatter, BookingJsonFormatter),
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger by name (typically __name__)."""
    return logging.getLogger(name)


class LogContext:
    """
    Booking identifiers attached to every record logged through it.

    Usable inline (``LogContext(logger, reservation_id=...).log(...)``) or as
    a context manager that reports an escaping exception with the same
    fields before it propagates.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, **fields: Any):
        self.logger = logger or get_logger(__name__)
        self.fields = {k: v for k, v in fields.items() if v is not None}

    def bind(self, **fields: Any) -> 'LogContext':
        """Return a new context with extra fields."""
        return LogContext(self.logger, **{**self.fields, **fields})

    def __enter__(self) -> 'LogContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.logger.error(
                f"{exc_type.__name__} while handling {self._describe()}",
                extra=self.fields,
                exc_info=(exc_type, exc_val, exc_tb)
            )

    def _describe(self) -> str:
        known = [f"{name}={self.fields[name]}" for name in BOOKING_FIELDS if name in self.fields]
        return ", ".join(known) or "request"

    def log(self, level: str, message: str, **extra_fields: Any) -> None:
        """
        Log a message with the bound fields.

        Args:
            level: Log level name (debug, info, warning, error, critical)
            message: Log message
            **extra_fields: Fields for this record only
        """
        log_method = getattr(self.logger, level.lower())
        log_method(message, extra={**self.fields, **extra_fields})
