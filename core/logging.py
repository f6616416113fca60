"""
Logging configuration with JSON formatter for structured logging.
"""
import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from core.config import Settings, settings as default_settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields."""

    def __init__(self, *args: Any, app_name: str = "", environment: str = "", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.app_name = app_name
        self.environment = environment

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        log_record['app_name'] = self.app_name
        log_record['environment'] = self.environment

        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)


def build_formatter(config: Settings) -> logging.Formatter:
    """Pick the JSON formatter outside development, plain text otherwise."""
    if config.app_env in ["production", "staging"]:
        return CustomJsonFormatter(
            fmt='%(timestamp)s %(level)s %(name)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            app_name=config.app_name,
            environment=config.app_env,
        )
    return logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def setup_logging(config: Optional[Settings] = None) -> None:
    """
    Configure application logging.

    Structured JSON logging for production and staging,
    human-readable logging for development.
    """
    config = config or default_settings
    formatter = build_formatter(config)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.log_level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if config.db_echo else logging.WARNING
    )

    logging.info(
        "Logging configured",
        extra={
            "log_level": config.log_level,
            "environment": config.app_env,
            "json_logging": isinstance(formatter, CustomJsonFormatter)
        }
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: The name of the logger (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """Context manager for adding contextual information to logs."""

    def __init__(self, logger: Optional[logging.Logger] = None, **kwargs: Any):
        """
        Initialize log context.

        Args:
            logger: Logger to write through (module logger by default)
            **kwargs: Key-value pairs to add to log context
        """
        self.context = kwargs
        self.logger = logger or get_logger(__name__)

    def __enter__(self) -> 'LogContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.logger.error(
                f"Exception in context: {exc_type.__name__}",
                extra=self.context,
                exc_info=True
            )

    def log(self, level: str, message: str, **extra_fields: Any) -> None:
        """
        Log a message with context.

        Args:
            level: Log level (debug, info, warning, error, critical)
            message: Log message
            **extra_fields: Additional fields to include in log
        """
        log_method = getattr(self.logger, level.lower())
        merged_context = {**self.context, **extra_fields}
        log_method(message, extra=merged_context)
