"""
Logging configuration for the asset inventory storage layer and scanner

This module configures stdlib logging for everything that runs outside the
interactive CLI: the storage layer, scans started from the web application
and the web application itself. It offers a JSON formatter for log shipping,
a colored console formatter, and an OperationLogger context manager that
times database operations.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Optional

from colorama import Fore, Style

# Attributes present on every LogRecord; anything else was passed via extra=
_RESERVED_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

COMPONENT_LOGGERS = (
    "storage_layer",
    "network_discovery",
    "inventory_dashboard",
)


class StructuredFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line.

    Values passed through ``extra=`` are collected under the "extra" key.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter coloring the level name with colorama."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        color = self.COLORS.get(original_levelname, '')
        record.levelname = f"{color}{original_levelname}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


def setup_logging(
    level: str = "INFO",
    format_type: str = "console",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'console' (colored), 'detailed' or 'json'
        log_file: Optional file receiving JSON formatted records
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatters = {
        'console': ColoredConsoleFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ),
        'detailed': logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ),
        'json': StructuredFormatter(),
    }

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatters.get(format_type, formatters['console']))

    root_logger.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatters['json'])
        root_logger.addHandler(file_handler)

    configure_component_loggers(numeric_level)


def configure_component_loggers(level: int) -> None:
    """
    Apply the level to the application loggers and quiet pymongo.

    Args:
        level: Numeric logging level
    """
    for logger_name in COMPONENT_LOGGERS:
        logging.getLogger(logger_name).setLevel(level)

    # pymongo is chatty below WARNING unless we are debugging
    logging.getLogger('pymongo').setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return logging.getLogger(name)


class OperationLogger:
    """
    Context manager logging the start, success or failure of an operation.

    Example:
        with OperationLogger(logger, "create_discovered_host", ip_address=ip) as op:
            ...
            op.add_context(host_id=host_id)
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self) -> 'OperationLogger':
        self.start_time = time.monotonic()
        self.logger.debug(
            f"Starting operation: {self.operation}",
            extra={"operation": self.operation, "operation_phase": "start", **self.context}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration = round(time.monotonic() - self.start_time, 3) if self.start_time else None
        extra = {"operation": self.operation, "duration_seconds": duration, **self.context}

        if exc_type is None:
            self.logger.debug(
                f"Operation completed successfully: {self.operation}",
                extra={**extra, "operation_phase": "success"}
            )
        else:
            self.logger.error(
                f"Operation failed: {self.operation}: {exc_val}",
                extra={**extra, "operation_phase": "error", "error_type": exc_type.__name__}
            )

    def add_context(self, **kwargs) -> None:
        """Add additional context to the operation logger."""
        self.context.update(kwargs)
