"""
Logging Configuration for the Inventory Dashboard

This module provides centralized logging configuration with separate rotating
files for application events, errors and API requests.
"""

import os
import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Optional, Tuple


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    def filter(self, record):
        record.iso_timestamp = datetime.now(timezone.utc).isoformat()
        record.process_name = 'inventory_dashboard'
        return True


class ErrorContextFilter(logging.Filter):
    """Add error-specific context to log records."""

    def filter(self, record):
        # Records logged outside a request carry no request context
        for attribute, default in (('method', 'N/A'), ('url', 'N/A'),
                                   ('user_agent', 'N/A'), ('remote_addr', 'N/A'),
                                   ('extra_info', '')):
            if not hasattr(record, attribute):
                setattr(record, attribute, default)
        return True


def _rotating_handler(log_dir: str, filename: str, formatter: logging.Formatter,
                      backup_count: int = 5) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=10*1024*1024,  # 10MB
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    return handler


def setup_logging(app, log_level: Optional[int] = None) -> Tuple[logging.Logger, logging.Logger, logging.Logger]:
    """
    Set up logging for the application.

    Args:
        app: Flask application instance
        log_level: Override log level

    Returns:
        Tuple of (app_logger, error_logger, api_logger)
    """
    if log_level is None:
        if app.config.get('DEBUG'):
            log_level = logging.DEBUG
        else:
            log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)

    log_dir = app.config.get('LOG_DIR') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
    os.makedirs(log_dir, exist_ok=True)

    detailed_formatter = logging.Formatter(
        '%(iso_timestamp)s [%(levelname)s] %(process_name)s [%(filename)s:%(lineno)d] '
        '%(funcName)s(): %(message)s'
    )

    error_formatter = logging.Formatter(
        '%(iso_timestamp)s [%(levelname)s] %(process_name)s [%(filename)s:%(lineno)d]\n'
        'Function: %(funcName)s()\n'
        'Message: %(message)s\n'
        'Request: %(method)s %(url)s\n'
        'User Agent: %(user_agent)s\n'
        'Remote Address: %(remote_addr)s\n'
        '%(extra_info)s\n'
        '---'
    )

    api_formatter = logging.Formatter(
        '%(iso_timestamp)s [%(levelname)s] API: %(message)s'
    )

    # Application logger; the discovery scanner and the storage layer log
    # through their own loggers and share its file handler
    app_logger = logging.getLogger('inventory_dashboard')
    app_logger.setLevel(log_level)
    app_logger.handlers.clear()

    app_handler = _rotating_handler(log_dir, 'app.log', detailed_formatter)
    app_handler.set_name('inventory_dashboard.app')
    app_logger.addHandler(app_handler)

    for component in ('network_discovery', 'storage_layer'):
        component_logger = logging.getLogger(component)
        component_logger.setLevel(log_level)
        # Replace the handler installed by a previous create_app()
        for handler in component_logger.handlers[:]:
            if handler.get_name() == app_handler.get_name():
                component_logger.removeHandler(handler)
        component_logger.addHandler(app_handler)

    if app.config.get('DEBUG'):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        ))
        app_logger.addHandler(console_handler)

    # Error logger
    error_logger = logging.getLogger('inventory_dashboard.errors')
    error_logger.setLevel(logging.WARNING)
    error_logger.handlers.clear()
    error_handler = _rotating_handler(log_dir, 'errors.log', error_formatter, backup_count=10)
    error_handler.addFilter(ErrorContextFilter())
    error_logger.addHandler(error_handler)

    # API logger
    api_logger = logging.getLogger('inventory_dashboard.api')
    api_logger.setLevel(logging.INFO)
    api_logger.handlers.clear()
    api_logger.addHandler(_rotating_handler(log_dir, 'api.log', api_formatter))

    app.logger.handlers.clear()
    app.logger.addHandler(app_handler)
    app.logger.setLevel(log_level)

    app_logger.info("Logging system initialized")
    app_logger.info(f"Log level: {logging.getLevelName(log_level)}")
    app_logger.info(f"Log directory: {log_dir}")

    return app_logger, error_logger, api_logger


def log_api_request(logger, method: str, endpoint: str, status_code: int,
                    duration: float, user_agent: str = None, remote_addr: str = None):
    """
    Log API request with timing information.

    Args:
        logger: Logger instance
        method: HTTP method
        endpoint: API endpoint
        status_code: Response status code
        duration: Request duration in seconds
        user_agent: User agent string
        remote_addr: Remote IP address
    """
    level = logging.INFO
    if status_code >= 400:
        level = logging.WARNING
    if status_code >= 500:
        level = logging.ERROR

    message = f"{method} {endpoint} - {status_code} ({duration:.3f}s)"

    extra = {
        'method': method,
        'endpoint': endpoint,
        'status_code': status_code,
        'duration': duration,
        'user_agent': user_agent or 'Unknown',
        'remote_addr': remote_addr or 'Unknown'
    }

    logger.log(level, message, extra=extra)
