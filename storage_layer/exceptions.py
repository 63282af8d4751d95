"""
Custom exception hierarchy for the asset inventory storage layer

Every error raised by DiscoveredHostStore derives from StorageManagerError and
carries a context dict (collection, operation, offending field...) that is
included in its string form for logging.
"""

import re
from typing import Any, Dict, Optional


class StorageManagerError(Exception):
    """
    Base exception class for all storage errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information about the error
        original_error: The exception that caused this error (if any)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        error_str = self.message

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            error_str += f" (Context: {context_str})"

        if self.original_error:
            error_str += f" (Caused by: {type(self.original_error).__name__}: {self.original_error})"

        return error_str

    def add_context(self, key: str, value: Any) -> None:
        """Add additional context information to the error."""
        self.context[key] = value


def sanitize_connection_string(conn_str: str) -> str:
    """Replace the credentials of a MongoDB URI with asterisks."""
    return re.sub(r'://([^:/@]+):([^@]+)@', r'://***:***@', conn_str)


class ConnectionError(StorageManagerError):
    """MongoDB could not be reached, or the connection was lost."""

    def __init__(self, message: str, connection_string: Optional[str] = None,
                 database_name: Optional[str] = None,
                 original_error: Optional[Exception] = None) -> None:
        context = {}
        if connection_string:
            context["connection_string"] = sanitize_connection_string(connection_string)
        if database_name:
            context["database_name"] = database_name

        super().__init__(message, context, original_error)


class ValidationError(StorageManagerError):
    """
    Data rejected before reaching the database.

    Raised for discovered host payloads with a malformed IP address, an
    unknown status or a field of the wrong type.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 field_value: Optional[Any] = None, validation_rule: Optional[str] = None,
                 original_error: Optional[Exception] = None) -> None:
        context = {}
        if field_name:
            context["field_name"] = field_name
        if field_value is not None:
            str_value = str(field_value)
            if len(str_value) > 100:
                str_value = str_value[:97] + "..."
            context["field_value"] = str_value
        if validation_rule:
            context["validation_rule"] = validation_rule

        super().__init__(message, context, original_error)
        self.field_name = field_name


class OperationError(StorageManagerError):
    """A database operation failed with a non-retryable error."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 collection: Optional[str] = None,
                 original_error: Optional[Exception] = None) -> None:
        context = {}
        if operation:
            context["operation"] = operation
        if collection:
            context["collection"] = collection

        super().__init__(message, context, original_error)


class RetryExhaustedError(OperationError):
    """A transient failure persisted through every retry attempt."""

    def __init__(self, message: str, attempts: int, max_attempts: int,
                 last_error: Optional[Exception] = None, operation: Optional[str] = None) -> None:
        super().__init__(message, operation=operation, original_error=last_error)
        self.attempts = attempts
        self.add_context("attempts", attempts)
        self.add_context("max_attempts", max_attempts)


class ConfigurationError(StorageManagerError):
    """Missing or invalid storage settings (connection string, database name)."""

    def __init__(self, message: str, config_key: Optional[str] = None,
                 config_value: Optional[Any] = None, expected_type: Optional[str] = None) -> None:
        context = {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = str(config_value)
        if expected_type:
            context["expected_type"] = expected_type

        super().__init__(message, context)
