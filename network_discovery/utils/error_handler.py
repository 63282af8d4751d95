"""
Error handling for the Network Discovery Module.

This module defines the exception hierarchy used by the scanners and the scan
orchestrator, together with a small ErrorHandler that records per-host failures
so a scan can keep going and still report what went wrong.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .logger import Logger, get_logger


class ErrorType(Enum):
    """Enumeration for different types of errors."""
    VALIDATION_ERROR = "validation_error"
    HOST_ERROR = "host_error"
    PERSISTENCE_ERROR = "persistence_error"


class ErrorSeverity(Enum):
    """Enumeration for error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """
    Context information for error handling.

    Attributes:
        error_type: Type of error that occurred
        severity: Severity level of the error
        operation: Operation that was being performed when error occurred
        component: Component/module where error occurred
        target: IP address (or range) the operation was working on
        additional_info: Additional context information
    """
    error_type: ErrorType
    severity: ErrorSeverity
    operation: str
    component: str
    target: Optional[str] = None
    additional_info: Dict[str, Any] = field(default_factory=dict)


class NetworkDiscoveryError(Exception):
    """Base exception class for Network Discovery Module."""

    def __init__(self, message: str, error_context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.error_context = error_context


class InvalidRangeError(NetworkDiscoveryError):
    """Raised when an IP range is not a valid IPv4 address or CIDR block."""

    DEFAULT_MESSAGE = "Invalid IP range format. Use CIDR notation (e.g., 192.168.1.0/24)"

    def __init__(self, ip_range: Any = None, message: Optional[str] = None):
        super().__init__(
            message or self.DEFAULT_MESSAGE,
            ErrorContext(
                error_type=ErrorType.VALIDATION_ERROR,
                severity=ErrorSeverity.LOW,
                operation="validate_ip_range",
                component="RangeExpander",
                target=str(ip_range) if ip_range is not None else None,
            ),
        )
        self.ip_range = ip_range


class ProbeTimeoutError(NetworkDiscoveryError):
    """A TCP probe did not complete within its timeout."""
    pass


class ProbeConnectionError(NetworkDiscoveryError):
    """A TCP probe was refused, reset or otherwise failed to connect."""
    pass


class DnsResolutionError(NetworkDiscoveryError):
    """Reverse DNS lookup failed for an address."""
    pass


class HostPersistenceError(NetworkDiscoveryError):
    """Saving a discovered host to the store failed."""
    pass


class ScanAlreadyRunningError(NetworkDiscoveryError):
    """Raised when the maximum number of concurrent scans is already running."""
    pass


class ErrorHandler:
    """
    Records errors raised while scanning individual hosts.

    Failures that are isolated per host (a probe that blows up, a save that
    fails) are logged and counted here instead of being propagated, so the
    orchestrator can finish the range and include the errors in its summary.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """
        Initialize the ErrorHandler.

        Args:
            logger: Logger instance for error reporting
        """
        self.logger = logger or get_logger(__name__)
        self.error_statistics: Dict[ErrorType, int] = {error_type: 0 for error_type in ErrorType}
        self.errors: List[str] = []

    def handle_error(self, error: Exception, context: ErrorContext) -> None:
        """
        Log an error and update statistics.

        Args:
            error: The exception that occurred
            context: Error context information
        """
        self.error_statistics[context.error_type] += 1

        target = f" [{context.target}]" if context.target else ""
        message = f"{context.component}.{context.operation}{target}: {error}"
        self.errors.append(message)

        if context.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            self.logger.error(message)
        elif context.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(message)
        else:
            self.logger.debug(message)

    def get_error_summary(self) -> Dict[str, int]:
        """Return counts for error types that occurred at least once."""
        return {
            error_type.value: count
            for error_type, count in self.error_statistics.items()
            if count > 0
        }
