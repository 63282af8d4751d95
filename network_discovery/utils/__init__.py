"""
Utility functions and helper classes.
"""

from .logger import Logger, LogLevel, set_log_level, get_logger
from .error_handler import (
    ErrorHandler, ErrorContext, ErrorType, ErrorSeverity,
    NetworkDiscoveryError, InvalidRangeError, ProbeTimeoutError, ProbeConnectionError,
    DnsResolutionError, HostPersistenceError, ScanAlreadyRunningError
)

__all__ = [
    'Logger',
    'LogLevel',
    'set_log_level',
    'get_logger',
    'ErrorHandler',
    'ErrorContext',
    'ErrorType',
    'ErrorSeverity',
    'NetworkDiscoveryError',
    'InvalidRangeError',
    'ProbeTimeoutError',
    'ProbeConnectionError',
    'DnsResolutionError',
    'HostPersistenceError',
    'ScanAlreadyRunningError'
]
