"""
Asset Inventory Storage Layer

MongoDB persistence for hosts found by network discovery and for the
inventory assets they are imported as.
"""

__version__ = "1.0.0"

from .storage_manager import DiscoveredHostStore
from .models import AssetDocument, AssetType, DiscoveredHostDocument, HostStatus
from .exceptions import (
    StorageManagerError,
    ConnectionError,
    ValidationError,
    OperationError,
    RetryExhaustedError,
    ConfigurationError
)
from .logging_config import setup_logging, get_logger, OperationLogger

__all__ = [
    "DiscoveredHostStore",
    "AssetDocument",
    "AssetType",
    "DiscoveredHostDocument",
    "HostStatus",
    "StorageManagerError",
    "ConnectionError",
    "ValidationError",
    "OperationError",
    "RetryExhaustedError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
    "OperationLogger"
]
