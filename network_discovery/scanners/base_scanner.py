"""
Base scanner interface for Network Discovery Module.

This module defines the abstract base class shared by the TCP scanners
(liveness detection, port scanning, banner grabbing), providing logging
helpers, timing and target validation.
"""

import ipaddress
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..config.config_loader import ScanConfig


class BaseScanner(ABC):
    """
    Abstract base class for all network scanners.

    Scanners accept any logger exposing info/warning/error/debug, so the same
    component runs under the colored CLI logger or a stdlib logger inside the
    web application.
    """

    scanner_type = "base"

    def __init__(self, config: Optional[ScanConfig] = None, logger=None):
        """
        Initialize the base scanner.

        Args:
            config: Scan configuration (defaults are used when omitted)
            logger: Logger instance for outputting scan progress and errors
        """
        self.config = config or ScanConfig()
        self.logger = logger
        self._scan_start: Optional[float] = None

    @abstractmethod
    def scan(self, target: str, **kwargs: Any) -> Any:
        """
        Scan a single target address.

        Args:
            target: IPv4 address to scan
            **kwargs: Scanner specific arguments

        Returns:
            Scanner specific result
        """

    def _start_scan_timer(self) -> None:
        """Start the scan timing measurement."""
        self._scan_start = time.monotonic()

    def _end_scan_timer(self) -> float:
        """
        End the scan timing measurement and return duration.

        Returns:
            Scan duration in seconds as a float
        """
        if self._scan_start is None:
            return 0.0
        duration = time.monotonic() - self._scan_start
        self._scan_start = None
        return duration

    def _log_warning(self, message: str) -> None:
        """Log a warning message if logger is available."""
        if self.logger:
            self.logger.warning(message)

    def _log_debug(self, message: str) -> None:
        """Log a debug message if logger is available."""
        if self.logger:
            self.logger.debug(message)

    @staticmethod
    def _is_valid_target(target: str) -> bool:
        """
        Check that a target is a literal IPv4 address.

        Args:
            target: Address to validate

        Returns:
            True if target is valid, False otherwise
        """
        if not target or not isinstance(target, str):
            return False
        try:
            ipaddress.IPv4Address(target.strip())
        except ValueError:
            return False
        return True
