"""
Colored console logging for network discovery runs.

This module provides a Logger class that prints levelled, colored messages
using colorama, plus a few helpers used by the command-line scanner to print
section headers, progress lines and a table of discovered hosts.
"""

import sys
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from colorama import Fore, Style, init

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class LogLevel(Enum):
    """Enumeration for different log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
}

_default_level = LogLevel.INFO


class Logger:
    """
    Logger with colored console output.

    Exposes the same info/warning/error/debug methods as a stdlib logger so
    scanner components can be handed either one.
    """

    LEVEL_COLORS = {
        LogLevel.DEBUG: Fore.CYAN,
        LogLevel.INFO: Fore.GREEN,
        LogLevel.WARNING: Fore.YELLOW,
        LogLevel.ERROR: Fore.RED,
    }

    HOST_TABLE_COLUMNS = [("IP Address", 16), ("Hostname", 28), ("OS", 16), ("Open Ports", 30)]

    def __init__(self, name: str = "NetworkDiscovery", min_level: Optional[LogLevel] = None):
        """
        Initialize the Logger.

        Args:
            name: Name of the logger
            min_level: Minimum log level to display (defaults to the global level)
        """
        self.name = name
        self.min_level = min_level or _default_level
        self._progress_active = False

    def _should_log(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.min_level]

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        """
        Format and print a message.

        Args:
            level: Log level
            message: Message to log
            **kwargs: Context appended as key=value pairs
        """
        if not self._should_log(level):
            return

        formatted_message = (
            f"{Style.DIM}[{self._timestamp()}]{Style.RESET_ALL} "
            f"{self.LEVEL_COLORS[level]}{level.value:<7}{Style.RESET_ALL} "
            f"{message}"
        )

        if kwargs:
            details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted_message += f" {Style.DIM}({details}){Style.RESET_ALL}"

        print(
            formatted_message,
            file=sys.stderr if level == LogLevel.ERROR else sys.stdout,
        )

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, exception: Optional[Exception] = None, **kwargs: Any) -> None:
        """
        Log an error message.

        Args:
            message: Error message
            exception: Optional exception object for additional context
            **kwargs: Additional context information
        """
        if exception:
            kwargs["exception"] = f"{type(exception).__name__}: {exception}"
        self._log(LogLevel.ERROR, message, **kwargs)

    def success(self, message: str, **kwargs: Any) -> None:
        """Log a success message (an INFO message with its own styling)."""
        if not self._should_log(LogLevel.INFO):
            return

        formatted_message = (
            f"{Style.DIM}[{self._timestamp()}]{Style.RESET_ALL} "
            f"{Fore.GREEN}SUCCESS{Style.RESET_ALL} "
            f"{Style.BRIGHT}{message}{Style.RESET_ALL}"
        )
        if kwargs:
            details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted_message += f" {Style.DIM}({details}){Style.RESET_ALL}"

        print(formatted_message)

    def section(self, title: str) -> None:
        """Print a section header."""
        if not self._should_log(LogLevel.INFO):
            return

        separator = "=" * 60
        print(f"\n{Fore.BLUE}{Style.BRIGHT}{separator}")
        print(f"  {title.upper()}")
        print(f"{separator}{Style.RESET_ALL}\n")

    def progress_start(self, message: str) -> None:
        if not self._should_log(LogLevel.INFO):
            return
        print(
            f"{Style.DIM}[{self._timestamp()}]{Style.RESET_ALL} "
            f"{Fore.BLUE}PROGRESS{Style.RESET_ALL} {message}...",
            flush=True,
        )
        self._progress_active = True

    def progress_update(self, message: str, percent: Optional[int] = None) -> None:
        """
        Print a progress line for the running operation.

        Args:
            message: Progress message
            percent: Optional completion percentage shown before the message
        """
        if not self._progress_active or not self._should_log(LogLevel.INFO):
            return

        prefix = f"{percent:>3}% " if percent is not None else ""
        print(
            f"{Style.DIM}[{self._timestamp()}]{Style.RESET_ALL} "
            f"{Fore.BLUE}PROGRESS{Style.RESET_ALL} {prefix}{message}",
            flush=True,
        )

    def progress_end(self, final_message: Optional[str] = None) -> None:
        if not self._progress_active:
            return
        self._progress_active = False
        if final_message:
            self.success(final_message)

    def scan_target(self, ip_range: str, candidates: int, truncated: bool) -> None:
        """
        Print the range being scanned.

        Args:
            ip_range: Range as requested
            candidates: Number of candidate addresses after expansion
            truncated: Whether the range was capped
        """
        if not self._should_log(LogLevel.INFO):
            return

        print(f"\n{Fore.CYAN}{Style.BRIGHT}SCAN TARGET{Style.RESET_ALL}")
        print(f"  IP Range:    {Style.BRIGHT}{ip_range}{Style.RESET_ALL}")
        print(f"  Candidates:  {Style.BRIGHT}{candidates}{Style.RESET_ALL}")
        if truncated:
            print(f"  {Fore.YELLOW}Range capped to the first {candidates} addresses{Style.RESET_ALL}")
        print()

    def host_table(self, hosts: List[Dict[str, Any]]) -> None:
        """
        Print discovered hosts as a table.

        Args:
            hosts: DiscoveredHost records (camelCase keys)
        """
        if not self._should_log(LogLevel.INFO) or not hosts:
            return

        widths = [width for _, width in self.HOST_TABLE_COLUMNS]
        header_row = " | ".join(f"{name:<{width}}" for name, width in self.HOST_TABLE_COLUMNS)
        print(f"{Style.BRIGHT}{header_row}{Style.RESET_ALL}")
        print(f"{Style.DIM}{'-+-'.join('-' * width for width in widths)}{Style.RESET_ALL}")

        for host in hosts:
            system_info = host.get("systemInfo") or {}
            values = [
                host.get("ipAddress", ""),
                host.get("hostname") or "-",
                system_info.get("os", "Unknown"),
                ", ".join(str(port) for port in system_info.get("openPorts", [])) or "-",
            ]
            print(" | ".join(f"{str(value)[:width]:<{width}}" for value, width in zip(values, widths)))


def set_log_level(level: LogLevel) -> None:
    """
    Set the level used by loggers created afterwards.

    Args:
        level: Minimum log level to display
    """
    global _default_level
    _default_level = level


def get_logger(name: str = "NetworkDiscovery") -> Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return Logger(name)
