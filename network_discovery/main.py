"""
Main entry point for the Network Discovery Module.

This module provides the command-line interface for running a discovery scan
in the foreground: argument parsing, configuration loading, optional MongoDB
persistence, JSON report output and graceful shutdown handling.
"""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .config.config_loader import ConfigLoader
from .core.data_models import (
    DEFAULT_PRIMARY_DNS, DEFAULT_SECONDARY_DNS, DnsSettings, ScanOptions, ScanRequest, ScanState, ScanSummary
)
from .core.events import EventBroadcaster, SCAN_CANCELLED, SCAN_COMPLETED, SCAN_ERROR, SCAN_PROGRESS
from .core.range_expander import expand_ip_range
from .core.scanner_orchestrator import ScanOrchestrator
from .utils.error_handler import InvalidRangeError
from .utils.json_reporter import JSONReporter
from .utils.logger import Logger, LogLevel, get_logger, set_log_level


EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INVALID_RANGE = 2


class ConsoleBroadcaster(EventBroadcaster):
    """Renders scan events as console progress lines."""

    def __init__(self, logger: Logger):
        self.logger = logger

    def broadcast(self, event_type: str, data: Dict[str, Any]) -> None:
        if event_type == SCAN_PROGRESS:
            if data.get("completed"):
                self.logger.progress_end(data["message"])
            else:
                self.logger.progress_update(data["message"], data.get("progressPercent"))
        elif event_type == SCAN_COMPLETED:
            self.logger.success(data["message"])
        elif event_type == SCAN_CANCELLED:
            self.logger.warning(data["message"])
        elif event_type == SCAN_ERROR:
            self.logger.error(data["message"])


class NetworkDiscoveryApp:
    """
    Main application class for Network Discovery Module.

    Handles CLI interface and application lifecycle.
    """

    def __init__(self):
        """Initialize the application."""
        self.logger = get_logger(__name__)
        self.cancel_event = threading.Event()
        self.store = None

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        """
        Handle shutdown signals gracefully.

        The first signal asks the running scan to stop before its next host;
        a second one terminates immediately.
        """
        signal_names = {signal.SIGINT: "SIGINT", signal.SIGTERM: "SIGTERM"}
        signal_name = signal_names.get(signum, f"Signal {signum}")

        if not self.cancel_event.is_set():
            self.logger.warning(f"Received {signal_name} - stopping after the current host...")
            self.cancel_event.set()
        else:
            self.logger.error("Force shutdown requested - terminating immediately")
            sys.exit(EXIT_FAILURE)

    def _cleanup(self) -> None:
        if self.store is not None:
            self.store.disconnect()
            self.store = None

    def _open_store(self, mongo_uri: str, database: str, verbose: bool = False):
        # Imported here so scans without persistence never touch pymongo
        from storage_layer import DiscoveredHostStore, setup_logging

        setup_logging(level="DEBUG" if verbose else "WARNING")
        store = DiscoveredHostStore(mongo_uri, database)
        store.connect()
        self.logger.info(f"Persisting discovered hosts to MongoDB database '{database}'")
        return store

    @staticmethod
    def build_request(args: argparse.Namespace) -> ScanRequest:
        """Translate parsed arguments into a scan request."""
        use_dns = args.dns or bool(args.primary_dns or args.secondary_dns)
        dns_settings = None
        if args.primary_dns or args.secondary_dns:
            dns_settings = DnsSettings(
                primary_dns=args.primary_dns or DEFAULT_PRIMARY_DNS,
                secondary_dns=args.secondary_dns or DEFAULT_SECONDARY_DNS,
            )

        return ScanRequest(
            ip_range=args.ip_range.strip(),
            scan_options=ScanOptions(
                use_dns=use_dns,
                scan_for_usb=args.usb,
                scan_for_serial_numbers=args.serials,
                scan_for_hardware_details=args.hardware,
                scan_for_installed_software=args.software,
            ),
            dns_settings=dns_settings,
        )

    def run(self, args: argparse.Namespace) -> int:
        """
        Run the network discovery application.

        Args:
            args: Parsed command line arguments

        Returns:
            int: Exit code (0 success, 1 failure, 2 invalid range)
        """
        try:
            config_loader = ConfigLoader(args.config_dir, self.logger)
            config = config_loader.load_scan_config()

            request = self.build_request(args)
            expansion = expand_ip_range(request.ip_range, config.large_subnet_limit)

            if args.mongo_uri:
                self.store = self._open_store(args.mongo_uri, args.database, args.verbose)

            orchestrator = ScanOrchestrator(
                store=self.store,
                broadcaster=ConsoleBroadcaster(self.logger),
                config=config,
                logger=self.logger,
                cancel_event=self.cancel_event,
            )

            self.logger.section("NETWORK DISCOVERY SCAN")
            self.logger.scan_target(expansion.ip_range, len(expansion), expansion.truncated)
            self.logger.progress_start(f"Scanning {expansion.ip_range}")
            summary = orchestrator.run(request)
            self._report(summary)

            if args.output:
                output_path = Path(args.output)
                reporter = JSONReporter(str(output_path.parent), self.logger)
                reporter.generate_report(summary, request, output_path.name)

            if summary.state == ScanState.FAILED:
                return EXIT_FAILURE
            return EXIT_SUCCESS

        except InvalidRangeError as e:
            self.logger.error(e.message)
            return EXIT_INVALID_RANGE
        except Exception as e:
            self.logger.error(f"Network discovery failed: {str(e)}", exception=e)
            return EXIT_FAILURE
        finally:
            self._cleanup()

    def _report(self, summary: ScanSummary) -> None:
        self.logger.section("DISCOVERED HOSTS")
        self.logger.host_table(summary.hosts)
        if summary.errors:
            self.logger.warning(f"{len(summary.errors)} host(s) reported errors during the scan")
            for error in summary.errors:
                self.logger.debug(error)
        self.logger.info(
            f"Scanned {summary.total_scanned} addresses in {summary.duration_seconds:.1f}s, "
            f"found {summary.hosts_discovered} hosts ({summary.state.value})"
        )


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="network_discovery",
        description="Network Discovery Module - TCP host discovery and fingerprinting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m network_discovery 192.168.1.0/24                    # Scan a /24
  python -m network_discovery 10.0.0.10 --dns --software        # Single host with details
  python -m network_discovery 192.168.1.0/28 --output scan.json # Write a JSON report
  python -m network_discovery 192.168.1.0/24 --mongo-uri mongodb://localhost:27017
        """
    )

    parser.add_argument(
        "ip_range",
        help="CIDR block or single IPv4 address to scan (e.g. 192.168.1.0/24)"
    )

    parser.add_argument("--dns", action="store_true", help="Resolve hostnames with reverse DNS")
    parser.add_argument("--primary-dns", type=str, help="Primary DNS server for reverse lookups")
    parser.add_argument("--secondary-dns", type=str, help="Secondary DNS server for reverse lookups")
    parser.add_argument("--hardware", action="store_true", help="Collect hardware detail placeholders")
    parser.add_argument("--usb", action="store_true", help="Collect USB device placeholders")
    parser.add_argument("--serials", action="store_true", help="Collect serial number placeholders")
    parser.add_argument("--software", action="store_true", help="Report installed software detected from ports")

    parser.add_argument(
        "--config-dir",
        type=str,
        help="Directory containing scan_config.yml. Defaults to network_discovery/config/"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Write the discovered hosts to this JSON file"
    )

    parser.add_argument(
        "--mongo-uri",
        type=str,
        help="MongoDB connection string; discovered hosts are persisted when given"
    )

    parser.add_argument(
        "--database",
        type=str,
        default="asset_inventory",
        help="MongoDB database name (default: asset_inventory)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Network Discovery Module 1.0.0"
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the Network Discovery Module.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_log_level(LogLevel.DEBUG)

    app = NetworkDiscoveryApp()
    return app.run(args)


if __name__ == "__main__":
    sys.exit(main())
