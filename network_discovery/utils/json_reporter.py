"""
JSON Report Generator for Network Discovery Module.

This module writes the outcome of a discovery scan to a JSON file, with
timestamp-based file naming and collision handling.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.data_models import ScanRequest, ScanSummary
from .logger import get_logger


class JSONReporter:
    """
    Handles generation of JSON reports from discovery scan results.

    This class is responsible for:
    - Converting a scan summary and its hosts to JSON format
    - Managing output file naming with timestamp-based collision handling
    """

    def __init__(self, output_directory: str = "network_discovery/results", logger=None):
        """
        Initialize the JSON reporter.

        Args:
            output_directory: Directory where JSON reports will be saved
            logger: Logger instance (defaults to the module logger)
        """
        self.output_directory = Path(output_directory)
        self.logger = logger or get_logger(__name__)

        self.output_directory.mkdir(parents=True, exist_ok=True)

    def generate_report(
        self,
        summary: ScanSummary,
        request: ScanRequest,
        filename: Optional[str] = None,
    ) -> str:
        """
        Write a JSON report for a finished scan.

        Args:
            summary: Scan summary including discovered host records
            request: Request the scan was started with
            filename: Explicit file name; generated from the time when omitted

        Returns:
            str: Path to the generated JSON file

        Raises:
            ValueError: If summary is missing
            IOError: If file cannot be written
        """
        if summary is None:
            raise ValueError("Scan summary cannot be None")

        json_data = self.build_report(summary, request)

        if filename:
            filepath = self.output_directory / filename
        else:
            filepath = self._handle_file_collision(
                self.output_directory / self._generate_filename(datetime.now(timezone.utc))
            )

        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(json_data, f, indent=2, ensure_ascii=False, default=str)
        except IOError as e:
            self.logger.error(f"Failed to write JSON report to {filepath}: {e}")
            raise

        self.logger.info(f"JSON report successfully generated: {filepath}")
        return str(filepath)

    def build_report(self, summary: ScanSummary, request: ScanRequest) -> Dict[str, Any]:
        """
        Convert a scan summary to a JSON-serializable dictionary.

        Hosts are sorted by IP address for consistent output.
        """
        hosts = sorted(summary.hosts, key=lambda host: self._ip_sort_key(host.get("ipAddress", "")))
        return {
            "scan": summary.to_dict(),
            "scanDetails": request.to_scan_details(),
            "hosts": hosts,
        }

    def _generate_filename(self, timestamp: datetime) -> str:
        # Format: network_discovery_YYYYMMDD_HHMMSS.json
        timestamp_str = timestamp.strftime("%Y%m%d_%H%M%S")
        return f"network_discovery_{timestamp_str}.json"

    def _handle_file_collision(self, filepath: Path) -> Path:
        """
        Handle filename collisions by adding incremental suffix.

        Args:
            filepath: Original file path

        Returns:
            Path: Unique file path
        """
        if not filepath.exists():
            return filepath

        base_name = filepath.stem
        extension = filepath.suffix
        counter = 1

        while True:
            new_name = f"{base_name}_{counter:03d}{extension}"
            new_filepath = filepath.parent / new_name

            if not new_filepath.exists():
                self.logger.info(f"File collision detected, using filename: {new_name}")
                return new_filepath

            counter += 1

            if counter > 999:
                raise IOError(f"Too many file collisions for {filepath}")

    @staticmethod
    def _ip_sort_key(ip_address: str) -> tuple:
        try:
            return tuple(int(part) for part in ip_address.split("."))
        except ValueError:
            return (999, 999, 999, 999)
