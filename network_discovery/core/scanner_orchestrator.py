"""
Scan Orchestrator for Network Discovery Module.

This module provides the ScanOrchestrator class that drives one discovery
scan: validate the range, expand it to candidate addresses, then walk them
one by one checking liveness, gathering host details for live hosts,
persisting them and reporting progress.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .data_models import ScanProgress, ScanRequest, ScanState, ScanSummary, RangeExpansion
from .events import (
    EventBroadcaster, LoggingBroadcaster, SCAN_CANCELLED, SCAN_COMPLETED, SCAN_ERROR, SCAN_PROGRESS
)
from .host_inspector import HostInspector
from .range_expander import expand_ip_range, validate_ip_range
from ..config.config_loader import ScanConfig
from ..scanners.liveness import LivenessDetector
from ..utils.error_handler import (
    ErrorContext, ErrorHandler, ErrorSeverity, ErrorType, HostPersistenceError
)


class ScanOrchestrator:
    """
    Runs a single discovery scan from request to summary.

    Hosts are scanned sequentially with a short pause in between so the scan
    does not flood the network; only the port scan of a live host fans out.
    Failures on one host are recorded and the scan moves on to the next one.
    """

    def __init__(
        self,
        store=None,
        broadcaster: Optional[EventBroadcaster] = None,
        config: Optional[ScanConfig] = None,
        logger=None,
        liveness: Optional[LivenessDetector] = None,
        inspector: Optional[HostInspector] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scan orchestrator.

        Args:
            store: Persistence collaborator with create_discovered_host(record)
                (optional, hosts are only kept in the summary without one)
            broadcaster: Sink for progress events
            config: Scan tuning (ports, timeouts, delays)
            logger: Logger exposing info/warning/error/debug
            liveness: Liveness detector (built from config when omitted)
            inspector: Host inspector (built from config when omitted)
            cancel_event: Event that requests cooperative cancellation
        """
        self.config = config or ScanConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.store = store
        self.broadcaster = broadcaster or LoggingBroadcaster()
        self.liveness = liveness or LivenessDetector(self.config, self.logger)
        self.inspector = inspector or HostInspector(self.config, self.logger)
        self.cancel_event = cancel_event or threading.Event()
        self.error_handler = ErrorHandler(self.logger)

        self.state = ScanState.PENDING
        self.progress = ScanProgress()
        self.expansion: Optional[RangeExpansion] = None

    def run(self, request: ScanRequest) -> ScanSummary:
        """
        Execute the scan described by the request.

        Args:
            request: Validated or unvalidated scan request

        Returns:
            ScanSummary with the final state, counters and discovered hosts

        Raises:
            InvalidRangeError: If the range is malformed (before any probing)
        """
        started = time.monotonic()
        self.state = ScanState.VALIDATING
        ip_range = validate_ip_range(request.ip_range)

        summary = ScanSummary(ip_range=ip_range, state=self.state)
        self.logger.info(f"Starting network discovery for {ip_range}")

        try:
            self.state = ScanState.EXPANDING
            self.expansion = expand_ip_range(ip_range, self.config.large_subnet_limit, self.logger)
            summary.truncated = self.expansion.truncated
            self.progress = ScanProgress(total_hosts=len(self.expansion))
            self.logger.info(f"Generated {len(self.expansion)} IPs to scan from range: {ip_range}")

            self.state = ScanState.SCANNING
            self._scan_candidates(request, summary)

            if self.state == ScanState.CANCELLED:
                self._finish_cancelled(ip_range)
            else:
                self._finish_completed(request, ip_range, time.monotonic() - started)
        except Exception as e:
            self.state = ScanState.FAILED
            summary.error = str(e)
            self.logger.error(f"Network scan for {ip_range} failed: {e}")
            self.broadcaster.broadcast(SCAN_ERROR, {
                "message": f"Network scan failed: {e}",
                "error": str(e),
            })

        summary.state = self.state
        summary.total_scanned = self.progress.scanned_hosts
        summary.hosts_discovered = self.progress.discovered_hosts
        summary.duration_seconds = time.monotonic() - started
        summary.errors = list(self.error_handler.errors)
        if summary.errors:
            self.logger.warning(f"Errors during scan of {ip_range}: {self.error_handler.get_error_summary()}")
        return summary

    def cancel(self) -> None:
        """Ask the running scan to stop before its next host."""
        self.cancel_event.set()

    def _scan_candidates(self, request: ScanRequest, summary: ScanSummary) -> None:
        addresses = self.expansion.addresses
        total = len(addresses)

        for index, ip in enumerate(addresses):
            if self.cancel_event.is_set():
                self.state = ScanState.CANCELLED
                return

            self.progress.current_ip = ip
            record = self._scan_host(ip, request)
            self.progress.scanned_hosts += 1
            if record is not None:
                summary.hosts.append(record)

            if self._should_report(self.progress.scanned_hosts, total):
                percent = self.progress.progress_percent
                self.broadcaster.broadcast(SCAN_PROGRESS, self.progress.to_event(
                    f"Scanning {summary.ip_range} - {percent}% complete "
                    f"({self.progress.discovered_hosts} hosts found)"
                ))

            if index < total - 1 and self.config.inter_host_delay > 0:
                # Returns early when cancellation is requested during the pause
                self.cancel_event.wait(self.config.inter_host_delay)

    def _scan_host(self, ip: str, request: ScanRequest) -> Optional[Dict[str, Any]]:
        """Check one address; returns the host record if it is alive."""
        try:
            if not self.liveness.is_alive(ip):
                self.logger.debug(f"Host {ip} is not reachable")
                return None

            self.logger.info(f"Host {ip} is reachable, gathering details...")
            host = self.inspector.gather_host_info(ip, request)
        except Exception as e:
            self.error_handler.handle_error(e, ErrorContext(
                error_type=ErrorType.HOST_ERROR,
                severity=ErrorSeverity.MEDIUM,
                operation="scan_host",
                component="ScanOrchestrator",
                target=ip,
            ))
            return None

        self.progress.discovered_hosts += 1
        record = host.to_record()

        if self.store is not None:
            try:
                saved = self.store.create_discovered_host(record)
            except Exception as e:
                error = HostPersistenceError(f"Error saving discovered host {ip}: {e}")
                self.error_handler.handle_error(error, ErrorContext(
                    error_type=ErrorType.PERSISTENCE_ERROR,
                    severity=ErrorSeverity.HIGH,
                    operation="create_discovered_host",
                    component="ScanOrchestrator",
                    target=ip,
                ))
                return record
            self.logger.info(f"Discovered host saved: {ip} ({host.hostname or 'Unknown'})")
            if isinstance(saved, dict):
                return saved

        return record

    def _should_report(self, scanned: int, total: int) -> bool:
        percent = (scanned * 100) // total if total else 100
        return scanned % self.config.progress_every == 0 or percent % 10 == 0 or scanned == total

    def _finish_completed(self, request: ScanRequest, ip_range: str, duration: float) -> None:
        discovered = self.progress.discovered_hosts
        scanned = self.progress.scanned_hosts
        self.logger.info(
            f"Network scan completed. Found {discovered} hosts out of {scanned} scanned in range {ip_range}."
        )

        self.progress.completed = True
        self.broadcaster.broadcast(SCAN_PROGRESS, self.progress.to_event(
            f"Scan complete for {ip_range} - found {discovered} hosts"
        ))

        self.state = ScanState.COMPLETED
        self.broadcaster.broadcast(SCAN_COMPLETED, {
            "message": f"Network scan for {ip_range} completed successfully - found {discovered} hosts",
            "hostsDiscovered": discovered,
            "totalScanned": scanned,
            "ipRange": ip_range,
            "scanDetails": request.to_scan_details(),
            "durationSeconds": round(duration, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def _finish_cancelled(self, ip_range: str) -> None:
        self.logger.warning(
            f"Network scan for {ip_range} cancelled after "
            f"{self.progress.scanned_hosts} of {self.progress.total_hosts} hosts"
        )
        self.broadcaster.broadcast(SCAN_CANCELLED, {
            "message": f"Network scan for {ip_range} was cancelled",
            "hostsDiscovered": self.progress.discovered_hosts,
            "totalScanned": self.progress.scanned_hosts,
            "ipRange": ip_range,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
