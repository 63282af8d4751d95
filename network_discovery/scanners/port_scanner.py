"""
TCP port scanner for Network Discovery Module.

Probes a fixed list of well-known service ports on a single host in
parallel, one worker per port.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from .base_scanner import BaseScanner
from .liveness import ProbeFunction
from .tcp_probe import check_tcp_connection
from ..config.config_loader import ScanConfig


class PortScanner(BaseScanner):
    """Connect-scan of the configured service ports."""

    scanner_type = "ports"

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        logger=None,
        probe: ProbeFunction = check_tcp_connection,
    ):
        super().__init__(config, logger)
        self.probe = probe

    def scan_ports(self, ip: str, ports: Optional[List[int]] = None) -> List[int]:
        """
        Find which service ports are open on a host.

        Args:
            ip: IPv4 address to scan
            ports: Ports to probe (defaults to the configured scan ports)

        Returns:
            Open ports sorted ascending
        """
        if not self._is_valid_target(ip):
            self._log_warning(f"Skipping port scan of invalid address: {ip!r}")
            return []

        ports = list(ports if ports is not None else self.config.scan_ports)
        if not ports:
            return []

        self._start_scan_timer()
        open_ports: List[int] = []

        # One worker per port
        with ThreadPoolExecutor(max_workers=len(ports)) as executor:
            future_to_port = {
                executor.submit(self.probe, ip, port, self.config.connect_timeout): port
                for port in ports
            }

            for future in as_completed(future_to_port):
                port = future_to_port[future]
                try:
                    if future.result():
                        open_ports.append(port)
                except Exception as e:
                    self._log_debug(f"Probe of {ip}:{port} raised: {e}")

        duration = self._end_scan_timer()
        open_ports.sort()
        self._log_debug(f"Port scan of {ip} finished in {duration:.2f}s, open: {open_ports}")
        return open_ports

    def scan(self, target: str, **kwargs) -> List[int]:
        return self.scan_ports(target, kwargs.get("ports"))
