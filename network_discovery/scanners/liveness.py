"""
Liveness detection for Network Discovery Module.

A host counts as alive when any commonly open TCP port accepts a connection.
No ICMP is used, so this works without raw socket privileges.
"""

from typing import Callable, List, Optional

from .base_scanner import BaseScanner
from .tcp_probe import check_tcp_connection
from ..config.config_loader import ScanConfig


ProbeFunction = Callable[[str, int, float], bool]


class LivenessDetector(BaseScanner):
    """
    Sequential TCP liveness check across an ordered port list.

    Ports are tried one at a time in configuration order and the check stops
    at the first port that accepts a connection.
    """

    scanner_type = "liveness"

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        logger=None,
        probe: ProbeFunction = check_tcp_connection,
    ):
        super().__init__(config, logger)
        self.probe = probe

    @property
    def ports(self) -> List[int]:
        return list(self.config.liveness_ports)

    def is_alive(self, ip: str) -> bool:
        """
        Check whether a host answers on any liveness port.

        Args:
            ip: IPv4 address to check

        Returns:
            True as soon as one port connects, False if none do
        """
        for port in self.config.liveness_ports:
            if self.probe(ip, port, self.config.connect_timeout):
                self._log_debug(f"{ip} is alive (port {port} open)")
                return True
        return False

    # Name kept for callers that think of this as a ping
    ping_host = is_alive

    def scan(self, target: str, **kwargs) -> bool:
        return self.is_alive(target)
