"""
Host information aggregation for Network Discovery Module.

Combines reverse DNS, the service port scan and OS fingerprinting into one
HostInfo per live host, plus the optional hardware, USB, serial number and
software details requested with the scan.

Hardware, USB and serial data cannot be read without credentials, so those
fields record which management channel (SNMP, WMI or SSH) would provide them.
MAC addresses are never available over TCP and stay None.
"""

from typing import Any, Dict, List, Optional

from .data_models import DetailResult, HostInfo, ScanRequest
from .os_fingerprint import SSH_PORT, WINRM_PORTS, detect_operating_system
from ..config.config_loader import ScanConfig
from ..scanners.banner_grabber import BannerGrabber
from ..scanners.port_scanner import PortScanner
from ..utils.error_handler import DnsResolutionError


SNMP_PORT = 161

# Port -> (software name, software type), in reporting order
PORT_SOFTWARE_MAP = [
    ((80, 443), "Web Server", "service"),
    ((22,), "SSH Server", "service"),
    ((3389,), "Remote Desktop Services", "service"),
    ((1433,), "Microsoft SQL Server", "database"),
    ((5432,), "PostgreSQL", "database"),
]

HARDWARE_FIELDS = ("manufacturer", "model", "cpu", "memory", "disks")


def management_channel(open_ports: List[int]) -> Optional[str]:
    """Return the authenticated channel a host exposes, by preference."""
    if SNMP_PORT in open_ports:
        return "SNMP"
    if any(port in open_ports for port in WINRM_PORTS):
        return "WMI"
    if SSH_PORT in open_ports:
        return "SSH"
    return None


class HostInspector:
    """Gathers everything the scan is configured to collect about one host."""

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        logger=None,
        port_scanner: Optional[PortScanner] = None,
        banner_grabber: Optional[BannerGrabber] = None,
    ):
        self.config = config or ScanConfig()
        self.logger = logger
        self.port_scanner = port_scanner or PortScanner(self.config, logger)
        self.banner_grabber = banner_grabber or BannerGrabber(self.config, logger)

    def gather_host_info(self, ip: str, request: ScanRequest) -> HostInfo:
        """
        Collect host details for a live address.

        Args:
            ip: Address confirmed alive by the liveness detector
            request: Scan request whose options select the optional details

        Returns:
            HostInfo ready to be persisted
        """
        host = HostInfo(ip_address=ip)
        options = request.scan_options

        if request.resolve_hostnames:
            host.hostname = self._resolve_hostname(ip, request)

        host.open_ports = self.port_scanner.scan_ports(ip)
        host.system_info = detect_operating_system(ip, host.open_ports, self.banner_grabber, self.logger)
        host.system_info["openPorts"] = list(host.open_ports)

        if options.scan_for_hardware_details:
            host.hardware_details.update(self.gather_hardware_details(host.open_ports, host.system_info))
        if options.scan_for_usb:
            host.hardware_details["usb"] = self.scan_usb_devices(host.open_ports).to_dict()
        if options.scan_for_serial_numbers:
            host.hardware_details["serialNumbers"] = self.gather_serial_numbers(host.open_ports).to_dict()
        if options.scan_for_installed_software:
            detected, inventory = self.scan_installed_software(host.open_ports)
            host.system_info["installedSoftware"] = detected.to_dict()
            host.system_info["softwareInventory"] = inventory.to_dict()

        return host

    def _resolve_hostname(self, ip: str, request: ScanRequest) -> Optional[str]:
        servers = request.dns_settings.servers if request.dns_settings else None
        try:
            hostname = self.banner_grabber.resolve_hostname(ip, servers)
        except DnsResolutionError as e:
            if self.logger:
                self.logger.debug(f"DNS resolution failed for {ip}: {e.message}")
            return None
        if self.logger:
            self.logger.debug(f"Resolved hostname for {ip}: {hostname}")
        return hostname

    @staticmethod
    def gather_hardware_details(open_ports: List[int], system_info: Dict[str, Any]) -> Dict[str, Any]:
        """Describe how each hardware field could be read from this host."""
        os_name = system_info.get("os", "")

        if SNMP_PORT in open_ports:
            result = DetailResult.unavailable("Available via SNMP (community string required)", "SNMP")
        elif "Windows" in os_name and any(port in open_ports for port in WINRM_PORTS):
            result = DetailResult.unavailable("Available via WMI (authentication required)", "WMI")
        elif "Linux" in os_name and SSH_PORT in open_ports:
            result = DetailResult.unavailable("Available via SSH (authentication required)", "SSH")
        else:
            result = DetailResult.unavailable("Hardware details require authenticated access")

        return {field_name: result.to_dict() for field_name in HARDWARE_FIELDS}

    @staticmethod
    def scan_usb_devices(open_ports: List[int]) -> DetailResult:
        return DetailResult.unavailable(
            "USB device scanning requires authenticated access (SNMP/WMI/SSH)",
            management_channel(open_ports),
        )

    @staticmethod
    def gather_serial_numbers(open_ports: List[int]) -> DetailResult:
        return DetailResult.unavailable(
            "Serial number collection requires authenticated access",
            management_channel(open_ports),
        )

    @staticmethod
    def scan_installed_software(open_ports: List[int]):
        """
        Report services implied by open ports.

        Returns:
            Tuple of (detected services, full inventory placeholder)
        """
        detected = []
        for ports, name, software_type in PORT_SOFTWARE_MAP:
            if any(port in open_ports for port in ports):
                detected.append({"name": name, "type": software_type, "detection": "port-based"})

        inventory = DetailResult.unavailable(
            "Complete software inventory requires authenticated access (SNMP/WMI/SSH)",
            management_channel(open_ports),
        )
        return DetailResult.of(detected), inventory
