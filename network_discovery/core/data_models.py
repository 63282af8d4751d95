"""
Core data models and enums for the Network Discovery Module.

This module defines the data structures used throughout a discovery scan:
the immutable scan request, the per-host information gathered by the
inspector, progress snapshots and the final scan summary.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_PRIMARY_DNS = "8.8.8.8"
DEFAULT_SECONDARY_DNS = "8.8.4.4"

SCAN_SOURCE = "network-scan"


class ScanState(Enum):
    """Lifecycle of a single scan run."""
    PENDING = "pending"
    VALIDATING = "validating"
    EXPANDING = "expanding"
    SCANNING = "scanning"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanState.COMPLETED, ScanState.FAILED, ScanState.CANCELLED)


@dataclass(frozen=True)
class ScanOptions:
    """Independent toggles controlling how much is gathered per live host."""
    use_dns: bool = False
    scan_for_usb: bool = False
    scan_for_serial_numbers: bool = False
    scan_for_hardware_details: bool = False
    scan_for_installed_software: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "scanForUSB": self.scan_for_usb,
            "scanForSerialNumbers": self.scan_for_serial_numbers,
            "scanForHardwareDetails": self.scan_for_hardware_details,
            "scanForInstalledSoftware": self.scan_for_installed_software,
            "useDNS": self.use_dns,
        }


@dataclass(frozen=True)
class DnsSettings:
    """Custom DNS servers used for reverse lookups."""
    primary_dns: str = DEFAULT_PRIMARY_DNS
    secondary_dns: str = DEFAULT_SECONDARY_DNS

    @property
    def servers(self) -> List[str]:
        return [server for server in (self.primary_dns, self.secondary_dns) if server]

    def to_dict(self) -> Dict[str, str]:
        return {"primaryDNS": self.primary_dns, "secondaryDNS": self.secondary_dns}


@dataclass(frozen=True)
class MonitoringSettings:
    """External monitoring (Zabbix) integration details supplied with a scan."""
    url: str
    api_key: str = field(repr=False)


@dataclass(frozen=True)
class ScanRequest:
    """
    Parameters of one scan run. Immutable once the scan starts.

    Attributes:
        ip_range: CIDR block or single IPv4 address to scan
        scan_options: What to gather for each live host
        dns_settings: Custom DNS servers, if any were requested
        monitoring: Zabbix integration details, if enabled
        start_time: When the request was accepted
    """
    ip_range: str
    scan_options: ScanOptions = field(default_factory=ScanOptions)
    dns_settings: Optional[DnsSettings] = None
    monitoring: Optional[MonitoringSettings] = None
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ScanRequest":
        """
        Build a request from the JSON body accepted by the scan endpoint.

        DNS settings are only kept when useDNS is set and at least one server
        is given; monitoring is only enabled when the flag, URL and API key
        are all present.

        Args:
            payload: Request body with camelCase keys

        Returns:
            Normalized ScanRequest
        """
        use_dns = bool(payload.get("useDNS"))
        options = ScanOptions(
            use_dns=use_dns,
            scan_for_usb=bool(payload.get("scanForUSB")),
            scan_for_serial_numbers=bool(payload.get("scanForSerialNumbers")),
            scan_for_hardware_details=bool(payload.get("scanForHardwareDetails")),
            scan_for_installed_software=bool(payload.get("scanForInstalledSoftware")),
        )

        dns_settings = None
        primary_dns = payload.get("primaryDNS")
        secondary_dns = payload.get("secondaryDNS")
        if use_dns and (primary_dns or secondary_dns):
            dns_settings = DnsSettings(
                primary_dns=primary_dns or DEFAULT_PRIMARY_DNS,
                secondary_dns=secondary_dns or DEFAULT_SECONDARY_DNS,
            )

        monitoring = None
        if payload.get("useZabbix") and payload.get("zabbixUrl") and payload.get("zabbixApiKey"):
            monitoring = MonitoringSettings(url=payload["zabbixUrl"], api_key=payload["zabbixApiKey"])

        return cls(
            ip_range=str(payload.get("ipRange", "")).strip(),
            scan_options=options,
            dns_settings=dns_settings,
            monitoring=monitoring,
        )

    @property
    def resolve_hostnames(self) -> bool:
        return self.scan_options.use_dns or self.dns_settings is not None

    def to_scan_details(self) -> Dict[str, Any]:
        """Echo of the normalized request, as returned to API clients."""
        return {
            "ipRange": self.ip_range,
            "scanOptions": self.scan_options.to_dict(),
            "usingZabbix": self.monitoring is not None,
            "dnsSettings": self.dns_settings.to_dict() if self.dns_settings else None,
            "startTime": self.start_time.isoformat(),
        }


@dataclass(frozen=True)
class DetailResult:
    """
    Outcome of a best-effort detail probe.

    Either the data was observed (available) or it could not be collected
    without credentials (unavailable), in which case the reason and the
    management channel that would provide it are recorded.
    """
    available: bool
    data: Any = None
    reason: Optional[str] = None
    channel: Optional[str] = None

    @classmethod
    def of(cls, data: Any) -> "DetailResult":
        return cls(available=True, data=data)

    @classmethod
    def unavailable(cls, reason: str, channel: Optional[str] = None) -> "DetailResult":
        return cls(available=False, reason=reason, channel=channel)

    def to_dict(self) -> Dict[str, Any]:
        if self.available:
            return {"status": "available", "data": self.data}
        return {"status": "unavailable", "reason": self.reason, "channel": self.channel}


@dataclass
class RangeExpansion:
    """Candidate addresses produced from an IP range."""
    ip_range: str
    addresses: List[str]
    prefix: int = 32
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.addresses)

    def __iter__(self):
        return iter(self.addresses)


@dataclass
class HostInfo:
    """
    Everything gathered about one live host.

    Attributes:
        ip_address: Address of the host
        hostname: Reverse DNS name, if resolved
        mac_address: Always None for TCP discovery
        open_ports: Sorted list of open TCP ports
        system_info: OS guess, web server and installed software
        hardware_details: Hardware, USB and serial number placeholders
    """
    ip_address: str
    hostname: Optional[str] = None
    mac_address: Optional[str] = None
    open_ports: List[int] = field(default_factory=list)
    system_info: Dict[str, Any] = field(default_factory=dict)
    hardware_details: Dict[str, Any] = field(default_factory=dict)

    def to_record(self, seen_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Payload for DiscoveredHostStore.create_discovered_host."""
        seen_at = seen_at or datetime.now(timezone.utc)
        return {
            "ipAddress": self.ip_address,
            "macAddress": self.mac_address,
            "hostname": self.hostname,
            "status": "online",
            "source": SCAN_SOURCE,
            "systemInfo": dict(self.system_info),
            "hardwareDetails": dict(self.hardware_details),
            "lastSeen": seen_at,
            "createdAt": seen_at,
        }


@dataclass
class ScanProgress:
    """Snapshot of a running scan."""
    total_hosts: int = 0
    scanned_hosts: int = 0
    discovered_hosts: int = 0
    current_ip: Optional[str] = None
    completed: bool = False

    @property
    def progress_percent(self) -> int:
        if self.completed:
            return 100
        if self.total_hosts <= 0:
            return 0
        return (self.scanned_hosts * 100) // self.total_hosts

    def to_event(self, message: str) -> Dict[str, Any]:
        event = {
            "message": message,
            "progressPercent": self.progress_percent,
            "scannedHosts": self.scanned_hosts,
            "discoveredHosts": self.discovered_hosts,
            "currentIp": self.current_ip,
        }
        if self.completed:
            event["completed"] = True
        return event

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalHosts": self.total_hosts,
            "scannedHosts": self.scanned_hosts,
            "discoveredHosts": self.discovered_hosts,
            "progressPercent": self.progress_percent,
            "currentIp": self.current_ip,
            "completed": self.completed,
        }


@dataclass
class ScanSummary:
    """Result of a finished scan run."""
    ip_range: str
    state: ScanState
    total_scanned: int = 0
    hosts_discovered: int = 0
    duration_seconds: float = 0.0
    truncated: bool = False
    hosts: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ipRange": self.ip_range,
            "state": self.state.value,
            "totalScanned": self.total_scanned,
            "hostsDiscovered": self.hosts_discovered,
            "durationSeconds": round(self.duration_seconds, 3),
            "truncated": self.truncated,
            "errors": list(self.errors),
            "error": self.error,
        }
