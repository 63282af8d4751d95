"""
Data models for the asset inventory storage layer

This module defines the documents persisted by DiscoveredHostStore:
DiscoveredHostDocument for hosts found by network scans and AssetDocument for
hosts promoted to the asset inventory.
"""

import ipaddress
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional


AssetType = Literal["physical_host", "vm", "network_device"]
HostStatus = Literal["online", "imported"]

VALID_HOST_STATUSES = ("online", "imported")

# API field name -> document attribute, for the fields a client may set
HOST_API_FIELDS = {
    "ipAddress": "ip_address",
    "macAddress": "mac_address",
    "hostname": "hostname",
    "status": "status",
    "source": "source",
    "systemInfo": "system_info",
    "hardwareDetails": "hardware_details",
    "lastSeen": "last_seen",
    "createdAt": "created_at",
}

MUTABLE_HOST_FIELDS = ("macAddress", "hostname", "status", "systemInfo", "hardwareDetails", "lastSeen")


def _parse_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    raise ValueError(f"{field_name} must be an ISO 8601 datetime")


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class DiscoveredHostDocument:
    """
    A host found alive by a network scan.

    Attributes:
        ip_address: IPv4 address of the host
        hostname: Reverse DNS name, if resolved
        mac_address: MAC address (never available from TCP scans)
        status: 'online' when discovered, 'imported' once promoted to an asset
        source: Where the record came from ('network-scan' for the scanner)
        system_info: OS guess, web server, open ports and software
        hardware_details: Hardware, USB and serial number placeholders
        last_seen: When the host last answered
        created_at: When the record was created
        id: Integer id assigned by the store
    """
    ip_address: str
    hostname: Optional[str] = None
    mac_address: Optional[str] = None
    status: HostStatus = "online"
    source: str = "network-scan"
    system_info: Dict[str, Any] = field(default_factory=dict)
    hardware_details: Dict[str, Any] = field(default_factory=dict)
    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        now = datetime.now(timezone.utc)
        if self.created_at is None:
            self.created_at = now
        if self.last_seen is None:
            self.last_seen = self.created_at
        self._validate()

    def _validate(self) -> None:
        """
        Validate the document fields.

        Raises:
            ValueError: If any field is invalid
        """
        if not self.ip_address or not isinstance(self.ip_address, str):
            raise ValueError("ipAddress must be a non-empty string")
        try:
            ipaddress.IPv4Address(self.ip_address)
        except ValueError:
            raise ValueError(f"ipAddress '{self.ip_address}' is not a valid IPv4 address")

        if self.status not in VALID_HOST_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(VALID_HOST_STATUSES)}")

        for name, value in (("hostname", self.hostname), ("macAddress", self.mac_address)):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{name} must be a string or null")

        if not isinstance(self.source, str) or not self.source:
            raise ValueError("source must be a non-empty string")

        if not isinstance(self.system_info, dict):
            raise ValueError("systemInfo must be an object")
        if not isinstance(self.hardware_details, dict):
            raise ValueError("hardwareDetails must be an object")

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "DiscoveredHostDocument":
        """
        Build a document from a camelCase payload (API body or scanner record).

        Unknown keys are ignored; an 'id' key is never taken from the payload.

        Raises:
            ValueError: If the payload is invalid
        """
        if not isinstance(payload, dict):
            raise ValueError("Discovered host payload must be an object")
        if not payload.get("ipAddress"):
            raise ValueError("ipAddress is required")

        kwargs = {
            attribute: payload[api_name]
            for api_name, attribute in HOST_API_FIELDS.items()
            if api_name in payload
        }
        kwargs["last_seen"] = _parse_datetime(kwargs.get("last_seen"), "lastSeen")
        kwargs["created_at"] = _parse_datetime(kwargs.get("created_at"), "createdAt")
        if kwargs.get("system_info") is None:
            kwargs.pop("system_info", None)
        if kwargs.get("hardware_details") is None:
            kwargs.pop("hardware_details", None)
        return cls(**kwargs)

    @classmethod
    def from_mongo(cls, doc: Dict[str, Any]) -> "DiscoveredHostDocument":
        """Rebuild a document read from the discovered_hosts collection."""
        return cls(
            id=doc.get("_id"),
            ip_address=doc["ip_address"],
            hostname=doc.get("hostname"),
            mac_address=doc.get("mac_address"),
            status=doc.get("status", "online"),
            source=doc.get("source", "network-scan"),
            system_info=doc.get("system_info") or {},
            hardware_details=doc.get("hardware_details") or {},
            last_seen=doc.get("last_seen"),
            created_at=doc.get("created_at"),
        )

    def apply_patch(self, patch: Dict[str, Any]) -> "DiscoveredHostDocument":
        """
        Return a copy with the mutable fields of a camelCase patch applied.

        Raises:
            ValueError: If the patch touches an immutable field or is invalid
        """
        if not isinstance(patch, dict):
            raise ValueError("Update payload must be an object")

        immutable = [key for key in patch if key not in MUTABLE_HOST_FIELDS]
        if immutable:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(immutable))}")

        values = self.to_mongo_dict()
        values.pop("_id", None)
        for api_name, value in patch.items():
            attribute = HOST_API_FIELDS[api_name]
            if attribute == "last_seen":
                value = _parse_datetime(value, api_name)
            values[attribute] = value
        return DiscoveredHostDocument(id=self.id, **values)

    def to_mongo_dict(self) -> Dict[str, Any]:
        """
        Convert the document to MongoDB format.

        Returns:
            Dictionary formatted for the discovered_hosts collection
        """
        doc = {
            "ip_address": self.ip_address,
            "hostname": self.hostname,
            "mac_address": self.mac_address,
            "status": self.status,
            "source": self.source,
            "system_info": dict(self.system_info),
            "hardware_details": dict(self.hardware_details),
            "last_seen": self.last_seen,
            "created_at": self.created_at,
        }
        if self.id is not None:
            doc["_id"] = self.id
        return doc

    def to_api_dict(self) -> Dict[str, Any]:
        """camelCase representation returned by the HTTP API."""
        return {
            "id": self.id,
            "ipAddress": self.ip_address,
            "macAddress": self.mac_address,
            "hostname": self.hostname,
            "status": self.status,
            "source": self.source,
            "systemInfo": self.system_info,
            "hardwareDetails": self.hardware_details,
            "lastSeen": _isoformat(self.last_seen),
            "createdAt": _isoformat(self.created_at),
        }


@dataclass
class AssetDocument:
    """
    An entry of the asset inventory.

    Attributes:
        asset_id: Unique identifier for the asset
        asset_type: Type of asset from AssetType literal
        data: Asset metadata (name, tag, category, network and OS details...)
        hostname: Hostname for machine-type assets
        last_updated: Timestamp of last update (auto-set if None)
    """
    asset_id: str
    asset_type: AssetType
    data: Dict[str, Any]
    hostname: Optional[str] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.last_updated is None:
            self.last_updated = datetime.now(timezone.utc)
        self._validate()

    def _validate(self) -> None:
        """
        Validate the asset document fields.

        Raises:
            ValueError: If any field is invalid
        """
        if not self.asset_id or not isinstance(self.asset_id, str):
            raise ValueError("asset_id must be a non-empty string")

        if not re.match(r'^[a-zA-Z0-9][a-zA-Z0-9_-]*$', self.asset_id):
            raise ValueError("asset_id must start with alphanumeric character and contain only alphanumeric, hyphens, and underscores")

        if not isinstance(self.data, dict):
            raise ValueError("data must be a dictionary")

        if self.hostname is not None and (not isinstance(self.hostname, str) or not self.hostname.strip()):
            raise ValueError("hostname must be a non-empty string")

    @classmethod
    def from_discovered_host(cls, host: DiscoveredHostDocument) -> "AssetDocument":
        """
        Build the inventory asset for a discovered host.

        The asset id is derived from the IP address, so importing the same
        host twice updates the existing asset.
        """
        hardware = host.hardware_details or {}
        now = datetime.now(timezone.utc)
        return cls(
            asset_id=f"host-{host.ip_address.replace('.', '-')}",
            asset_type="physical_host",
            hostname=host.hostname or host.ip_address,
            data={
                "name": host.hostname or host.ip_address,
                "status": "available",
                "asset_tag": f"DISC-{int(now.timestamp() * 1000)}",
                "category": "computer",
                "ip_address": host.ip_address,
                "mac_address": host.mac_address,
                "manufacturer": _observed_value(hardware.get("manufacturer")),
                "model": _observed_value(hardware.get("model")),
                "serial_number": _observed_value(hardware.get("serialNumbers")),
                "os_type": (host.system_info or {}).get("os"),
                "open_ports": (host.system_info or {}).get("openPorts", []),
                "discovered_host_id": host.id,
                "description": f"Imported from network discovery: {host.ip_address}",
            },
            last_updated=now,
        )

    def to_mongo_dict(self) -> Dict[str, Any]:
        """
        Convert the asset document to MongoDB format.

        Returns:
            Dictionary formatted for the assets collection
        """
        doc = {
            "_id": self.asset_id,
            "asset_type": self.asset_type,
            "last_updated": self.last_updated,
            "data": self.data.copy(),
        }
        if self.hostname:
            doc["hostname"] = self.hostname
        return doc

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "assetId": self.asset_id,
            "assetType": self.asset_type,
            "hostname": self.hostname,
            "lastUpdated": _isoformat(self.last_updated),
            "data": self.data.copy(),
        }


def _observed_value(detail: Any) -> Any:
    """Unwrap a scanner detail field; placeholders for unavailable data become None."""
    if isinstance(detail, dict) and "status" in detail:
        return detail.get("data") if detail.get("status") == "available" else None
    return detail
