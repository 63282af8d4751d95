"""
Banner and hostname collection for Network Discovery Module.

Collects the unauthenticated evidence used for fingerprinting: raw TCP
service banners, HTTP response headers and reverse DNS names.
"""

import socket
import time
from typing import Dict, List, Optional

import dns.exception
import dns.resolver
import dns.reversename
import requests
import urllib3

from .base_scanner import BaseScanner
from .tcp_probe import open_tcp_connection
from ..config.config_loader import ScanConfig
from ..utils.error_handler import (
    DnsResolutionError, ProbeConnectionError, ProbeTimeoutError
)

# Devices on a LAN rarely carry valid certificates
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

# Services that greet the client on connect; everything else gets a nudge
SILENT_PROBE_PORTS = (21, 22)

HTTP_PORTS = (80, 443)


class BannerGrabber(BaseScanner):
    """Reads service banners and resolves hostnames for a single host."""

    scanner_type = "banner"

    def __init__(self, config: Optional[ScanConfig] = None, logger=None, session=None):
        super().__init__(config, logger)
        self.session = session or requests

    def grab_banner(self, ip: str, port: int) -> Optional[str]:
        """
        Read the greeting a TCP service sends.

        Sends CRLF unless the port is FTP or SSH, then reads until the byte
        cap is reached or the overall timeout expires. Once the grace period
        measured from the connection attempt has passed, any data already
        received is returned without waiting further.

        Args:
            ip: Target IPv4 address
            port: Target TCP port

        Returns:
            Decoded banner text, or None if nothing was received
        """
        timeout = self.config.banner_timeout
        max_bytes = self.config.banner_max_bytes

        grace_deadline = time.monotonic() + self.config.banner_grace_period
        try:
            sock = open_tcp_connection(ip, port, timeout)
        except (ProbeTimeoutError, ProbeConnectionError) as e:
            self._log_debug(f"No banner from {ip}:{port}: {e.message}")
            return None

        data = b""
        deadline = time.monotonic() + timeout
        try:
            if port not in SILENT_PROBE_PORTS:
                sock.sendall(b"\r\n")

            while len(data) < max_bytes:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                sock.settimeout(remaining)
                chunk = sock.recv(max_bytes - len(data))
                if not chunk:
                    break
                data += chunk
                deadline = min(deadline, grace_deadline)
        except socket.timeout:
            pass
        except OSError as e:
            self._log_debug(f"Banner read from {ip}:{port} failed: {e}")
            if not data:
                return None
        finally:
            sock.close()

        banner = data[:max_bytes].decode("utf-8", errors="replace").strip()
        return banner or None

    def get_http_banner(self, ip: str, port: int) -> Optional[str]:
        """
        Identify a web server from its response headers.

        Args:
            ip: Target IPv4 address
            port: 443 for HTTPS, anything else is treated as plain HTTP

        Returns:
            Server and X-Powered-By header values joined with ", ", or None
        """
        scheme = "https" if port == 443 else "http"
        url = f"{scheme}://{ip}:{port}/"

        try:
            response = self.session.head(
                url,
                timeout=self.config.http_timeout,
                verify=False,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            self._log_debug(f"HEAD {url} failed: {e}")
            return None

        values = [response.headers.get("Server"), response.headers.get("X-Powered-By")]
        banner = ", ".join(value for value in values if value)
        return banner or None

    def resolve_hostname(self, ip: str, dns_servers: Optional[List[str]] = None) -> str:
        """
        Reverse-resolve an address to a hostname.

        Args:
            ip: IPv4 address to resolve
            dns_servers: Name servers to query instead of the system resolver

        Returns:
            The first name found, without trailing dot

        Raises:
            DnsResolutionError: If no name could be resolved
        """
        if dns_servers:
            return self._resolve_with_servers(ip, dns_servers)

        try:
            hostname = socket.gethostbyaddr(ip)[0]
        except OSError as e:
            raise DnsResolutionError(f"Reverse lookup for {ip} failed: {e}") from e

        hostname = hostname.rstrip(".")
        if not hostname:
            raise DnsResolutionError(f"Reverse lookup for {ip} returned no name")
        return hostname

    def _resolve_with_servers(self, ip: str, dns_servers: List[str]) -> str:
        resolver = dns.resolver.Resolver(configure=False)
        resolver.nameservers = list(dns_servers)
        resolver.timeout = self.config.connect_timeout * 2
        resolver.lifetime = self.config.banner_timeout

        try:
            answers = resolver.resolve(dns.reversename.from_address(ip), "PTR")
        except dns.exception.DNSException as e:
            raise DnsResolutionError(
                f"Reverse lookup for {ip} via {', '.join(dns_servers)} failed: {e}"
            ) from e

        for rdata in answers:
            name = str(rdata.target).rstrip(".")
            if name:
                return name
        raise DnsResolutionError(f"Reverse lookup for {ip} returned no name")

    def scan(self, target: str, **kwargs) -> Dict[int, str]:
        """
        Collect banners from the given open ports.

        Web ports are identified through their HTTP headers, other ports
        through their raw greeting. Ports that stay silent are omitted.
        """
        banners: Dict[int, str] = {}
        for port in kwargs.get("open_ports", []):
            if port in HTTP_PORTS:
                banner = self.get_http_banner(target, port)
            else:
                banner = self.grab_banner(target, port)
            if banner:
                banners[port] = banner
        return banners
