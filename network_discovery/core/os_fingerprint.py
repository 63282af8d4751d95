"""
Operating system fingerprinting for Network Discovery Module.

Guesses the operating system of a host from its open ports, refined with
whatever the SSH and HTTP banners reveal. This is a heuristic: a Linux host
running xrdp on 3389 is reported as Windows.
"""

from typing import Any, Dict, List, Optional, Tuple


UNKNOWN = "Unknown"

RDP_PORT = 3389
SSH_PORT = 22
WINRM_PORTS = (5985, 5986)

# Substring found in the SSH banner -> distribution name
SSH_DISTRIBUTION_PATTERNS: List[Tuple[str, str]] = [
    ("Ubuntu", "Ubuntu Linux"),
    ("CentOS", "CentOS Linux"),
    ("Red Hat", "Red Hat Linux"),
]

# Substring found in the HTTP banner -> (web server, implied OS or None)
WEB_SERVER_PATTERNS: List[Tuple[str, str, Optional[str]]] = [
    ("IIS", "IIS", "Windows"),
    ("Apache", "Apache", None),
    ("nginx", "nginx", None),
]


def detect_operating_system(ip: str, open_ports: List[int], banner_grabber, logger=None) -> Dict[str, Any]:
    """
    Build the system information map for a host.

    Args:
        ip: Address of the host
        open_ports: Open TCP ports found by the port scanner
        banner_grabber: Object providing grab_banner() and get_http_banner()
        logger: Optional logger for banner failures

    Returns:
        Dict with os, version, architecture and, when identified, webServer
    """
    system_info: Dict[str, Any] = {
        "os": UNKNOWN,
        "version": UNKNOWN,
        "architecture": UNKNOWN,
    }

    if RDP_PORT in open_ports:
        system_info["os"] = "Windows"
        system_info["architecture"] = "x64"
        if any(port in open_ports for port in WINRM_PORTS):
            system_info["version"] = "Windows Server 2008 R2 or later"
    elif SSH_PORT in open_ports:
        system_info["os"] = "Linux/Unix"
        system_info["architecture"] = "x64"
        ssh_banner = _safe_banner(banner_grabber.grab_banner, ip, SSH_PORT, logger)
        distribution = _match_distribution(ssh_banner)
        if distribution:
            system_info["os"] = distribution

    if 80 in open_ports or 443 in open_ports:
        http_port = 443 if 443 in open_ports else 80
        http_banner = _safe_banner(banner_grabber.get_http_banner, ip, http_port, logger)
        if http_banner:
            for marker, web_server, implied_os in WEB_SERVER_PATTERNS:
                if marker in http_banner:
                    system_info["webServer"] = web_server
                    if implied_os:
                        system_info["os"] = implied_os
                    break

    return system_info


def _match_distribution(ssh_banner: Optional[str]) -> Optional[str]:
    if not ssh_banner:
        return None
    for marker, distribution in SSH_DISTRIBUTION_PATTERNS:
        if marker in ssh_banner:
            return distribution
    return None


def _safe_banner(fetch, ip: str, port: int, logger) -> Optional[str]:
    try:
        return fetch(ip, port)
    except Exception as e:
        if logger:
            logger.debug(f"Could not get banner for {ip}:{port}: {e}")
        return None
