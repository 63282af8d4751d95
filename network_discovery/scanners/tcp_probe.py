"""
TCP connect probe.

The single primitive every other scanner builds on: open a TCP connection to
(ip, port), close it straight away and report whether it succeeded.
"""

import socket

from ..utils.error_handler import ProbeConnectionError, ProbeTimeoutError


DEFAULT_CONNECT_TIMEOUT = 1.0


def open_tcp_connection(ip: str, port: int, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> socket.socket:
    """
    Open a TCP connection and return the connected socket.

    Args:
        ip: Target IPv4 address
        port: Target TCP port
        timeout: Connect timeout in seconds

    Returns:
        Connected socket; the caller owns it and must close it

    Raises:
        ProbeTimeoutError: If the connection did not complete in time
        ProbeConnectionError: If the connection was refused or failed
    """
    try:
        return socket.create_connection((ip, port), timeout=timeout)
    except socket.timeout as e:
        raise ProbeTimeoutError(f"Connection to {ip}:{port} timed out after {timeout}s") from e
    except OSError as e:
        raise ProbeConnectionError(f"Connection to {ip}:{port} failed: {e}") from e


def check_tcp_connection(ip: str, port: int, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> bool:
    """
    Report whether a TCP port accepts connections.

    Never raises: timeouts, refusals and any other socket error all mean the
    port is unreachable.

    Args:
        ip: Target IPv4 address
        port: Target TCP port
        timeout: Connect timeout in seconds

    Returns:
        True if the connection was established, False otherwise
    """
    try:
        sock = open_tcp_connection(ip, port, timeout)
    except (ProbeTimeoutError, ProbeConnectionError):
        return False
    except (ValueError, OverflowError, TypeError):
        # Bad address or port value
        return False
    sock.close()
    return True
