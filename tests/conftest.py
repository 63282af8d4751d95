"""Pytest configuration and shared fixtures."""

import socket
import socketserver
import threading

import pytest

from network_discovery.config.config_loader import ScanConfig
from network_discovery.core.data_models import HostInfo
from network_discovery.core.events import EventBroadcaster


class FakeStore:
    """In-memory stand-in for DiscoveredHostStore.create_discovered_host."""

    def __init__(self, fail_for=()):
        self.records = []
        self.fail_for = set(fail_for)

    def create_discovered_host(self, record):
        if record["ipAddress"] in self.fail_for:
            raise RuntimeError("database unavailable")
        saved = dict(record, id=len(self.records) + 1)
        self.records.append(saved)
        return saved


class RecordingBroadcaster(EventBroadcaster):
    """Keeps every broadcast event as (event_type, data)."""

    def __init__(self):
        self.events = []

    def broadcast(self, event_type, data):
        self.events.append((event_type, data))

    def of_type(self, event_type):
        return [data for kind, data in self.events if kind == event_type]


class FakeLiveness:
    def __init__(self, alive=(), fail_for=()):
        self.alive = set(alive)
        self.fail_for = set(fail_for)
        self.checked = []

    def is_alive(self, ip):
        self.checked.append(ip)
        if ip in self.fail_for:
            raise RuntimeError(f"probe crashed for {ip}")
        return ip in self.alive


class FakeInspector:
    def __init__(self, hostnames=None):
        self.hostnames = hostnames or {}

    def gather_host_info(self, ip, request):
        return HostInfo(
            ip_address=ip,
            hostname=self.hostnames.get(ip),
            open_ports=[22],
            system_info={"os": "Linux/Unix", "version": "Unknown", "architecture": "x64", "openPorts": [22]},
        )


@pytest.fixture
def fast_config():
    """Scan configuration without delays between hosts."""
    return ScanConfig(inter_host_delay=0, connect_timeout=0.5, banner_timeout=1.0, banner_grace_period=0.3)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def recorder():
    return RecordingBroadcaster()


def _serve(handler_factory):
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), handler_factory)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def tcp_server():
    """
    Start local TCP servers driven by a handler function.

    The fixture returns a factory taking ``handle(sock)`` and returning the
    listening port; all servers are shut down after the test.
    """
    servers = []

    def start(handle):
        class Handler(socketserver.BaseRequestHandler):
            def handle(self):
                self.request.settimeout(2)
                try:
                    handle(self.request)
                except OSError:
                    pass

        server = _serve(Handler)
        servers.append(server)
        return server.server_address[1]

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port():
    """A localhost port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
