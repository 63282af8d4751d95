"""
Tests for the network discovery HTTP API.
"""
from unittest.mock import MagicMock

import pytest

from inventory_dashboard.app import create_app
from inventory_dashboard.config import Config
from network_discovery.core.scan_manager import ScanJobManager
from network_discovery.core.scanner_orchestrator import ScanOrchestrator
from network_discovery.utils.error_handler import ScanAlreadyRunningError
from storage_layer import DiscoveredHostStore
from storage_layer.exceptions import RetryExhaustedError, ValidationError
from tests.conftest import FakeInspector, FakeLiveness, FakeStore


HOST = {
    "id": 5,
    "ipAddress": "10.0.0.5",
    "macAddress": None,
    "hostname": "build01",
    "status": "online",
    "source": "network-scan",
    "systemInfo": {"os": "Linux/Unix"},
    "hardwareDetails": {},
    "lastSeen": "2024-05-01T12:00:00+00:00",
    "createdAt": "2024-05-01T12:00:00+00:00",
}


@pytest.fixture
def test_config(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        LOG_DIR = str(tmp_path / "logs")
        LOG_LEVEL = "INFO"
        MONGODB_CONNECTION_STRING = "mongodb://localhost:27017"
        MONGODB_DATABASE_NAME = "inventory_test"
        SCAN_CONFIG_DIR = None

    return TestConfig


@pytest.fixture
def store():
    store = MagicMock(spec=DiscoveredHostStore)
    store.get_connection_status.return_value = {"connected": True, "database_name": "inventory_test"}
    return store


@pytest.fixture
def scan_store():
    return FakeStore()


@pytest.fixture
def scan_manager(fast_config, scan_store):
    def factory(broadcaster, cancel_event):
        return ScanOrchestrator(
            store=scan_store,
            broadcaster=broadcaster,
            config=fast_config,
            liveness=FakeLiveness(alive={"10.0.0.1"}),
            inspector=FakeInspector(),
            cancel_event=cancel_event,
        )

    return ScanJobManager(store=scan_store, config=fast_config, orchestrator_factory=factory)


@pytest.fixture
def client(test_config, store, scan_manager):
    app = create_app(test_config, store=store, scan_manager=scan_manager)
    return app.test_client()


class TestScanEndpoints:
    def test_missing_ip_range(self, client):
        response = client.post("/api/network-discovery/scan", json={"useDNS": True})
        assert response.status_code == 400
        body = response.get_json()
        assert body["success"] is False
        assert body["message"] == "IP range is required"
        assert body["error"] == "IP range is required"

    def test_invalid_ip_range(self, client):
        response = client.post("/api/network-discovery/scan", json={"ipRange": "10.0.0.300/24"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid IP range format. Use CIDR notation (e.g., 192.168.1.0/24)"

    def test_non_object_body(self, client):
        response = client.post("/api/network-discovery/scan", json=["10.0.0.0/30"])
        assert response.status_code == 400

    def test_scan_is_accepted_and_runs(self, client, scan_manager, scan_store):
        response = client.post("/api/network-discovery/scan", json={
            "ipRange": "10.0.0.0/30",
            "useDNS": True,
            "primaryDNS": "10.0.0.53",
            "scanForInstalledSoftware": True,
            "useZabbix": True,
            "zabbixUrl": "https://zabbix.local",
        })

        assert response.status_code == 202
        body = response.get_json()
        assert body["success"] is True
        assert body["message"] == "Real network scan initiated. This may take several minutes to complete."
        details = body["scanDetails"]
        assert details["ipRange"] == "10.0.0.0/30"
        assert details["scanOptions"]["useDNS"] is True
        assert details["scanOptions"]["scanForInstalledSoftware"] is True
        assert details["dnsSettings"] == {"primaryDNS": "10.0.0.53", "secondaryDNS": "8.8.4.4"}
        assert details["usingZabbix"] is False

        scan_manager.wait(body["scanId"], timeout=5)
        status = client.get(f"/api/network-discovery/scans/{body['scanId']}").get_json()["data"]
        assert status["state"] == "completed"
        assert status["progress"]["discoveredHosts"] == 1
        assert [record["ipAddress"] for record in scan_store.records] == ["10.0.0.1"]

        listing = client.get("/api/network-discovery/scans").get_json()["data"]
        assert [job["scanId"] for job in listing] == [body["scanId"]]

    def test_concurrent_scan_is_refused(self, test_config, store):
        manager = MagicMock()
        manager.start_scan.side_effect = ScanAlreadyRunningError("A network scan is already running (10.0.0.0/24)")
        client = create_app(test_config, store=store, scan_manager=manager).test_client()

        response = client.post("/api/network-discovery/scan", json={"ipRange": "10.0.1.0/24"})

        assert response.status_code == 409
        assert response.get_json()["error_code"] == "SCAN_ALREADY_RUNNING"

    def test_unknown_scan(self, client):
        assert client.get("/api/network-discovery/scans/nope").status_code == 404
        assert client.post("/api/network-discovery/scans/nope/cancel").status_code == 404

    def test_cancel_finished_scan(self, client, scan_manager):
        scan_id = client.post("/api/network-discovery/scan", json={"ipRange": "10.0.0.9"}).get_json()["scanId"]
        scan_manager.wait(scan_id, timeout=5)

        response = client.post(f"/api/network-discovery/scans/{scan_id}/cancel")

        assert response.status_code == 200
        assert response.get_json()["message"] == "Scan already completed"


class TestHostEndpoints:
    def test_list_hosts(self, client, store):
        store.get_discovered_hosts.return_value = [HOST]
        response = client.get("/api/network-discovery/hosts?status=online")
        assert response.status_code == 200
        assert response.get_json()["data"] == [HOST]
        store.get_discovered_hosts.assert_called_once_with("online")

    def test_get_host(self, client, store):
        store.get_discovered_host.return_value = HOST
        response = client.get("/api/network-discovery/hosts/5")
        assert response.status_code == 200
        assert response.get_json()["data"]["hostname"] == "build01"
        store.get_discovered_host.assert_called_once_with(5)

    def test_get_missing_host(self, client, store):
        store.get_discovered_host.return_value = None
        response = client.get("/api/network-discovery/hosts/5")
        assert response.status_code == 404
        assert response.get_json()["message"] == "Discovered host not found"
        assert response.get_json()["error"] == "Discovered host not found"

    def test_create_host(self, client, store):
        store.create_discovered_host.return_value = HOST
        response = client.post("/api/network-discovery/hosts", json={"ipAddress": "10.0.0.5"})
        assert response.status_code == 201
        assert response.get_json()["data"]["id"] == 5

    def test_create_invalid_host(self, client, store):
        store.create_discovered_host.side_effect = ValidationError("ipAddress is required", field_name="discovered_host")
        response = client.post("/api/network-discovery/hosts", json={"hostname": "x"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "ipAddress is required"

    def test_update_host(self, client, store):
        store.update_discovered_host.return_value = dict(HOST, hostname="build01.corp")
        response = client.patch("/api/network-discovery/hosts/5", json={"hostname": "build01.corp"})
        assert response.status_code == 200
        assert response.get_json()["data"]["hostname"] == "build01.corp"
        store.update_discovered_host.assert_called_once_with(5, {"hostname": "build01.corp"})

    def test_update_missing_host(self, client, store):
        store.update_discovered_host.return_value = None
        assert client.patch("/api/network-discovery/hosts/5", json={"hostname": "x"}).status_code == 404

    def test_delete_host(self, client, store):
        store.delete_discovered_host.return_value = True
        response = client.delete("/api/network-discovery/hosts/5")
        assert response.status_code == 204
        assert response.data == b""

    def test_delete_missing_host(self, client, store):
        store.delete_discovered_host.return_value = False
        assert client.delete("/api/network-discovery/hosts/5").status_code == 404

    def test_import_host(self, client, store):
        asset = {"assetId": "host-10-0-0-5", "assetType": "physical_host", "data": {"name": "build01"}}
        store.import_discovered_host.return_value = asset

        response = client.post("/api/network-discovery/hosts/5/import")

        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        assert body["message"] == "Host successfully imported as asset"
        assert body["asset"] == asset

    def test_import_missing_host(self, client, store):
        store.import_discovered_host.return_value = None
        assert client.post("/api/network-discovery/hosts/5/import").status_code == 404

    def test_database_outage(self, client, store):
        store.get_discovered_hosts.side_effect = RetryExhaustedError("down", attempts=3, max_attempts=3)
        response = client.get("/api/network-discovery/hosts")
        assert response.status_code == 503
        assert response.get_json()["error_code"] == "DATABASE_UNAVAILABLE"


class TestApplication:
    def test_health(self, client):
        body = client.get("/health").get_json()
        assert body["status"] == "healthy"
        assert body["running_scans"] == 0

    def test_discovery_health(self, client):
        response = client.get("/api/network-discovery/health")
        assert response.status_code == 200
        assert response.get_json()["data"]["status"] == "healthy"

    def test_unknown_api_path_returns_json(self, client):
        response = client.get("/api/network-discovery/nothing-here")
        assert response.status_code == 404
        body = response.get_json()
        assert body["success"] is False
        assert body["error_code"] == "HTTP_404"

    def test_unhandled_exception_returns_json(self, client, store):
        store.get_discovered_host.side_effect = RuntimeError("boom")
        response = client.get("/api/network-discovery/hosts/5")
        assert response.status_code == 500
        assert response.get_json()["error_code"] == "INTERNAL_ERROR"
