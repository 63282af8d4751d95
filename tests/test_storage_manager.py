"""
Tests for DiscoveredHostStore against mocked pymongo collections.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from pymongo.errors import AutoReconnect, DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from storage_layer.exceptions import (
    ConfigurationError, ConnectionError, OperationError, RetryExhaustedError, ValidationError
)
from storage_layer.storage_manager import DiscoveredHostStore


SEEN = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _host_doc(host_id=1, ip="10.0.0.5", status="online"):
    return {
        "_id": host_id,
        "ip_address": ip,
        "hostname": "build01",
        "mac_address": None,
        "status": status,
        "source": "network-scan",
        "system_info": {"os": "Linux/Unix", "openPorts": [22]},
        "hardware_details": {},
        "last_seen": SEEN,
        "created_at": SEEN,
    }


@pytest.fixture
def collections():
    names = ("discovered_hosts", "assets", "counters")
    return {name: MagicMock(name=name) for name in names}


@pytest.fixture
def store(collections):
    store = DiscoveredHostStore("mongodb://localhost:27017", "inventory_test", max_retries=3, base_delay=0)
    store.client = MagicMock()
    store.database = MagicMock()
    store.database.__getitem__.side_effect = collections.__getitem__
    collections["counters"].find_one_and_update.return_value = {"_id": "discovered_hosts", "seq": 1}
    return store


class TestConfiguration:
    @pytest.mark.parametrize("connection_string, database_name", [("", "db"), ("mongodb://x", ""), (None, "db")])
    def test_rejects_missing_settings(self, connection_string, database_name):
        with pytest.raises(ConfigurationError):
            DiscoveredHostStore(connection_string, database_name)

    def test_operations_require_connection(self):
        store = DiscoveredHostStore("mongodb://localhost:27017", "inventory_test")
        with pytest.raises(ConnectionError):
            store.get_discovered_hosts()

    def test_connect_failure_raises_connection_error(self):
        with patch("storage_layer.storage_manager.MongoClient") as client_cls:
            client_cls.return_value.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
            store = DiscoveredHostStore("mongodb://user:secret@db:27017", "inventory_test")
            with pytest.raises(ConnectionError) as exc_info:
                store.connect()

        assert store.client is None
        assert "secret" not in str(exc_info.value)

    def test_connect_creates_indexes(self):
        with patch("storage_layer.storage_manager.MongoClient") as client_cls:
            store = DiscoveredHostStore("mongodb://localhost:27017", "inventory_test")
            store.connect()

        hosts = client_cls.return_value["inventory_test"]["discovered_hosts"]
        assert hosts.create_index.call_count == 2
        assert client_cls.call_args.kwargs["tz_aware"] is True

    def test_connection_status_without_client(self):
        status = DiscoveredHostStore("mongodb://localhost:27017", "inventory_test").get_connection_status()
        assert status["connected"] is False
        assert status["error"] == "not connected"


class TestDiscoveredHosts:
    def test_create_assigns_counter_id(self, store, collections):
        collections["counters"].find_one_and_update.return_value = {"_id": "discovered_hosts", "seq": 12}

        created = store.create_discovered_host({"ipAddress": "10.0.0.5", "hostname": "build01", "lastSeen": SEEN})

        assert created["id"] == 12
        assert created["ipAddress"] == "10.0.0.5"
        inserted = collections["discovered_hosts"].insert_one.call_args[0][0]
        assert inserted["_id"] == 12
        assert inserted["ip_address"] == "10.0.0.5"
        assert inserted["last_seen"] == SEEN

    def test_create_rejects_invalid_payload(self, store, collections):
        with pytest.raises(ValidationError):
            store.create_discovered_host({"ipAddress": "999.0.0.1"})
        collections["discovered_hosts"].insert_one.assert_not_called()

    def test_list_hosts(self, store, collections):
        cursor = collections["discovered_hosts"].find.return_value
        cursor.sort.return_value = [_host_doc(1), _host_doc(2, "10.0.0.6", "imported")]

        hosts = store.get_discovered_hosts()

        assert [host["id"] for host in hosts] == [1, 2]
        assert hosts[1]["status"] == "imported"
        collections["discovered_hosts"].find.assert_called_once_with({})

    def test_list_hosts_by_status(self, store, collections):
        collections["discovered_hosts"].find.return_value.sort.return_value = []
        store.get_discovered_hosts("imported")
        collections["discovered_hosts"].find.assert_called_once_with({"status": "imported"})

    def test_get_host(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = _host_doc(3)
        assert store.get_discovered_host(3)["hostname"] == "build01"
        collections["discovered_hosts"].find_one.assert_called_once_with({"_id": 3})

    def test_get_missing_host(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = None
        assert store.get_discovered_host(3) is None

    @pytest.mark.parametrize("host_id", [0, -1, "3", True])
    def test_invalid_host_id(self, store, host_id):
        with pytest.raises(ValidationError):
            store.get_discovered_host(host_id)

    def test_update_host(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = _host_doc(3)

        updated = store.update_discovered_host(3, {"hostname": "build01.corp"})

        assert updated["hostname"] == "build01.corp"
        selector, replacement = collections["discovered_hosts"].replace_one.call_args[0]
        assert selector == {"_id": 3}
        assert replacement["hostname"] == "build01.corp"
        assert replacement["ip_address"] == "10.0.0.5"

    def test_update_missing_host(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = None
        assert store.update_discovered_host(3, {"hostname": "x"}) is None
        collections["discovered_hosts"].replace_one.assert_not_called()

    def test_update_rejects_immutable_field(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = _host_doc(3)
        with pytest.raises(ValidationError):
            store.update_discovered_host(3, {"ipAddress": "10.0.0.9"})

    def test_delete_host(self, store, collections):
        collections["discovered_hosts"].delete_one.return_value = MagicMock(deleted_count=1)
        assert store.delete_discovered_host(3) is True

        collections["discovered_hosts"].delete_one.return_value = MagicMock(deleted_count=0)
        assert store.delete_discovered_host(4) is False


class TestImport:
    def test_import_upserts_asset_and_marks_host(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = _host_doc(3)
        collections["assets"].replace_one.return_value = MagicMock(matched_count=0)

        asset = store.import_discovered_host(3)

        assert asset["assetId"] == "host-10-0-0-5"
        assert asset["assetType"] == "physical_host"
        assert asset["data"]["discovered_host_id"] == 3
        selector, document = collections["assets"].replace_one.call_args[0]
        assert selector == {"_id": "host-10-0-0-5"}
        assert document["data"]["ip_address"] == "10.0.0.5"
        assert collections["assets"].replace_one.call_args.kwargs["upsert"] is True
        host_update = collections["discovered_hosts"].replace_one.call_args[0][1]
        assert host_update["status"] == "imported"

    def test_import_missing_host(self, store, collections):
        collections["discovered_hosts"].find_one.return_value = None
        assert store.import_discovered_host(3) is None
        collections["assets"].replace_one.assert_not_called()

    def test_get_asset(self, store, collections):
        collections["assets"].find_one.return_value = {"_id": "host-10-0-0-5"}
        assert store.get_asset(" host-10-0-0-5 ") == {"_id": "host-10-0-0-5"}
        collections["assets"].find_one.assert_called_once_with({"_id": "host-10-0-0-5"})

    def test_upsert_requires_asset_document(self, store):
        with pytest.raises(ValidationError):
            store.upsert_asset({"asset_id": "x"})


class TestRetry:
    def test_transient_failure_is_retried(self, store, collections):
        collections["discovered_hosts"].delete_one.side_effect = [
            AutoReconnect("primary stepped down"),
            MagicMock(deleted_count=1),
        ]
        with patch("storage_layer.storage_manager.time.sleep") as sleep:
            assert store.delete_discovered_host(3) is True
        assert collections["discovered_hosts"].delete_one.call_count == 2
        sleep.assert_called_once()

    def test_retries_are_bounded(self, store, collections):
        collections["discovered_hosts"].find_one.side_effect = AutoReconnect("down")
        with patch("storage_layer.storage_manager.time.sleep"):
            with pytest.raises(RetryExhaustedError) as exc_info:
                store.get_discovered_host(3)
        assert exc_info.value.attempts == 3
        assert collections["discovered_hosts"].find_one.call_count == 3

    def test_retryable_server_error_code(self, store, collections):
        collections["discovered_hosts"].delete_one.side_effect = [
            OperationFailure("not primary", code=10107),
            MagicMock(deleted_count=1),
        ]
        with patch("storage_layer.storage_manager.time.sleep"):
            assert store.delete_discovered_host(3) is True

    def test_non_retryable_error_fails_immediately(self, store, collections):
        collections["discovered_hosts"].delete_one.side_effect = OperationFailure("unauthorized", code=13)
        with pytest.raises(OperationError):
            store.delete_discovered_host(3)
        assert collections["discovered_hosts"].delete_one.call_count == 1

    def test_other_pymongo_errors_become_operation_errors(self, store, collections):
        collections["discovered_hosts"].insert_one.side_effect = DuplicateKeyError("duplicate _id")
        with pytest.raises(OperationError):
            store.create_discovered_host({"ipAddress": "10.0.0.5"})

    def test_retry_delay_grows_and_is_capped(self):
        store = DiscoveredHostStore("mongodb://localhost:27017", "inventory_test", base_delay=1.0, max_delay=3.0)
        with patch("storage_layer.storage_manager.random.random", return_value=0.5):
            assert store._calculate_retry_delay(1) == 1.0
            assert store._calculate_retry_delay(2) == 2.0
            assert store._calculate_retry_delay(5) == 3.0
