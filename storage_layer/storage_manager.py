"""
DiscoveredHostStore for the asset inventory storage layer

This module provides the persistence collaborator used by network discovery:
MongoDB backed CRUD for discovered hosts, integer id allocation, and the
asset upsert used when a discovered host is imported into the inventory.
Every operation goes through the same retry wrapper with exponential
backoff and jitter.
"""

import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    PyMongoError,
    ServerSelectionTimeoutError
)

from .exceptions import (
    ConfigurationError,
    ConnectionError,
    OperationError,
    RetryExhaustedError,
    StorageManagerError,
    ValidationError,
    sanitize_connection_string
)
from .logging_config import OperationLogger, get_logger
from .models import AssetDocument, DiscoveredHostDocument


HOSTS_COLLECTION = "discovered_hosts"
ASSETS_COLLECTION = "assets"
COUNTERS_COLLECTION = "counters"

# MongoDB error codes worth retrying: shutdown/stepdown and network failures
RETRYABLE_ERROR_CODES = {
    6,      # HostUnreachable
    7,      # HostNotFound
    89,     # NetworkTimeout
    91,     # ShutdownInProgress
    189,    # PrimarySteppedDown
    9001,   # SocketException
    10107,  # NotWritablePrimary
    11600,  # InterruptedAtShutdown
    11602,  # InterruptedDueToReplStateChange
    13435,  # NotPrimaryNoSecondaryOk
    13436,  # NotPrimaryOrSecondary
}


class DiscoveredHostStore:
    """
    MongoDB store for discovered hosts and inventory assets.

    Discovered hosts get sequential integer ids from a counter document, so
    they can be addressed as /hosts/<id> by the API. Documents are stored
    with snake_case fields and returned to callers in the camelCase API
    representation.

    Attributes:
        connection_string: MongoDB connection string
        database_name: Name of the MongoDB database
        client: MongoDB client instance (None until connect())
        database: MongoDB database instance (None until connect())
    """

    def __init__(self, connection_string: str, database_name: str,
                 max_retries: int = 3, base_delay: float = 0.5, max_delay: float = 10.0) -> None:
        """
        Initialize the store with connection parameters.

        Args:
            connection_string: MongoDB connection string (e.g. 'mongodb://localhost:27017')
            database_name: Name of the database to use
            max_retries: Attempts per operation before giving up
            base_delay: First retry delay in seconds, doubled on every attempt
            max_delay: Upper bound for a single retry delay

        Raises:
            ConfigurationError: If connection parameters are invalid
        """
        self.logger = get_logger(f"{__name__}.DiscoveredHostStore")

        if not connection_string or not isinstance(connection_string, str):
            raise ConfigurationError(
                "connection_string must be a non-empty string",
                config_key="connection_string",
                config_value=connection_string,
                expected_type="non-empty string"
            )
        if not database_name or not isinstance(database_name, str):
            raise ConfigurationError(
                "database_name must be a non-empty string",
                config_key="database_name",
                config_value=database_name,
                expected_type="non-empty string"
            )

        self.connection_string = connection_string
        self.database_name = database_name
        self.client: Optional[MongoClient] = None
        self.database = None

        self._server_selection_timeout = 5  # seconds
        self._connection_timeout = 10  # seconds

        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._backoff_factor = 2.0
        self._jitter_factor = 0.2  # ±20%

    def connect(self) -> None:
        """
        Connect to MongoDB, verify the connection and create indexes.

        Raises:
            ConnectionError: If the server cannot be reached
        """
        self.logger.info(
            "Connecting to MongoDB",
            extra={
                "database_name": self.database_name,
                "connection_string": sanitize_connection_string(self.connection_string)
            }
        )

        try:
            self.client = MongoClient(
                self.connection_string,
                serverSelectionTimeoutMS=self._server_selection_timeout * 1000,
                connectTimeoutMS=self._connection_timeout * 1000,
                tz_aware=True,
                retryWrites=True,
                retryReads=True
            )
            self.database = self.client[self.database_name]
            self.client.admin.command('ping')
        except PyMongoError as e:
            self.client = None
            self.database = None
            raise ConnectionError(
                "Failed to establish MongoDB connection",
                connection_string=self.connection_string,
                database_name=self.database_name,
                original_error=e
            )

        self.setup_indexes()
        self.logger.info("Connected to MongoDB", extra={"database_name": self.database_name})

    def disconnect(self) -> None:
        """Close the MongoDB connection. Safe to call more than once."""
        if self.client is not None:
            self.client.close()
            self.logger.info("MongoDB connection closed")
        self.client = None
        self.database = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def _ensure_connected(self) -> None:
        if self.client is None or self.database is None:
            raise ConnectionError(
                "Not connected to MongoDB. Call connect() first.",
                connection_string=self.connection_string,
                database_name=self.database_name
            )

    def _calculate_retry_delay(self, attempt: int) -> float:
        """
        Calculate retry delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (1-based)

        Returns:
            Delay in seconds
        """
        delay = min(self._base_delay * (self._backoff_factor ** (attempt - 1)), self._max_delay)
        jitter = delay * self._jitter_factor * (2 * random.random() - 1)
        return max(delay + jitter, 0.0)

    @staticmethod
    def _is_retryable_operation_error(error: OperationFailure) -> bool:
        if getattr(error, 'code', None) in RETRYABLE_ERROR_CODES:
            return True
        if error.has_error_label("RetryableWriteError"):
            return True
        return False

    def _execute_with_retry(self, operation_func: Callable[[], Any], operation_name: str) -> Any:
        """
        Execute a database operation, retrying transient failures.

        Connection failures and retryable server errors are retried with
        exponential backoff; storage errors raised by the operation itself
        (validation, not found) propagate unchanged.

        Args:
            operation_func: Zero-argument callable performing the operation
            operation_name: Name of the operation for logging

        Returns:
            Result of the operation function

        Raises:
            RetryExhaustedError: If all retry attempts are exhausted
            OperationError: If the operation fails with a non-retryable error
        """
        self._ensure_connected()
        last_error: Optional[Exception] = None

        for attempt in range(1, self._max_retries + 1):
            try:
                result = operation_func()
                if attempt > 1:
                    self.logger.info(f"Operation {operation_name} succeeded after {attempt} attempts")
                return result

            except StorageManagerError:
                raise

            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                last_error = e
                self.logger.warning(
                    f"Connection error during {operation_name} (attempt {attempt}/{self._max_retries})",
                    extra={"operation": operation_name, "attempt": attempt, "error": str(e)}
                )

            except OperationFailure as e:
                if not self._is_retryable_operation_error(e):
                    raise OperationError(
                        f"Operation {operation_name} failed with non-retryable error",
                        operation=operation_name,
                        original_error=e
                    )
                last_error = e
                self.logger.warning(
                    f"Retryable error during {operation_name} (attempt {attempt}/{self._max_retries})",
                    extra={"operation": operation_name, "attempt": attempt, "error": str(e)}
                )

            except PyMongoError as e:
                raise OperationError(
                    f"Operation {operation_name} failed with PyMongo error",
                    operation=operation_name,
                    original_error=e
                )

            if attempt < self._max_retries:
                delay = self._calculate_retry_delay(attempt)
                self.logger.debug(f"Retrying {operation_name} in {delay:.2f} seconds")
                time.sleep(delay)

        raise RetryExhaustedError(
            f"Operation {operation_name} failed after all retry attempts",
            attempts=self._max_retries,
            max_attempts=self._max_retries,
            last_error=last_error,
            operation=operation_name
        )

    def setup_indexes(self) -> None:
        """Create the indexes used by host listing and lookup."""
        def _perform_index_setup():
            hosts = self.database[HOSTS_COLLECTION]
            hosts.create_index([("ip_address", ASCENDING)], name="ip_address_idx")
            hosts.create_index([("status", ASCENDING)], name="status_idx")

        self._execute_with_retry(_perform_index_setup, "setup_indexes")

    def get_connection_status(self) -> Dict[str, Any]:
        """Report whether the store can currently reach MongoDB."""
        status = {
            "connected": False,
            "database_name": self.database_name,
            "connection_string": sanitize_connection_string(self.connection_string),
            "error": None,
        }
        if self.client is None:
            status["error"] = "not connected"
            return status
        try:
            start_time = time.monotonic()
            self.client.admin.command('ping')
            status["connected"] = True
            status["ping_seconds"] = round(time.monotonic() - start_time, 4)
        except PyMongoError as e:
            status["error"] = str(e)
        return status

    # Discovered host operations

    def _next_host_id(self) -> int:
        counter = self.database[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": HOSTS_COLLECTION},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return int(counter["seq"])

    @staticmethod
    def _validate_host_id(host_id: Any) -> int:
        if isinstance(host_id, bool) or not isinstance(host_id, int) or host_id < 1:
            raise ValidationError(
                "host id must be a positive integer",
                field_name="id",
                field_value=host_id,
                validation_rule="positive integer"
            )
        return host_id

    def create_discovered_host(self, host: Union[DiscoveredHostDocument, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Persist a newly discovered host.

        Args:
            host: DiscoveredHostDocument, or a camelCase record such as the
                one produced by HostInfo.to_record()

        Returns:
            The stored host in API representation, including its new id

        Raises:
            ValidationError: If the host data is invalid
            OperationError: If the insert fails
        """
        if not isinstance(host, DiscoveredHostDocument):
            try:
                host = DiscoveredHostDocument.from_api(host)
            except (TypeError, ValueError) as e:
                raise ValidationError(str(e), field_name="discovered_host", original_error=e)

        def _perform_host_insert():
            host.id = self._next_host_id()
            self.database[HOSTS_COLLECTION].insert_one(host.to_mongo_dict())
            return host.to_api_dict()

        with OperationLogger(self.logger, "create_discovered_host", ip_address=host.ip_address) as op:
            created = self._execute_with_retry(_perform_host_insert, "create_discovered_host")
            op.add_context(host_id=created["id"])
        return created

    def get_discovered_hosts(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List discovered hosts ordered by id.

        Args:
            status: Only return hosts with this status ('online' or 'imported')
        """
        query = {"status": status} if status else {}

        def _perform_hosts_query():
            cursor = self.database[HOSTS_COLLECTION].find(query).sort("_id", ASCENDING)
            return [DiscoveredHostDocument.from_mongo(doc).to_api_dict() for doc in cursor]

        return self._execute_with_retry(_perform_hosts_query, "get_discovered_hosts")

    def _find_host_document(self, host_id: int) -> Optional[DiscoveredHostDocument]:
        doc = self.database[HOSTS_COLLECTION].find_one({"_id": host_id})
        return DiscoveredHostDocument.from_mongo(doc) if doc else None

    def get_discovered_host(self, host_id: int) -> Optional[Dict[str, Any]]:
        """
        Retrieve one discovered host.

        Returns:
            The host in API representation, or None if it does not exist
        """
        host_id = self._validate_host_id(host_id)

        def _perform_host_get():
            host = self._find_host_document(host_id)
            return host.to_api_dict() if host else None

        return self._execute_with_retry(_perform_host_get, "get_discovered_host")

    def update_discovered_host(self, host_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply a partial camelCase update to a discovered host.

        Returns:
            The updated host, or None if it does not exist

        Raises:
            ValidationError: If the patch is invalid
        """
        host_id = self._validate_host_id(host_id)

        def _perform_host_update():
            host = self._find_host_document(host_id)
            if host is None:
                return None
            try:
                updated = host.apply_patch(patch)
            except (TypeError, ValueError) as e:
                raise ValidationError(str(e), field_name="discovered_host", original_error=e)
            self.database[HOSTS_COLLECTION].replace_one({"_id": host_id}, updated.to_mongo_dict())
            return updated.to_api_dict()

        with OperationLogger(self.logger, "update_discovered_host", host_id=host_id):
            return self._execute_with_retry(_perform_host_update, "update_discovered_host")

    def delete_discovered_host(self, host_id: int) -> bool:
        """
        Delete a discovered host.

        Returns:
            True if a host was deleted, False if it did not exist
        """
        host_id = self._validate_host_id(host_id)

        def _perform_host_delete():
            result = self.database[HOSTS_COLLECTION].delete_one({"_id": host_id})
            return result.deleted_count > 0

        return self._execute_with_retry(_perform_host_delete, "delete_discovered_host")

    # Asset operations

    def upsert_asset(self, asset: AssetDocument) -> str:
        """
        Insert or replace an inventory asset.

        Returns:
            The asset_id of the upserted asset

        Raises:
            ValidationError: If asset is not an AssetDocument
        """
        if not isinstance(asset, AssetDocument):
            raise ValidationError(
                "asset must be an AssetDocument instance",
                field_name="asset",
                field_value=type(asset).__name__,
                validation_rule="AssetDocument"
            )

        def _perform_asset_upsert():
            asset.last_updated = datetime.now(timezone.utc)
            result = self.database[ASSETS_COLLECTION].replace_one(
                {"_id": asset.asset_id},
                asset.to_mongo_dict(),
                upsert=True
            )
            operation_type = "updated" if result.matched_count > 0 else "created"
            self.logger.info(
                f"Successfully {operation_type} asset: {asset.asset_id}",
                extra={"asset_id": asset.asset_id, "asset_type": asset.asset_type}
            )
            return asset.asset_id

        return self._execute_with_retry(_perform_asset_upsert, "upsert_asset")

    def get_asset(self, asset_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a single asset by its ID.

        Returns:
            Asset document as stored, or None if not found
        """
        if not asset_id or not isinstance(asset_id, str):
            raise ValidationError(
                "asset_id must be a non-empty string",
                field_name="asset_id",
                field_value=asset_id,
                validation_rule="non-empty string"
            )
        asset_id = asset_id.strip()

        def _perform_asset_get():
            return self.database[ASSETS_COLLECTION].find_one({"_id": asset_id})

        return self._execute_with_retry(_perform_asset_get, "get_asset")

    def import_discovered_host(self, host_id: int) -> Optional[Dict[str, Any]]:
        """
        Promote a discovered host to the asset inventory.

        Upserts the physical_host asset built from the host and marks the
        host as imported.

        Returns:
            The asset in API representation, or None if the host does not exist
        """
        host_id = self._validate_host_id(host_id)

        with OperationLogger(self.logger, "import_discovered_host", host_id=host_id) as op:
            host = self._execute_with_retry(lambda: self._find_host_document(host_id), "get_discovered_host")
            if host is None:
                return None

            asset = AssetDocument.from_discovered_host(host)
            self.upsert_asset(asset)
            self.update_discovered_host(host_id, {"status": "imported"})
            op.add_context(asset_id=asset.asset_id)

        return asset.to_api_dict()
