"""
Flask routes for network discovery.

This module provides REST API endpoints to start, follow and cancel
background network scans, to manage the discovered hosts they produce and
to import a discovered host into the asset inventory.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from network_discovery.core.data_models import ScanRequest
from network_discovery.utils.error_handler import InvalidRangeError, ScanAlreadyRunningError
from storage_layer.exceptions import (
    ConnectionError as StoreConnectionError,
    OperationError,
    RetryExhaustedError,
    StorageManagerError,
    ValidationError,
)

logger = logging.getLogger(__name__)

discovery_bp = Blueprint('network_discovery', __name__, url_prefix='/api/network-discovery')

HOST_NOT_FOUND = "Discovered host not found"
SCAN_NOT_FOUND = "Scan not found"
SCAN_STARTED = "Real network scan initiated. This may take several minutes to complete."


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_error_response(message: str, status_code: int = 400, details: Dict = None,
                          error_code: str = None, help_text: str = None):
    """
    Create standardized error response.

    The message is returned under both 'error' and 'message' so clients
    reading either key see the same text.

    Args:
        message: Error message
        status_code: HTTP status code
        details: Additional error details
        error_code: Specific error code for client handling
        help_text: Custom help text for recovery

    Returns:
        Flask response tuple (jsonify(response), status_code)
    """
    response = {
        'success': False,
        'error': message,
        'message': message,
        'timestamp': _utc_timestamp(),
        'request_id': str(uuid.uuid4())[:8]
    }

    if error_code:
        response['error_code'] = error_code

    if details:
        response['details'] = details

    help_messages = {
        400: "Check your request parameters and try again",
        404: "The requested resource was not found or may have been deleted",
        409: "A network scan is already running - wait for it to finish or cancel it",
        500: "Internal server error - please try again later",
        503: "The inventory database is temporarily unavailable - try again in a few moments"
    }

    response['help'] = help_text or help_messages.get(status_code, "Please try again or contact support if the problem persists")

    log_context = {
        'status_code': status_code,
        'error_code': error_code,
        'request_id': response['request_id']
    }
    if status_code >= 500:
        logger.error(f"API Error ({status_code}): {message}", extra=log_context)
    else:
        logger.warning(f"API Error ({status_code}): {message}", extra=log_context)

    return jsonify(response), status_code


def create_success_response(data: Any = None, message: str = None, **fields) -> Dict[str, Any]:
    """
    Create standardized success response.

    Args:
        data: Response data
        message: Success message
        **fields: Additional top-level fields

    Returns:
        Response dictionary
    """
    response = {
        'success': True,
        'timestamp': _utc_timestamp()
    }

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    response.update(fields)
    return response


def _storage_error_response(error: StorageManagerError, operation: str):
    """Map a storage layer exception to an API error response."""
    if isinstance(error, ValidationError):
        return create_error_response(error.message, 400, error_code='VALIDATION_ERROR')
    if isinstance(error, (StoreConnectionError, RetryExhaustedError)):
        logger.error(f"Database unavailable during {operation}: {error}")
        return create_error_response("Inventory database unavailable", 503, error_code='DATABASE_UNAVAILABLE')
    if isinstance(error, OperationError):
        logger.error(f"Database operation {operation} failed: {error}")
        return create_error_response("Database operation failed", 500, error_code='DATABASE_ERROR')
    logger.error(f"Storage error during {operation}: {error}")
    return create_error_response("Storage error", 500, error_code='STORAGE_ERROR')


def _json_body():
    """Return the request JSON object, or None when the body is not an object."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


# Scan routes

@discovery_bp.route('/scan', methods=['POST'])
def start_scan():
    """Validate a scan request and start it in the background."""
    payload = _json_body()
    if payload is None:
        return create_error_response("Request body must be a JSON object", 400)

    if not payload.get('ipRange'):
        return create_error_response("IP range is required", 400, error_code='MISSING_IP_RANGE')

    scan_request = ScanRequest.from_payload(payload)

    try:
        job = current_app.scan_manager.start_scan(scan_request)
    except InvalidRangeError as e:
        return create_error_response(e.message, 400, error_code='INVALID_IP_RANGE')
    except ScanAlreadyRunningError as e:
        return create_error_response(e.message, 409, error_code='SCAN_ALREADY_RUNNING')

    logger.info(f"Starting real network scan for range: {scan_request.ip_range}")
    if scan_request.monitoring is not None:
        logger.info(f"Network scan will use Zabbix integration: {scan_request.monitoring.url}")
    if scan_request.dns_settings is not None:
        logger.info(
            f"Network scan will use DNS servers: {scan_request.dns_settings.primary_dns}, "
            f"{scan_request.dns_settings.secondary_dns}"
        )

    return jsonify(create_success_response(
        message=SCAN_STARTED,
        scanId=job.scan_id,
        scanDetails=scan_request.to_scan_details()
    )), 202


@discovery_bp.route('/scans', methods=['GET'])
def list_scans():
    """List known scans, newest first."""
    jobs = current_app.scan_manager.list_jobs()
    return jsonify(create_success_response([job.to_dict() for job in jobs]))


@discovery_bp.route('/scans/<scan_id>', methods=['GET'])
def get_scan(scan_id: str):
    """Get the status and progress of one scan."""
    job = current_app.scan_manager.get_job(scan_id)
    if job is None:
        return create_error_response(SCAN_NOT_FOUND, 404)
    return jsonify(create_success_response(job.to_dict()))


@discovery_bp.route('/scans/<scan_id>/cancel', methods=['POST'])
def cancel_scan(scan_id: str):
    """Request cancellation of a running scan."""
    job = current_app.scan_manager.cancel(scan_id)
    if job is None:
        return create_error_response(SCAN_NOT_FOUND, 404)

    message = "Cancellation requested" if job.is_running else f"Scan already {job.state.value}"
    return jsonify(create_success_response(job.to_dict(), message=message))


# Discovered host routes

@discovery_bp.route('/hosts', methods=['GET'])
def get_hosts():
    """List discovered hosts, optionally filtered by ?status=."""
    try:
        hosts = current_app.discovery_store.get_discovered_hosts(request.args.get('status'))
    except StorageManagerError as e:
        return _storage_error_response(e, "get_discovered_hosts")
    return jsonify(create_success_response(hosts))


@discovery_bp.route('/hosts', methods=['POST'])
def create_host():
    """Create a discovered host record."""
    payload = _json_body()
    if payload is None:
        return create_error_response("Request body must be a JSON object", 400)

    try:
        host = current_app.discovery_store.create_discovered_host(payload)
    except StorageManagerError as e:
        return _storage_error_response(e, "create_discovered_host")
    return jsonify(create_success_response(host, message="Discovered host created")), 201


@discovery_bp.route('/hosts/<int:host_id>', methods=['GET'])
def get_host(host_id: int):
    """Get one discovered host."""
    try:
        host = current_app.discovery_store.get_discovered_host(host_id)
    except StorageManagerError as e:
        return _storage_error_response(e, "get_discovered_host")
    if host is None:
        return create_error_response(HOST_NOT_FOUND, 404)
    return jsonify(create_success_response(host))


@discovery_bp.route('/hosts/<int:host_id>', methods=['PATCH'])
def update_host(host_id: int):
    """Apply a partial update to a discovered host."""
    payload = _json_body()
    if payload is None:
        return create_error_response("Request body must be a JSON object", 400)

    try:
        host = current_app.discovery_store.update_discovered_host(host_id, payload)
    except StorageManagerError as e:
        return _storage_error_response(e, "update_discovered_host")
    if host is None:
        return create_error_response(HOST_NOT_FOUND, 404)
    return jsonify(create_success_response(host, message="Discovered host updated"))


@discovery_bp.route('/hosts/<int:host_id>', methods=['DELETE'])
def delete_host(host_id: int):
    """Delete a discovered host."""
    try:
        deleted = current_app.discovery_store.delete_discovered_host(host_id)
    except StorageManagerError as e:
        return _storage_error_response(e, "delete_discovered_host")
    if not deleted:
        return create_error_response(HOST_NOT_FOUND, 404)
    return '', 204


@discovery_bp.route('/hosts/<int:host_id>/import', methods=['POST'])
def import_host(host_id: int):
    """Import a discovered host into the asset inventory."""
    try:
        asset = current_app.discovery_store.import_discovered_host(host_id)
    except StorageManagerError as e:
        return _storage_error_response(e, "import_discovered_host")
    if asset is None:
        return create_error_response(HOST_NOT_FOUND, 404)

    logger.info(f"Asset {asset['assetId']} imported from discovered host {host_id}")
    return jsonify(create_success_response(
        message="Host successfully imported as asset",
        asset=asset
    )), 201


# Health Check Route

@discovery_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint for the network discovery API."""
    jobs = current_app.scan_manager.list_jobs()
    health_data = {
        'status': 'healthy',
        'scans_tracked': len(jobs),
        'scans_running': len([job for job in jobs if job.is_running]),
        'database': current_app.discovery_store.get_connection_status(),
        'timestamp': _utc_timestamp()
    }
    return jsonify(create_success_response(health_data))
