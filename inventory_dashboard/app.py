"""
Inventory Dashboard - Flask application factory

This module builds the Flask application serving the asset inventory API.
It wires the MongoDB discovered host store and the background scan manager
into the application, installs JSON error handlers for API paths and logs
every API request with its timing.

Example:
    app = create_app()
    app.run(host=Config.HOST, port=Config.PORT)
"""
import time
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from network_discovery.config.config_loader import ConfigLoader
from network_discovery.core.events import LoggingBroadcaster
from network_discovery.core.scan_manager import ScanJobManager
from storage_layer import DiscoveredHostStore
from storage_layer.exceptions import StorageManagerError

from .config import Config
from .discovery import discovery_bp
from .logging_config import setup_logging, log_api_request


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _open_store(config, logger) -> DiscoveredHostStore:
    store = DiscoveredHostStore(config.MONGODB_CONNECTION_STRING, config.MONGODB_DATABASE_NAME)
    try:
        store.connect()
    except StorageManagerError as e:
        # The API still starts; host endpoints answer 503 until MongoDB is reachable
        logger.error(f"MongoDB unavailable at startup: {e}")
    return store


def create_app(config_class=Config, store=None, scan_manager=None):
    """
    Create and configure the Flask application.

    Args:
        config_class: Configuration class (Config or a subclass)
        store: Discovered host store; a MongoDB store is opened when omitted
        scan_manager: Background scan manager; built from the scan
            configuration when omitted

    Returns:
        Flask: Configured Flask application instance

    Raises:
        ConfigurationError: If configuration validation fails
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    config_class.init_app(app)

    app_logger, error_logger, api_logger = setup_logging(app)
    app.app_logger = app_logger
    app.error_logger = error_logger
    app.api_logger = api_logger

    if store is None:
        store = _open_store(config_class, app_logger)
    if scan_manager is None:
        scan_config = ConfigLoader(config_class.SCAN_CONFIG_DIR, logger=app_logger).load_scan_config()
        scan_manager = ScanJobManager(
            store=store,
            broadcaster=LoggingBroadcaster(app_logger),
            config=scan_config,
            logger=app_logger,
        )

    app.discovery_store = store
    app.scan_manager = scan_manager

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions with logging."""
        error_context = {
            'method': request.method,
            'url': request.url,
            'user_agent': request.headers.get('User-Agent', 'Unknown'),
            'remote_addr': request.remote_addr,
            'extra_info': f"HTTP Exception: {e.code} - {e.description}"
        }

        if e.code >= 500:
            error_logger.error(f"HTTP {e.code}: {e.description}", extra=error_context)
        elif e.code >= 400:
            error_logger.warning(f"HTTP {e.code}: {e.description}", extra=error_context)

        if request.path.startswith('/api/'):
            return jsonify({
                'success': False,
                'error': e.description,
                'message': e.description,
                'timestamp': _utc_timestamp(),
                'help': 'Please check your request and try again',
                'error_code': f'HTTP_{e.code}'
            }), e.code

        return e

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle all unhandled exceptions."""
        error_context = {
            'method': request.method,
            'url': request.url,
            'user_agent': request.headers.get('User-Agent', 'Unknown'),
            'remote_addr': request.remote_addr,
            'extra_info': f"Exception: {type(e).__name__}: {str(e)}"
        }
        error_logger.error(f"Unhandled exception: {str(e)}", extra=error_context, exc_info=True)

        return jsonify({
            'success': False,
            'error': 'An internal server error occurred',
            'message': 'An internal server error occurred',
            'timestamp': _utc_timestamp(),
            'help': 'Please try again later or contact support if the problem persists',
            'error_code': 'INTERNAL_ERROR'
        }), 500

    @app.before_request
    def before_request():
        request.start_time = time.time()
        if app.config.get('DEBUG'):
            app_logger.debug(f"Request: {request.method} {request.url}")

    @app.after_request
    def after_request(response):
        if request.path.startswith('/api/') and hasattr(request, 'start_time'):
            log_api_request(
                api_logger,
                request.method,
                request.path,
                response.status_code,
                time.time() - request.start_time,
                request.headers.get('User-Agent'),
                request.remote_addr
            )
        return response

    app.register_blueprint(discovery_bp)

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring."""
        database = app.discovery_store.get_connection_status()
        return jsonify({
            'status': 'healthy' if database.get('connected') else 'degraded',
            'timestamp': _utc_timestamp(),
            'version': '1.0.0',
            'database': database,
            'running_scans': sum(1 for job in app.scan_manager.list_jobs() if job.is_running)
        })

    app_logger.info("Inventory Dashboard application initialized")
    return app


def main():
    app = create_app()
    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)


if __name__ == '__main__':
    main()
