"""
Configuration management for the Inventory Dashboard
"""
import os
import logging
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Custom exception for configuration-related errors."""
    pass


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.environ.get(name, default).lower() in ['true', '1', 'yes']


class Config:
    """Application configuration class with validation and default handling."""

    # Flask configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    HOST = os.environ.get('FLASK_HOST') or '127.0.0.1'
    PORT = int(os.environ.get('FLASK_PORT') or 5000)
    DEBUG = _env_flag('FLASK_DEBUG')
    TESTING = False

    # MongoDB settings
    MONGODB_CONNECTION_STRING = os.environ.get('MONGODB_CONNECTION_STRING') or 'mongodb://localhost:27017'
    MONGODB_DATABASE_NAME = os.environ.get('MONGODB_DATABASE_NAME') or 'asset_inventory'

    # Network discovery settings (directory holding scan_config.yml)
    SCAN_CONFIG_DIR = os.environ.get('SCAN_CONFIG_DIR') or None

    # Logging configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')

    @classmethod
    def validate_configuration(cls) -> List[str]:
        """
        Validate configuration settings and return list of warnings/errors.

        Returns:
            List of validation messages (warnings and errors)
        """
        messages = []

        if cls.SECRET_KEY == 'dev-secret-key-change-in-production':
            messages.append("WARNING: Using default SECRET_KEY. Change this in production!")

        if cls.PORT < 1 or cls.PORT > 65535:
            messages.append(f"ERROR: Invalid PORT value: {cls.PORT}")

        if not cls.MONGODB_CONNECTION_STRING.startswith(('mongodb://', 'mongodb+srv://')):
            messages.append("ERROR: MONGODB_CONNECTION_STRING must start with mongodb:// or mongodb+srv://")

        if not cls.MONGODB_DATABASE_NAME or any(char in cls.MONGODB_DATABASE_NAME for char in '/\\. "$'):
            messages.append(f"ERROR: Invalid MONGODB_DATABASE_NAME: {cls.MONGODB_DATABASE_NAME!r}")

        if cls.SCAN_CONFIG_DIR and not os.path.isdir(cls.SCAN_CONFIG_DIR):
            messages.append(f"WARNING: SCAN_CONFIG_DIR does not exist, scan defaults will be used: {cls.SCAN_CONFIG_DIR}")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if cls.LOG_LEVEL not in valid_log_levels:
            messages.append(f"ERROR: Invalid LOG_LEVEL: {cls.LOG_LEVEL}. Must be one of: {', '.join(valid_log_levels)}")

        return messages

    @classmethod
    def init_app(cls, app):
        """Initialize application with configuration."""
        os.makedirs(cls.LOG_DIR, exist_ok=True)

        validation_messages = cls.validate_configuration()
        for message in validation_messages:
            if message.startswith("ERROR"):
                logger.error(message)
                raise ConfigurationError(message)
            else:
                logger.warning(message)
