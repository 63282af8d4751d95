"""
Inventory Dashboard

Flask web application exposing the asset inventory network discovery API.
"""

__version__ = "1.0.0"

from .app import create_app
from .config import Config, ConfigurationError

__all__ = ['create_app', 'Config', 'ConfigurationError']
