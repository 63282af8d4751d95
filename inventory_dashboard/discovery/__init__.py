"""
Network discovery API for the Inventory Dashboard.
"""

from .routes import discovery_bp

__all__ = ['discovery_bp']
