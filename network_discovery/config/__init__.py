"""
Configuration module for Network Discovery.
Provides loading and validation of the TCP discovery scan settings.
"""

from .config_loader import ConfigLoader, ScanConfig, DEFAULT_LIVENESS_PORTS, DEFAULT_SCAN_PORTS

__all__ = ['ConfigLoader', 'ScanConfig', 'DEFAULT_LIVENESS_PORTS', 'DEFAULT_SCAN_PORTS']
