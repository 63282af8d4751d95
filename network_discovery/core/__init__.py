"""
Core components for network discovery functionality.
"""

from .data_models import (
    ScanState,
    ScanOptions,
    DnsSettings,
    MonitoringSettings,
    ScanRequest,
    DetailResult,
    RangeExpansion,
    HostInfo,
    ScanProgress,
    ScanSummary
)
from .range_expander import validate_ip_range, expand_ip_range
from .os_fingerprint import detect_operating_system
from .host_inspector import HostInspector
from .events import EventBroadcaster, LoggingBroadcaster, FanOutBroadcaster
from .scanner_orchestrator import ScanOrchestrator
from .scan_manager import ScanJob, ScanJobManager

__all__ = [
    'ScanState',
    'ScanOptions',
    'DnsSettings',
    'MonitoringSettings',
    'ScanRequest',
    'DetailResult',
    'RangeExpansion',
    'HostInfo',
    'ScanProgress',
    'ScanSummary',
    'validate_ip_range',
    'expand_ip_range',
    'detect_operating_system',
    'HostInspector',
    'EventBroadcaster',
    'LoggingBroadcaster',
    'FanOutBroadcaster',
    'ScanOrchestrator',
    'ScanJob',
    'ScanJobManager'
]
