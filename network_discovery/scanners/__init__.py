"""
Scanner modules for Network Discovery.

This package contains the TCP based scanners: the connect probe, liveness
detection, the service port scanner and banner/hostname collection.
"""

from .base_scanner import BaseScanner
from .tcp_probe import check_tcp_connection, open_tcp_connection
from .liveness import LivenessDetector
from .port_scanner import PortScanner
from .banner_grabber import BannerGrabber

__all__ = [
    'BaseScanner',
    'check_tcp_connection',
    'open_tcp_connection',
    'LivenessDetector',
    'PortScanner',
    'BannerGrabber'
]
