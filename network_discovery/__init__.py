"""
Network Discovery Module

TCP based discovery of live hosts in an IPv4 range for the asset inventory:
liveness probing, port scanning, banner based OS fingerprinting and
persistence of the discovered hosts.
"""

__version__ = "1.0.0"
__author__ = "Network Discovery Team"
