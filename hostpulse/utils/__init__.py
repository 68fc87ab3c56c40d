"""
Utility functions and helpers.
"""

from .netif import InterfaceType, LanInterface, get_local_ips, get_network_interfaces, is_lan_ip

__all__ = [
    "InterfaceType",
    "LanInterface",
    "get_network_interfaces",
    "get_local_ips",
    "is_lan_ip",
]
