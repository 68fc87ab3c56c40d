"""
LAN interface listing for operator display.

Lists IPv4 addresses of physical interfaces, preferring Wi-Fi over
Ethernet. Independent of snapshots; used by `hostpulse --interfaces`.
"""

import ipaddress
import re
import socket
from enum import Enum
from typing import NamedTuple

import psutil

WIFI_KEYWORDS = ("wlan", "wlp", "wifi", "wi-fi", "wl", "ath", "wireless", "radio")
VIRTUAL_KEYWORDS = (
    "docker",
    "vmware",
    "virtual",
    "vbox",
    "tun",
    "tap",
    "br-",
    "veth",
    "virbr",
    "dummy",
    "ifb",
    "gre",
    "sit",
)
ETHERNET_KEYWORDS = ("eth", "enp", "eno", "ens", "ethernet")

# Default bridge networks of Docker and the VirtualBox host-only adapter
VIRTUAL_NETWORKS = (
    ipaddress.ip_network("172.17.0.0/16"),
    ipaddress.ip_network("172.18.0.0/16"),
    ipaddress.ip_network("192.168.56.0/24"),
)
LAN_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)

_LOOPBACK_NAME = re.compile(r"^lo\d*$")


class InterfaceType(Enum):
    """Coarse interface classification, in display priority order."""

    WIFI = "WiFi"
    ETHERNET = "Ethernet"
    OTHER = "Other"
    VIRTUAL = "Virtual"
    LOOPBACK = "Loopback"


PRIORITY = {
    InterfaceType.WIFI: 0,
    InterfaceType.ETHERNET: 1,
    InterfaceType.OTHER: 2,
}


class LanInterface(NamedTuple):
    """An interface address shown to the operator."""

    name: str
    ip: str
    type: InterfaceType


def classify_interface(name: str, ip: str) -> InterfaceType:
    """
    Classify an interface by its name and IPv4 address.

    Checks run in order: loopback, Wi-Fi names, virtual names, virtual
    subnets, Ethernet names.
    """
    lowered = name.lower()
    address = ipaddress.ip_address(ip)

    if address.is_loopback or _LOOPBACK_NAME.match(lowered):
        return InterfaceType.LOOPBACK
    if any(keyword in lowered for keyword in WIFI_KEYWORDS):
        return InterfaceType.WIFI
    if any(keyword in lowered for keyword in VIRTUAL_KEYWORDS):
        return InterfaceType.VIRTUAL
    if any(address in network for network in VIRTUAL_NETWORKS):
        return InterfaceType.VIRTUAL
    if any(keyword in lowered for keyword in ETHERNET_KEYWORDS):
        return InterfaceType.ETHERNET
    return InterfaceType.OTHER


def is_lan_ip(ip: str) -> bool:
    """Check if an address is in a private IPv4 range (10/8, 172.16/12, 192.168/16)."""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    if address.version != 4:
        return False
    return any(address in network for network in LAN_NETWORKS)


def order_interfaces(candidates: list[tuple[str, str]]) -> list[LanInterface]:
    """
    Classify, filter and order (name, ip) pairs.

    Loopback and virtual interfaces are dropped, the rest ordered
    Wi-Fi, Ethernet, other (stable within a class), one entry per address.
    """
    interfaces = []
    for name, ip in candidates:
        kind = classify_interface(name, ip)
        if kind in PRIORITY:
            interfaces.append(LanInterface(name, ip, kind))

    interfaces.sort(key=lambda iface: PRIORITY[iface.type])

    seen: set[str] = set()
    unique = []
    for iface in interfaces:
        if iface.ip not in seen:
            seen.add(iface.ip)
            unique.append(iface)
    return unique


def get_network_interfaces() -> list[LanInterface]:
    """Physical interfaces with IPv4 addresses, best first."""
    try:
        addresses = psutil.net_if_addrs()
    except OSError:
        return []

    candidates = [
        (name, addr.address)
        for name, addrs in addresses.items()
        for addr in addrs
        if addr.family == socket.AF_INET
    ]
    return order_interfaces(candidates)


def get_local_ips(interfaces: list[LanInterface] | None = None) -> list[str]:
    """
    Addresses to show for reaching this host.

    Wi-Fi addresses if any, else every listed address, else 0.0.0.0.

    Args:
        interfaces: Already listed interfaces (read from the system when None)
    """
    if interfaces is None:
        interfaces = get_network_interfaces()
    if not interfaces:
        return ["0.0.0.0"]

    wifi = [iface.ip for iface in interfaces if iface.type is InterfaceType.WIFI]
    return wifi or [iface.ip for iface in interfaces]


def format_interfaces(interfaces: list[LanInterface]) -> str:
    """Operator listing, one interface per line."""
    if not interfaces:
        return "No LAN interfaces found"
    return "\n".join(
        f"  {iface.name} [{iface.type.value}] -> {iface.ip}"
        + ("" if is_lan_ip(iface.ip) else " (public)")
        for iface in interfaces
    )
