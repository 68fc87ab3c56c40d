"""
Tests for the LAN interface listing.
"""

import socket
from collections import namedtuple

import psutil
import pytest

from hostpulse.utils.netif import (
    InterfaceType,
    classify_interface,
    format_interfaces,
    get_local_ips,
    get_network_interfaces,
    is_lan_ip,
    order_interfaces,
)

Addr = namedtuple("Addr", "family address netmask broadcast ptp")


@pytest.mark.parametrize(
    "name, ip, expected",
    [
        ("lo", "127.0.0.1", InterfaceType.LOOPBACK),
        ("wlan0", "192.168.1.20", InterfaceType.WIFI),
        ("wlo1", "192.168.1.21", InterfaceType.WIFI),
        ("wlp3s0", "10.0.0.5", InterfaceType.WIFI),
        ("docker0", "172.17.0.1", InterfaceType.VIRTUAL),
        ("br-4f2a", "172.20.0.1", InterfaceType.VIRTUAL),
        ("veth12ab", "169.254.3.3", InterfaceType.VIRTUAL),
        ("enx001122", "172.18.0.4", InterfaceType.VIRTUAL),
        ("vboxnet0", "192.168.56.1", InterfaceType.VIRTUAL),
        ("enp0s31f6", "192.168.1.10", InterfaceType.ETHERNET),
        ("eth0", "10.1.2.3", InterfaceType.ETHERNET),
        ("usb0", "192.168.7.2", InterfaceType.OTHER),
    ],
)
def test_classify_interface(name: str, ip: str, expected: InterfaceType) -> None:
    assert classify_interface(name, ip) is expected


def test_is_lan_ip() -> None:
    assert is_lan_ip("10.20.30.40")
    assert is_lan_ip("172.16.0.1")
    assert is_lan_ip("172.31.255.255")
    assert is_lan_ip("192.168.0.1")
    assert not is_lan_ip("172.32.0.1")
    assert not is_lan_ip("8.8.8.8")
    assert not is_lan_ip("fd00::1")
    assert not is_lan_ip("not an address")


def test_order_interfaces() -> None:
    ordered = order_interfaces(
        [
            ("usb0", "192.168.7.2"),
            ("eth0", "192.168.1.10"),
            ("lo", "127.0.0.1"),
            ("docker0", "172.17.0.1"),
            ("wlan0", "192.168.1.20"),
            ("eth0:1", "192.168.1.10"),
        ]
    )

    assert [(i.name, i.type) for i in ordered] == [
        ("wlan0", InterfaceType.WIFI),
        ("eth0", InterfaceType.ETHERNET),
        ("usb0", InterfaceType.OTHER),
    ]


@pytest.fixture
def fake_addrs(monkeypatch: pytest.MonkeyPatch):
    addrs = {
        "lo": [Addr(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None)],
        "eth0": [
            Addr(socket.AF_INET, "192.168.1.10", "255.255.255.0", None, None),
            Addr(socket.AF_INET6, "fe80::1", None, None, None),
        ],
    }
    monkeypatch.setattr(psutil, "net_if_addrs", lambda: addrs)
    return addrs


def test_get_network_interfaces_ipv4_only(fake_addrs) -> None:
    interfaces = get_network_interfaces()

    assert [(i.name, i.ip) for i in interfaces] == [("eth0", "192.168.1.10")]


def test_get_local_ips_without_wifi(fake_addrs) -> None:
    assert get_local_ips() == ["192.168.1.10"]


def test_get_local_ips_prefers_wifi(fake_addrs) -> None:
    fake_addrs["wlan0"] = [Addr(socket.AF_INET, "192.168.1.20", "255.255.255.0", None, None)]

    assert get_local_ips() == ["192.168.1.20"]


def test_get_local_ips_none_found(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(psutil, "net_if_addrs", lambda: {})

    assert get_local_ips() == ["0.0.0.0"]


def test_format_interfaces() -> None:
    listing = format_interfaces(order_interfaces([("eth0", "192.168.1.10"), ("eth1", "8.8.4.4")]))

    assert "eth0 [Ethernet] -> 192.168.1.10" in listing
    assert "eth1 [Ethernet] -> 8.8.4.4 (public)" in listing
    assert format_interfaces([]) == "No LAN interfaces found"


def test_get_local_ips_from_listed_interfaces() -> None:
    interfaces = order_interfaces([("eth0", "192.168.1.10"), ("eth1", "10.0.0.2")])

    assert get_local_ips(interfaces) == ["192.168.1.10", "10.0.0.2"]
    assert get_local_ips([]) == ["0.0.0.0"]
