import socket
from collections import namedtuple

import pytest

from castnet.errors import NoActiveInterfaceError
from castnet.interfaces import network_interfaces
from castnet.interfaces import (
    get_connected_interface_addresses,
    get_fastest_interface_address,
    get_local_ipv4_addresses,
)


Address = namedtuple("Address", ["family", "address", "netmask", "broadcast", "ptp"])
Stats = namedtuple("Stats", ["isup", "duplex", "speed", "mtu"])


def ipv4(address: str) -> Address:
    return Address(socket.AF_INET, address, "255.255.255.0", None, None)


def ipv6(address: str) -> Address:
    return Address(socket.AF_INET6, address, None, None, None)


@pytest.fixture
def fake_interfaces(monkeypatch):
    def install(addresses: dict, stats: dict):
        monkeypatch.setattr(
            network_interfaces.psutil, "net_if_addrs", lambda: addresses
        )
        monkeypatch.setattr(
            network_interfaces.psutil, "net_if_stats", lambda: stats
        )

    return install


class TestLocalAddresses:
    def test_lists_every_ipv4_address(self, fake_interfaces):
        fake_interfaces(
            {
                "lo": [ipv4("127.0.0.1"), ipv6("::1")],
                "eth0": [ipv4("192.168.1.10"), ipv6("fe80::1")],
                "wlan0": [ipv4("10.0.0.5")],
            },
            {},
        )

        assert get_local_ipv4_addresses() == [
            "127.0.0.1",
            "192.168.1.10",
            "10.0.0.5",
        ]


class TestFastestInterface:
    def test_picks_fastest_up_non_loopback(self, fake_interfaces):
        fake_interfaces(
            {
                "lo": [ipv4("127.0.0.1")],
                "eth0": [ipv4("192.168.1.10")],
                "eth1": [ipv4("192.168.2.10")],
                "eth2": [ipv4("192.168.3.10")],
            },
            {
                "lo": Stats(True, 0, 0, 65536),
                "eth0": Stats(True, 2, 100, 1500),
                "eth1": Stats(True, 2, 1000, 1500),
                "eth2": Stats(False, 2, 10000, 1500),
            },
        )

        assert get_fastest_interface_address() == "192.168.2.10"

    def test_raises_without_active_interface(self, fake_interfaces):
        fake_interfaces(
            {"lo": [ipv4("127.0.0.1")], "eth0": [ipv4("192.168.1.10")]},
            {"lo": Stats(True, 0, 0, 65536), "eth0": Stats(False, 2, 1000, 1500)},
        )

        with pytest.raises(NoActiveInterfaceError):
            get_fastest_interface_address()

    def test_raises_when_fastest_has_no_ipv4(self, fake_interfaces):
        fake_interfaces(
            {"eth0": [ipv6("fe80::1")], "eth1": [ipv4("192.168.1.10")]},
            {"eth0": Stats(True, 2, 1000, 1500), "eth1": Stats(True, 2, 100, 1500)},
        )

        with pytest.raises(NoActiveInterfaceError):
            get_fastest_interface_address()


class TestConnectedInterfaces:
    def test_first_address_of_each_connected_interface(self, fake_interfaces):
        fake_interfaces(
            {
                "lo": [ipv4("127.0.0.1")],
                "eth0": [ipv4("192.168.1.10"), ipv4("192.168.1.11")],
                "wlan0": [ipv4("10.0.0.5")],
                "eth1": [ipv4("172.16.0.1")],
            },
            {
                "lo": Stats(True, 0, 0, 65536),
                "eth0": Stats(True, 2, 1000, 1500),
                "wlan0": Stats(True, 2, 300, 1500),
                "eth1": Stats(False, 2, 1000, 1500),
            },
        )

        assert get_connected_interface_addresses() == ["192.168.1.10", "10.0.0.5"]

    def test_raises_when_nothing_connected(self, fake_interfaces):
        fake_interfaces({"lo": [ipv4("127.0.0.1")]}, {"lo": Stats(True, 0, 0, 65536)})

        with pytest.raises(NoActiveInterfaceError):
            get_connected_interface_addresses()
