"""
Local network adapter queries.

Used once at startup to choose the local interface a manager joins the
multicast group with. The manager itself never calls these.
"""

import ipaddress
import socket

import psutil

from castnet.errors import NoActiveInterfaceError


def _ipv4_addresses(addresses: list) -> list[str]:
    return [
        address.address for address in addresses
        if address.family == socket.AF_INET
    ]


def _is_loopback(name: str, addresses: list[str]) -> bool:
    if name == "lo" or name.lower().startswith("loopback"):
        return True

    return len(addresses) > 0 and all(
        ipaddress.IPv4Address(address).is_loopback for address in addresses
    )


def _active_interfaces() -> list[tuple[str, int, list[str]]]:
    stats = psutil.net_if_stats()
    active: list[tuple[str, int, list[str]]] = []

    for name, addresses in psutil.net_if_addrs().items():
        interface_stats = stats.get(name)
        if interface_stats is None or interface_stats.isup is False:
            continue

        ipv4_addresses = _ipv4_addresses(addresses)
        if _is_loopback(name, ipv4_addresses):
            continue

        active.append((name, interface_stats.speed, ipv4_addresses))

    return active


def get_local_ipv4_addresses() -> list[str]:
    """Return every IPv4 address of every adapter, loopback included."""
    local_addresses: list[str] = []

    for addresses in psutil.net_if_addrs().values():
        local_addresses.extend(_ipv4_addresses(addresses))

    return local_addresses


def get_fastest_interface_address() -> str:
    """
    Return the IPv4 address of the fastest interface that is up and is
    not a loopback device.

    Raises NoActiveInterfaceError when no such interface has an IPv4
    address.
    """
    active = sorted(
        _active_interfaces(),
        key=lambda interface: interface[1],
        reverse=True,
    )

    if len(active) == 0:
        raise NoActiveInterfaceError()

    _, _, addresses = active[0]
    if len(addresses) == 0:
        raise NoActiveInterfaceError(candidates=len(active))

    return addresses[0]


def get_connected_interface_addresses() -> list[str]:
    """
    Return the first IPv4 address of each connected, non-loopback
    interface.

    Raises NoActiveInterfaceError when there are none.
    """
    active = _active_interfaces()
    if len(active) == 0:
        raise NoActiveInterfaceError()

    return [
        addresses[0] for _, _, addresses in active
        if len(addresses) > 0
    ]
