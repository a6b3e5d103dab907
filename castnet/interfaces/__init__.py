from .network_interfaces import (
    get_connected_interface_addresses as get_connected_interface_addresses,
    get_fastest_interface_address as get_fastest_interface_address,
    get_local_ipv4_addresses as get_local_ipv4_addresses,
)
