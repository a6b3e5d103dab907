import socket
import struct
from dataclasses import dataclass


@dataclass(slots=True)
class Uninitialized:
    """No socket exists. Sends, receives and leaves are rejected or no-ops."""


@dataclass(slots=True)
class Active:
    """A socket bound to the local port and joined to the multicast group."""

    socket: socket.socket
    local_address: tuple[str, int]
    group_address: tuple[str, int]
    interface_address: str
    joined: bool = True

    @property
    def membership_request(self) -> bytes:
        return struct.pack(
            "4s4s",
            socket.inet_aton(self.group_address[0]),
            socket.inet_aton(self.interface_address),
        )


EndpointState = Uninitialized | Active
