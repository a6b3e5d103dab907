from __future__ import annotations

import asyncio
import ipaddress
import socket
import struct

from castnet.errors import (
    BindError,
    JoinError,
    NotListeningError,
    ReceiveFailure,
    SendFailure,
)
from castnet.logging import Logger
from castnet.logging.castnet_logging_models import MulticastError

from .endpoint_state import Active, EndpointState, Uninitialized


DEFAULT_RECEIVE_BUFFER_SIZE = 65535


class MulticastEndpoint:
    """
    One UDP socket bound to a local port and joined to a multicast group.

    The endpoint exclusively owns its socket. Endpoints are built with
    create(), which binds, configures and joins atomically, and are
    released with close() or by leaving an ``async with`` block.

    Usage:
        endpoint = MulticastEndpoint.create(
            "192.168.1.10",
            "239.1.1.1",
            6100,
        )

        async with endpoint:
            await endpoint.send(packet)
            packet = await endpoint.receive()
    """

    def __init__(
        self,
        state: EndpointState | None = None,
        receive_buffer_size: int = DEFAULT_RECEIVE_BUFFER_SIZE,
        logger: Logger | None = None,
        logger_name: str | None = None,
    ) -> None:
        if state is None:
            state = Uninitialized()

        self._state: EndpointState = state
        self._receive_buffer_size = receive_buffer_size
        self._logger = logger if logger else Logger()
        self._logger_name = logger_name
        self._send_lock = asyncio.Lock()

        self._packets_sent: int = 0
        self._packets_received: int = 0
        self._send_failures: int = 0

    @classmethod
    def create(
        cls,
        local_interface_ip: str,
        group_ip: str,
        port: int,
        ttl: int = 1,
        reuse_address: bool = False,
        receive_buffer_size: int = DEFAULT_RECEIVE_BUFFER_SIZE,
        logger: Logger | None = None,
        logger_name: str | None = None,
    ) -> MulticastEndpoint:
        """
        Bind a UDP socket to (ANY, port), disable multicast loopback, set
        the multicast TTL, and join ``group_ip`` via ``local_interface_ip``.

        Raises BindError if the port is out of range or cannot be bound,
        and JoinError if the addresses are invalid or the OS refuses the
        socket options or the membership. The socket is closed before either error is raised.
        """
        local_interface_ip = str(local_interface_ip)
        group_ip = str(group_ip)

        try:
            group = ipaddress.IPv4Address(group_ip)
            ipaddress.IPv4Address(local_interface_ip)

        except ipaddress.AddressValueError as err:
            raise JoinError(group_ip, local_interface_ip, cause=err)

        if not group.is_multicast:
            raise JoinError(
                group_ip,
                local_interface_ip,
                cause=ValueError(f"{group_ip} is not a multicast address"),
            )

        if not isinstance(port, int) or not 0 <= port <= 65535:
            raise BindError(
                port,
                cause=ValueError(f"{port!r} is not a valid UDP port"),
            )

        udp_socket = socket.socket(
            socket.AF_INET,
            socket.SOCK_DGRAM,
            socket.IPPROTO_UDP,
        )

        try:
            if reuse_address:
                udp_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            udp_socket.bind(("", port))
            local_address: tuple[str, int] = udp_socket.getsockname()

        except (OSError, OverflowError, TypeError) as err:
            udp_socket.close()
            raise BindError(port, cause=err)

        try:
            udp_socket.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 0)
            udp_socket.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)
            udp_socket.setsockopt(
                socket.IPPROTO_IP,
                socket.IP_MULTICAST_IF,
                socket.inet_aton(local_interface_ip),
            )

            membership = struct.pack(
                "4s4s",
                socket.inet_aton(group_ip),
                socket.inet_aton(local_interface_ip),
            )
            udp_socket.setsockopt(
                socket.IPPROTO_IP,
                socket.IP_ADD_MEMBERSHIP,
                membership,
            )

            udp_socket.setblocking(False)

        except (OSError, OverflowError, TypeError) as err:
            udp_socket.close()
            raise JoinError(group_ip, local_interface_ip, cause=err)

        return cls(
            state=Active(
                socket=udp_socket,
                local_address=local_address,
                group_address=(group_ip, local_address[1]),
                interface_address=local_interface_ip,
            ),
            receive_buffer_size=receive_buffer_size,
            logger=logger,
            logger_name=logger_name,
        )

    @property
    def state(self) -> EndpointState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return isinstance(self._state, Active)

    @property
    def local_address(self) -> tuple[str, int] | None:
        match self._state:
            case Active(local_address=local_address):
                return local_address

            case _:
                return None

    @property
    def group_address(self) -> tuple[str, int] | None:
        match self._state:
            case Active(group_address=group_address):
                return group_address

            case _:
                return None

    async def send(self, packet: bytes) -> bool:
        """
        Send a packet to the multicast group.

        Socket errors are logged and reported by returning False; they
        never stop later sends.
        """
        match self._state:
            case Active(socket=udp_socket, group_address=group_address):
                pass

            case _:
                raise NotListeningError("send")

        loop = asyncio.get_running_loop()

        try:
            # The event loop keeps one writer callback per descriptor.
            async with self._send_lock:
                await loop.sock_sendto(udp_socket, packet, group_address)

            self._packets_sent += 1
            return True

        except OSError as err:
            self._send_failures += 1
            await self._log_error(
                SendFailure(
                    group_address,
                    len(packet),
                    cause=err,
                )
            )

            return False

    async def receive(self) -> bytes:
        """
        Wait until one datagram arrives and return its raw bytes.

        Raises ReceiveFailure when the socket fails.
        """
        match self._state:
            case Active(socket=udp_socket, group_address=group_address):
                pass

            case _:
                raise NotListeningError("receive")

        loop = asyncio.get_running_loop()

        try:
            data, _ = await loop.sock_recvfrom(
                udp_socket,
                self._receive_buffer_size,
            )

        except OSError as err:
            raise ReceiveFailure(group_address, cause=err)

        self._packets_received += 1
        return data

    def leave_group(self) -> bool:
        """
        Drop the group membership. Safe to call repeatedly and on an
        endpoint that was never created. Returns True only when a
        membership was actually dropped.
        """
        match self._state:
            case Active(joined=True) as active:
                active.joined = False

                try:
                    active.socket.setsockopt(
                        socket.IPPROTO_IP,
                        socket.IP_DROP_MEMBERSHIP,
                        active.membership_request,
                    )

                except OSError:
                    # Closing the socket releases the membership as well.
                    return False

                return True

            case _:
                return False

    def close(self) -> None:
        """Leave the group and close the socket. Idempotent."""
        match self._state:
            case Active(socket=udp_socket):
                self.leave_group()
                udp_socket.close()
                self._state = Uninitialized()

            case _:
                pass

    def get_stats(self) -> dict[str, int | bool]:
        return {
            "initialized": self.is_initialized,
            "packets_sent": self._packets_sent,
            "packets_received": self._packets_received,
            "send_failures": self._send_failures,
        }

    async def _log_error(self, error: SendFailure) -> None:
        match self._state:
            case Active(
                interface_address=interface_address,
                group_address=group_address,
            ):
                node_host = interface_address
                node_port = group_address[1]
                multicast_group = group_address[0]

            case _:
                node_host = ""
                node_port = 0
                multicast_group = ""

        await self._logger.log(
            MulticastError(
                message=str(error),
                node_host=node_host,
                node_port=node_port,
                multicast_group=multicast_group,
                error_type=type(error).__name__,
            ),
            name=self._logger_name,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
