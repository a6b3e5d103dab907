from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageProtocol(Protocol):
    """
    Structural interface for anything the network manager can send.

    Hides the concrete message type from subscribers and senders, so
    any object exposing a source address, a text payload and a byte
    encoding can travel over the multicast group.
    """

    @property
    def source_address(self) -> str:
        ...

    @property
    def payload(self) -> str:
        ...

    def to_display_string(self) -> str:
        ...

    def set_payload(self, payload: str) -> None:
        ...

    def to_bytes(self) -> bytes:
        ...
