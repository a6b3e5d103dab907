from __future__ import annotations

import ipaddress

import msgspec


class Message(msgspec.Struct):
    """
    A message sent to, or received from, a multicast group.

    Carries the IPv4 address of the sender and a UTF-8 text payload.
    Messages are compared by value, so a decoded message equals the
    message it was encoded from.
    """

    source_address: str
    payload: str = ""

    def __post_init__(self):
        if isinstance(self.source_address, ipaddress.IPv4Address):
            self.source_address = str(self.source_address)

    @classmethod
    def from_bytes(cls, packet: bytes) -> Message:
        from castnet.codec import decode

        return decode(packet)

    def set_payload(self, payload: str) -> None:
        self.payload = payload

    def to_bytes(self) -> bytes:
        from castnet.codec import encode

        return encode(self)

    def to_display_string(self) -> str:
        lines = [f"Source IP: {self.source_address}\n"]

        if self.payload:
            lines.append(f"Payload: {self.payload}\n")

        return "".join(lines)
