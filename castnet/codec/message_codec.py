"""
Wire format for multicast messages.

    offset 0..3 : source IPv4 address, network byte order
    offset 4..N : optional UTF-8 payload, the remainder of the packet

There is no version byte, magic number or length field. The payload is
everything after the header, so a packet carries exactly one opaque
text payload.
"""

import ipaddress

from castnet.errors import (
    InvalidAddressError,
    MalformedPayloadError,
    PacketTooShortError,
)
from castnet.models.message import Message
from castnet.models.message_protocol import MessageProtocol


HEADER_LENGTH = 4


def pack_address(address: str | ipaddress.IPv4Address) -> bytes:
    if not isinstance(address, (str, ipaddress.IPv4Address)):
        raise InvalidAddressError(address)

    try:
        return ipaddress.IPv4Address(address).packed

    except ipaddress.AddressValueError as err:
        raise InvalidAddressError(address, cause=err)


def decode(packet: bytes) -> Message:
    """
    Decode a received packet into a Message.

    Raises PacketTooShortError when the packet cannot hold the source
    address, and MalformedPayloadError when the payload is not UTF-8.
    """
    if len(packet) < HEADER_LENGTH:
        raise PacketTooShortError(bytes(packet), HEADER_LENGTH)

    source_address = str(ipaddress.IPv4Address(bytes(packet[:HEADER_LENGTH])))

    if len(packet) == HEADER_LENGTH:
        return Message(source_address)

    try:
        payload = bytes(packet[HEADER_LENGTH:]).decode("utf-8")

    except UnicodeDecodeError as err:
        raise MalformedPayloadError(bytes(packet), cause=err)

    return Message(source_address, payload)


def encode(message: MessageProtocol) -> bytes:
    """
    Encode a message as address bytes followed by the UTF-8 payload.

    Raises InvalidAddressError when the source address is not a valid
    IPv4 address.
    """
    header = pack_address(message.source_address)

    if not message.payload:
        return header

    try:
        return header + message.payload.encode("utf-8")

    except UnicodeEncodeError as err:
        raise MalformedPayloadError(header, cause=err)
