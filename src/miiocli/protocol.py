#!/usr/bin/env python3
"""
miIO packet framing.

Every packet starts with a 32-byte big-endian header:

    offset  size  field
    0       2     magic, always 0x2131
    2       2     total packet length including the header
    4       4     reserved, 0 for data packets, 0xFFFFFFFF for hello
    8       4     device id
    12      4     stamp, seconds since device boot
    16      16    checksum, MD5(header[0:16] + token + payload)

Data packets carry an encrypted JSON payload after the header. The hello
packet used for the handshake is the header alone with every field after
the length set to 0xFF. The device answers with a bare header holding its
id and current stamp.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from miiocli.errors import ProtocolError
from miiocli.protocol_crypto import checksum, decrypt, encrypt

MAGIC: int = 0x2131

HEADER_SIZE: int = 32

# magic, length, reserved, device id, stamp
HEADER_FORMAT: str = ">HHIII"

HELLO_PACKET: bytes = struct.pack(">HH", MAGIC, HEADER_SIZE) + b"\xff" * 28


@dataclass(frozen=True)
class Header:
    """
    Decoded packet header.

    Attributes:
        length: Total packet length.
        reserved: Reserved field.
        device_id: Device identifier.
        stamp: Device stamp in seconds.
        checksum: Raw 16-byte checksum field.
    """

    length: int
    reserved: int
    device_id: int
    stamp: int
    checksum: bytes


def parse_header(packet: bytes) -> Header:
    """
    Decode and sanity check the header of a packet.

    Args:
        packet: Raw datagram.

    Returns:
        The decoded Header.

    Raises:
        ProtocolError: On short packet, bad magic or length mismatch.
    """
    if len(packet) < HEADER_SIZE:
        raise ProtocolError(f"Packet too short: {len(packet)} bytes")
    magic, length, reserved, device_id, stamp = struct.unpack_from(HEADER_FORMAT, packet)
    if magic != MAGIC:
        raise ProtocolError(f"Invalid magic 0x{magic:04x}")
    if length != len(packet):
        raise ProtocolError(
            f"Declared length {length} does not match packet size {len(packet)}"
        )
    return Header(
        length=length,
        reserved=reserved,
        device_id=device_id,
        stamp=stamp,
        checksum=packet[16:HEADER_SIZE],
    )


def parse_hello_response(packet: bytes) -> Header:
    """
    Decode the device answer to a hello packet.

    Raises:
        ProtocolError: If the packet is not a bare 32-byte header.
    """
    header = parse_header(packet)
    if header.length != HEADER_SIZE:
        raise ProtocolError(f"Unexpected handshake response length {header.length}")
    return header


def encode_packet(device_id: int, stamp: int, token: bytes, body: bytes) -> bytes:
    """
    Encrypt a body and frame it as a data packet.

    Args:
        device_id: Device identifier learned during the handshake.
        stamp: Device stamp to send.
        token: 16-byte device token.
        body: Plaintext payload.

    Returns:
        The complete packet ready to send.
    """
    payload = encrypt(token, body)
    head = struct.pack(
        HEADER_FORMAT, MAGIC, HEADER_SIZE + len(payload), 0, device_id, stamp
    )
    return head + checksum(head, token, payload) + payload


def decode_packet(packet: bytes, token: bytes) -> tuple[Header, bytes]:
    """
    Verify and decrypt a data packet.

    Args:
        packet: Raw datagram.
        token: 16-byte device token.

    Returns:
        Tuple of (header, plaintext body).

    Raises:
        ProtocolError: On framing errors, checksum mismatch or bad payload.
    """
    header = parse_header(packet)
    payload = packet[HEADER_SIZE:]
    if not payload:
        raise ProtocolError("Packet has no payload")
    if checksum(packet, token, payload) != header.checksum:
        raise ProtocolError("Checksum mismatch, packet was not signed with this token")
    return header, decrypt(token, payload)
