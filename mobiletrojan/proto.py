"""Trojan request and UDP-associate framing."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from typing import Optional, Tuple, Union

CONNECT = 0x01
PING = 0x02
UDP_ASSOCIATE = 0x03
MAX_PACKET_SIZE = 1450
IPV4 = 0x01
DOMAIN = 0x03
IPV6 = 0x04

_CRLF = b"\r\n"

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
Host = Union[IpAddress, str]


class InvalidProtocolError(ValueError):
    """The data does not follow the Trojan framing."""


@dataclass(frozen=True)
class UdpPacket:
    """One UDP-associate frame: its peer, its payload and the bytes it took."""

    host: IpAddress
    port: int
    payload: bytes
    offset: int

    @property
    def length(self) -> int:
        return len(self.payload)


def _port_bytes(port: int) -> bytes:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return struct.pack("!H", port)


def encode_address(host: str | IpAddress, port: int) -> bytes:
    """Encode an IP address and port in SOCKS5 form."""
    address = ipaddress.ip_address(host)
    kind = IPV4 if address.version == 4 else IPV6
    return bytes([kind]) + address.packed + _port_bytes(port)


def _u16(buffer: bytes, start: int) -> int:
    return (buffer[start] << 8) | buffer[start + 1]


def parse_address(atyp: int, buffer: bytes) -> Tuple[int, Host, int]:
    """Parse a SOCKS5 address; return (bytes consumed, host, port).

    The host is an IP address object, or a str for a domain name that is
    not an IP literal.
    """
    buffer = bytes(buffer)
    if atyp == IPV4:
        if len(buffer) < 6:
            raise InvalidProtocolError("invalid ipv4 address")
        return 6, ipaddress.IPv4Address(buffer[:4]), _u16(buffer, 4)
    if atyp == DOMAIN:
        if not buffer:
            raise InvalidProtocolError("invalid domain address")
        length = buffer[0]
        if len(buffer) < length + 3:
            raise InvalidProtocolError("invalid domain address")
        domain = buffer[1 : length + 1].decode("utf-8", errors="replace")
        port = _u16(buffer, length + 1)
        try:
            host: Host = ipaddress.ip_address(domain)
        except ValueError:
            host = domain
        return length + 3, host, port
    if atyp == IPV6:
        if len(buffer) < 18:
            raise InvalidProtocolError("invalid ipv6 address")
        return 18, ipaddress.IPv6Address(buffer[:16]), _u16(buffer, 16)
    raise InvalidProtocolError(f"invalid address type: {atyp}")


def trojan_request(command: int, password: str | bytes, host: str | IpAddress, port: int) -> bytes:
    """Build the Trojan request header for a command and target address."""
    if isinstance(password, str):
        password = password.encode()
    return password + _CRLF + bytes([command]) + encode_address(host, port) + _CRLF


def udp_associate_header(host: str | IpAddress, port: int, length: int) -> bytes:
    """Build the header that precedes a UDP payload of the given length."""
    return encode_address(host, port) + struct.pack("!H", length) + _CRLF


def parse_udp_associate(buffer: bytes) -> Optional[UdpPacket]:
    """Parse one UDP-associate frame from the start of ``buffer``.

    Returns None when more data is needed and raises
    InvalidProtocolError when the data cannot be a frame.
    """
    buffer = bytes(buffer)
    if len(buffer) < 11:
        return None
    size, host, port = parse_address(buffer[0], buffer[1:])
    rest = buffer[1 + size :]
    if len(rest) < 4:
        return None
    length = _u16(rest, 0)
    if length > MAX_PACKET_SIZE:
        raise InvalidProtocolError(f"udp packet size {length} is too long")
    if len(rest) < length + 4:
        return None
    if rest[2:4] != _CRLF:
        raise InvalidProtocolError("expected CRLF after length")
    if isinstance(host, str):
        raise InvalidProtocolError("udp packet only accepts ip addresses")
    return UdpPacket(
        host=host,
        port=port,
        payload=rest[4 : 4 + length],
        offset=1 + size + 4 + length,
    )