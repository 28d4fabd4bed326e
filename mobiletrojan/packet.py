"""Inspection of packets read from the tun device, traffic accounting and speed reporting."""

from __future__ import annotations

import enum
import hashlib
import ipaddress
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

log = logging.getLogger(__name__)

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

RESOLVER = 1
"""Selector token used for the DNS resolver."""
CHANNEL_CNT = 3
"""Number of token channels."""
CHANNEL_IDLE = 0
"""Token channel of the idle connection pool."""
CHANNEL_UDP = 1
"""Token channel of client UDP connections."""
CHANNEL_TCP = 2
"""Token channel of remote TCP connections."""
MIN_INDEX = 2
"""Smallest connection index."""
MAX_INDEX = (2**64 - 1) // CHANNEL_CNT
"""Connection indices wrap around before this value."""

PROTO_TCP = 6
PROTO_UDP = 17

_TCP_SYN = 0x02
_TCP_ACK = 0x10
_IPV6_HEADER_LEN = 40
_UDP_HEADER_LEN = 8
_TCP_MIN_HEADER_LEN = 20
_BROADCAST = ipaddress.IPv4Address("255.255.255.255")
_UNSPECIFIED = ipaddress.IPv4Address("0.0.0.0")
_INFO_LEVELS = frozenset({"Debug", "Info", "Trace"})


def _as_ip(address: Union[str, IpAddress]) -> IpAddress:
    return ipaddress.ip_address(address)


def is_private(address: Union[str, IpAddress], port: int) -> bool:
    """Whether traffic to this endpoint must stay out of the tunnel.

    Every IPv6 destination, port 0, and the IPv4 local, private,
    multicast, reserved and broadcast ranges count as private.
    """
    ip = _as_ip(address)
    if ip.version != 4:
        return True
    first, second = ip.packed[0], ip.packed[1]
    return (
        port == 0
        or ip == _UNSPECIFIED
        or first == 10
        or first == 127
        or (first == 169 and second == 254)
        or (first == 172 and second & 0xF0 == 16)
        or (first == 192 and second == 168)
        or first & 0xF0 == 224
        or first & 0xF0 == 240
        or ip == _BROADCAST
    )


@dataclass(frozen=True)
class PacketInfo:
    """Destination of a TCP or UDP packet.

    ``connect`` is None for UDP and, for TCP, whether the segment opens a
    connection (SYN without ACK).
    """

    address: IpAddress
    port: int
    protocol: int
    connect: Optional[bool]


def _ipv4_payload(data: bytes) -> Tuple[IpAddress, bytes, int]:
    if len(data) < 20:
        raise ValueError("truncated ipv4 header")
    header_len = (data[0] & 0x0F) * 4
    total_len = int.from_bytes(data[2:4], "big")
    if header_len < 20 or len(data) < header_len:
        raise ValueError("invalid ipv4 header length")
    if total_len < header_len or len(data) < total_len:
        raise ValueError("invalid ipv4 total length")
    return ipaddress.IPv4Address(data[16:20]), data[header_len:total_len], data[9]


def _ipv6_payload(data: bytes) -> Tuple[IpAddress, bytes, int]:
    if len(data) < _IPV6_HEADER_LEN:
        raise ValueError("truncated ipv6 header")
    payload_len = int.from_bytes(data[4:6], "big")
    end = _IPV6_HEADER_LEN + payload_len
    if len(data) < end:
        raise ValueError("invalid ipv6 payload length")
    return ipaddress.IPv6Address(data[24:40]), data[_IPV6_HEADER_LEN:end], data[6]


def parse_packet(data: bytes) -> Optional[PacketInfo]:
    """Read the destination of an IP packet.

    Returns None for protocols other than TCP and UDP and raises
    ValueError when the packet is malformed.
    """
    data = bytes(data)
    if not data:
        raise ValueError("empty packet")
    version = data[0] >> 4
    if version == 4:
        address, payload, protocol = _ipv4_payload(data)
    elif version == 6:
        address, payload, protocol = _ipv6_payload(data)
    else:
        raise ValueError(f"unknown ip version {version}")

    if protocol == PROTO_UDP:
        if len(payload) < _UDP_HEADER_LEN:
            raise ValueError("truncated udp header")
        length = int.from_bytes(payload[4:6], "big")
        if length < _UDP_HEADER_LEN or len(payload) < length:
            raise ValueError("invalid udp length")
        return PacketInfo(address, int.from_bytes(payload[2:4], "big"), protocol, None)
    if protocol == PROTO_TCP:
        if len(payload) < _TCP_MIN_HEADER_LEN:
            raise ValueError("truncated tcp header")
        header_len = (payload[12] >> 4) * 4
        if header_len < _TCP_MIN_HEADER_LEN or len(payload) < header_len:
            raise ValueError("invalid tcp header length")
        flags = payload[13]
        connect = bool(flags & _TCP_SYN) and not flags & _TCP_ACK
        return PacketInfo(address, int.from_bytes(payload[2:4], "big"), protocol, connect)
    return None


class PacketAction(enum.Enum):
    """What the device should do before handing a packet to the IP stack."""

    NONE = "none"
    IGNORE = "ignore"
    TCP_LISTEN = "tcp_listen"
    UDP_BIND = "udp_bind"


class PacketFilter:
    """Decides which incoming packets need a socket opened for them."""

    def __init__(self, server: Union[str, IpAddress], dns: Union[str, IpAddress]) -> None:
        self.server = _as_ip(server)
        self.dns = _as_ip(dns)

    def is_server(self, address: Union[str, IpAddress]) -> bool:
        return _as_ip(address) == self.server

    def is_dns(self, address: Union[str, IpAddress]) -> bool:
        return _as_ip(address) == self.dns

    def classify(self, data: bytes) -> Tuple[PacketAction, Optional[PacketInfo]]:
        """Return the action for a packet together with its destination."""
        info = parse_packet(data)
        if info is None:
            return PacketAction.NONE, None
        if not self.is_dns(info.address) and (
            is_private(info.address, info.port) or self.is_server(info.address)
        ):
            log.info("ignore private packets:%s:%d", info.address, info.port)
            return PacketAction.IGNORE, info
        if info.connect is None:
            return PacketAction.UDP_BIND, info
        if info.connect:
            return PacketAction.TCP_LISTEN, info
        return PacketAction.NONE, info


class Traffic:
    """Byte counters for the tun device since the last speed report."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.rx_bytes = 0
        self.tx_bytes = 0
        self.begin = clock()

    def add_rx(self, size: int) -> None:
        self.rx_bytes += size

    def add_tx(self, size: int) -> None:
        self.tx_bytes += size

    def calculate_speed(self) -> Tuple[float, float]:
        """Return (rx, tx) in KB/s since the last call and restart counting."""
        now = self._clock()
        elapsed = now - self.begin
        if elapsed > 0:
            rx = self.rx_bytes / elapsed / 1024.0
            tx = self.tx_bytes / elapsed / 1024.0
        else:
            rx = tx = 0.0
        self.rx_bytes = 0
        self.tx_bytes = 0
        self.begin = now
        return rx, tx


def digest_pass(password: str) -> str:
    """Hex SHA-224 of the password, as the Trojan protocol sends it."""
    return hashlib.sha224(password.encode()).hexdigest()


def speed_and_unit(speed: float) -> Tuple[float, str]:
    """Scale a KB/s figure to MB/s from 1024 upwards."""
    if speed >= 1024.0:
        return speed / 1024.0, "MB"
    return speed, "KB"


def format_speed(rx_speed: float, tx_speed: float) -> str:
    """The speed line shown to the user."""
    rx, rx_unit = speed_and_unit(rx_speed)
    tx, tx_unit = speed_and_unit(tx_speed)
    return f"上行速度:{rx:.1f}{rx_unit}/s, 下行速度:{tx:.1f}{tx_unit}/s"


def show_info(level: str) -> bool:
    """Whether the log level shows informational messages."""
    return level in _INFO_LEVELS