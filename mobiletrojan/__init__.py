"""Trojan client building blocks: framing, connection status, wakers, DNS caching, packet inspection and app state."""

__version__ = "0.1.0"

__all__ = [
    "app",
    "dnscache",
    "packet",
    "proto",
    "status",
    "waker",
]