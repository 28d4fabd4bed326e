"""Connection life-cycle shared by the remote connections."""

from __future__ import annotations

import abc
import enum
from typing import Any


class ConnStatus(enum.Enum):
    """States a connection moves through."""

    CONNECTING = "connecting"
    ESTABLISHED = "established"
    PEER_CLOSED = "peer_closed"
    SHUTDOWN = "shutdown"
    DEREGISTERED = "deregistered"


class StatusProvider(abc.ABC):
    """Mixin driving a connection from connecting to deregistered.

    Subclasses keep their state in ``self.status`` and supply
    ``close_conn``, ``deregister`` and ``finish_send``.
    """

    status: ConnStatus = ConnStatus.CONNECTING

    def deregistered(self) -> bool:
        return self.status is ConnStatus.DEREGISTERED

    def alive(self) -> bool:
        return self.status in (ConnStatus.PEER_CLOSED, ConnStatus.ESTABLISHED)

    def is_shutdown(self) -> bool:
        return self.status in (ConnStatus.SHUTDOWN, ConnStatus.DEREGISTERED)

    def is_connecting(self) -> bool:
        return self.status is ConnStatus.CONNECTING

    def peer_closed(self) -> None:
        if self.status in (ConnStatus.ESTABLISHED, ConnStatus.CONNECTING):
            self.status = ConnStatus.PEER_CLOSED

    def established(self) -> None:
        if self.status is ConnStatus.CONNECTING:
            self.status = ConnStatus.ESTABLISHED

    @abc.abstractmethod
    def close_conn(self) -> bool:
        """Close the underlying stream; return whether that succeeded."""

    def shutdown(self) -> bool:
        """Close the connection unless it is already shut down."""
        if self.status in (
            ConnStatus.ESTABLISHED,
            ConnStatus.PEER_CLOSED,
            ConnStatus.CONNECTING,
        ):
            if not self.close_conn():
                return False
            self.status = ConnStatus.SHUTDOWN
        return True

    @abc.abstractmethod
    def deregister(self, selector: Any) -> bool:
        """Remove the stream from the selector; return whether that succeeded."""

    @abc.abstractmethod
    def finish_send(self) -> bool:
        """Return True when nothing is left to send."""

    def check_status(self, selector: Any) -> None:
        """Advance a closing connection as far as it can go now."""
        while True:
            if self.status is ConnStatus.PEER_CLOSED:
                if self.finish_send() and self.shutdown():
                    continue
            elif self.status is ConnStatus.SHUTDOWN:
                if self.deregister(selector):
                    self.status = ConnStatus.DEREGISTERED
            break