"""Cached DNS answers shared by clients waiting on the same query."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, List, Tuple

import dns.message
import dns.rdatatype

log = logging.getLogger(__name__)

Sender = Callable[[bytes, Any], object]


def is_blocked(blocked: Iterable[str] | set, name: str) -> bool:
    """Whether ``name`` or one of its parent domains (not the top level) is blocked."""
    parts = name.split(".")
    length = len(parts) - 1 if name.endswith(".") else len(parts)
    for start in range(length - 1):
        candidate = ".".join(parts[start:length])
        if candidate in blocked:
            log.info("test domain:%s blocked", candidate)
            return True
    return False


def message_key(message: dns.message.Message) -> str:
    """Key a message by its first question: "name|TYPE"."""
    question = message.question[0]
    return f"{question.name.to_text()}|{dns.rdatatype.to_text(question.rdtype)}"


class DnsItem:
    """The latest answer for one query and the clients waiting for it."""

    def __init__(
        self,
        message: dns.message.Message,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.message = message
        self._clock = clock
        self.expire = clock()
        self.clients: List[Tuple[Any, int]] = []

    def has_response(self) -> bool:
        return any(len(rrset) for rrset in self.message.answer)

    def add_client(self, client: Any, message_id: int) -> None:
        self.clients.append((client, message_id))

    def notify(self, message: dns.message.Message, send: Sender) -> None:
        """Answer every waiting client with ``message`` and keep it as the cached answer."""
        clients, self.clients = self.clients, []
        for source, message_id in clients:
            message.id = message_id
            message.additional.clear()
            message.authority.clear()
            send(message.to_wire(), source)
            log.info("send response to %s", source)
        if message.answer:
            self.expire = self._clock() + message.answer[0].ttl
        self.message = message

    def respond(self, send: Sender, source: Any, message_id: int) -> bool:
        """Answer ``source`` from the cache if possible.

        Returns True when the query must be sent upstream: either no
        answer is cached yet (the client is queued) or the cached answer
        has expired.
        """
        if not self.has_response():
            self.add_client(source, message_id)
            return True
        remaining = max(0.0, self.expire - self._clock())
        for rrset in self.message.answer:
            rrset.ttl = int(remaining)
        self.message.id = message_id
        send(self.message.to_wire(), source)
        return remaining <= 0