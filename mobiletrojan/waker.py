"""Per-socket read/write wakers that queue readiness events."""

from __future__ import annotations

import enum
import functools
import queue
from typing import Callable, Hashable

Waker = Callable[[], None]


class Event(enum.IntFlag):
    """Readiness bits collected for one socket."""

    RX = 1
    TX = 2

    def is_readable(self) -> bool:
        return bool(self & Event.RX)

    def is_writable(self) -> bool:
        return bool(self & Event.TX)


class WakerMode(enum.Enum):
    """Which wakers to register on a socket."""

    RECV = "recv"
    SEND = "send"
    BOTH = "both"
    NONE = "none"
    DUMMY = "dummy"


class _DummyWaker:
    """A waker whose wake-ups produce no event; it only counts them."""

    def __init__(self) -> None:
        self.ignored = 0

    def __call__(self) -> None:
        self.ignored += 1


class Wakers:
    """Creates wakers per socket handle and gathers the events they fire."""

    def __init__(self) -> None:
        self._wakers: dict[Hashable, tuple[Waker, Waker]] = {}
        self._queue: queue.SimpleQueue[tuple[Hashable, Event]] = queue.SimpleQueue()
        self._dummy = _DummyWaker()

    def get_wakers(self, handle: Hashable) -> tuple[Waker, Waker]:
        """Return the (receive, send) wakers for a handle, creating them once."""
        wakers = self._wakers.get(handle)
        if wakers is None:
            wakers = (
                functools.partial(self._queue.put, (handle, Event.RX)),
                functools.partial(self._queue.put, (handle, Event.TX)),
            )
            self._wakers[handle] = wakers
        return wakers

    def get_events(self) -> dict[Hashable, Event]:
        """Drain fired wakers, merging the events of each handle."""
        events: dict[Hashable, Event] = {}
        while True:
            try:
                handle, event = self._queue.get_nowait()
            except queue.Empty:
                return events
            events[handle] = events.get(handle, Event(0)) | event

    def dummy_waker(self) -> Waker:
        """A waker that queues no event when fired."""
        return self._dummy