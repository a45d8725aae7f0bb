"""OutputPort — single-channel publish/subscribe for engine output lines."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]


class OutputPort:
    """Channel of string events published by an engine.

    Lines sent while nobody is subscribed are held and delivered, in order,
    to the first subscriber the moment it registers.  After that, ``send``
    calls every subscriber synchronously in registration order.
    """

    def __init__(self) -> None:
        self._subscribers: list[LineCallback] = []
        self._held: deque[str] = deque()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def held(self) -> int:
        """Number of lines waiting for a first subscriber."""
        return len(self._held)

    def subscribe(self, callback: LineCallback) -> None:
        """Register *callback* and flush any held lines to it."""
        self._subscribers.append(callback)
        if len(self._subscribers) == 1 and self._held:
            logger.debug("Flushing %d held line(s) to first subscriber", len(self._held))
            while self._held:
                callback(self._held.popleft())

    def send(self, line: str) -> None:
        """Publish one line."""
        if not isinstance(line, str):
            raise TypeError(f"Output lines must be str, got {type(line).__name__}")
        if not self._subscribers:
            self._held.append(line)
            return
        for callback in list(self._subscribers):
            callback(line)
