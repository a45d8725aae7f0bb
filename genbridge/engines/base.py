"""Abstract GenerationEngine interface and the EngineHandle it returns.

An engine is constructed once per run with the full input as its
configuration.  ``init`` must either return a live handle or raise; it must
not leave a half-initialized engine behind.  Work that produces output is
scheduled on the handle with :meth:`EngineHandle.call_soon` and runs when
the host drives the handle, after it has subscribed to ``handle.output``.
"""

from __future__ import annotations

import abc
import logging
from collections import deque
from typing import Any, Callable

from genbridge.port import OutputPort

logger = logging.getLogger(__name__)


class EngineHandle:
    """Live handle to one initialized engine instance.

    Parameters
    ----------
    name:
        Engine name, used in log messages.
    config:
        The configuration string the engine was initialized with.
    """

    def __init__(self, name: str, config: str) -> None:
        self.name = name
        self.config = config
        self.output = OutputPort()
        self._tasks: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def idle(self) -> bool:
        return not self._tasks

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue *fn(*args)* to run on the next drive of the handle."""
        self._tasks.append((fn, args))

    def emit(self, line: str) -> None:
        """Publish one line on the output port."""
        self.output.send(line)

    def run_until_idle(self) -> int:
        """Run queued tasks in FIFO order until none remain.

        Tasks may queue further tasks.  Exceptions propagate to the caller.
        Returns the number of tasks executed.
        """
        executed = 0
        while self._tasks:
            fn, args = self._tasks.popleft()
            fn(*args)
            executed += 1
        logger.debug("Engine %s idle after %d task(s)", self.name, executed)
        return executed


class GenerationEngine(abc.ABC):
    """Base class for all generation engines."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short engine name."""

    @abc.abstractmethod
    def init(self, config: str) -> EngineHandle:
        """Initialize the engine with *config* and return its handle.

        Raises if *config* is invalid for this engine.
        """
