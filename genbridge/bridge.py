"""BridgeController — owns one engine run and relays its output.

Usage::

    from genbridge.bridge import BridgeController
    from genbridge.engines import PrefixEngine

    controller = BridgeController(PrefixEngine("GEN:"))
    controller.load_and_run()        # stdin -> engine -> stdout
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import IO, Any

from genbridge.engines.base import EngineHandle, GenerationEngine
from genbridge.errors import BridgeError, EngineError, InitializationError, RelayError
from genbridge.loader import load_input

logger = logging.getLogger(__name__)


class BridgeState(str, Enum):
    """Lifecycle of one bridge run."""

    NOT_STARTED = "not_started"
    INPUT_LOADED = "input_loaded"
    ENGINE_INITIALIZED = "engine_initialized"
    RELAYING = "relaying"
    TERMINATED = "terminated"


class BridgeController:
    """Runs one engine over one input and relays every line to *sink*.

    Parameters
    ----------
    engine:
        The generation engine to initialize.
    sink:
        Text stream receiving output lines.  Defaults to ``sys.stdout``
        looked up at relay time.
    """

    def __init__(self, engine: GenerationEngine, sink: IO[str] | None = None) -> None:
        self.engine = engine
        self._sink = sink
        self.state = BridgeState.NOT_STARTED
        self.handle: EngineHandle | None = None
        self.lines_relayed = 0

    @property
    def sink(self) -> IO[str]:
        return self._sink if self._sink is not None else sys.stdout

    def load_and_run(self, stream: IO[Any] | None = None, encoding: str | None = None) -> None:
        """Read the whole input, then run the engine over it."""
        if self.state is not BridgeState.NOT_STARTED:
            raise BridgeError(f"bridge already used (state={self.state.value})")
        raw_input = load_input(stream, encoding)
        self.state = BridgeState.INPUT_LOADED
        self.run(raw_input)

    def run(self, raw_input: str) -> None:
        """Initialize the engine with *raw_input* and relay until it is idle.

        Raises :class:`InitializationError` if the engine rejects the input,
        :class:`EngineError` if engine work fails, and :class:`RelayError`
        if the sink cannot be written.
        """
        if self.state not in (BridgeState.NOT_STARTED, BridgeState.INPUT_LOADED):
            raise BridgeError(f"bridge already used (state={self.state.value})")
        self.state = BridgeState.INPUT_LOADED

        try:
            handle = self.engine.init(raw_input)
        except BridgeError:
            self.state = BridgeState.TERMINATED
            raise
        except Exception as exc:
            self.state = BridgeState.TERMINATED
            logger.debug("Engine %s rejected its configuration", self.engine.name, exc_info=True)
            raise InitializationError(f"engine {self.engine.name} failed to initialize: {exc}") from exc
        if not isinstance(handle, EngineHandle):
            self.state = BridgeState.TERMINATED
            raise InitializationError(
                f"engine {self.engine.name} returned {type(handle).__name__}, not an EngineHandle"
            )

        self.handle = handle
        self.state = BridgeState.ENGINE_INITIALIZED
        logger.info("Engine %s initialized with %d character(s) of input", self.engine.name, len(raw_input))

        # Same turn as init: held lines are flushed through the relay here.
        self.state = BridgeState.RELAYING
        handle.output.subscribe(self._relay)

        try:
            handle.run_until_idle()
        except BridgeError:
            raise
        except Exception as exc:
            logger.debug("Engine %s failed while running", self.engine.name, exc_info=True)
            raise EngineError(f"engine {self.engine.name} failed: {exc}") from exc
        finally:
            self.state = BridgeState.TERMINATED

        logger.info("Engine %s idle, relayed %d line(s)", self.engine.name, self.lines_relayed)

    def _relay(self, line: str) -> None:
        if self.state is not BridgeState.RELAYING:
            raise RelayError(f"line received outside relaying state ({self.state.value})")
        sink = self.sink
        try:
            sink.write(line + "\n")
            sink.flush()
        except (OSError, ValueError) as exc:
            self.state = BridgeState.TERMINATED
            raise RelayError(f"cannot write output line: {exc}") from exc
        self.lines_relayed += 1
