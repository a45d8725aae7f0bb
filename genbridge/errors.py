"""Phase-tagged exceptions raised by the bridge.

Every failure aborts the run.  The ``phase`` attribute records which step
failed: ``load`` (reading stdin), ``init`` (engine construction or engine
work), or ``relay`` (writing to the output sink).
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge failures."""

    phase: str = "bridge"


class InputError(BridgeError):
    """Raised when standard input cannot be read or decoded."""

    phase = "load"


class InitializationError(BridgeError):
    """Raised when the generation engine rejects its configuration."""

    phase = "init"


class EngineError(InitializationError):
    """Raised when engine work fails after ``init`` returned a handle."""


class RelayError(BridgeError):
    """Raised when an output line cannot be written to the sink."""

    phase = "relay"
