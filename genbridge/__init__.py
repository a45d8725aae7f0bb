"""genbridge — host bridge between stdin, a generation engine, and stdout."""

__version__ = "1.0.0"

from genbridge.bridge import BridgeController, BridgeState
from genbridge.config import BridgeSettings, EngineProfile, load_settings
from genbridge.engines import (
    CommandEngine,
    EngineHandle,
    GenerationEngine,
    PrefixEngine,
    get_engine,
)
from genbridge.errors import (
    BridgeError,
    EngineError,
    InitializationError,
    InputError,
    RelayError,
)
from genbridge.loader import load_input
from genbridge.port import OutputPort

__all__ = [
    "__version__",
    # Bridge
    "BridgeController",
    "BridgeState",
    "load_input",
    # Engines
    "CommandEngine",
    "EngineHandle",
    "GenerationEngine",
    "OutputPort",
    "PrefixEngine",
    "get_engine",
    # Configuration
    "BridgeSettings",
    "EngineProfile",
    "load_settings",
    # Errors
    "BridgeError",
    "EngineError",
    "InitializationError",
    "InputError",
    "RelayError",
]
