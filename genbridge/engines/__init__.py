"""Generation engines — built-in engines plus loading by import path."""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

from genbridge.config import EngineProfile
from genbridge.engines import command
from genbridge.engines.base import EngineHandle, GenerationEngine
from genbridge.engines.command import CommandEngine
from genbridge.engines.prefix import PrefixEngine

logger = logging.getLogger(__name__)


def _prefix_from_options(options: dict[str, Any], entry_point: str | None = None) -> PrefixEngine:
    unknown = set(options) - {"prefix"}
    if unknown:
        raise ValueError(f"unknown prefix engine option(s): {', '.join(sorted(unknown))}")
    return PrefixEngine(str(options.get("prefix", "")), entry_point=entry_point)


ENGINE_REGISTRY: dict[str, Callable[..., GenerationEngine]] = {
    "prefix": _prefix_from_options,
    "command": command.from_options,
}


def _load_import_path(path: str) -> Any:
    """Resolve ``package.module:attr`` to the named object."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Engine path must look like 'package.module:attr', got {path!r}")
    module = importlib.import_module(module_name)
    target: Any = module
    for part in attr.split("."):
        target = getattr(target, part)
    return target


def get_engine(
    name: str,
    options: dict[str, Any] | None = None,
    entry_point: str | None = None,
) -> GenerationEngine:
    """Return an engine instance for a registry name or import path.

    Import-path targets may be a :class:`GenerationEngine` subclass or any
    callable returning an instance; options are passed as keyword arguments,
    plus ``entry_point`` when one is set.

    Raises ``ValueError`` for unknown names or bad options and
    ``ImportError``/``AttributeError`` for unresolvable import paths.
    """
    options = dict(options or {})
    factory = ENGINE_REGISTRY.get(name)
    if factory is not None:
        return factory(options, entry_point)

    if ":" not in name:
        known = ", ".join(sorted(ENGINE_REGISTRY))
        raise ValueError(f"Unknown engine {name!r} (built-in engines: {known})")

    target = _load_import_path(name)
    if not callable(target):
        raise ValueError(f"Engine path {name!r} does not name a class or factory")
    if entry_point is not None:
        options["entry_point"] = entry_point
    engine = target(**options)
    if not isinstance(engine, GenerationEngine):
        raise ValueError(
            f"Engine path {name!r} produced {type(engine).__name__}, not a GenerationEngine"
        )
    logger.debug("Loaded engine %s from %s", engine.name, name)
    return engine


def engine_for_profile(profile: EngineProfile) -> GenerationEngine:
    """Build the engine a profile names."""
    return get_engine(profile.engine, profile.options, profile.entry_point)


__all__ = [
    "CommandEngine",
    "ENGINE_REGISTRY",
    "EngineHandle",
    "GenerationEngine",
    "PrefixEngine",
    "engine_for_profile",
    "get_engine",
]
