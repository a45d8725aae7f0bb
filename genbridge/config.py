"""Configuration: constants, settings model, and named engine profiles.

Settings are merged from, in increasing precedence:

1. built-in defaults
2. ``.genbridge/config.json`` under the project root
3. ``GENBRIDGE_*`` environment variables
4. explicit overrides (the CLI flags)
"""

from __future__ import annotations

import codecs
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

# Bytes requested per read when draining stdin
READ_CHUNK_SIZE = 64 * 1024

CONFIG_DIR = ".genbridge"
CONFIG_FILE = "config.json"

# Profile used when neither an engine nor a profile is named
DEFAULT_PROFILE = "main"

# Environment variable -> settings field
_ENV_KEYS: dict[str, str] = {
    "GENBRIDGE_ENGINE": "engine",
    "GENBRIDGE_PROFILE": "profile",
    "GENBRIDGE_ENCODING": "encoding",
    "GENBRIDGE_LOG_LEVEL": "log_level",
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EngineProfile(BaseModel):
    """One named bridge instance: which engine, which entry point."""

    name: str
    engine: str = "command"
    entry_point: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)


# Node script that boots a compiled Elm module and prints its output port
ELM_RUNNER = Path(__file__).resolve().parent / "engines" / "elm_runner.js"


def _elm_options(module: str) -> dict[str, Any]:
    return {"command": ["node", str(ELM_RUNNER)], "module": module}


# The three generator bridges.  Each runs a compiled Elm module, looked up
# relative to the working directory, through the ``command`` engine.
BUILTIN_PROFILES: dict[str, EngineProfile] = {
    "main": EngineProfile(
        name="main",
        entry_point="Main",
        options=_elm_options("Main.elm.js"),
    ),
    "categories": EngineProfile(
        name="categories",
        entry_point="GenerateCategories",
        options=_elm_options("Categories.elm.js"),
    ),
    "unicode": EngineProfile(
        name="unicode",
        entry_point="GenerateUnicode",
        options=_elm_options("Unicode.elm.js"),
    ),
}


class BridgeSettings(BaseModel):
    """Validated runtime settings for one bridge invocation."""

    engine: str | None = None
    profile: str | None = None
    encoding: str = DEFAULT_ENCODING
    log_level: str = "WARNING"
    engine_options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding: {value}") from exc
        return value


def _read_config_json(project_root: Path) -> dict[str, Any]:
    path = project_root / CONFIG_DIR / CONFIG_FILE
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Could not read %s, ignoring it", path)
        logger.debug("config.json read failure", exc_info=True)
        return {}
    if not isinstance(data, dict):
        logger.warning("%s must contain a JSON object, ignoring it", path)
        return {}
    return data


def load_settings(
    project_root: str | Path = ".",
    overrides: dict[str, Any] | None = None,
) -> BridgeSettings:
    """Load merged settings: defaults -> config.json -> env vars -> overrides.

    Raises ``ValueError`` if the merged values fail validation.
    """
    root = Path(project_root)
    merged: dict[str, Any] = {}

    file_data = _read_config_json(root)
    for key in BridgeSettings.model_fields:
        if key in file_data:
            merged[key] = file_data[key]

    for env_key, field in _ENV_KEYS.items():
        env_val = os.environ.get(env_key)
        if env_val:
            merged[field] = env_val

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key == "engine_options":
            options = dict(merged.get("engine_options") or {})
            options.update(value)
            merged[key] = options
        else:
            merged[key] = value

    try:
        return BridgeSettings(**merged)
    except ValidationError as exc:
        raise ValueError(f"invalid genbridge settings: {exc}") from exc


def load_profiles(project_root: str | Path = ".") -> dict[str, EngineProfile]:
    """Return built-in profiles merged with those declared in config.json.

    A config.json profile with the same name as a built-in one updates it:
    its options are merged over the built-in options.
    """
    profiles = {name: p.model_copy(deep=True) for name, p in BUILTIN_PROFILES.items()}
    declared = _read_config_json(Path(project_root)).get("profiles", {})
    if not isinstance(declared, dict):
        logger.warning("config.json 'profiles' must be an object, ignoring it")
        return profiles

    for name, raw in declared.items():
        if not isinstance(raw, dict):
            logger.warning("Profile %r must be an object, skipping it", name)
            continue
        raw_options = raw.get("options") or {}
        if not isinstance(raw_options, dict):
            raise ValueError(f"invalid profile {name!r}: options must be an object")
        base = profiles.get(name)
        if base is not None:
            options = {**base.options, **raw_options}
            data = {**base.model_dump(), **raw, "name": name, "options": options}
        else:
            data = {**raw, "name": name}
        try:
            profiles[name] = EngineProfile(**data)
        except ValidationError as exc:
            raise ValueError(f"invalid profile {name!r}: {exc}") from exc
    return profiles


def resolve_profile(settings: BridgeSettings, project_root: str | Path = ".") -> EngineProfile:
    """Turn settings into the profile that will actually run.

    An explicit ``settings.engine`` without a profile builds an anonymous
    profile.  With neither set, the ``main`` profile runs.  CLI/env engine
    options override profile options.
    """
    if settings.profile is None and settings.engine is not None:
        return EngineProfile(
            name=settings.engine,
            engine=settings.engine,
            options=dict(settings.engine_options),
        )

    name = settings.profile or DEFAULT_PROFILE
    profiles = load_profiles(project_root)
    profile = profiles.get(name)
    if profile is None:
        known = ", ".join(sorted(profiles))
        raise ValueError(f"unknown profile {name!r} (known: {known})")
    if settings.engine_options:
        profile = profile.model_copy(
            update={"options": {**profile.options, **settings.engine_options}}
        )
    return profile
