"""Command-line entry point: ``genbridge`` / ``python -m genbridge``.

Examples::

    genbridge < flags.json                     # the main profile
    printf 'foo\\nbar\\n' | genbridge --engine prefix -o prefix=GEN:
    genbridge --profile unicode < UnicodeData.txt
    genbridge --engine command -- node run.js < flags.json
    genbridge --engine mypkg.engines:MyEngine < input.txt

Exit status: 0 on success, 2 on usage or configuration errors, 3 when
stdin cannot be read, 4 when the engine fails, 5 when stdout cannot be
written.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any

from genbridge import __version__
from genbridge.bridge import BridgeController
from genbridge.config import load_profiles, load_settings, resolve_profile
from genbridge.engines import ENGINE_REGISTRY, engine_for_profile
from genbridge.errors import BridgeError, InitializationError, InputError, RelayError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_INPUT = 3
EXIT_ENGINE = 4
EXIT_RELAY = 5

_HANDLER_NAME = "genbridge-stderr"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="genbridge",
        description="Feed stdin to a generation engine and relay its output lines to stdout.",
        epilog="Arguments after '--' are the program run by the command engine.",
    )
    p.add_argument("-e", "--engine", help="Engine name or package.module:attr path")
    p.add_argument("-p", "--profile", help="Named engine profile (main, categories, unicode, ...)")
    p.add_argument(
        "-o", "--option",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Engine option; VALUE is parsed as JSON when possible (repeatable)",
    )
    p.add_argument("--encoding", help="Input encoding (default utf-8)")
    p.add_argument("--log-level", help="stderr log level (default WARNING)")
    p.add_argument("--project-root", default=".", help="Directory holding .genbridge/config.json")
    p.add_argument("--list-profiles", action="store_true", help="List profiles and engines, then exit")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def _parse_options(raw: list[str]) -> dict[str, Any]:
    options: dict[str, Any] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"engine option must be KEY=VALUE, got {item!r}")
        try:
            options[key] = json.loads(value)
        except json.JSONDecodeError:
            options[key] = value
    return options


def configure_logging(level: str) -> None:
    """Send ``genbridge`` log records to stderr at *level*."""
    root = logging.getLogger("genbridge")
    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            if isinstance(handler, logging.StreamHandler):
                handler.setStream(sys.stderr)
            break
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def _silence_stdout() -> None:
    """Point stdout at devnull so interpreter shutdown does not re-raise EPIPE."""
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)
    except (OSError, ValueError, AttributeError):
        logger.debug("Could not redirect stdout after broken pipe", exc_info=True)


def _list_profiles(project_root: str) -> None:
    for name, profile in sorted(load_profiles(project_root).items()):
        entry = f" entry_point={profile.entry_point}" if profile.entry_point else ""
        sys.stdout.write(f"{name}: engine={profile.engine}{entry}\n")
    sys.stdout.write(f"engines: {', '.join(sorted(ENGINE_REGISTRY))}\n")


def main(argv: list[str] | None = None) -> int:
    """Run the bridge once and return the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    command: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, command = argv[:split], argv[split + 1:]

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        options = _parse_options(args.option)
        if command:
            options["command"] = command
        settings = load_settings(
            args.project_root,
            {
                "engine": args.engine,
                "profile": args.profile,
                "encoding": args.encoding,
                "log_level": args.log_level,
                "engine_options": options,
            },
        )
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(settings.log_level)

    if args.list_profiles:
        try:
            _list_profiles(args.project_root)
        except ValueError as exc:
            parser.error(str(exc))
        return EXIT_OK

    try:
        profile = resolve_profile(settings, args.project_root)
        engine = engine_for_profile(profile)
    except (ValueError, ImportError, AttributeError, TypeError) as exc:
        parser.error(str(exc))

    logger.debug("Using profile %s (engine %s)", profile.name, profile.engine)
    controller = BridgeController(engine)

    try:
        controller.load_and_run(encoding=settings.encoding)
    except InputError as exc:
        _report(exc)
        return EXIT_INPUT
    except InitializationError as exc:
        _report(exc)
        return EXIT_ENGINE
    except RelayError as exc:
        if isinstance(exc.__cause__, BrokenPipeError):
            _silence_stdout()
        _report(exc)
        return EXIT_RELAY
    except BridgeError as exc:
        _report(exc)
        return EXIT_ENGINE
    return EXIT_OK


def _report(exc: BridgeError) -> None:
    sys.stderr.write(f"genbridge: {exc.phase} error: {exc}\n")
