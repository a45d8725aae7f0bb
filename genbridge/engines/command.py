"""CommandEngine — runs an external generator program as the engine.

The configuration is written to the program's stdin; every line of its
stdout becomes one output line.  This is how compiled engines living in
another runtime (for example a ``node`` script loading ``Main.elm.js``)
are bridged.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any

from genbridge.engines.base import EngineHandle, GenerationEngine
from genbridge.errors import EngineError

logger = logging.getLogger(__name__)

# How much of the program's stderr is quoted in an EngineError
_STDERR_TAIL = 2000


class CommandEngine(GenerationEngine):
    """Engine backed by an external program.

    Parameters
    ----------
    command:
        Program and arguments, as a list or a shell-style string.
    entry_point:
        Named entry point, exported to the program as
        ``GENBRIDGE_ENTRY_POINT``.
    module:
        Engine module to load, exported as ``GENBRIDGE_ENGINE_MODULE``.
    cwd:
        Working directory for the program.
    encoding:
        Encoding used on the program's stdin and stdout.
    """

    def __init__(
        self,
        command: list[str] | str | None = None,
        *,
        entry_point: str | None = None,
        module: str | None = None,
        cwd: str | Path | None = None,
        encoding: str = "utf-8",
    ) -> None:
        if isinstance(command, str):
            command = shlex.split(command)
        self.command = list(command or [])
        self.entry_point = entry_point
        self.module = module
        self.cwd = Path(cwd) if cwd is not None else None
        self.encoding = encoding

    @property
    def name(self) -> str:
        return "command"

    def init(self, config: str) -> EngineHandle:
        """Validate the command and schedule the program run.

        Raises ``ValueError`` if no command is configured and
        ``FileNotFoundError`` if the program cannot be found.
        """
        if not self.command:
            raise ValueError("command engine requires a 'command' option")
        if self.cwd is not None and not self.cwd.is_dir():
            raise FileNotFoundError(f"Engine working directory not found: {self.cwd}")

        executable = shutil.which(self.command[0])
        if executable is None:
            raise FileNotFoundError(f"Engine program not found: {self.command[0]}")

        handle = EngineHandle(self.name, config)
        handle.call_soon(self._run, handle, [executable, *self.command[1:]])
        return handle

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.entry_point:
            env["GENBRIDGE_ENTRY_POINT"] = self.entry_point
        if self.module:
            env["GENBRIDGE_ENGINE_MODULE"] = self.module
        return env

    def _run(self, handle: EngineHandle, cmd: list[str]) -> None:
        logger.debug("Running engine program: %s (cwd=%s)", " ".join(cmd), self.cwd)
        try:
            payload = handle.config.encode(self.encoding)
        except UnicodeEncodeError as exc:
            raise EngineError(f"configuration cannot be encoded as {self.encoding}: {exc.reason}") from exc

        try:
            result = subprocess.run(
                cmd,
                input=payload,
                cwd=self.cwd,
                env=self._environment(),
                capture_output=True,
            )
        except OSError as exc:
            raise EngineError(f"cannot start engine program {cmd[0]}: {exc}") from exc

        stderr = result.stderr.decode(self.encoding, errors="replace").strip()
        if result.returncode != 0:
            raise EngineError(
                f"engine program exited with status {result.returncode}"
                + (f": {stderr[-_STDERR_TAIL:]}" if stderr else "")
            )
        if stderr:
            logger.info("Engine stderr: %s", stderr)

        try:
            stdout = result.stdout.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise EngineError(f"engine output is not valid {self.encoding}: {exc.reason}") from exc

        for line in split_output_lines(stdout):
            handle.emit(line)


def split_output_lines(text: str) -> list[str]:
    """Split program output on ``"\\n"`` only.

    Other characters ``str.splitlines`` treats as breaks (``\\r``, form
    feed, ``\\u2028``, ...) stay inside the line.  A final newline does not
    produce an extra empty line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def from_options(options: dict[str, Any], entry_point: str | None = None) -> CommandEngine:
    """Build a CommandEngine from a profile's option dict."""
    known = {"command", "module", "cwd", "encoding"}
    unknown = set(options) - known
    if unknown:
        raise ValueError(f"unknown command engine option(s): {', '.join(sorted(unknown))}")
    return CommandEngine(
        options.get("command"),
        entry_point=entry_point,
        module=options.get("module"),
        cwd=options.get("cwd"),
        encoding=options.get("encoding", "utf-8"),
    )
