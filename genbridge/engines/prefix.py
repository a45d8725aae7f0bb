"""PrefixEngine — emits each input line with a fixed prefix."""

from __future__ import annotations

from genbridge.engines.base import EngineHandle, GenerationEngine


class PrefixEngine(GenerationEngine):
    """Reference engine: one output line per input line, ``prefix + line``.

    A trailing newline does not produce an extra empty line, so
    ``"foo\\nbar\\n"`` yields ``prefix + "foo"`` and ``prefix + "bar"``.
    """

    def __init__(self, prefix: str = "", entry_point: str | None = None) -> None:
        self.prefix = prefix
        self.entry_point = entry_point

    @property
    def name(self) -> str:
        return "prefix"

    def init(self, config: str) -> EngineHandle:
        handle = EngineHandle(self.name, config)
        for line in config.splitlines():
            handle.call_soon(handle.emit, self.prefix + line)
        return handle
