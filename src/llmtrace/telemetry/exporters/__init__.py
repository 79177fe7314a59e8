"""Built-in LLM event exporters.

Exporters are discovered via pluggy hooks. BuiltinExportersPlugin
registers the exporters shipped with llmtrace.
"""

from llmtrace.telemetry.exporters.console import ConsoleExporter
from llmtrace.telemetry.hookspecs import hookimpl


class BuiltinExportersPlugin:
    """Plugin that registers built-in exporters."""

    @hookimpl
    def llmtrace_get_exporters(self) -> list[type]:
        return [ConsoleExporter]


__all__ = [
    "BuiltinExportersPlugin",
    "ConsoleExporter",
]
