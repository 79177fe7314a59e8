# src/llmtrace/telemetry/hookspecs.py
"""pluggy hook specifications for LLM event exporters.

Usage (implementing an exporter plugin):
    from llmtrace.telemetry.hookspecs import hookimpl

    class MyExporterPlugin:
        @hookimpl
        def llmtrace_get_exporters(self):
            return [MyExporter]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from llmtrace.telemetry.protocols import ExporterProtocol

PROJECT_NAME = "llmtrace"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class LlmTraceExporterSpec:
    """Hook specifications for exporter plugins."""

    @hookspec
    def llmtrace_get_exporters(self) -> list[type["ExporterProtocol"]]:  # type: ignore[empty-body]
        """Return exporter classes (not instances) implementing ExporterProtocol."""
