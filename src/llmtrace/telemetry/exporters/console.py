# src/llmtrace/telemetry/exporters/console.py
"""Console exporter for LLM events.

Writes harvested events to stdout or stderr in JSON or human-readable
format. Primarily used for local debugging.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, Literal, TextIO, TypeGuard

import structlog

from llmtrace.errors import TelemetryExporterError

if TYPE_CHECKING:
    from llmtrace.contracts.events import LlmEvent

logger = structlog.get_logger(__name__)


def _is_valid_format(v: str) -> TypeGuard[Literal["json", "pretty"]]:
    return v in {"json", "pretty"}


def _is_valid_output(v: str) -> TypeGuard[Literal["stdout", "stderr"]]:
    return v in {"stdout", "stderr"}


class ConsoleExporter:
    """Export LLM events to stdout/stderr.

    Configuration options:
        format: "json" (default, one object per line) or "pretty"
        output: "stdout" (default) or "stderr"

    Example configuration:
        exporters:
          - name: console
            options:
              format: pretty
              output: stderr
    """

    _name = "console"

    _VALID_FORMATS: frozenset[str] = frozenset({"json", "pretty"})
    _VALID_OUTPUTS: frozenset[str] = frozenset({"stdout", "stderr"})

    def __init__(self) -> None:
        self._format: Literal["json", "pretty"] = "json"
        self._output: Literal["stdout", "stderr"] = "stdout"
        self._stream: TextIO = sys.stdout

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: dict[str, Any]) -> None:
        """Configure output format and stream.

        Raises:
            TelemetryExporterError: If configuration values are invalid
        """
        format_value = config.get("format", "json")
        if not isinstance(format_value, str):
            raise TelemetryExporterError(
                self._name,
                f"'format' must be a string, got {type(format_value).__name__}",
            )
        if _is_valid_format(format_value):
            self._format = format_value
        else:
            raise TelemetryExporterError(
                self._name,
                f"Invalid format '{format_value}'. Must be one of: {', '.join(sorted(self._VALID_FORMATS))}",
            )

        output_value = config.get("output", "stdout")
        if not isinstance(output_value, str):
            raise TelemetryExporterError(
                self._name,
                f"'output' must be a string, got {type(output_value).__name__}",
            )
        if _is_valid_output(output_value):
            self._output = output_value
        else:
            raise TelemetryExporterError(
                self._name,
                f"Invalid output '{output_value}'. Must be one of: {', '.join(sorted(self._VALID_OUTPUTS))}",
            )
        self._stream = sys.stdout if self._output == "stdout" else sys.stderr

        logger.debug("Console exporter configured", format=self._format, output=self._output)

    def export(self, event: LlmEvent) -> None:
        """Write one event. Never raises; failures are logged."""
        try:
            intrinsics, attributes = event.to_record()
            if self._format == "json":
                line = json.dumps([intrinsics, attributes], default=str)
            else:
                line = self._format_pretty(intrinsics, attributes)
            print(line, file=self._stream)
        except Exception as e:
            logger.warning(
                "Failed to export LLM event",
                exporter=self._name,
                event_type=type(event).__name__,
                error=str(e),
            )

    def _format_pretty(self, intrinsics: dict[str, Any], attributes: dict[str, Any]) -> str:
        """Format: [TIMESTAMP_MS] Type: id (key=value, ...)"""
        details = ", ".join(f"{key}={attributes[key]}" for key in sorted(attributes) if key != "id")
        return f"[{intrinsics['timestamp']}] {intrinsics['type']}: {attributes['id']} ({details})"

    def flush(self) -> None:
        try:
            self._stream.flush()
        except Exception as e:
            logger.warning("Failed to flush console stream", exporter=self._name, error=str(e))

    def close(self) -> None:
        """No-op: the exporter does not own stdout/stderr."""
        pass
