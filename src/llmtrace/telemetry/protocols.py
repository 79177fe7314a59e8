# src/llmtrace/telemetry/protocols.py
"""Protocol definitions for LLM event exporters.

Exporters ship harvested LLM events to an external destination
(console, a collector, a vendor ingest endpoint).
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from llmtrace.contracts.events import LlmEvent


@runtime_checkable
class ExporterProtocol(Protocol):
    """Protocol for LLM event exporters.

    Lifecycle:
        1. Discovery: llmtrace_get_exporters hook returns exporter classes
        2. Instantiation: create_exporters() creates instances
        3. Configuration: configure() called with exporter-specific options
        4. Operation: export() called for each harvested event (must not raise)
        5. Shutdown: flush() then close()

    Error handling:
        - configure() MUST raise TelemetryExporterError on invalid config
        - export() SHOULD NOT raise; EventHarvester isolates failures anyway
        - close() MUST be idempotent
    """

    @property
    def name(self) -> str:
        """Exporter name referenced from settings (``exporters[].name``)."""
        ...

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the exporter with its ``options`` from settings.

        Raises:
            TelemetryExporterError: If configuration is invalid or incomplete
        """
        ...

    def export(self, event: "LlmEvent") -> None:
        """Export a single LLM event."""
        ...

    def flush(self) -> None:
        """Flush any buffered events to the destination."""
        ...

    def close(self) -> None:
        """Release any resources held by the exporter."""
        ...
