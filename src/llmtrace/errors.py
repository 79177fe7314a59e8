# src/llmtrace/errors.py
"""llmtrace-specific exceptions.

These are raised at setup time only (settings, exporter discovery,
callback registration). Instrumented provider calls never raise an
llmtrace exception: callers only ever see the provider's own errors.
"""


class ConfigurationError(Exception):
    """Raised when settings cannot be loaded or validated."""


class TelemetryExporterError(Exception):
    """Raised when an exporter encounters a configuration or initialization error.

    This is raised during exporter setup (configure/discovery), NOT during
    export operations. Export operations must not raise - they log errors instead.

    Attributes:
        exporter_name: Name of the exporter that failed
        message: Human-readable error description
    """

    def __init__(self, exporter_name: str, message: str) -> None:
        self.exporter_name = exporter_name
        self.message = message
        super().__init__(f"Exporter '{exporter_name}' failed: {message}")
