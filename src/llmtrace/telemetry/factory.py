# src/llmtrace/telemetry/factory.py
"""Exporter discovery and construction from settings.

1. Discover exporter classes via the llmtrace_get_exporters pluggy hook
2. Instantiate and configure the exporters named in settings

Usage:
    exporters = create_exporters(settings.exporters)
    harvester = EventHarvester(aggregator, exporters)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import pluggy
import structlog

from llmtrace.config import ExporterSettings
from llmtrace.errors import TelemetryExporterError
from llmtrace.telemetry.exporters import BuiltinExportersPlugin
from llmtrace.telemetry.hookspecs import PROJECT_NAME, LlmTraceExporterSpec
from llmtrace.telemetry.protocols import ExporterProtocol

logger = structlog.get_logger(__name__)


def _resolve_exporter_name(exporter_class: type[ExporterProtocol]) -> str:
    """Resolve an exporter's configured name.

    Prefers the class-level ``_name`` to avoid instantiating the class.

    Raises:
        TelemetryExporterError: If the name is missing or not a non-empty string
    """
    class_name = getattr(exporter_class, "__name__", repr(exporter_class))
    name = exporter_class.__dict__.get("_name")
    if name is None:
        try:
            name = exporter_class().name
        except Exception as e:
            raise TelemetryExporterError(
                class_name,
                f"Failed to instantiate exporter class during discovery: {e}",
            ) from e

    if type(name) is not str or name == "":
        raise TelemetryExporterError(class_name, f"Exporter name must be a non-empty string, got {name!r}")
    return name


def discover_exporters(exporter_plugins: Iterable[Any] = ()) -> dict[str, type[ExporterProtocol]]:
    """Build the exporter name -> class registry.

    Registers the built-in exporters plus any plugin objects provided by
    the caller, then collects every ``llmtrace_get_exporters`` result.

    Raises:
        TelemetryExporterError: If plugin registration fails or two
            exporters share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(LlmTraceExporterSpec)

    for plugin in [BuiltinExportersPlugin(), *list(exporter_plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise TelemetryExporterError(
                "exporter_plugins",
                f"Invalid exporter plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[ExporterProtocol]] = {}
    for exporter_classes in plugin_manager.hook.llmtrace_get_exporters():
        for exporter_class in exporter_classes:
            exporter_name = _resolve_exporter_name(exporter_class)
            if exporter_name in registry:
                raise TelemetryExporterError(
                    exporter_name,
                    f"Duplicate exporter name '{exporter_name}' discovered: "
                    f"{registry[exporter_name].__name__} and {exporter_class.__name__}",
                )
            registry[exporter_name] = exporter_class
    return registry


def create_exporters(
    exporter_settings: Sequence[ExporterSettings],
    *,
    exporter_plugins: Iterable[Any] = (),
) -> list[ExporterProtocol]:
    """Instantiate and configure the exporters named in settings.

    Raises:
        TelemetryExporterError: If an exporter name is unknown or an
            exporter rejects its options.
    """
    if not exporter_settings:
        return []

    registry = discover_exporters(exporter_plugins)
    exporters: list[ExporterProtocol] = []
    for exporter_config in exporter_settings:
        try:
            exporter_class = registry[exporter_config.name]
        except KeyError:
            raise TelemetryExporterError(
                exporter_name=exporter_config.name,
                message=f"Unknown exporter. Available exporters: {sorted(registry)}",
            ) from None

        exporter = exporter_class()
        exporter.configure(dict(exporter_config.options))
        exporters.append(exporter)
        logger.debug(
            "exporter_configured",
            exporter=exporter_config.name,
            options_keys=list(exporter_config.options.keys()),
        )
    return exporters
