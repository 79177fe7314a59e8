# src/llmtrace/telemetry/__init__.py
"""Event buffering and export for LLM events.

Components:
- aggregator: LlmEventAggregator, the buffer instrumented calls record into
- harvester: EventHarvester draining the aggregator into exporters
- protocols: ExporterProtocol for implementing exporters
- hookspecs: pluggy hooks for exporter discovery
- factory: create_exporters() building exporters from settings
- exporters: Built-in exporters (ConsoleExporter)
"""

from llmtrace.telemetry.aggregator import HarvestMetadata, LlmEventAggregator
from llmtrace.telemetry.exporters import ConsoleExporter
from llmtrace.telemetry.factory import create_exporters, discover_exporters
from llmtrace.telemetry.harvester import EventHarvester
from llmtrace.telemetry.protocols import ExporterProtocol

__all__ = [
    "ConsoleExporter",
    "EventHarvester",
    "ExporterProtocol",
    "HarvestMetadata",
    "LlmEventAggregator",
    "create_exporters",
    "discover_exporters",
]
