# src/llmtrace/telemetry/harvester.py
"""EventHarvester drains the aggregator into configured exporters.

The host's export path calls harvest() on its own schedule (a harvest
thread, a request hook, shutdown). Each harvest swaps the aggregator's
buffer out and dispatches every event to every exporter.

Design principles:
- Individual exporter failures don't affect other exporters or the caller
- Aggregate logging every 100 failures (Warning Fatigue prevention)
- Harvest order is record order
"""

from __future__ import annotations

import threading
from typing import Any

import structlog

from llmtrace.contracts.events import LlmEvent
from llmtrace.telemetry.aggregator import HarvestMetadata, LlmEventAggregator
from llmtrace.telemetry.protocols import ExporterProtocol

logger = structlog.get_logger(__name__)


class EventHarvester:
    """Harvests LLM events and dispatches them to exporters.

    Thread Safety:
        harvest() may be called from any thread; concurrent harvests are
        serialized so exporters never see two batches interleaved.

    Example:
        harvester = EventHarvester(aggregator, exporters=[ConsoleExporter()])
        metadata, events = harvester.harvest()
        harvester.close()
    """

    _LOG_INTERVAL = 100

    def __init__(self, aggregator: LlmEventAggregator, exporters: list[ExporterProtocol]) -> None:
        self._aggregator = aggregator
        self._exporters = exporters
        self._harvest_lock = threading.Lock()
        self._events_exported = 0
        self._events_failed = 0
        self._exporter_failures: dict[str, int] = {}
        self._last_logged_failure_count = 0
        self._closed = False

    def harvest(self) -> tuple[HarvestMetadata, list[LlmEvent]]:
        """Harvest the aggregator and export every event.

        Returns:
            The (metadata, events) pair from the aggregator, so callers can
            forward the batch elsewhere as well.
        """
        with self._harvest_lock:
            metadata, events = self._aggregator.harvest()
            if self._closed or not self._exporters:
                return metadata, events

            for event in events:
                self._dispatch_to_exporters(event)
            for exporter in self._exporters:
                try:
                    exporter.flush()
                except Exception as e:
                    logger.warning("Exporter flush failed", exporter=exporter.name, error=str(e))

        logger.debug(
            "llm_events_harvested",
            event_count=len(events),
            events_seen=metadata["events_seen"],
            events_dropped=metadata["events_dropped"],
        )
        return metadata, events

    def _dispatch_to_exporters(self, event: LlmEvent) -> None:
        failures = 0
        for exporter in self._exporters:
            try:
                exporter.export(event)
            except Exception as e:
                failures += 1
                self._exporter_failures[exporter.name] = self._exporter_failures.get(exporter.name, 0) + 1
                logger.warning(
                    "LLM event exporter failed",
                    exporter=exporter.name,
                    event_type=event.EVENT_TYPE.value,
                    error=str(e),
                )

        if failures == len(self._exporters):
            self._events_failed += 1
            if self._events_failed - self._last_logged_failure_count >= self._LOG_INTERVAL:
                logger.error(
                    "ALL LLM event exporters failing - events lost",
                    failed_since_last_log=self._events_failed - self._last_logged_failure_count,
                    failed_total=self._events_failed,
                )
                self._last_logged_failure_count = self._events_failed
        else:
            self._events_exported += 1

    @property
    def exporters(self) -> tuple[ExporterProtocol, ...]:
        return tuple(self._exporters)

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of export health.

        - events_exported: Delivered to at least one exporter
        - events_failed: Every exporter failed
        - exporter_failures: Per-exporter failure counts
        - buffered: Events currently waiting in the aggregator
        """
        return {
            "events_exported": self._events_exported,
            "events_failed": self._events_failed,
            "exporter_failures": self._exporter_failures.copy(),
            "buffered": len(self._aggregator),
        }

    def close(self) -> None:
        """Final harvest, then close exporters. Idempotent."""
        if self._closed:
            return
        self.harvest()
        self._closed = True
        logger.info("LLM event harvester closing", **self.health_metrics)
        for exporter in self._exporters:
            try:
                exporter.close()
            except Exception as e:
                logger.warning("Exporter close failed", exporter=exporter.name, error=str(e))
