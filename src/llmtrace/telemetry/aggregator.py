# src/llmtrace/telemetry/aggregator.py
"""Buffer of LLM events awaiting harvest.

Every instrumented call appends its events here; the host's export path
periodically calls harvest(), which swaps the buffer out under the lock
and returns the old contents in insertion order.

Key design decisions:
- Buffer swap under a single lock: record() and harvest() never interleave
- Capacity is optional: when configured, events beyond it are dropped
  and counted (the only way an event is lost before harvest)
- Aggregate logging: log every 100 drops to prevent Warning Fatigue
"""

from __future__ import annotations

import threading
from typing import Any

import structlog

from llmtrace.contracts.events import LlmEvent

logger = structlog.get_logger(__name__)

HarvestMetadata = dict[str, Any]


class LlmEventAggregator:
    """Append-only event buffer with an atomic harvest.

    Thread Safety:
        record(), harvest() and reset() are safe to call from any thread.
        The lock only guards list appends and the buffer swap; it is never
        held while a provider call is in flight.

    Example:
        aggregator = LlmEventAggregator(max_samples_stored=1000)
        aggregator.record(summary_event)
        metadata, events = aggregator.harvest()
    """

    # Log aggregate metrics every N drops to avoid Warning Fatigue
    _LOG_INTERVAL = 100

    def __init__(self, max_samples_stored: int | None = None) -> None:
        """Initialize the aggregator.

        Args:
            max_samples_stored: Maximum events held between harvests.
                None means unbounded.

        Raises:
            ValueError: If max_samples_stored < 1.
        """
        if max_samples_stored is not None and max_samples_stored < 1:
            raise ValueError(f"max_samples_stored must be >= 1, got {max_samples_stored}")
        self._capacity = max_samples_stored
        self._lock = threading.Lock()
        self._buffer: list[LlmEvent] = []
        self._seen = 0
        self._dropped = 0
        self._last_logged_drop_count = 0

    @property
    def capacity(self) -> int | None:
        return self._capacity

    def record(self, event: LlmEvent) -> None:
        """Append ``event`` to the current buffer.

        Args:
            event: The LLM event to buffer.
        """
        with self._lock:
            self._seen += 1
            if self._capacity is not None and len(self._buffer) >= self._capacity:
                self._dropped += 1
                self._log_drops_if_needed()
                return
            self._buffer.append(event)

    def _log_drops_if_needed(self) -> None:
        """Log an aggregate drop message every _LOG_INTERVAL drops.

        Must be called while holding _lock.
        """
        if self._dropped - self._last_logged_drop_count >= self._LOG_INTERVAL:
            logger.warning(
                "LLM event buffer full - events dropped",
                dropped_since_last_log=self._dropped - self._last_logged_drop_count,
                dropped_total=self._dropped,
                buffer_size=self._capacity,
                hint="Consider increasing max_samples_stored or harvesting more often",
            )
            self._last_logged_drop_count = self._dropped

    def harvest(self) -> tuple[HarvestMetadata, list[LlmEvent]]:
        """Return buffered events and start a fresh, empty buffer.

        Returns:
            (metadata, events): events in insertion order; metadata has
            reservoir_size, events_seen and events_dropped for this period.
        """
        with self._lock:
            events, self._buffer = self._buffer, []
            seen, self._seen = self._seen, 0
            dropped, self._dropped = self._dropped, 0
            self._last_logged_drop_count = 0

        metadata: HarvestMetadata = {
            "reservoir_size": self._capacity,
            "events_seen": seen,
            "events_dropped": dropped,
        }
        return metadata, events

    def reset(self) -> None:
        """Discard buffered events without returning them."""
        with self._lock:
            self._buffer = []
            self._seen = 0
            self._dropped = 0
            self._last_logged_drop_count = 0

    def __len__(self) -> int:
        """Return the current number of buffered events."""
        with self._lock:
            return len(self._buffer)
