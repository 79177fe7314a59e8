# src/llmtrace/metrics.py
"""Call-count metric recording.

The host agent owns metric transmission; llmtrace only needs somewhere to
increment named counters. MetricStore is the in-process implementation of
MetricRecorderProtocol used by LlmTraceAgent and by tests.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

SUPPORTABILITY_METRIC_PREFIX = "Supportability"


def supportability_metric_name(language: str, vendor: str, version: str) -> str:
    """Build the per-provider call-count metric name.

    Example:
        >>> supportability_metric_name("Python", "OpenAI", "1.54.0")
        'Supportability/Python/ML/OpenAI/1.54.0'
    """
    return f"{SUPPORTABILITY_METRIC_PREFIX}/{language}/ML/{vendor}/{version}"


@runtime_checkable
class MetricRecorderProtocol(Protocol):
    """Interface consumed from the host's metric subsystem."""

    def record_metric(self, name: str, increment: int = 1) -> None:
        """Increment the counter ``name`` by ``increment``."""
        ...


class MetricStore:
    """Thread-safe in-process counter store.

    Thread Safety:
        All reads and writes go through a single lock. Recording is
        non-blocking bookkeeping and never overlaps a provider call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}

    def record_metric(self, name: str, increment: int = 1) -> None:
        with self._lock:
            self._counts[name] = self._counts.get(name, 0) + increment

    def call_count(self, name: str) -> int:
        """Current count for ``name`` (0 if never recorded)."""
        with self._lock:
            return self._counts.get(name, 0)

    def harvest(self) -> dict[str, int]:
        """Return all counters and reset them."""
        with self._lock:
            counts, self._counts = self._counts, {}
        return counts
