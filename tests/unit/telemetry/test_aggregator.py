# tests/unit/telemetry/test_aggregator.py
"""Unit tests for LlmEventAggregator.

Tests cover:
- Record and harvest in insertion order
- Harvest swaps the buffer (second harvest is empty)
- Capacity drops and aggregate logging every 100 drops
- Concurrent record/harvest loses and duplicates nothing
- Property-based tests for buffer invariants
"""

import threading
from datetime import UTC, datetime
from unittest.mock import patch

import pytest
from hypothesis import given
from hypothesis import strategies as st

from llmtrace.contracts.events import Embedding, LlmEventBase
from llmtrace.telemetry.aggregator import LlmEventAggregator

# =============================================================================
# Fixtures
# =============================================================================

TIMESTAMP = datetime(2026, 1, 30, 12, 0, 0, tzinfo=UTC)


def make_event(event_id: str) -> Embedding:
    """Create a minimal Embedding event."""
    return Embedding(
        base=LlmEventBase(id=event_id, timestamp=TIMESTAMP),
        request_model="text-embedding-3-small",
        input="hi",
    )


# =============================================================================
# Basic Behavior Tests
# =============================================================================


class TestAggregatorBasics:
    def test_empty_aggregator(self) -> None:
        aggregator = LlmEventAggregator()
        assert len(aggregator) == 0
        metadata, events = aggregator.harvest()
        assert events == []
        assert metadata == {"reservoir_size": None, "events_seen": 0, "events_dropped": 0}

    def test_harvest_returns_events_in_record_order(self) -> None:
        aggregator = LlmEventAggregator()
        events = [make_event(f"e-{i}") for i in range(5)]
        for event in events:
            aggregator.record(event)

        _, harvested = aggregator.harvest()
        assert harvested == events

    def test_second_harvest_is_empty(self) -> None:
        aggregator = LlmEventAggregator()
        aggregator.record(make_event("e-1"))

        aggregator.harvest()
        metadata, events = aggregator.harvest()
        assert events == []
        assert metadata["events_seen"] == 0

    def test_records_after_harvest_go_to_next_batch(self) -> None:
        aggregator = LlmEventAggregator()
        aggregator.record(make_event("before"))
        aggregator.harvest()
        aggregator.record(make_event("after"))

        _, events = aggregator.harvest()
        assert [e.id for e in events] == ["after"]

    def test_reset_discards_events(self) -> None:
        aggregator = LlmEventAggregator()
        aggregator.record(make_event("e-1"))
        aggregator.reset()
        assert len(aggregator) == 0
        assert aggregator.harvest()[1] == []


class TestCapacity:
    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity: int) -> None:
        with pytest.raises(ValueError, match="max_samples_stored must be >= 1"):
            LlmEventAggregator(max_samples_stored=capacity)

    def test_events_beyond_capacity_dropped(self) -> None:
        aggregator = LlmEventAggregator(max_samples_stored=3)
        for i in range(5):
            aggregator.record(make_event(f"e-{i}"))

        metadata, events = aggregator.harvest()
        assert [e.id for e in events] == ["e-0", "e-1", "e-2"]
        assert metadata == {"reservoir_size": 3, "events_seen": 5, "events_dropped": 2}

    def test_drop_counters_reset_on_harvest(self) -> None:
        aggregator = LlmEventAggregator(max_samples_stored=1)
        aggregator.record(make_event("a"))
        aggregator.record(make_event("b"))
        aggregator.harvest()

        aggregator.record(make_event("c"))
        metadata, events = aggregator.harvest()
        assert [e.id for e in events] == ["c"]
        assert metadata["events_dropped"] == 0

    def test_drop_logging_every_100(self) -> None:
        aggregator = LlmEventAggregator(max_samples_stored=1)
        aggregator.record(make_event("kept"))

        with patch("llmtrace.telemetry.aggregator.logger") as mock_logger:
            for i in range(99):
                aggregator.record(make_event(f"d-{i}"))
            mock_logger.warning.assert_not_called()

            aggregator.record(make_event("d-99"))
            mock_logger.warning.assert_called_once()
            assert mock_logger.warning.call_args.kwargs["dropped_total"] == 100


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrency:
    def test_concurrent_record_and_harvest(self) -> None:
        aggregator = LlmEventAggregator()
        per_thread = 500
        writers = 4
        collected: list[Embedding] = []
        done = threading.Event()

        def writer(n: int) -> None:
            for i in range(per_thread):
                aggregator.record(make_event(f"w{n}-{i}"))

        def harvester() -> None:
            while not done.is_set():
                collected.extend(aggregator.harvest()[1])

        harvest_thread = threading.Thread(target=harvester)
        harvest_thread.start()
        threads = [threading.Thread(target=writer, args=(n,)) for n in range(writers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        done.set()
        harvest_thread.join()
        collected.extend(aggregator.harvest()[1])

        ids = [e.id for e in collected]
        assert len(ids) == per_thread * writers
        assert len(set(ids)) == len(ids)
        # Per-writer order is preserved across batches
        for n in range(writers):
            own = [i for i in ids if i.startswith(f"w{n}-")]
            assert own == [f"w{n}-{i}" for i in range(per_thread)]


# =============================================================================
# Property-based tests
# =============================================================================


class TestAggregatorProperties:
    @given(
        capacity=st.integers(min_value=1, max_value=50),
        count=st.integers(min_value=0, max_value=120),
    )
    def test_seen_equals_kept_plus_dropped(self, capacity: int, count: int) -> None:
        aggregator = LlmEventAggregator(max_samples_stored=capacity)
        for i in range(count):
            aggregator.record(make_event(f"e-{i}"))

        metadata, events = aggregator.harvest()
        assert metadata["events_seen"] == count
        assert len(events) == min(count, capacity)
        assert metadata["events_seen"] == len(events) + metadata["events_dropped"]
