# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os

import pytest
from hypothesis import Verbosity, settings

from llmtrace.clock import MockClock
from llmtrace.llm.event_factory import LlmEventFactory
from llmtrace.llm.instrumentation import LlmInstrumentation
from llmtrace.llm.token_count import TokenCountCallbackHolder, TokenCounter
from llmtrace.metrics import MetricStore
from llmtrace.telemetry.aggregator import LlmEventAggregator
from llmtrace.tracing.transaction import Tracer
from tests.fixtures.providers import PROVIDER_VERSION

# =============================================================================
# Hypothesis profiles
# =============================================================================

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("nightly", max_examples=1000, deadline=None)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))

# =============================================================================
# Pipeline fixtures
# =============================================================================


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=100.0)


@pytest.fixture
def tracer(clock: MockClock) -> Tracer:
    return Tracer(clock=clock)


@pytest.fixture
def metrics() -> MetricStore:
    return MetricStore()


@pytest.fixture
def aggregator() -> LlmEventAggregator:
    return LlmEventAggregator()


@pytest.fixture
def token_callbacks() -> TokenCountCallbackHolder:
    return TokenCountCallbackHolder()


@pytest.fixture
def event_factory(token_callbacks: TokenCountCallbackHolder) -> LlmEventFactory:
    return LlmEventFactory(TokenCounter(token_callbacks))


@pytest.fixture
def instrumentation(
    tracer: Tracer,
    metrics: MetricStore,
    aggregator: LlmEventAggregator,
    event_factory: LlmEventFactory,
) -> LlmInstrumentation:
    """Call wrapper wired to the in-process tracer, metrics and aggregator."""
    return LlmInstrumentation(
        tracer=tracer,
        metrics=metrics,
        aggregator=aggregator,
        event_factory=event_factory,
        provider_version=PROVIDER_VERSION,
    )
