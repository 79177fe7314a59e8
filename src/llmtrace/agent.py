# src/llmtrace/agent.py
"""LlmTraceAgent wires the LLM observability pipeline together.

One agent per process is typical. It owns:
- the token-count fallback configuration (the only runtime-mutable setting)
- the event aggregator and harvester feeding the host's export path
- the call wrapper used by instrumented clients

Usage:
    agent = LlmTraceAgent.from_config_file(Path("llmtrace.yaml"))
    client = agent.instrument(openai.OpenAI())

    with agent.tracer.transaction("POST /chat") as txn:
        agent.tracer.set_custom_attribute(txn, "llm.conversation_id", "42")
        client.chat_completion(model="gpt-4o", messages=[...])

    metadata, events = agent.harvest()
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from llmtrace.config import LlmTraceSettings, load_settings
from llmtrace.contracts.events import LlmEvent
from llmtrace.llm.client import AsyncInstrumentedLLMClient, InstrumentedLLMClient, openai_version
from llmtrace.llm.event_factory import LlmEventFactory
from llmtrace.llm.instrumentation import LlmInstrumentation
from llmtrace.llm.token_count import TokenCountCallback, TokenCountCallbackHolder, TokenCounter
from llmtrace.logging import configure_logging
from llmtrace.metrics import MetricRecorderProtocol, MetricStore
from llmtrace.telemetry.aggregator import HarvestMetadata, LlmEventAggregator
from llmtrace.telemetry.factory import create_exporters
from llmtrace.telemetry.harvester import EventHarvester
from llmtrace.tracing.protocols import TracerProtocol
from llmtrace.tracing.transaction import Tracer

logger = structlog.get_logger(__name__)


class LlmTraceAgent:
    """Entry point for hosts embedding the LLM observability pipeline.

    Args:
        settings: Validated settings (defaults when None)
        tracer: Host tracer; the in-process Tracer when None
        metrics: Host metric recorder; an in-process MetricStore when None
        provider_version: Provider SDK version for the supportability
            metric; read from the installed openai package when None
        exporter_plugins: Extra pluggy plugins providing exporters
    """

    def __init__(
        self,
        settings: LlmTraceSettings | None = None,
        *,
        tracer: TracerProtocol | None = None,
        metrics: MetricRecorderProtocol | None = None,
        provider_version: str | None = None,
        exporter_plugins: Iterable[Any] = (),
    ) -> None:
        self.settings = settings or LlmTraceSettings()
        self.tracer: TracerProtocol = tracer or Tracer()
        self.metrics: MetricRecorderProtocol = metrics or MetricStore()
        self.aggregator = LlmEventAggregator(self.settings.max_samples_stored)
        self.token_count_callbacks = TokenCountCallbackHolder()
        self.token_counter = TokenCounter(self.token_count_callbacks)
        self.event_factory = LlmEventFactory(self.token_counter, record_content=self.settings.record_content)
        self.instrumentation = LlmInstrumentation(
            tracer=self.tracer,
            metrics=self.metrics,
            aggregator=self.aggregator,
            event_factory=self.event_factory,
            provider_version=provider_version or openai_version(),
            language=self.settings.ingest_source,
            enabled=self.settings.enabled,
        )
        self.harvester = EventHarvester(
            self.aggregator,
            create_exporters(self.settings.exporters, exporter_plugins=exporter_plugins),
        )
        logger.debug(
            "llmtrace_agent_started",
            enabled=self.settings.enabled,
            record_content=self.settings.record_content,
            max_samples_stored=self.settings.max_samples_stored,
            exporters=[exporter.name for exporter in self.settings.exporters],
        )

    @classmethod
    def from_config_file(cls, config_path: Path, **kwargs: Any) -> LlmTraceAgent:
        """Load settings from YAML, configure logging, and build an agent.

        Raises:
            ConfigurationError: If the settings file is missing or invalid
        """
        settings = load_settings(config_path)
        configure_logging(settings.logging)
        return cls(settings, **kwargs)

    # -- token count fallback -------------------------------------------------

    def set_llm_token_count_callback(self, callback: TokenCountCallback) -> None:
        """Install the fallback used when a response carries no usage object.

        The callback receives ``{"model": str | None, "content": str | None}``
        and must return a non-negative int.

        Raises:
            TypeError: If callback is not callable
        """
        self.token_count_callbacks.set(callback)

    def clear_llm_token_count_callback(self) -> None:
        self.token_count_callbacks.clear()

    # -- instrumentation ------------------------------------------------------

    def instrument(self, client: Any) -> InstrumentedLLMClient:
        """Wrap a synchronous OpenAI-compatible client."""
        return InstrumentedLLMClient(client, self.instrumentation)

    def instrument_async(self, client: Any) -> AsyncInstrumentedLLMClient:
        """Wrap an asynchronous OpenAI-compatible client."""
        return AsyncInstrumentedLLMClient(client, self.instrumentation)

    # -- export path ----------------------------------------------------------

    def harvest(self) -> tuple[HarvestMetadata, list[LlmEvent]]:
        """Harvest buffered events, forwarding them to configured exporters."""
        return self.harvester.harvest()

    def drop_buffered_data(self) -> None:
        """Discard buffered events without exporting them."""
        self.aggregator.reset()

    def shutdown(self) -> None:
        """Final harvest and exporter shutdown."""
        self.harvester.close()
