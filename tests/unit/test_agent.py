# tests/unit/test_agent.py
"""End-to-end tests for LlmTraceAgent wiring."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import openai
import pytest

from llmtrace.agent import LlmTraceAgent
from llmtrace.clock import MockClock
from llmtrace.config import ExporterSettings, LlmTraceSettings
from llmtrace.contracts.events import ChatCompletionMessage, ChatCompletionSummary, Embedding
from llmtrace.errors import ConfigurationError
from llmtrace.metrics import MetricStore
from llmtrace.telemetry.hookspecs import hookimpl
from llmtrace.tracing.transaction import Tracer
from tests.fixtures.providers import (
    PROVIDER_VERSION,
    RecordingExporter,
    chat_params,
    embedding_params,
    make_fake_async_client,
    make_fake_client,
)

METRIC_NAME = f"Supportability/Python/ML/OpenAI/{PROVIDER_VERSION}"


class RecordingExporterPlugin:
    @hookimpl
    def llmtrace_get_exporters(self) -> list[type]:
        return [RecordingExporter]


@pytest.fixture
def agent() -> LlmTraceAgent:
    return LlmTraceAgent(tracer=Tracer(clock=MockClock()), provider_version=PROVIDER_VERSION)


class TestAgentWiring:
    def test_defaults(self) -> None:
        agent = LlmTraceAgent()
        assert agent.settings == LlmTraceSettings()
        assert agent.aggregator.capacity == 10_000
        assert agent.instrumentation.enabled is True
        assert agent.instrumentation.metric_name == f"Supportability/Python/ML/OpenAI/{openai.__version__}"

    def test_chat_call_produces_summary_and_messages(self, agent: LlmTraceAgent) -> None:
        client = agent.instrument(make_fake_client())

        with agent.tracer.transaction("web"):
            client.chat_completion(**chat_params(message_count=2))

        metadata, events = agent.harvest()
        assert [type(e) for e in events] == [
            ChatCompletionSummary,
            ChatCompletionMessage,
            ChatCompletionMessage,
            ChatCompletionMessage,
        ]
        assert metadata["events_seen"] == 4
        assert isinstance(agent.metrics, MetricStore)
        assert agent.metrics.call_count(METRIC_NAME) == 1

    def test_token_count_callback_lifecycle(self, agent: LlmTraceAgent) -> None:
        client = agent.instrument(make_fake_client())
        agent.set_llm_token_count_callback(lambda _: 7734)

        with agent.tracer.transaction("web"):
            client.embedding(**embedding_params())
        agent.clear_llm_token_count_callback()
        with agent.tracer.transaction("web"):
            client.embedding(**embedding_params())

        _, events = agent.harvest()
        assert [e.token_count for e in events] == [7734, None]

    def test_non_callable_callback_rejected(self, agent: LlmTraceAgent) -> None:
        with pytest.raises(TypeError):
            agent.set_llm_token_count_callback("not a function")  # type: ignore[arg-type]

    def test_drop_buffered_data(self, agent: LlmTraceAgent) -> None:
        client = agent.instrument(make_fake_client())
        with agent.tracer.transaction("web"):
            client.embedding(**embedding_params())

        agent.drop_buffered_data()

        assert agent.harvest()[1] == []

    def test_async_client(self, agent: LlmTraceAgent) -> None:
        import asyncio

        client = agent.instrument_async(make_fake_async_client())

        async def run() -> None:
            with agent.tracer.transaction("worker"):
                await client.embedding(**embedding_params())

        asyncio.run(run())

        _, events = agent.harvest()
        assert [type(e) for e in events] == [Embedding]


class TestAgentSettings:
    def test_disabled(self) -> None:
        agent = LlmTraceAgent(LlmTraceSettings(enabled=False), provider_version=PROVIDER_VERSION)
        client = agent.instrument(make_fake_client())

        with agent.tracer.transaction("web"):
            client.chat_completion(**chat_params())

        assert agent.harvest()[1] == []

    def test_record_content_disabled(self) -> None:
        agent = LlmTraceAgent(LlmTraceSettings(record_content=False), provider_version=PROVIDER_VERSION)
        client = agent.instrument(make_fake_client())

        with agent.tracer.transaction("web"):
            client.chat_completion(**chat_params(message_count=1))
            client.embedding(**embedding_params())

        _, events = agent.harvest()
        for event in events:
            _, attributes = event.to_record()
            assert "content" not in attributes
            assert "input" not in attributes

    def test_capacity(self) -> None:
        agent = LlmTraceAgent(LlmTraceSettings(max_samples_stored=2), provider_version=PROVIDER_VERSION)
        client = agent.instrument(make_fake_client())

        with agent.tracer.transaction("web"):
            client.chat_completion(**chat_params(message_count=3))

        metadata, events = agent.harvest()
        assert len(events) == 2
        assert metadata == {"reservoir_size": 2, "events_seen": 5, "events_dropped": 3}

    def test_harvest_forwards_to_exporters(self) -> None:
        settings = LlmTraceSettings(exporters=[ExporterSettings(name="recording")])
        agent = LlmTraceAgent(
            settings,
            provider_version=PROVIDER_VERSION,
            exporter_plugins=[RecordingExporterPlugin()],
        )
        (exporter,) = agent.harvester.exporters
        assert isinstance(exporter, RecordingExporter)
        client = agent.instrument(make_fake_client())

        with agent.tracer.transaction("web"):
            client.embedding(**embedding_params())
        _, events = agent.harvest()

        assert exporter.events == events
        agent.shutdown()
        assert exporter.close_count == 1

    def test_custom_metric_recorder(self) -> None:
        class Recorder:
            def __init__(self) -> None:
                self.calls: list[tuple[str, int]] = []

            def record_metric(self, name: str, increment: int = 1) -> None:
                self.calls.append((name, increment))

        recorder = Recorder()
        agent = LlmTraceAgent(metrics=recorder, provider_version=PROVIDER_VERSION)
        client = agent.instrument(make_fake_client())

        with agent.tracer.transaction("web"):
            client.embedding(**embedding_params())

        assert recorder.calls == [(METRIC_NAME, 1)]


class TestFromConfigFile:
    @pytest.fixture(autouse=True)
    def configure_logging(self) -> Iterator[MagicMock]:
        # Keep the root logger untouched for the rest of the session
        with patch("llmtrace.agent.configure_logging") as mock_configure:
            yield mock_configure

    def test_loads_settings(self, tmp_path: Path, configure_logging: MagicMock) -> None:
        config_file = tmp_path / "llmtrace.yaml"
        config_file.write_text("record_content: false\nmax_samples_stored: 25\nlogging:\n  level: warning\n")

        agent = LlmTraceAgent.from_config_file(config_file, provider_version=PROVIDER_VERSION)

        assert agent.settings.record_content is False
        assert agent.aggregator.capacity == 25
        configure_logging.assert_called_once_with(agent.settings.logging)
        assert agent.settings.logging.level == "WARNING"

    def test_invalid_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            LlmTraceAgent.from_config_file(tmp_path / "missing.yaml")

    def test_passes_kwargs(self, tmp_path: Path) -> None:
        config_file = tmp_path / "llmtrace.yaml"
        config_file.write_text("enabled: true\n")
        tracer: Any = Tracer()

        agent = LlmTraceAgent.from_config_file(config_file, tracer=tracer, provider_version=PROVIDER_VERSION)

        assert agent.tracer is tracer
