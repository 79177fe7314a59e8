# tests/unit/test_logging.py
"""Tests for logging setup and per-call log context."""

import io
import json
import logging
from collections.abc import Iterator
from typing import Any

import pytest
import structlog

from llmtrace.config import LoggingSettings
from llmtrace.llm.client import InstrumentedLLMClient
from llmtrace.llm.instrumentation import LlmInstrumentation
from llmtrace.llm.token_count import TokenCountCallbackHolder
from llmtrace.logging import configure_logging, llm_call_context
from llmtrace.tracing.transaction import Tracer
from tests.fixtures.providers import chat_params, make_fake_client


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


def json_lines(stream: io.StringIO) -> list[dict[str, Any]]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


# =============================================================================
# configure_logging
# =============================================================================


class TestConfigureLogging:
    def test_json_output(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(json_output=True, level="debug"), stream=stream)

        structlog.get_logger("llmtrace.test").info("llm_event_recorded", completion_id="abc")

        (record,) = json_lines(stream)
        assert record["event"] == "llm_event_recorded"
        assert record["completion_id"] == "abc"
        assert record["level"] == "info"
        assert record["logger"] == "llmtrace.test"
        assert "timestamp" in record
        assert "_record" not in record

    def test_console_output(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(json_output=False), stream=stream)

        structlog.get_logger("llmtrace.test").info("llm_event_recorded", completion_id="abc")

        output = stream.getvalue()
        assert "llm_event_recorded" in output
        assert "completion_id=abc" in output
        with pytest.raises(json.JSONDecodeError):
            json.loads(output)

    def test_defaults_to_console_at_info(self, stream: io.StringIO) -> None:
        configure_logging(stream=stream)

        assert logging.getLogger().level == logging.INFO
        structlog.get_logger("llmtrace.test").info("plain")
        assert not stream.getvalue().startswith("{")

    def test_stdlib_loggers_share_format(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(json_output=True), stream=stream)

        logging.getLogger("host.module").warning("plain stdlib")

        (record,) = json_lines(stream)
        assert record["event"] == "plain stdlib"
        assert record["logger"] == "host.module"

    def test_level_filters(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(json_output=True, level="WARNING"), stream=stream)

        structlog.get_logger("llmtrace.test").debug("hidden")

        assert stream.getvalue() == ""

    def test_provider_loggers_quieted(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(level="DEBUG"), stream=stream)

        assert logging.getLogger("openai").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_provider_loggers_follow_stricter_root(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(level="ERROR"), stream=stream)

        assert logging.getLogger("openai").level == logging.ERROR


# =============================================================================
# Per-call context
# =============================================================================


class TestLlmCallContext:
    def test_binds_call_identity(self, stream: io.StringIO) -> None:
        configure_logging(LoggingSettings(json_output=True, level="DEBUG"), stream=stream)
        logger = structlog.get_logger("llmtrace.test")

        with llm_call_context(kind="completion", vendor="OpenAI", ingest_source="Python"):
            logger.debug("inside")
        logger.debug("outside")

        inside, outside = json_lines(stream)
        assert inside["llm_kind"] == "completion"
        assert inside["llm_vendor"] == "OpenAI"
        assert inside["ingest_source"] == "Python"
        assert "llm_vendor" not in outside

    def test_instrumented_call_lines_carry_context(
        self,
        stream: io.StringIO,
        tracer: Tracer,
        token_callbacks: TokenCountCallbackHolder,
        instrumentation: LlmInstrumentation,
    ) -> None:
        configure_logging(LoggingSettings(json_output=True, level="DEBUG"), stream=stream)
        token_callbacks.set(lambda _: "not a count")  # type: ignore[arg-type,return-value]
        client = InstrumentedLLMClient(make_fake_client(), instrumentation)

        with tracer.transaction("web"):
            client.chat_completion(**chat_params(message_count=1))

        warnings = [r for r in json_lines(stream) if r["event"] == "token_count_callback_invalid_result"]
        assert warnings
        assert all(r["llm_vendor"] == "OpenAI" and r["llm_kind"] == "completion" for r in warnings)
