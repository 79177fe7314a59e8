# tests/unit/telemetry/test_console_exporter.py
"""Tests for ConsoleExporter."""

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from llmtrace.contracts.events import ChatCompletionSummary, LlmEventBase
from llmtrace.errors import TelemetryExporterError
from llmtrace.telemetry.exporters.console import ConsoleExporter
from llmtrace.telemetry.protocols import ExporterProtocol


def make_summary() -> ChatCompletionSummary:
    return ChatCompletionSummary(
        base=LlmEventBase(
            id="sum-1",
            timestamp=datetime(2026, 1, 30, 12, 0, 0, tzinfo=UTC),
            custom_attributes=(("conversation_id", "1993"),),
            duration=0.25,
        ),
        request_model="gpt-4o",
        number_of_messages=2,
    )


class TestConfigure:
    def test_defaults(self) -> None:
        exporter = ConsoleExporter()
        exporter.configure({})
        assert exporter.name == "console"

    def test_satisfies_protocol(self) -> None:
        assert isinstance(ConsoleExporter(), ExporterProtocol)

    @pytest.mark.parametrize(
        ("config", "message"),
        [
            ({"format": "xml"}, "Invalid format 'xml'"),
            ({"format": 1}, "'format' must be a string"),
            ({"output": "file"}, "Invalid output 'file'"),
            ({"output": None}, "'output' must be a string"),
        ],
    )
    def test_invalid_config(self, config: dict[str, object], message: str) -> None:
        with pytest.raises(TelemetryExporterError, match=message):
            ConsoleExporter().configure(config)


class TestExport:
    def test_json_line(self, capsys: pytest.CaptureFixture[str]) -> None:
        exporter = ConsoleExporter()
        exporter.configure({"format": "json"})

        exporter.export(make_summary())

        intrinsics, attributes = json.loads(capsys.readouterr().out)
        assert intrinsics == {"type": "LlmChatCompletionSummary", "timestamp": 1_769_774_400_000}
        assert attributes["id"] == "sum-1"
        assert attributes["conversation_id"] == "1993"
        assert attributes["duration"] == 0.25

    def test_pretty_line(self, capsys: pytest.CaptureFixture[str]) -> None:
        exporter = ConsoleExporter()
        exporter.configure({"format": "pretty", "output": "stderr"})

        exporter.export(make_summary())

        line = capsys.readouterr().err.strip()
        assert line.startswith("[1769774400000] LlmChatCompletionSummary: sum-1 (")
        assert "request_model=gpt-4o" in line

    def test_export_never_raises(self) -> None:
        exporter = ConsoleExporter()
        event = MagicMock()
        event.to_record.side_effect = RuntimeError("bad record")

        exporter.export(event)

    def test_close_is_noop(self) -> None:
        exporter = ConsoleExporter()
        exporter.close()
        exporter.close()
