# src/llmtrace/tracing/spans.py
"""OpenTelemetry span mirroring for segments.

Segments can optionally be mirrored into OpenTelemetry spans so that LLM
calls show up in an existing OTel pipeline. Falls back to no-op spans when
no tracer is configured.

Span Hierarchy:
    transaction:{name}
    └── Llm/completion/OpenAI/create
    └── Llm/embedding/OpenAI/create
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer


class NoOpSpan:
    """No-op span for when tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        """No-op."""
        pass

    def set_status(self, status: Any) -> None:
        """No-op."""
        pass

    def record_exception(self, exception: BaseException) -> None:
        """No-op."""
        pass

    def end(self) -> None:
        """No-op."""
        pass

    def is_recording(self) -> bool:
        """Always False for no-op."""
        return False


class SpanFactory:
    """Factory for OpenTelemetry spans backing transactions and segments.

    Unlike context-manager spans, segment spans are started and ended
    explicitly because segments are opened and closed by separate tracer
    calls. When no tracer is provided, every method returns the shared
    NoOpSpan.

    Example:
        factory = SpanFactory(tracer=provider.get_tracer("llmtrace"))
        root = factory.start_transaction_span("web")
        span = factory.start_segment_span("Llm/completion/OpenAI/create", parent=root)
        span.end()
        root.end()
    """

    # Singleton no-op span to avoid repeated allocations
    _NOOP_SPAN = NoOpSpan()

    def __init__(self, tracer: Tracer | None = None) -> None:
        """Initialize with optional tracer.

        Args:
            tracer: OpenTelemetry tracer. If None, spans are no-ops.
        """
        self._tracer = tracer

    @property
    def enabled(self) -> bool:
        """Whether tracing is enabled."""
        return self._tracer is not None

    def start_transaction_span(self, name: str) -> Span | NoOpSpan:
        """Start the root span for a transaction."""
        if self._tracer is None:
            return self._NOOP_SPAN

        span = self._tracer.start_span(f"transaction:{name}")
        span.set_attribute("transaction.name", name)
        return span

    def start_segment_span(self, name: str, parent: Span | NoOpSpan | None = None) -> Span | NoOpSpan:
        """Start a span for a segment as a child of ``parent``.

        Args:
            name: Segment name (stable, never includes per-call ids)
            parent: Parent span; NoOpSpan or None starts from the current context
        """
        if self._tracer is None:
            return self._NOOP_SPAN

        context = None
        if parent is not None and not isinstance(parent, NoOpSpan):
            context = trace.set_span_in_context(parent)
        return self._tracer.start_span(name, context=context)

    def record_error(self, span: Span | NoOpSpan, error: BaseException) -> None:
        """Record an exception on a span and mark it as errored."""
        if isinstance(span, NoOpSpan):
            return

        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))
