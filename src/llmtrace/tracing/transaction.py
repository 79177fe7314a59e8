# src/llmtrace/tracing/transaction.py
"""In-process transaction and segment tracer.

Transactions are bound to the current execution context through a
ContextVar, so concurrently running threads and asyncio tasks each see
their own transaction and segment tree. Nothing here is shared across
transactions, so no locking is needed.

Segment lifecycle:
    open_segment()  -> start time read from the tracer's clock
    notice_error()  -> optional, before or after close
    close_segment() -> end time read from the same clock; duration is final
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from llmtrace.clock import DEFAULT_CLOCK, Clock
from llmtrace.tracing.spans import NoOpSpan, SpanFactory

if TYPE_CHECKING:
    from opentelemetry.trace import Span

    from llmtrace.contracts.events import LlmEvent

logger = structlog.get_logger(__name__)

# Scalar types accepted as custom attribute values
_SCALAR_TYPES = (str, int, float, bool)


def _new_guid() -> str:
    return uuid.uuid4().hex[:16]


@dataclass(eq=False)
class Segment:
    """One traced unit of work within a transaction.

    Attributes:
        name: Segment name (e.g. "Llm/completion/OpenAI/create")
        guid: Segment id, reported as span_id on LLM events
        start_time: Clock reading when the segment was opened
        end_time: Clock reading when closed, None while open
        parent: Enclosing segment, None for top-level segments
        noticed_error: Error captured by notice_error()
        error_attributes: Extra attributes attached to the noticed error
        llm_event: Summary-level LLM event produced for this segment
    """

    name: str
    guid: str
    start_time: float
    parent: Segment | None = None
    end_time: float | None = None
    noticed_error: BaseException | None = None
    error_attributes: dict[str, Any] = field(default_factory=dict)
    llm_event: LlmEvent | None = None
    children: list[Segment] = field(default_factory=list)
    span: Span | NoOpSpan = field(default_factory=NoOpSpan, repr=False)

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    @property
    def duration(self) -> float | None:
        """Elapsed seconds between open and close, None while still open."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


class Transaction:
    """One end-to-end request being traced.

    Owns the segment tree plus two attribute maps:
    - custom attributes: set by application code, user visible
    - agent attributes: set by instrumentation (e.g. the ``llm`` marker)
    """

    def __init__(self, name: str, *, start_time: float, span: Span | NoOpSpan | None = None) -> None:
        self.name = name
        self.guid = _new_guid()
        self.trace_id = uuid.uuid4().hex
        self.start_time = start_time
        self.end_time: float | None = None
        self.segments: list[Segment] = []
        self.custom_attributes: dict[str, Any] = {}
        self.agent_attributes: dict[str, Any] = {}
        self.span: Span | NoOpSpan = span if span is not None else NoOpSpan()
        self._active: list[Segment] = []

    @property
    def active_segment(self) -> Segment | None:
        """Innermost open segment, None when no segment is open."""
        if not self._active:
            return None
        return self._active[-1]

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def find_segments(self, prefix: str) -> list[Segment]:
        """All segments whose name starts with ``prefix``, in open order."""
        return [segment for segment in self.segments if segment.name.startswith(prefix)]

    def _push(self, segment: Segment) -> None:
        self.segments.append(segment)
        self._active.append(segment)

    def _pop(self, segment: Segment) -> None:
        # Segments may be closed out of order; remove wherever it sits
        if segment in self._active:
            self._active.remove(segment)


class Tracer:
    """In-process implementation of TracerProtocol.

    Example:
        tracer = Tracer()
        with tracer.transaction("POST /chat") as txn:
            tracer.set_custom_attribute(txn, "llm.conversation_id", "abc")
            client.chat_completion(model="gpt-4o", messages=[...])
    """

    def __init__(self, *, clock: Clock | None = None, span_factory: SpanFactory | None = None) -> None:
        self._clock = clock or DEFAULT_CLOCK
        self._span_factory = span_factory or SpanFactory()
        self._current: ContextVar[Transaction | None] = ContextVar(f"llmtrace_transaction_{id(self)}", default=None)

    @property
    def clock(self) -> Clock:
        return self._clock

    # -- transactions ---------------------------------------------------------

    def current_transaction(self) -> Transaction | None:
        return self._current.get()

    @contextmanager
    def transaction(self, name: str) -> Iterator[Transaction]:
        """Run a block inside a new transaction bound to the current context.

        Any segments left open when the block exits are closed so their
        durations are final before the transaction ends.
        """
        txn = Transaction(
            name,
            start_time=self._clock.monotonic(),
            span=self._span_factory.start_transaction_span(name),
        )
        token = self._current.set(txn)
        try:
            yield txn
        finally:
            for segment in list(reversed(txn._active)):
                self.close_segment(segment)
            self._current.reset(token)
            txn.end_time = self._clock.monotonic()
            txn.span.end()
            logger.debug(
                "transaction_finished",
                transaction=txn.name,
                transaction_id=txn.guid,
                segment_count=len(txn.segments),
            )

    # -- segments -------------------------------------------------------------

    def open_segment(self, name: str, parent: Segment | None = None) -> Segment:
        """Open a segment in the current transaction.

        Raises:
            RuntimeError: If no transaction is bound to the current context
        """
        txn = self._current.get()
        if txn is None:
            raise RuntimeError(f"Cannot open segment {name!r}: no active transaction")

        if parent is None:
            parent = txn.active_segment
        parent_span = parent.span if parent is not None else txn.span
        segment = Segment(
            name=name,
            guid=_new_guid(),
            start_time=self._clock.monotonic(),
            parent=parent,
            span=self._span_factory.start_segment_span(name, parent=parent_span),
        )
        if parent is not None:
            parent.children.append(segment)
        txn._push(segment)
        return segment

    def close_segment(self, segment: Segment) -> None:
        if segment.finished:
            return
        segment.end_time = self._clock.monotonic()
        segment.span.end()
        txn = self._current.get()
        if txn is not None:
            txn._pop(segment)

    def notice_error(
        self,
        segment: Segment,
        error: BaseException,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        segment.noticed_error = error
        if attributes:
            segment.error_attributes.update(attributes)
        self._span_factory.record_error(segment.span, error)

    # -- attributes -----------------------------------------------------------

    def set_custom_attribute(self, transaction: Transaction, key: str, value: Any) -> None:
        """Set a custom attribute; non-scalar values are dropped with a warning."""
        if not isinstance(value, _SCALAR_TYPES):
            logger.warning(
                "custom_attribute_dropped",
                key=key,
                value_type=type(value).__name__,
                reason="Custom attribute values must be str, int, float or bool",
            )
            return
        transaction.custom_attributes[key] = value

    def add_custom_attributes(self, transaction: Transaction, attributes: Mapping[str, Any]) -> None:
        for key, value in attributes.items():
            self.set_custom_attribute(transaction, key, value)

    def get_custom_attributes(self, transaction: Transaction) -> dict[str, Any]:
        return dict(transaction.custom_attributes)

    def add_agent_attribute(self, transaction: Transaction, key: str, value: Any) -> None:
        transaction.agent_attributes[key] = value

    def get_agent_attributes(self, transaction: Transaction) -> dict[str, Any]:
        return dict(transaction.agent_attributes)
