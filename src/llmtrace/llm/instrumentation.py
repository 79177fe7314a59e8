# src/llmtrace/llm/instrumentation.py
"""Interception of provider calls.

LlmInstrumentation wraps one provider request at a time:

1. Open a segment ``Llm/<kind>/<vendor>/<method>`` under the active segment
2. Invoke the underlying call exactly once (no lock held)
3. On exception: notice the error on the segment, record events with
   ``error=True``, re-raise the original exception unchanged
4. Close the segment, then build events using the CLOSED segment's duration
   so the summary-level event and the segment share one measurement
5. Mark the transaction with the ``llm`` agent attribute (idempotent)
6. Increment the per-provider supportability metric (success or failure)

Outside a transaction the call is passed straight through.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from llmtrace.contracts.enums import CallKind
from llmtrace.llm.attributes import extract_llm_custom_attributes
from llmtrace.llm.event_factory import CallContext, LlmEventFactory
from llmtrace.logging import llm_call_context
from llmtrace.metrics import MetricRecorderProtocol, supportability_metric_name
from llmtrace.telemetry.aggregator import LlmEventAggregator
from llmtrace.tracing.protocols import TracerProtocol

if TYPE_CHECKING:
    from llmtrace.tracing.transaction import Segment, Transaction

logger = structlog.get_logger(__name__)

T = TypeVar("T")

LLM_AGENT_ATTRIBUTE = "llm"

# Noticed-error attribute linking the error to its summary-level event
_ERROR_EVENT_ID_KEYS = {
    CallKind.CHAT: "completion_id",
    CallKind.EMBEDDINGS: "embedding_id",
}


def segment_name(kind: CallKind, vendor: str = "OpenAI", method: str = "create") -> str:
    """Deterministic segment name for a provider call.

    Example:
        >>> segment_name(CallKind.CHAT)
        'Llm/completion/OpenAI/create'
    """
    return f"Llm/{kind.value}/{vendor}/{method}"


class LlmInstrumentation:
    """Call wrapper producing segments, metrics and LLM events.

    Example:
        instrumentation = LlmInstrumentation(
            tracer=tracer,
            metrics=metric_store,
            aggregator=aggregator,
            event_factory=LlmEventFactory(TokenCounter(callbacks)),
            provider_version=openai.__version__,
        )

        response = instrumentation.instrument_call(
            CallKind.CHAT,
            parameters,
            lambda: client.chat.completions.create(**parameters),
        )
    """

    def __init__(
        self,
        *,
        tracer: TracerProtocol,
        metrics: MetricRecorderProtocol,
        aggregator: LlmEventAggregator,
        event_factory: LlmEventFactory,
        provider_version: str,
        vendor: str = "OpenAI",
        language: str = "Python",
        enabled: bool = True,
    ) -> None:
        self._tracer = tracer
        self._metrics = metrics
        self._aggregator = aggregator
        self._factory = event_factory
        self._vendor = vendor
        self._language = language
        self._enabled = enabled
        self._metric_name = supportability_metric_name(language, vendor, provider_version)

    @property
    def metric_name(self) -> str:
        """Supportability metric incremented once per instrumented call."""
        return self._metric_name

    @property
    def enabled(self) -> bool:
        return self._enabled

    def instrument_call(
        self,
        kind: CallKind,
        parameters: Any,
        call: Callable[[], T],
        *,
        method: str = "create",
    ) -> T:
        """Run ``call`` inside an LLM segment and record its events.

        Args:
            kind: Chat completion or embeddings
            parameters: Request parameters (mapping or object)
            call: Zero-argument callable performing the provider request
            method: Client method name used in the segment name

        Returns:
            Whatever ``call`` returned, unchanged

        Raises:
            Exception: Whatever ``call`` raised, unchanged
        """
        txn = self._begin(kind)
        if txn is None:
            return call()

        with llm_call_context(kind=kind.value, vendor=self._vendor, ingest_source=self._language):
            segment = self._tracer.open_segment(segment_name(kind, self._vendor, method))
            event_id = self._factory.new_id()
            try:
                response = call()
            except BaseException as exc:
                self._fail(txn, segment, kind, parameters, event_id, exc)
                raise

            self._complete(txn, segment, kind, parameters, response, event_id, error=False)
            return response

    async def instrument_call_async(
        self,
        kind: CallKind,
        parameters: Any,
        call: Callable[[], Awaitable[T]],
        *,
        method: str = "create",
    ) -> T:
        """Async variant of instrument_call() for awaitable provider calls.

        The segment stays open across the await; the transaction is taken
        from the task's context, so concurrent tasks never share segments.
        """
        txn = self._begin(kind)
        if txn is None:
            return await call()

        with llm_call_context(kind=kind.value, vendor=self._vendor, ingest_source=self._language):
            segment = self._tracer.open_segment(segment_name(kind, self._vendor, method))
            event_id = self._factory.new_id()
            try:
                response = await call()
            except BaseException as exc:
                self._fail(txn, segment, kind, parameters, event_id, exc)
                raise

            self._complete(txn, segment, kind, parameters, response, event_id, error=False)
            return response

    def instrument(self, kind: CallKind, *, method: str = "create") -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of instrument_call().

        The decorated function's keyword arguments are taken as the request
        parameters. Coroutine functions get an async wrapper.

        Example:
            @instrumentation.instrument(CallKind.EMBEDDINGS)
            def embed(**parameters):
                return client.embeddings.create(**parameters)
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                    return await self.instrument_call_async(kind, kwargs, lambda: func(*args, **kwargs), method=method)

                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                return self.instrument_call(kind, kwargs, lambda: func(*args, **kwargs), method=method)

            return wrapper

        return decorator

    def _begin(self, kind: CallKind) -> Transaction | None:
        """Return the transaction to instrument under, None to pass through."""
        if not self._enabled:
            return None
        txn = self._tracer.current_transaction()
        if txn is None:
            logger.debug("llm_call_outside_transaction", kind=kind.value, vendor=self._vendor)
        return txn

    def _fail(
        self,
        txn: Transaction,
        segment: Segment,
        kind: CallKind,
        parameters: Any,
        event_id: str,
        exc: BaseException,
    ) -> None:
        """Record a failed call.

        Runs while the provider's exception is being handled, so nothing
        raised here may replace it: bookkeeping failures are logged and the
        caller re-raises the original.
        """
        logger.debug("llm_call_failed", error_type=type(exc).__name__)
        try:
            self._tracer.notice_error(segment, exc, {_ERROR_EVENT_ID_KEYS[kind]: event_id})
            self._complete(txn, segment, kind, parameters, None, event_id, error=True)
        except Exception as bookkeeping_error:
            logger.error(
                "llm_error_recording_failed",
                error=str(bookkeeping_error),
                error_type=type(bookkeeping_error).__name__,
                provider_error_type=type(exc).__name__,
            )

    def _complete(
        self,
        txn: Transaction,
        segment: Segment,
        kind: CallKind,
        parameters: Any,
        response: Any,
        event_id: str,
        *,
        error: bool,
    ) -> None:
        """Close the segment and record metric, marker and events."""
        # Close first: the summary-level event reads the final duration
        self._tracer.close_segment(segment)
        self._metrics.record_metric(self._metric_name, 1)
        if not self._tracer.get_agent_attributes(txn).get(LLM_AGENT_ATTRIBUTE):
            self._tracer.add_agent_attribute(txn, LLM_AGENT_ATTRIBUTE, True)

        # Attributes are extracted once; every event shares this context
        context = CallContext(
            custom_attributes=extract_llm_custom_attributes(self._tracer.get_custom_attributes(txn)),
            transaction_id=txn.guid,
            trace_id=txn.trace_id,
            span_id=segment.guid,
            vendor=self._vendor.lower(),
            ingest_source=self._language,
        )

        if kind is CallKind.CHAT:
            self._record_chat(segment, parameters, response, event_id, context, error=error)
        else:
            self._record_embedding(segment, parameters, response, event_id, context, error=error)

    def _record_chat(
        self,
        segment: Segment,
        parameters: Any,
        response: Any,
        summary_id: str,
        context: CallContext,
        *,
        error: bool,
    ) -> None:
        summary = self._factory.build_chat_summary(
            summary_id=summary_id,
            parameters=parameters,
            response=response,
            context=context,
            duration=segment.duration,
            error=error,
        )
        segment.llm_event = summary
        self._aggregator.record(summary)

        # Built before recording so a failing token-count callback records none of them
        messages = self._factory.build_chat_messages(
            summary_id=summary_id,
            parameters=parameters,
            response=response,
            context=context,
        )
        for message in messages:
            self._aggregator.record(message)

        logger.debug(
            "llm_chat_completion_recorded",
            completion_id=summary_id,
            message_count=len(messages),
            error=error,
            duration=segment.duration,
        )

    def _record_embedding(
        self,
        segment: Segment,
        parameters: Any,
        response: Any,
        embedding_id: str,
        context: CallContext,
        *,
        error: bool,
    ) -> None:
        embedding = self._factory.build_embedding(
            embedding_id=embedding_id,
            parameters=parameters,
            response=response,
            context=context,
            duration=segment.duration,
            error=error,
        )
        segment.llm_event = embedding
        self._aggregator.record(embedding)

        logger.debug(
            "llm_embedding_recorded",
            embedding_id=embedding_id,
            error=error,
            duration=segment.duration,
        )
