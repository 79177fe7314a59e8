# src/llmtrace/contracts/events.py
"""LLM event records emitted for each instrumented provider call.

Three closed variants share one base record embedded by value:

- ChatCompletionSummary: one per chat call (duration, error, model)
- ChatCompletionMessage: one per request message and per response choice
- Embedding: one per embedding call

Events are immutable (frozen) so they can be handed to the aggregator and
exporters from any thread without copying. Each event renders to the
``(intrinsics, attributes)`` pair consumed by the host's export path via
``to_record()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

from llmtrace.contracts.enums import LlmEventType

# Filtered transaction custom attributes, prefix already stripped.
# Ordered pairs rather than a dict so the record stays hashable and frozen.
CustomAttributes = tuple[tuple[str, Any], ...]

EventRecord = tuple[dict[str, Any], dict[str, Any]]


@dataclass(frozen=True, slots=True)
class LlmEventBase:
    """Fields shared by every LLM event variant.

    Attributes:
        id: Unique event id. For summaries this is the correlation id that
            message events reference as ``completion_id``.
        timestamp: When the event was built (UTC)
        custom_attributes: Conversation-scoped custom attributes, identical
            for every event produced by one call
        duration: Call duration in seconds (summary-level events only)
        error: Whether the underlying call raised (summary-level events only)
        transaction_id: Owning transaction guid
        trace_id: Distributed trace id of the owning transaction
        span_id: Id of the segment the call ran under
        vendor: Provider vendor name
        ingest_source: Agent language that produced the event
    """

    id: str
    timestamp: datetime
    custom_attributes: CustomAttributes = ()
    duration: float | None = None
    error: bool = False
    transaction_id: str | None = None
    trace_id: str | None = None
    span_id: str | None = None
    vendor: str = "openai"
    ingest_source: str = "Python"

    def common_attributes(self) -> dict[str, Any]:
        """Identity and trace-context attributes common to all variants."""
        attributes: dict[str, Any] = {
            "id": self.id,
            "vendor": self.vendor,
            "ingest_source": self.ingest_source,
        }
        if self.transaction_id is not None:
            attributes["transaction_id"] = self.transaction_id
        if self.trace_id is not None:
            attributes["trace_id"] = self.trace_id
        if self.span_id is not None:
            attributes["span_id"] = self.span_id
        return attributes


def _render(event_type: LlmEventType, base: LlmEventBase, fields: dict[str, Any]) -> EventRecord:
    """Build the (intrinsics, attributes) pair for an event.

    Custom attributes go in first so built-in fields always win on a key
    collision. ``None`` values are omitted.
    """
    intrinsics = {
        "type": event_type.value,
        "timestamp": int(base.timestamp.timestamp() * 1000),
    }
    attributes: dict[str, Any] = dict(base.custom_attributes)
    attributes.update(base.common_attributes())
    attributes.update({key: value for key, value in fields.items() if value is not None})
    return intrinsics, attributes


@dataclass(frozen=True, slots=True)
class ChatCompletionSummary:
    """Summary of one chat completion call.

    ``duration`` mirrors the owning segment's duration exactly; the factory
    reads it from the closed segment rather than timing the call again.
    """

    EVENT_TYPE: ClassVar[LlmEventType] = LlmEventType.CHAT_COMPLETION_SUMMARY

    base: LlmEventBase
    request_model: str | None
    number_of_messages: int
    response_model: str | None = None
    request_max_tokens: int | None = None
    request_temperature: float | None = None
    response_organization: str | None = None
    response_choices_finish_reason: str | None = None
    response_usage_total_tokens: int | None = None
    response_usage_prompt_tokens: int | None = None
    response_usage_completion_tokens: int | None = None

    @property
    def id(self) -> str:
        return self.base.id

    @property
    def duration(self) -> float | None:
        return self.base.duration

    @property
    def error(self) -> bool:
        return self.base.error

    @property
    def custom_attributes(self) -> CustomAttributes:
        return self.base.custom_attributes

    def to_record(self) -> EventRecord:
        return _render(
            self.EVENT_TYPE,
            self.base,
            {
                "request_model": self.request_model,
                "response_model": self.response_model,
                "duration": self.base.duration,
                "error": self.base.error,
                "number_of_messages": self.number_of_messages,
                "request_max_tokens": self.request_max_tokens,
                "request_temperature": self.request_temperature,
                "response_organization": self.response_organization,
                "response_choices_finish_reason": self.response_choices_finish_reason,
                "response_usage_total_tokens": self.response_usage_total_tokens,
                "response_usage_prompt_tokens": self.response_usage_prompt_tokens,
                "response_usage_completion_tokens": self.response_usage_completion_tokens,
            },
        )


@dataclass(frozen=True, slots=True)
class ChatCompletionMessage:
    """One request message or response choice of a chat completion call.

    ``is_response`` is only rendered on response messages. ``content`` is
    None when content recording is disabled.
    """

    EVENT_TYPE: ClassVar[LlmEventType] = LlmEventType.CHAT_COMPLETION_MESSAGE

    base: LlmEventBase
    completion_id: str
    sequence: int
    role: str | None
    content: str | None
    is_response: bool = False
    token_count: int | None = None
    response_model: str | None = None
    request_model: str | None = None

    @property
    def id(self) -> str:
        return self.base.id

    @property
    def custom_attributes(self) -> CustomAttributes:
        return self.base.custom_attributes

    def to_record(self) -> EventRecord:
        return _render(
            self.EVENT_TYPE,
            self.base,
            {
                "completion_id": self.completion_id,
                "sequence": self.sequence,
                "role": self.role,
                "content": self.content,
                "is_response": True if self.is_response else None,
                "token_count": self.token_count,
                "response_model": self.response_model,
                "request_model": self.request_model,
            },
        )


@dataclass(frozen=True, slots=True)
class Embedding:
    """One embedding call."""

    EVENT_TYPE: ClassVar[LlmEventType] = LlmEventType.EMBEDDING

    base: LlmEventBase
    request_model: str | None
    input: str | None
    response_model: str | None = None
    token_count: int | None = None
    response_organization: str | None = None
    response_usage_total_tokens: int | None = None
    response_usage_prompt_tokens: int | None = None

    @property
    def id(self) -> str:
        return self.base.id

    @property
    def duration(self) -> float | None:
        return self.base.duration

    @property
    def error(self) -> bool:
        return self.base.error

    @property
    def custom_attributes(self) -> CustomAttributes:
        return self.base.custom_attributes

    def to_record(self) -> EventRecord:
        return _render(
            self.EVENT_TYPE,
            self.base,
            {
                "input": self.input,
                "request_model": self.request_model,
                "response_model": self.response_model,
                "duration": self.base.duration,
                "error": self.base.error,
                "token_count": self.token_count,
                "response_organization": self.response_organization,
                "response_usage_total_tokens": self.response_usage_total_tokens,
                "response_usage_prompt_tokens": self.response_usage_prompt_tokens,
            },
        )


LlmEvent = ChatCompletionSummary | ChatCompletionMessage | Embedding
