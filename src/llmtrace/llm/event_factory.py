# src/llmtrace/llm/event_factory.py
"""Construction of LLM events from call parameters and responses.

The factory is pure: given the request parameters, the response (or None
when the call raised), the closed segment's duration and the per-call
context, it returns fully populated frozen events. It performs no I/O and
touches no shared state; the id generator and clock are injectable so
tests can build identical events twice.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from llmtrace.contracts.events import (
    ChatCompletionMessage,
    ChatCompletionSummary,
    CustomAttributes,
    Embedding,
    LlmEventBase,
)
from llmtrace.llm._fields import (
    embedding_input_text,
    get_field,
    get_int,
    get_str,
    request_messages,
    response_choices,
)
from llmtrace.llm.token_count import TokenCounter


@dataclass(frozen=True, slots=True)
class CallContext:
    """Values shared by every event produced by one call.

    Built once per call, so every event of the call carries the identical
    ``custom_attributes`` tuple.
    """

    custom_attributes: CustomAttributes
    transaction_id: str | None = None
    trace_id: str | None = None
    span_id: str | None = None
    vendor: str = "openai"
    ingest_source: str = "Python"


def _default_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _number(source: Any, name: str) -> float | None:
    value = get_field(source, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class LlmEventFactory:
    """Builds Summary, Message and Embedding events.

    Args:
        token_counter: Counter used for message and embedding token counts
        record_content: When False, message ``content`` and embedding
            ``input`` are left out of events (token counting still sees them)
        id_factory: Generates event ids (default: uuid4 strings)
        now: Returns the event timestamp (default: current UTC time)
    """

    def __init__(
        self,
        token_counter: TokenCounter,
        *,
        record_content: bool = True,
        id_factory: Callable[[], str] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._token_counter = token_counter
        self._record_content = record_content
        self._id_factory = id_factory or _default_id
        self._now = now or _utc_now

    def new_id(self) -> str:
        return self._id_factory()

    def _base(
        self,
        event_id: str,
        context: CallContext,
        *,
        duration: float | None = None,
        error: bool = False,
    ) -> LlmEventBase:
        return LlmEventBase(
            id=event_id,
            timestamp=self._now(),
            custom_attributes=context.custom_attributes,
            duration=duration,
            error=error,
            transaction_id=context.transaction_id,
            trace_id=context.trace_id,
            span_id=context.span_id,
            vendor=context.vendor,
            ingest_source=context.ingest_source,
        )

    def build_chat_summary(
        self,
        *,
        summary_id: str,
        parameters: Any,
        response: Any,
        context: CallContext,
        duration: float | None,
        error: bool,
    ) -> ChatCompletionSummary:
        """Build the summary event for one chat completion call.

        ``number_of_messages`` counts request messages plus response choices.
        """
        choices = response_choices(response)
        usage = get_field(response, "usage")
        finish_reason = get_str(choices[0], "finish_reason") if choices else None
        max_tokens = get_int(parameters, "max_tokens")
        if max_tokens is None:
            max_tokens = get_int(parameters, "max_completion_tokens")

        return ChatCompletionSummary(
            base=self._base(summary_id, context, duration=duration, error=error),
            request_model=get_str(parameters, "model"),
            number_of_messages=len(request_messages(parameters)) + len(choices),
            response_model=get_str(response, "model"),
            request_max_tokens=max_tokens,
            request_temperature=_number(parameters, "temperature"),
            response_organization=get_str(response, "organization"),
            response_choices_finish_reason=finish_reason,
            response_usage_total_tokens=get_int(usage, "total_tokens"),
            response_usage_prompt_tokens=get_int(usage, "prompt_tokens"),
            response_usage_completion_tokens=get_int(usage, "completion_tokens"),
        )

    def build_chat_messages(
        self,
        *,
        summary_id: str,
        parameters: Any,
        response: Any,
        context: CallContext,
    ) -> list[ChatCompletionMessage]:
        """Build one message event per request message and per response choice.

        Request messages take sequences 0..n-1 and response choices continue
        from n. Only response messages are flagged ``is_response``. When the
        call raised (``response`` is None) only request messages are built.
        """
        request_model = get_str(parameters, "model")
        response_model = get_str(response, "model")
        messages: list[ChatCompletionMessage] = []

        for sequence, message in enumerate(request_messages(parameters)):
            messages.append(
                self._message(
                    summary_id=summary_id,
                    sequence=sequence,
                    message=message,
                    response=response,
                    parameters=parameters,
                    context=context,
                    is_response=False,
                    request_model=request_model,
                    response_model=response_model,
                )
            )

        offset = len(messages)
        for index, choice in enumerate(response_choices(response)):
            messages.append(
                self._message(
                    summary_id=summary_id,
                    sequence=offset + index,
                    message=get_field(choice, "message"),
                    response=response,
                    parameters=parameters,
                    context=context,
                    is_response=True,
                    request_model=request_model,
                    response_model=response_model,
                )
            )

        return messages

    def _message(
        self,
        *,
        summary_id: str,
        sequence: int,
        message: Any,
        response: Any,
        parameters: Any,
        context: CallContext,
        is_response: bool,
        request_model: str | None,
        response_model: str | None,
    ) -> ChatCompletionMessage:
        token_count = self._token_counter.calculate_message_token_count(
            message,
            response,
            parameters,
            is_response=is_response,
        )
        content = get_field(message, "content")
        return ChatCompletionMessage(
            base=self._base(self.new_id(), context),
            completion_id=summary_id,
            sequence=sequence,
            role=get_str(message, "role"),
            content=str(content) if self._record_content and content is not None else None,
            is_response=is_response,
            token_count=token_count,
            response_model=response_model,
            request_model=request_model,
        )

    def build_embedding(
        self,
        *,
        embedding_id: str,
        parameters: Any,
        response: Any,
        context: CallContext,
        duration: float | None,
        error: bool,
    ) -> Embedding:
        """Build the event for one embedding call."""
        input_text = embedding_input_text(parameters)
        usage = get_field(response, "usage")
        return Embedding(
            base=self._base(embedding_id, context, duration=duration, error=error),
            request_model=get_str(parameters, "model"),
            input=input_text if self._record_content else None,
            response_model=get_str(response, "model"),
            token_count=self._token_counter.calculate_embedding_token_count(response, parameters, input_text),
            response_organization=get_str(response, "organization"),
            response_usage_total_tokens=get_int(usage, "total_tokens"),
            response_usage_prompt_tokens=get_int(usage, "prompt_tokens"),
        )
