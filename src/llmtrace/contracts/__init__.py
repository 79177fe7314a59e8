"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE: it imports nothing from the tracing,
instrumentation or telemetry packages, so exporters and hosts can depend
on it without pulling in the instrumentation.
"""

from llmtrace.contracts.enums import CallKind, LlmEventType
from llmtrace.contracts.events import (
    ChatCompletionMessage,
    ChatCompletionSummary,
    CustomAttributes,
    Embedding,
    EventRecord,
    LlmEvent,
    LlmEventBase,
)

__all__ = [
    "CallKind",
    "ChatCompletionMessage",
    "ChatCompletionSummary",
    "CustomAttributes",
    "Embedding",
    "EventRecord",
    "LlmEvent",
    "LlmEventBase",
    "LlmEventType",
]
