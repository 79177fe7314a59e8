"""Status codes and kinds used across subsystem boundaries."""

from enum import StrEnum


class CallKind(StrEnum):
    """Kind of provider request being instrumented.

    The value is the segment-name component for the request
    (``Llm/<kind>/<vendor>/<method>``).
    """

    CHAT = "completion"
    EMBEDDINGS = "embedding"


class LlmEventType(StrEnum):
    """Stable ``type`` discriminator carried by every LLM event."""

    CHAT_COMPLETION_SUMMARY = "LlmChatCompletionSummary"
    CHAT_COMPLETION_MESSAGE = "LlmChatCompletionMessage"
    EMBEDDING = "LlmEmbedding"
