"""LLM call observability pipeline.

Components (leaves first):
- attributes: extract_llm_custom_attributes() for ``llm.``-scoped attributes
- token_count: TokenCounter and its fallback TokenCountCallbackHolder
- event_factory: LlmEventFactory building Summary/Message/Embedding events
- instrumentation: LlmInstrumentation wrapping one provider call
- client: InstrumentedLLMClient adapters around OpenAI-compatible clients
"""

from llmtrace.llm.attributes import LLM_ATTRIBUTE_PREFIX, extract_llm_custom_attributes
from llmtrace.llm.client import AsyncInstrumentedLLMClient, InstrumentedLLMClient
from llmtrace.llm.event_factory import CallContext, LlmEventFactory
from llmtrace.llm.instrumentation import LLM_AGENT_ATTRIBUTE, LlmInstrumentation, segment_name
from llmtrace.llm.token_count import TokenCountCallback, TokenCountCallbackHolder, TokenCounter

__all__ = [
    "LLM_AGENT_ATTRIBUTE",
    "LLM_ATTRIBUTE_PREFIX",
    "AsyncInstrumentedLLMClient",
    "CallContext",
    "InstrumentedLLMClient",
    "LlmEventFactory",
    "LlmInstrumentation",
    "TokenCountCallback",
    "TokenCountCallbackHolder",
    "TokenCounter",
    "extract_llm_custom_attributes",
    "segment_name",
]
