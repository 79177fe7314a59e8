# src/llmtrace/llm/client.py
"""Instrumented adapters around OpenAI-compatible clients."""

from __future__ import annotations

from typing import Any

import openai

from llmtrace.contracts.enums import CallKind
from llmtrace.llm.instrumentation import LlmInstrumentation


def openai_version() -> str:
    """Installed openai SDK version, reported in the supportability metric."""
    return openai.__version__


class InstrumentedLLMClient:
    """OpenAI client wrapper that records every chat and embedding call.

    Wraps an OpenAI-compatible client (``client.chat.completions.create`` and
    ``client.embeddings.create``) so every call produces a segment, a
    call-count metric and LLM events. Responses and exceptions pass through
    unchanged. Any other attribute is delegated to the underlying client
    without instrumentation.

    Example:
        client = agent.instrument(openai.OpenAI(api_key="..."))

        response = client.chat_completion(
            model="gpt-4o",
            messages=[{"role": "user", "content": "Hello"}],
        )
        print(response.choices[0].message.content)
    """

    def __init__(self, underlying_client: Any, instrumentation: LlmInstrumentation) -> None:
        """Initialize instrumented client.

        Args:
            underlying_client: openai.OpenAI, openai.AzureOpenAI or compatible
            instrumentation: Call wrapper that records segments and events
        """
        self._client = underlying_client
        self._instrumentation = instrumentation

    @property
    def underlying_client(self) -> Any:
        return self._client

    def chat_completion(self, **parameters: Any) -> Any:
        """Create a chat completion with automatic instrumentation.

        Args:
            **parameters: Passed unchanged to ``chat.completions.create``

        Returns:
            The provider's response object, unchanged
        """
        return self._instrumentation.instrument_call(
            CallKind.CHAT,
            parameters,
            lambda: self._client.chat.completions.create(**parameters),
        )

    def embedding(self, **parameters: Any) -> Any:
        """Create embeddings with automatic instrumentation.

        Args:
            **parameters: Passed unchanged to ``embeddings.create``

        Returns:
            The provider's response object, unchanged
        """
        return self._instrumentation.instrument_call(
            CallKind.EMBEDDINGS,
            parameters,
            lambda: self._client.embeddings.create(**parameters),
        )

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not defined here: models, files, ...
        return getattr(self._client, name)

    def close(self) -> None:
        """Close the underlying client if it supports closing."""
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


class AsyncInstrumentedLLMClient:
    """openai.AsyncOpenAI counterpart of InstrumentedLLMClient."""

    def __init__(self, underlying_client: Any, instrumentation: LlmInstrumentation) -> None:
        self._client = underlying_client
        self._instrumentation = instrumentation

    @property
    def underlying_client(self) -> Any:
        return self._client

    async def chat_completion(self, **parameters: Any) -> Any:
        return await self._instrumentation.instrument_call_async(
            CallKind.CHAT,
            parameters,
            lambda: self._client.chat.completions.create(**parameters),
        )

    async def embedding(self, **parameters: Any) -> Any:
        return await self._instrumentation.instrument_call_async(
            CallKind.EMBEDDINGS,
            parameters,
            lambda: self._client.embeddings.create(**parameters),
        )

    def __getattr__(self, name: str) -> Any:
        return getattr(self._client, name)

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            await close()
