# src/llmtrace/llm/token_count.py
"""Token accounting for LLM events.

Token counts come from the provider's usage object when one is present.
Usage is authoritative: when it is there the fallback callback is never
consulted, even if usage cannot be attributed to a particular message.

Attribution policy for chat messages:
- request message: prompt_tokens, only when the request had exactly ONE
  message. With several request messages there is no deterministic
  per-message split, so each request message reports None.
- response message: completion_tokens (or total_tokens), only when the
  response has exactly one choice.

When the response carries no usable usage object, the process-wide
fallback callback (if configured) is called with ``{"model", "content"}``
and its integer result is used. Exceptions raised by the callback
propagate to the caller unchanged.

A call that raised has no response and nothing to count: every count is
None and the callback is not consulted.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from llmtrace.llm._fields import get_field, get_int, get_str, request_messages, response_choices

logger = structlog.get_logger(__name__)

TokenCountCallback = Callable[[Mapping[str, Any]], int]

_USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


class TokenCountCallbackHolder:
    """Runtime configuration slot for the token-count fallback callback.

    Holds a single reference that is swapped atomically under a lock, so
    readers always see either the old or the new callback, never a torn
    state. The callback itself is opaque: it is called outside the lock.
    """

    def __init__(self, callback: TokenCountCallback | None = None) -> None:
        self._lock = threading.Lock()
        self._callback: TokenCountCallback | None = None
        if callback is not None:
            self.set(callback)

    def set(self, callback: TokenCountCallback) -> None:
        """Install ``callback`` as the fallback.

        Raises:
            TypeError: If callback is not callable
        """
        if not callable(callback):
            raise TypeError(f"Token count callback must be callable, got {type(callback).__name__}")
        with self._lock:
            self._callback = callback
        logger.debug("token_count_callback_set", callback=getattr(callback, "__qualname__", repr(callback)))

    def clear(self) -> None:
        with self._lock:
            self._callback = None

    def get(self) -> TokenCountCallback | None:
        with self._lock:
            return self._callback


def _usable_usage(response: Any) -> Any:
    """Return the response's usage object if it carries any token field."""
    usage = get_field(response, "usage")
    if usage is None:
        return None
    if any(get_int(usage, name) is not None for name in _USAGE_FIELDS):
        return usage
    return None


class TokenCounter:
    """Computes token counts for message and embedding events.

    Example:
        callbacks = TokenCountCallbackHolder()
        counter = TokenCounter(callbacks)
        response = {"usage": {"prompt_tokens": 12, "completion_tokens": 30}}
        counter.calculate_message_token_count(
            {"role": "user", "content": "hi"}, response, {"messages": [{"role": "user", "content": "hi"}]}
        )  # -> 12
    """

    def __init__(self, callbacks: TokenCountCallbackHolder) -> None:
        self._callbacks = callbacks

    def calculate_message_token_count(
        self,
        message: Any,
        response: Any,
        parameters: Any,
        *,
        is_response: bool = False,
    ) -> int | None:
        """Token count for one chat message.

        Args:
            message: Request message or response choice message (mapping or object)
            response: Provider response, None when the call raised
            parameters: Request parameters (mapping or object)
            is_response: True for a response choice message

        Returns:
            Token count, or None when it cannot be attributed
        """
        if response is None:
            return None

        usage = _usable_usage(response)
        if usage is not None:
            if is_response:
                if len(response_choices(response)) != 1:
                    return None
                completion_tokens = get_int(usage, "completion_tokens")
                return completion_tokens if completion_tokens is not None else get_int(usage, "total_tokens")
            if len(request_messages(parameters)) != 1:
                return None
            return get_int(usage, "prompt_tokens")

        model = get_str(response, "model") or get_str(parameters, "model")
        return self._from_callback(model, get_field(message, "content"))

    def calculate_embedding_token_count(self, response: Any, parameters: Any, input_text: str | None) -> int | None:
        """Token count for one embedding call."""
        if response is None:
            return None

        usage = _usable_usage(response)
        if usage is not None:
            prompt_tokens = get_int(usage, "prompt_tokens")
            return prompt_tokens if prompt_tokens is not None else get_int(usage, "total_tokens")

        model = get_str(response, "model") or get_str(parameters, "model")
        return self._from_callback(model, input_text)

    def _from_callback(self, model: str | None, content: Any) -> int | None:
        callback = self._callbacks.get()
        if callback is None:
            return None

        result = callback({"model": model, "content": content})
        if isinstance(result, bool) or not isinstance(result, int) or result < 0:
            logger.warning(
                "token_count_callback_invalid_result",
                result_type=type(result).__name__,
                hint="Token count callback must return a non-negative int",
            )
            return None
        return result
