# src/llmtrace/llm/attributes.py
"""Conversation-scoped custom attribute extraction.

Application code tags a transaction with attributes such as
``llm.conversation_id``. Only keys carrying the literal ``llm.`` prefix are
propagated to LLM events, with the prefix stripped. Everything else stays
on the transaction.
"""

from collections.abc import Mapping
from typing import Any

from llmtrace.contracts.events import CustomAttributes

LLM_ATTRIBUTE_PREFIX = "llm."


def extract_llm_custom_attributes(custom_attributes: Mapping[str, Any]) -> CustomAttributes:
    """Select ``llm.``-prefixed custom attributes and strip the prefix.

    The match is a literal, case-sensitive prefix test: ``LLM.x``,
    ``llm_x`` and ``llmx`` are all excluded, as is the bare ``llm.`` key.
    Called once per instrumented call; the result is attached unchanged to
    every event of that call.

    Args:
        custom_attributes: Snapshot of the transaction's custom attributes

    Returns:
        Ordered (key, value) pairs in the transaction's insertion order

    Example:
        >>> extract_llm_custom_attributes({"llm.conversation_id": "1993", "trex": "carnivore"})
        (('conversation_id', '1993'),)
    """
    return tuple(
        (key[len(LLM_ATTRIBUTE_PREFIX) :], value)
        for key, value in custom_attributes.items()
        if isinstance(key, str) and key.startswith(LLM_ATTRIBUTE_PREFIX) and len(key) > len(LLM_ATTRIBUTE_PREFIX)
    )
