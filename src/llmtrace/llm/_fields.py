# src/llmtrace/llm/_fields.py
"""Shape-tolerant accessors for provider parameters and responses.

Parameters and responses arrive either as plain mappings (raw JSON bodies,
``**kwargs``) or as SDK model objects with attribute access. Every reader
in the instrumentation goes through get_field() so both spellings behave
identically and a missing key degrades to None instead of raising.
"""

from collections.abc import Mapping, Sequence
from typing import Any


def get_field(source: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping key or an attribute.

    Returns ``default`` when ``source`` is None or lacks the field.
    """
    if source is None:
        return default
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def get_int(source: Any, name: str) -> int | None:
    """Read an integer field, None if absent or not an int (bools excluded)."""
    value = get_field(source, name)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_str(source: Any, name: str) -> str | None:
    value = get_field(source, name)
    return value if isinstance(value, str) else None


def get_sequence(source: Any, name: str) -> Sequence[Any]:
    """Read a list-like field, empty tuple if absent or not a sequence."""
    value = get_field(source, name)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value
    return ()


def request_messages(parameters: Any) -> Sequence[Any]:
    return get_sequence(parameters, "messages")


def response_choices(response: Any) -> Sequence[Any]:
    return get_sequence(response, "choices")


def embedding_input_text(parameters: Any) -> str | None:
    """Render the embedding ``input`` parameter as a single string.

    A list of strings is joined with newlines; token-id inputs are rendered
    with str() so the event still carries something inspectable.
    """
    value = get_field(parameters, "input")
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return "\n".join(value)
    return str(value)
