# src/llmtrace/logging.py
"""Logging setup for llmtrace.

llmtrace modules log through ``structlog.get_logger(__name__)``. A host
that wants llmtrace's own output format calls configure_logging() with its
LoggingSettings; stdlib records from the host are rendered the same way.

While an instrumented call is in flight, llm_call_context() binds the call's
kind, vendor and ingest source into structlog's context variables, so every
line logged during the call (token counting, buffer drops, recording
failures) carries them without each call site repeating them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from llmtrace.config import LoggingSettings

# Loggers owned by the provider SDK and its transport
_PROVIDER_LOGGERS: tuple[str, ...] = ("openai", "httpx", "httpcore")


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(settings: LoggingSettings | None = None, *, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging through one renderer.

    Args:
        settings: Output format and level (defaults to LoggingSettings())
        stream: Destination (defaults to stdout)
    """
    settings = settings or LoggingSettings()
    level = logging.getLevelName(settings.level)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfigurable: agents built later may apply different settings
        cache_logger_on_first_use=False,
    )

    final: list[Any] = [ProcessorFormatter.remove_processors_meta]
    if settings.json_output:
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer(settings.json_output))

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=final, foreign_pre_chain=shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _PROVIDER_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


@contextmanager
def llm_call_context(*, kind: str, vendor: str, ingest_source: str) -> Iterator[None]:
    """Bind call identity to every log line emitted inside the block.

    Example:
        with llm_call_context(kind="completion", vendor="OpenAI", ingest_source="Python"):
            logger.debug("llm_call_failed")  # carries llm_kind, llm_vendor, ingest_source
    """
    with structlog.contextvars.bound_contextvars(llm_kind=kind, llm_vendor=vendor, ingest_source=ingest_source):
        yield
