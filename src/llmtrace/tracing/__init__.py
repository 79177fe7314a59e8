"""Host tracer collaborators: transactions, segments and span mirroring."""

from llmtrace.tracing.protocols import TracerProtocol
from llmtrace.tracing.spans import NoOpSpan, SpanFactory
from llmtrace.tracing.transaction import Segment, Tracer, Transaction

__all__ = [
    "NoOpSpan",
    "Segment",
    "SpanFactory",
    "Tracer",
    "TracerProtocol",
    "Transaction",
]
