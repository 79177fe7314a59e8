# src/llmtrace/tracing/protocols.py
"""Protocol for the host tracer consumed by the instrumentation.

The instrumentation never creates transactions itself; it attaches to the
one the host tracer reports as current and asks it to open and close
segments. Tracer in llmtrace.tracing.transaction is the in-process
implementation; any host agent can supply its own.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from llmtrace.tracing.transaction import Segment, Transaction


@runtime_checkable
class TracerProtocol(Protocol):
    """Segment/transaction operations supplied by the host agent.

    Error handling:
        - open_segment() may raise if there is no current transaction;
          callers check current_transaction() first
        - close_segment() MUST be idempotent
    """

    def current_transaction(self) -> Transaction | None:
        """Return the transaction bound to the current context, if any."""
        ...

    def open_segment(self, name: str, parent: Segment | None = None) -> Segment:
        """Open a segment under ``parent`` (default: the active segment)."""
        ...

    def close_segment(self, segment: Segment) -> None:
        """Stop timing ``segment``. Its duration is final afterwards."""
        ...

    def notice_error(
        self,
        segment: Segment,
        error: BaseException,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        """Record ``error`` as the noticed error of ``segment``."""
        ...

    def set_custom_attribute(self, transaction: Transaction, key: str, value: Any) -> None:
        """Set a user-visible custom attribute on the transaction."""
        ...

    def get_custom_attributes(self, transaction: Transaction) -> dict[str, Any]:
        """Return a snapshot of the transaction's custom attributes."""
        ...

    def add_agent_attribute(self, transaction: Transaction, key: str, value: Any) -> None:
        """Set an agent-owned attribute on the transaction."""
        ...

    def get_agent_attributes(self, transaction: Transaction) -> dict[str, Any]:
        """Return a snapshot of the transaction's agent attributes."""
        ...
