"""
Audit Protocol — Interface for the audit trail sink.

Calls are fire-and-forget: the ledger invokes the sink after commit and
logs (never propagates) its failures.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit recording."""

    def record(
        self,
        actor_id: int | None,
        action: str,
        object_type: str,
        object_id: str,
        content: dict[str, Any],
    ) -> None:
        """
        Record one audited action.

        Args:
            actor_id: User primary key (None = system)
            action: What happened ("create", "confirm", "post", ...)
            object_type: "receipt", "issue", "transfer", "lot"
            object_id: Identifier in standard format ("issue:12")
            content: JSON-serializable details
        """
        ...
