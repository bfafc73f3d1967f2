"""
Noop adapters — Stubs for development and testing.

Usage in settings.py:
    STOCKLEDGER = {
        "AUTHORIZER": "stockledger.adapters.noop.AllowAllAuthorizer",
        "AUDIT_SINK": "stockledger.adapters.noop.NullAuditSink",
    }

WARNING: Do NOT use AllowAllAuthorizer in production. It grants every
action to every actor.
"""

from __future__ import annotations

from typing import Any


class AllowAllAuthorizer:
    """
    Authorizer that allows everything.

    Suitable for:
    - Local development without a permission system
    - Tests that are not about authorization
    """

    def has_permission(self, actor_id: int | None, module: str, action: str) -> bool:
        return True


class DenyAllAuthorizer:
    """Authorizer that denies everything. Freezes the ledger read-only."""

    def has_permission(self, actor_id: int | None, module: str, action: str) -> bool:
        return False


class NullAuditSink:
    """Audit sink that discards every record."""

    def record(
        self,
        actor_id: int | None,
        action: str,
        object_type: str,
        object_id: str,
        content: dict[str, Any],
    ) -> None:
        return None
