"""
Authorization Protocol — Interface for permission evaluation.

Stockledger defines this protocol, the host project implements it.
The ledger never evaluates roles itself: it asks once per transition.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Authorizer(Protocol):
    """
    Protocol for permission checks.

    ``module`` is the document type ("receipt", "issue", "transfer") or
    "lot" for lot operations; ``action`` is the requested action
    ("confirm", "post", "complete", "cancel", "reserve", ...).
    """

    def has_permission(self, actor_id: int | None, module: str, action: str) -> bool:
        """
        Decide whether the actor may perform the action.

        Args:
            actor_id: User primary key (None = system)
            module: Ledger module name
            action: Action name

        Returns:
            True if allowed
        """
        ...
