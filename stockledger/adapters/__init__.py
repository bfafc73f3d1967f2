"""
Stockledger Adapters.

Implementations of protocols for external collaborators, plus the loader
that resolves them from settings.
"""

from stockledger.adapters.loader import (
    get_audit_sink,
    get_authorizer,
    get_clock,
    reset_adapters,
)

__all__ = [
    "get_audit_sink",
    "get_authorizer",
    "get_clock",
    "reset_adapters",
]
