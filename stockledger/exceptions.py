"""
Exceptions for Stockledger.

All errors are StockError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Base for structured errors: a stable code, a human message and context data.

    Subclasses provide ``_default_messages`` keyed by code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.data:
            return f"[{self.code}] {self.message} {self.data}"
        return f"[{self.code}] {self.message}"


class StockError(BaseError):
    """
    Structured exception for stock and document operations.

    Usage:
        try:
            ledger.transition('issue:12', 'post', actor=user)
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_TRANSITION': 'Action is not allowed from the current status',
        'INSUFFICIENT_STOCK': 'Requested quantity exceeds available stock',
        'CONCURRENCY_CONFLICT': 'Concurrent modification detected',
        'RECONCILIATION_VIOLATION': 'Stock quantity does not match the sum of its lots',
        'NOT_AUTHORIZED': 'Actor is not allowed to perform this action',
        'DOCUMENT_NOT_FOUND': 'Document not found',
        'INVALID_DOCUMENT_ID': 'Invalid document identifier',
        'INVALID_QUANTITY': 'Invalid quantity (must be positive)',
        'INVALID_PRICE': 'Invalid unit price (must not be negative)',
        'EMPTY_DOCUMENT': 'Document must have at least one line',
        'SAME_WAREHOUSE': 'Source and destination warehouses must differ',
        'LOT_RESERVED': 'Lot is reserved',
        'LOT_NOT_RESERVED': 'Lot is not reserved',
        'INVALID_LOT_OPERATION': 'Invalid lot operation',
        'DISTANCE_UNKNOWN': 'Distance between warehouses is unknown',
    }

    # Codes a caller may safely retry after re-reading state.
    RETRYABLE = frozenset({'CONCURRENCY_CONFLICT'})

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    @property
    def is_retryable(self) -> bool:
        return self.code in self.RETRYABLE

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
