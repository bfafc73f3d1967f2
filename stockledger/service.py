"""
Ledger Service — The single public interface for stock documents and queries.

Usage:
    from stockledger import ledger, StockError

    doc_id, number = ledger.create_document('receipt', warehouse, [
        {'material': cement, 'quantity': 10, 'unit_price': 100},
    ], actor=user)
    ledger.transition(doc_id, 'confirm', actor=user)
    ledger.transition(doc_id, 'post', actor=user)
    ledger.get_on_hand(warehouse, [cement.pk])  # {cement.pk: Decimal('10.000')}
"""

from datetime import date
from decimal import Decimal

from stockledger.models.warehouse import Warehouse
from stockledger.services.alerts import StockLevelAlert, check_stock_levels
from stockledger.services.allocation import LotAllocation, LotAllocator
from stockledger.services.documents import DocumentStateMachine
from stockledger.services.lots import LotOperations
from stockledger.services.numbering import DocumentNumberGenerator
from stockledger.services.queries import StockQueries
from stockledger.services.transfer_cost import (
    SourceOption,
    TransferCostBreakdown,
    TransferCostEstimator,
)


class Ledger:
    """
    Single interface for all ledger operations.

    State-changing methods run in atomic transactions with row locks and
    versioned writes. See the service classes for details.
    """

    # ══════════════════════════════════════════════════════════════
    # DOCUMENTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_document(cls, document_type: str, warehouse: Warehouse, lines, actor=None,
                        to_warehouse: Warehouse | None = None, note: str = '',
                        supplier: str = '') -> tuple[str, str]:
        """
        Create a document in status NEW.

        Returns:
            (document_id, number), e.g. ('issue:3', 'PX250114-0003')
        """
        return DocumentStateMachine.create(
            document_type, warehouse, lines, actor=actor,
            to_warehouse=to_warehouse, note=note, supplier=supplier,
        )

    @classmethod
    def transition(cls, document_id: str, action: str, actor=None) -> int:
        """
        Apply 'confirm' | 'post' | 'complete' | 'cancel' to a document.

        Returns:
            The new status

        Raises:
            StockError: INVALID_TRANSITION, INSUFFICIENT_STOCK,
                CONCURRENCY_CONFLICT, NOT_AUTHORIZED, DOCUMENT_NOT_FOUND
        """
        return DocumentStateMachine.transition(document_id, action, actor=actor)

    @classmethod
    def next_number(cls, document_type: str, warehouse: Warehouse | None = None) -> str:
        return DocumentNumberGenerator.next(document_type, warehouse)

    @classmethod
    def peek_number(cls, document_type: str, warehouse: Warehouse | None = None) -> str:
        return DocumentNumberGenerator.peek(document_type, warehouse)

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_on_hand(cls, warehouse: Warehouse, material_ids) -> dict:
        """{material_id: quantity}; unknown materials map to 0."""
        return StockQueries.on_hand(warehouse, material_ids)

    @classmethod
    def lots(cls, warehouse=None, material=None, include_empty: bool = False):
        return StockQueries.lots(warehouse, material, include_empty=include_empty)

    @classmethod
    def balance_summary(cls, warehouse, material, start: date, end: date) -> dict[str, Decimal]:
        return StockQueries.balance_summary(warehouse, material, start, end)

    @classmethod
    def reconcile(cls, warehouse=None, material=None) -> list[dict]:
        """Stock rows that disagree with their lots. Never corrects."""
        return StockQueries.reconcile(warehouse, material)

    @classmethod
    def expiring_lots(cls, within_days: int | None = None, warehouse=None):
        return StockQueries.expiring_lots(within_days, warehouse)

    @classmethod
    def check_stock_levels(cls, warehouse=None) -> list[StockLevelAlert]:
        return check_stock_levels(warehouse)

    @classmethod
    def preview_allocation(cls, warehouse, material, quantity, issue=None) -> list[LotAllocation]:
        """Lots an issue of ``quantity`` would draw from now. Nothing is locked or written."""
        return LotAllocator.preview(warehouse, material, quantity, issue=issue)

    # ══════════════════════════════════════════════════════════════
    # TRANSFER COST
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def estimate_transfer_cost(cls, from_warehouse: Warehouse, to_warehouse: Warehouse,
                               items) -> TransferCostBreakdown:
        return TransferCostEstimator.estimate(from_warehouse, to_warehouse, items)

    @classmethod
    def rank_source_warehouses(cls, material, quantity, to_warehouse: Warehouse) -> list[SourceOption]:
        return TransferCostEstimator.rank_sources(material, quantity, to_warehouse)

    # ══════════════════════════════════════════════════════════════
    # LOTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def reserve_lot(cls, lot, issue, actor=None):
        return LotOperations.reserve(lot, issue, actor=actor)

    @classmethod
    def release_lot(cls, lot, actor=None):
        return LotOperations.release(lot, actor=actor)

    @classmethod
    def split_lot(cls, lot, quantities, actor=None):
        return LotOperations.split(lot, quantities, actor=actor)

    @classmethod
    def merge_lots(cls, lots, actor=None, lot_number: str = ''):
        return LotOperations.merge(lots, actor=actor, lot_number=lot_number)

    @classmethod
    def lot_history(cls, lot):
        return LotOperations.history(lot)
