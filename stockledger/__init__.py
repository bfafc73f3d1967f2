"""
Django Stockledger — lot-level stock ledger driven by approval-gated documents.

Usage:
    from stockledger import ledger, StockError

    doc_id, number = ledger.create_document('issue', warehouse, lines, actor=user)
    ledger.transition(doc_id, 'confirm', actor=manager)
    ledger.transition(doc_id, 'post', actor=manager)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from stockledger.service import Ledger
        return Ledger
    elif name == 'StockError':
        from stockledger.exceptions import StockError
        return StockError
    elif name == 'DocumentLine':
        from stockledger.services.documents import DocumentLine
        return DocumentLine
    elif name == 'TransferItem':
        from stockledger.services.transfer_cost import TransferItem
        return TransferItem
    elif name == 'Warehouse':
        from stockledger.models.warehouse import Warehouse
        return Warehouse
    elif name == 'Material':
        from stockledger.models.material import Material
        return Material
    elif name == 'StockLot':
        from stockledger.models.lot import StockLot
        return StockLot
    elif name == 'DocumentStatus':
        from stockledger.models.enums import DocumentStatus
        return DocumentStatus
    elif name == 'CostingMethod':
        from stockledger.models.enums import CostingMethod
        return CostingMethod
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'StockError',
    'DocumentLine',
    'TransferItem',
    'Warehouse',
    'Material',
    'StockLot',
    'DocumentStatus',
    'CostingMethod',
]

__version__ = '0.1.0'
