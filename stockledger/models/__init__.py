"""
Stockledger Models.

Core models for lot-level stock management:
- Warehouse / WarehouseDistance: Where stock exists
- Material: What is stocked, and how it is costed
- Stock: Quantity cache per (warehouse, material)
- StockLot: Dated batches with their own cost basis
- LotHistory: Immutable log of lot events
- StockBalance: Daily in/out rollup
- Receipt / Issue / Transfer documents with their lines and allocations
- DocumentNumbering: Sequence counters for document numbers
"""

from stockledger.models.balance import StockBalance
from stockledger.models.documents import (
    StockDocument,
    StockIssue,
    StockIssueAllocation,
    StockIssueDetail,
    StockReceipt,
    StockReceiptDetail,
    StockTransfer,
    StockTransferAllocation,
    StockTransferDetail,
)
from stockledger.models.enums import (
    CostingMethod,
    DocumentAction,
    DocumentStatus,
    DocumentType,
    LotAction,
)
from stockledger.models.lot import LotHistory, StockLot
from stockledger.models.material import Material
from stockledger.models.numbering import DocumentNumbering
from stockledger.models.stock import Stock
from stockledger.models.warehouse import Warehouse, WarehouseDistance

__all__ = [
    'CostingMethod',
    'DocumentAction',
    'DocumentStatus',
    'DocumentType',
    'LotAction',
    'Warehouse',
    'WarehouseDistance',
    'Material',
    'Stock',
    'StockLot',
    'LotHistory',
    'StockBalance',
    'StockDocument',
    'StockReceipt',
    'StockReceiptDetail',
    'StockIssue',
    'StockIssueDetail',
    'StockIssueAllocation',
    'StockTransfer',
    'StockTransferDetail',
    'StockTransferAllocation',
    'DocumentNumbering',
]
