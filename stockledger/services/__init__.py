"""
Stock services — modular organization of ledger operations.

    from stockledger.services import DocumentStateMachine, StockQueries, LotOperations
"""

from stockledger.services.allocation import LotAllocation, LotAllocator
from stockledger.services.balances import StockBalanceAggregator
from stockledger.services.costing import CostingEngine
from stockledger.services.documents import DocumentLine, DocumentStateMachine
from stockledger.services.ledger import StockLedger
from stockledger.services.lots import LotOperations
from stockledger.services.numbering import DocumentNumberGenerator
from stockledger.services.queries import StockQueries
from stockledger.services.transfer_cost import (
    TransferCostBreakdown,
    TransferCostEstimator,
    TransferItem,
)

__all__ = [
    'CostingEngine',
    'DocumentLine',
    'DocumentNumberGenerator',
    'DocumentStateMachine',
    'LotAllocation',
    'LotAllocator',
    'LotOperations',
    'StockBalanceAggregator',
    'StockLedger',
    'StockQueries',
    'TransferCostBreakdown',
    'TransferCostEstimator',
    'TransferItem',
]
