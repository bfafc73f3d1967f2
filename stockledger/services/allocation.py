"""
Lot allocation — which lots an outgoing quantity is drawn from.

Order is oldest first: manufacture date, then expiry date (undated lots
last), then id. Lots reserved for a different issue are never touched.
An allocation either covers the full request or fails; it is never partial.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from stockledger.exceptions import StockError
from stockledger.models.lot import StockLot
from stockledger.rounding import ZERO, to_decimal

logger = logging.getLogger('stockledger')


@dataclass(frozen=True)
class LotAllocation:
    """Quantity to draw from one lot."""

    lot: StockLot
    quantity: Decimal


class LotAllocator:
    """Greedy FIFO allocation over the eligible lots of a key."""

    @classmethod
    def candidates(cls, warehouse, material, issue=None, lot=None, lock: bool = True):
        """
        Eligible lots in allocation order.

        Args:
            issue: Issue being posted; its own reservations are eligible
            lot: Pin allocation to this single lot
            lock: select_for_update() the rows (postings must lock)
        """
        qs = StockLot.objects.for_key(warehouse, material).open().eligible_for(issue)
        if lot is not None:
            qs = qs.filter(pk=getattr(lot, 'pk', lot))
        qs = qs.fifo()
        if lock:
            qs = qs.select_for_update()
        return list(qs)

    @classmethod
    def allocate(cls, warehouse, material, quantity, issue=None, lot=None,
                 lock: bool = True) -> list[LotAllocation]:
        """
        Pick lots covering ``quantity`` exactly.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
            StockError('INSUFFICIENT_STOCK'): If eligible lots hold less than
                requested; carries ``available`` and ``requested``

        Concurrency:
            - Must run inside the posting's transaction.atomic()
            - Locks candidate lots with select_for_update()
        """
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        lots = cls.candidates(warehouse, material, issue=issue, lot=lot, lock=lock)
        available = sum((candidate.quantity for candidate in lots), ZERO)

        if available < quantity:
            raise StockError(
                'INSUFFICIENT_STOCK',
                available=available,
                requested=quantity,
                warehouse_id=getattr(warehouse, 'pk', warehouse),
                material_id=getattr(material, 'pk', material),
            )

        allocations = []
        remaining = quantity
        for candidate in lots:
            if remaining <= 0:
                break
            take = min(candidate.quantity, remaining)
            allocations.append(LotAllocation(lot=candidate, quantity=take))
            remaining -= take

        logger.debug(
            "stock.allocation",
            extra={
                "warehouse_id": getattr(warehouse, 'pk', warehouse),
                "material_id": getattr(material, 'pk', material),
                "qty": str(quantity),
                "lots": [a.lot.pk for a in allocations],
            },
        )
        return allocations

    @classmethod
    def preview(cls, warehouse, material, quantity, issue=None) -> list[LotAllocation]:
        """Same decision as allocate(), without locking. Nothing is written."""
        return cls.allocate(warehouse, material, quantity, issue=issue, lock=False)
