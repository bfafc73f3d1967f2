"""
Lot operations — reserve, release, split, merge.

A lot is reserved whole, for one issue at a time. Split and merge move
quantity between lots of the same key, so Stock never changes.

All methods use transaction.atomic() with select_for_update() on lots.
"""

import logging

from django.db import transaction

from stockledger.adapters import get_authorizer, get_clock
from stockledger.exceptions import StockError
from stockledger.models.documents import StockIssue
from stockledger.models.enums import LotAction
from stockledger.models.lot import LotHistory, StockLot
from stockledger.rounding import ZERO, round_money, round_quantity, to_decimal
from stockledger.services.ledger import StockLedger

logger = logging.getLogger('stockledger')


def _actor_id(actor):
    return getattr(actor, 'pk', actor)


def _authorize(actor, action: str) -> None:
    actor_id = _actor_id(actor)
    if not get_authorizer().has_permission(actor_id, 'lot', action):
        raise StockError('NOT_AUTHORIZED', actor_id=actor_id, module='lot', action=action)


class LotOperations:
    """Lot-level maintenance outside of document postings."""

    @classmethod
    def reserve(cls, lot, issue, actor=None) -> StockLot:
        """
        Reserve a whole lot for a pending issue.

        Raises:
            StockError('LOT_RESERVED'): Lot already reserved
            StockError('INVALID_LOT_OPERATION'): Empty lot, posted issue, or
                lot not matching any line of the issue
        """
        _authorize(actor, 'reserve')

        with transaction.atomic():
            # Document row before lot, as postings do
            issue = StockIssue.objects.select_for_update().get(pk=getattr(issue, 'pk', issue))
            locked = StockLedger.lock_lot(lot)

            if locked.is_reserved:
                raise StockError(
                    'LOT_RESERVED',
                    lot_id=locked.pk,
                    issue_id=locked.reserved_for_issue_id,
                )
            if locked.quantity <= 0:
                raise StockError('INVALID_LOT_OPERATION', lot_id=locked.pk, reason='empty lot')
            if issue.is_posted or issue.is_terminal:
                raise StockError('INVALID_LOT_OPERATION', lot_id=locked.pk, reason='issue already posted')
            if issue.warehouse_id != locked.warehouse_id or not issue.details.filter(
                material_id=locked.material_id,
            ).exists():
                raise StockError('INVALID_LOT_OPERATION', lot_id=locked.pk, reason='lot does not match issue')

            StockLedger.set_reservation(locked, issue=issue, actor_id=_actor_id(actor))
            StockLedger.adjust_lot(
                locked, ZERO, LotAction.RESERVE,
                reference=issue.document_id, actor_id=_actor_id(actor),
            )
            logger.info(
                "stock.lot.reserved",
                extra={"lot_id": locked.pk, "issue_id": issue.pk},
            )
            return locked

    @classmethod
    def release(cls, lot, actor=None) -> StockLot:
        """
        Clear a lot's reservation.

        Raises:
            StockError('LOT_NOT_RESERVED'): Lot is not reserved
        """
        _authorize(actor, 'release')

        with transaction.atomic():
            locked = StockLedger.lock_lot(lot)
            if not locked.is_reserved:
                raise StockError('LOT_NOT_RESERVED', lot_id=locked.pk)
            cls._release(locked, actor_id=_actor_id(actor))
            return locked

    @classmethod
    def _release(cls, locked: StockLot, actor_id=None, reference: str = '') -> None:
        issue_id = locked.reserved_for_issue_id
        StockLedger.set_reservation(locked, issue=None)
        StockLedger.adjust_lot(
            locked, ZERO, LotAction.RELEASE,
            reference=reference or (f"issue:{issue_id}" if issue_id else ''),
            actor_id=actor_id,
            notes='reservation released',
        )
        logger.info(
            "stock.lot.released",
            extra={"lot_id": locked.pk, "issue_id": issue_id},
        )

    @classmethod
    def release_for_issue(cls, issue, actor_id=None) -> int:
        """
        Release every lot reserved for ``issue``.

        Must run inside the caller's transaction (issue posting or cancel).
        """
        lots = StockLot.objects.filter(
            reserved_for_issue_id=getattr(issue, 'pk', issue),
        ).select_for_update().order_by('id')
        count = 0
        for locked in lots:
            cls._release(locked, actor_id=actor_id, reference=issue.document_id)
            count += 1
        return count

    @classmethod
    def split(cls, lot, quantities, actor=None) -> list[StockLot]:
        """
        Split quantities off a lot into child lots.

        Children keep the parent's dates and unit cost; their lot numbers
        derive from the parent's. The parent keeps the remainder.

        Raises:
            StockError('INVALID_QUANTITY'): A split quantity <= 0
            StockError('LOT_RESERVED'): Parent is reserved
            StockError('INSUFFICIENT_STOCK'): Quantities exceed the lot
        """
        _authorize(actor, 'split')
        amounts = [round_quantity(to_decimal(q)) for q in quantities]
        if not amounts or any(q <= 0 for q in amounts):
            raise StockError('INVALID_QUANTITY', requested=list(quantities))
        actor_id = _actor_id(actor)

        with transaction.atomic():
            parent = StockLedger.lock_lot(lot)
            if parent.is_reserved:
                raise StockError('LOT_RESERVED', lot_id=parent.pk)
            total = sum(amounts, ZERO)
            if total > parent.quantity:
                raise StockError(
                    'INSUFFICIENT_STOCK',
                    available=parent.quantity,
                    requested=total,
                    lot_id=parent.pk,
                )

            base = parent.lot_number or f"L{parent.pk}"
            start = parent.children.count() + 1
            now = get_clock().now()
            children = []
            for offset, amount in enumerate(amounts):
                child = StockLot.objects.create(
                    warehouse_id=parent.warehouse_id,
                    material_id=parent.material_id,
                    lot_number=f"{base}-{start + offset}",
                    manufacture_date=parent.manufacture_date,
                    expiry_date=parent.expiry_date,
                    unit_price=parent.unit_price,
                    parent_lot=parent,
                    created_at=now,
                )
                StockLedger.adjust_lot(
                    child, amount, LotAction.SPLIT,
                    reference=parent.reference, actor_id=actor_id,
                    related_lots=str(parent.pk),
                )
                children.append(child)

            StockLedger.adjust_lot(
                parent, -total, LotAction.SPLIT,
                reference=parent.reference, actor_id=actor_id,
                related_lots=','.join(str(c.pk) for c in children),
            )
            StockLedger.verify(parent.warehouse_id, parent.material_id)

            logger.info(
                "stock.lot.split",
                extra={"lot_id": parent.pk, "children": [c.pk for c in children]},
            )
            return children

    @classmethod
    def merge(cls, lots, actor=None, lot_number: str = '') -> StockLot:
        """
        Merge open lots of one key into a new lot.

        The new lot takes the earliest manufacture and expiry dates and the
        quantity-weighted unit cost. Source lots are zeroed, not deleted.

        Raises:
            StockError('INVALID_LOT_OPERATION'): Fewer than two lots, or lots
                from different warehouses/materials, or an empty lot
            StockError('LOT_RESERVED'): A source lot is reserved
        """
        _authorize(actor, 'merge')
        ids = sorted({getattr(lot, 'pk', lot) for lot in lots})
        if len(ids) < 2:
            raise StockError('INVALID_LOT_OPERATION', reason='need at least two lots')
        actor_id = _actor_id(actor)

        with transaction.atomic():
            sources = list(StockLot.objects.select_for_update().filter(pk__in=ids).order_by('id'))
            if len(sources) != len(ids):
                raise StockError('INVALID_LOT_OPERATION', reason='lot not found', lot_ids=ids)
            keys = {(s.warehouse_id, s.material_id) for s in sources}
            if len(keys) != 1:
                raise StockError('INVALID_LOT_OPERATION', reason='lots belong to different keys', lot_ids=ids)
            for source in sources:
                if source.is_reserved:
                    raise StockError('LOT_RESERVED', lot_id=source.pk)
                if source.quantity <= 0:
                    raise StockError('INVALID_LOT_OPERATION', reason='empty lot', lot_id=source.pk)

            total = sum((s.quantity for s in sources), ZERO)
            value = sum((s.quantity * s.unit_price for s in sources), ZERO)
            manufacture_dates = [s.manufacture_date for s in sources if s.manufacture_date]
            expiry_dates = [s.expiry_date for s in sources if s.expiry_date]
            now = get_clock().now()

            merged = StockLot.objects.create(
                warehouse_id=sources[0].warehouse_id,
                material_id=sources[0].material_id,
                lot_number=lot_number or f"M{now:%y%m%d%H%M%S}-{ids[0]}",
                manufacture_date=min(manufacture_dates) if manufacture_dates else None,
                expiry_date=min(expiry_dates) if expiry_dates else None,
                unit_price=round_money(value / total),
                created_at=now,
            )
            source_ids = ','.join(str(i) for i in ids)
            for source in sources:
                StockLedger.adjust_lot(
                    source, -source.quantity, LotAction.MERGE,
                    reference=merged.reference, actor_id=actor_id,
                    related_lots=str(merged.pk),
                )
            StockLedger.adjust_lot(
                merged, total, LotAction.MERGE,
                reference=merged.reference, actor_id=actor_id,
                related_lots=source_ids,
            )
            StockLedger.verify(merged.warehouse_id, merged.material_id)

            logger.info(
                "stock.lot.merged",
                extra={"lot_id": merged.pk, "sources": ids, "qty": str(total)},
            )
            return merged

    @classmethod
    def history(cls, lot):
        """Lot events, newest first."""
        return LotHistory.objects.filter(lot_id=getattr(lot, 'pk', lot)).order_by('-performed_at', '-id')
