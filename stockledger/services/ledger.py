"""
Stock ledger — the only writer of Stock and StockLot rows.

Every write is:
    - made on a row locked with select_for_update()
    - guarded by the row's version token (UPDATE ... WHERE version = v)
    - paired with a LotHistory row for lot quantity changes

Callers must already be inside transaction.atomic(); a version miss
raises CONCURRENCY_CONFLICT and the whole posting rolls back.
"""

import logging
from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from stockledger.adapters import get_clock
from stockledger.exceptions import StockError
from stockledger.models.lot import LotHistory, StockLot
from stockledger.models.stock import Stock
from stockledger.rounding import round_money, round_quantity

logger = logging.getLogger('stockledger')


def _pk(obj):
    return getattr(obj, 'pk', obj)


class StockLedger:
    """Versioned mutations of stock rows and lots."""

    # ══════════════════════════════════════════════════════════════
    # LOCKING
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def lock_stock(cls, warehouse, material) -> Stock:
        """Fetch (or create) and lock the stock row of a key."""
        stock, _ = Stock.objects.select_for_update().get_or_create(
            warehouse_id=_pk(warehouse),
            material_id=_pk(material),
        )
        return stock

    @classmethod
    def lock_lot(cls, lot) -> StockLot:
        return StockLot.objects.select_for_update().get(pk=_pk(lot))

    @classmethod
    def find_or_create_lot(cls, warehouse, material, lot_number='',
                           manufacture_date=None, expiry_date=None) -> tuple[StockLot, bool]:
        """Locked lot for the full lot key; created empty if missing."""
        return StockLot.objects.select_for_update().get_or_create(
            warehouse_id=_pk(warehouse),
            material_id=_pk(material),
            lot_number=lot_number or '',
            manufacture_date=manufacture_date,
            expiry_date=expiry_date,
            defaults={'created_at': get_clock().now()},
        )

    # ══════════════════════════════════════════════════════════════
    # VERSIONED WRITES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _versioned_update(cls, instance, **fields) -> None:
        """
        Write ``fields`` only if nobody else wrote the row since it was read.

        Raises:
            StockError('CONCURRENCY_CONFLICT'): On version mismatch
        """
        model = type(instance)
        updated = model.objects.filter(pk=instance.pk, version=instance.version).update(
            version=F('version') + 1,
            updated_at=timezone.now(),
            **fields,
        )
        if not updated:
            logger.warning(
                "stock.version.conflict",
                extra={
                    "model": model.__name__,
                    "pk": instance.pk,
                    "version": instance.version,
                },
            )
            raise StockError(
                'CONCURRENCY_CONFLICT',
                model=model.__name__,
                pk=instance.pk,
            )
        for name, value in fields.items():
            setattr(instance, name, value)
        instance.version += 1

    @classmethod
    def adjust_stock(cls, stock: Stock, delta: Decimal) -> Stock:
        """
        Add ``delta`` to a locked stock row.

        Raises:
            StockError('INSUFFICIENT_STOCK'): If the result would be negative
        """
        new_quantity = round_quantity(stock.quantity + delta)
        if new_quantity < 0:
            raise StockError(
                'INSUFFICIENT_STOCK',
                available=stock.quantity,
                requested=-delta,
                warehouse_id=stock.warehouse_id,
                material_id=stock.material_id,
            )
        cls._versioned_update(stock, quantity=new_quantity)
        return stock

    @classmethod
    def adjust_lot(cls, lot: StockLot, delta: Decimal, action: str, reference: str = '',
                   actor_id=None, unit_price: Decimal | None = None,
                   related_lots: str = '', notes: str = '') -> LotHistory:
        """
        Add ``delta`` to a locked lot and append its history row.

        Raises:
            StockError('INSUFFICIENT_STOCK'): If the lot would go negative
        """
        before = lot.quantity
        after = round_quantity(before + delta)
        if after < 0:
            raise StockError(
                'INSUFFICIENT_STOCK',
                available=before,
                requested=-delta,
                lot_id=lot.pk,
            )

        fields = {'quantity': after}
        if unit_price is not None:
            fields['unit_price'] = round_money(unit_price)
        cls._versioned_update(lot, **fields)

        return LotHistory.objects.create(
            lot=lot,
            action=action,
            quantity_before=before,
            quantity_after=after,
            related_lots=related_lots,
            reference=reference,
            performed_by_id=actor_id,
            performed_at=get_clock().now(),
            notes=notes,
        )

    @classmethod
    def stamp_lot(cls, lot: StockLot, unit_price: Decimal) -> None:
        """Re-stamp a locked lot's unit cost (no quantity change, no history)."""
        unit_price = round_money(unit_price)
        if lot.unit_price != unit_price:
            cls._versioned_update(lot, unit_price=unit_price)

    @classmethod
    def restamp_open_lots(cls, warehouse, material, unit_price: Decimal, exclude=None) -> int:
        """Stamp ``unit_price`` on every open lot of a key (weighted average)."""
        lots = StockLot.objects.for_key(warehouse, material).open().select_for_update()
        if exclude is not None:
            lots = lots.exclude(pk=exclude.pk)
        count = 0
        for lot in lots:
            cls.stamp_lot(lot, unit_price)
            count += 1
        return count

    @classmethod
    def set_reservation(cls, lot: StockLot, issue=None, actor_id=None) -> None:
        """Reserve a locked lot for ``issue``, or clear it when issue is None."""
        if issue is None:
            cls._versioned_update(
                lot,
                is_reserved=False,
                reserved_for_issue=None,
                reserved_at=None,
                reserved_by=None,
            )
        else:
            cls._versioned_update(
                lot,
                is_reserved=True,
                reserved_for_issue=issue,
                reserved_at=get_clock().now(),
                reserved_by_id=actor_id,
            )

    # ══════════════════════════════════════════════════════════════
    # INVARIANT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def verify(cls, warehouse, material) -> Decimal:
        """
        Post-condition of every posting: Stock.quantity == Σ lots.

        Raises:
            StockError('RECONCILIATION_VIOLATION'): Never corrected here
        """
        stock = Stock.objects.for_key(warehouse, material).first()
        if stock is None:
            stock = Stock(warehouse_id=_pk(warehouse), material_id=_pk(material))
        return stock.verify()
