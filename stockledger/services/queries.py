"""
Stock queries — read-only operations.

No locking. Results reflect the last committed postings.
"""

from datetime import date
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from stockledger.adapters import get_clock
from stockledger.conf import stockledger_settings
from stockledger.models.balance import StockBalance
from stockledger.models.lot import StockLot
from stockledger.models.stock import Stock
from stockledger.rounding import ZERO


def _pk(obj):
    return getattr(obj, 'pk', obj)


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def on_hand(cls, warehouse, material_ids) -> dict:
        """
        Quantity on hand per material at a warehouse.

        Materials without a stock row map to 0.

        Performance:
            One query, reads the Stock cache (not the lots)
        """
        material_ids = [_pk(m) for m in material_ids]
        found = dict(
            Stock.objects.filter(
                warehouse_id=_pk(warehouse),
                material_id__in=material_ids,
            ).values_list('material_id', 'quantity')
        )
        return {material_id: found.get(material_id, ZERO) for material_id in material_ids}

    @classmethod
    def lots(cls, warehouse=None, material=None, include_empty: bool = False,
             include_reserved: bool = True):
        """List lots with filters, in allocation order."""
        qs = StockLot.objects.all()
        if warehouse is not None:
            qs = qs.filter(warehouse_id=_pk(warehouse))
        if material is not None:
            qs = qs.filter(material_id=_pk(material))
        if not include_empty:
            qs = qs.open()
        if not include_reserved:
            qs = qs.filter(is_reserved=False)
        return qs.fifo()

    @classmethod
    def balance_summary(cls, warehouse, material, start: date, end: date) -> dict[str, Decimal]:
        """
        Sums of the daily rows between ``start`` and ``end`` (inclusive).

        Returns:
            dict with in_qty, out_qty, in_value, out_value, net_qty, net_value
        """
        totals = StockBalance.objects.filter(
            warehouse_id=_pk(warehouse),
            material_id=_pk(material),
            date__gte=start,
            date__lte=end,
        ).aggregate(
            in_qty=Coalesce(Sum('in_qty'), Decimal('0')),
            out_qty=Coalesce(Sum('out_qty'), Decimal('0')),
            in_value=Coalesce(Sum('in_value'), Decimal('0')),
            out_value=Coalesce(Sum('out_value'), Decimal('0')),
        )
        totals['net_qty'] = totals['in_qty'] - totals['out_qty']
        totals['net_value'] = totals['in_value'] - totals['out_value']
        return totals

    @classmethod
    def reconcile(cls, warehouse=None, material=None) -> list[dict]:
        """
        Compare every Stock row with the sum of its lots.

        Reports, never corrects. Lots without a stock row are reported too.

        Returns:
            List of dicts (warehouse_id, material_id, stock_quantity,
            lots_quantity), empty when consistent
        """
        stocks = Stock.objects.all()
        lots = StockLot.objects.all()
        if warehouse is not None:
            stocks = stocks.filter(warehouse_id=_pk(warehouse))
            lots = lots.filter(warehouse_id=_pk(warehouse))
        if material is not None:
            stocks = stocks.filter(material_id=_pk(material))
            lots = lots.filter(material_id=_pk(material))

        cached = {
            (row['warehouse_id'], row['material_id']): row['quantity']
            for row in stocks.values('warehouse_id', 'material_id', 'quantity')
        }
        summed = {
            (row['warehouse_id'], row['material_id']): row['total']
            for row in lots.values('warehouse_id', 'material_id').annotate(
                total=Coalesce(Sum('quantity'), Decimal('0')),
            ).order_by()
        }

        violations = []
        for key in sorted(set(cached) | set(summed)):
            stock_quantity = cached.get(key, ZERO)
            lots_quantity = summed.get(key, ZERO)
            if stock_quantity != lots_quantity:
                violations.append({
                    'warehouse_id': key[0],
                    'material_id': key[1],
                    'stock_quantity': stock_quantity,
                    'lots_quantity': lots_quantity,
                })
        return violations

    @classmethod
    def expiring_lots(cls, within_days: int | None = None, warehouse=None):
        """
        Open lots expiring within ``within_days`` of today (clock), soonest first.

        Already expired lots are included.
        """
        if within_days is None:
            within_days = stockledger_settings.EXPIRY_WARNING_DAYS
        qs = StockLot.objects.open().expiring_within(within_days, get_clock().today())
        if warehouse is not None:
            qs = qs.filter(warehouse_id=_pk(warehouse))
        return qs.order_by('expiry_date', 'id')
