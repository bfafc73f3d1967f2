"""
Daily balance aggregation.

Every posting books its quantity and value on today's
(warehouse, material, date) row. Reversals subtract on the day they
happen, so a cancellation on a later day shows up as a negative movement
on that day and earlier days stay untouched.
"""

import logging
from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from stockledger.adapters import get_clock
from stockledger.models.balance import StockBalance
from stockledger.rounding import round_money, round_quantity

logger = logging.getLogger('stockledger')


class StockBalanceAggregator:
    """Upserts daily in/out rollups with F() increments."""

    @classmethod
    def _book(cls, warehouse, material, day, **deltas) -> None:
        day = day or get_clock().today()
        row, _ = StockBalance.objects.get_or_create(
            warehouse_id=getattr(warehouse, 'pk', warehouse),
            material_id=getattr(material, 'pk', material),
            date=day,
        )
        StockBalance.objects.filter(pk=row.pk).update(
            updated_at=timezone.now(),
            **{field: F(field) + value for field, value in deltas.items()},
        )

    @classmethod
    def record_in(cls, warehouse, material, quantity: Decimal, value: Decimal, day=None) -> None:
        cls._book(
            warehouse, material, day,
            in_qty=round_quantity(quantity),
            in_value=round_money(value),
        )

    @classmethod
    def record_out(cls, warehouse, material, quantity: Decimal, value: Decimal, day=None) -> None:
        cls._book(
            warehouse, material, day,
            out_qty=round_quantity(quantity),
            out_value=round_money(value),
        )

    @classmethod
    def reverse_in(cls, warehouse, material, quantity: Decimal, value: Decimal, day=None) -> None:
        """Undo a record_in, booked on ``day`` (default today)."""
        cls._book(
            warehouse, material, day,
            in_qty=-round_quantity(quantity),
            in_value=-round_money(value),
        )

    @classmethod
    def reverse_out(cls, warehouse, material, quantity: Decimal, value: Decimal, day=None) -> None:
        """Undo a record_out, booked on ``day`` (default today)."""
        cls._book(
            warehouse, material, day,
            out_qty=-round_quantity(quantity),
            out_value=-round_money(value),
        )
