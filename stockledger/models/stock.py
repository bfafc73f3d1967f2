"""
Stock model — Quantity cache per (warehouse, material).
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger('stockledger')


class StockQuerySet(models.QuerySet):

    def for_key(self, warehouse, material):
        return self.filter(
            warehouse_id=getattr(warehouse, 'pk', warehouse),
            material_id=getattr(material, 'pk', material),
        )


class Stock(models.Model):
    """
    Current quantity of a material at a warehouse.

    Invariant:
    - quantity == sum of StockLot.quantity for the same (warehouse, material)
    - quantity >= 0

    Performance:
    - quantity is a cache written only by the ledger, in the same
      transaction as the lot rows it summarizes
    - Read is O(1), not O(lots)
    - Use verify() for audit; it never corrects
    """

    warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Warehouse'),
    )
    material = models.ForeignKey(
        'stockledger.Material',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Material'),
    )
    quantity = models.DecimalField(
        max_digits=18,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantity'),
    )

    # Optimistic concurrency token, bumped on every write
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock')
        verbose_name_plural = _('Stock')
        constraints = [
            models.UniqueConstraint(
                fields=['warehouse', 'material'],
                name='unique_stock_warehouse_material',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name='stock_quantity_non_negative',
            ),
        ]

    def lots_total(self) -> Decimal:
        """Sum of lot quantities for this key — O(lots)."""
        from stockledger.models.lot import StockLot

        return StockLot.objects.for_key(self.warehouse_id, self.material_id).aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    def verify(self) -> Decimal:
        """
        Check quantity against the lots.

        Use for:
        - Integrity audit
        - Post-condition of every posting

        Returns:
            The lot total

        Raises:
            StockError('RECONCILIATION_VIOLATION'): If they differ
        """
        from stockledger.exceptions import StockError

        total = self.lots_total()
        if total != self.quantity:
            logger.error(
                "stock.reconciliation.violation",
                extra={
                    "warehouse_id": self.warehouse_id,
                    "material_id": self.material_id,
                    "stock_qty": str(self.quantity),
                    "lots_qty": str(total),
                },
            )
            raise StockError(
                'RECONCILIATION_VIOLATION',
                warehouse_id=self.warehouse_id,
                material_id=self.material_id,
                stock_quantity=self.quantity,
                lots_quantity=total,
            )
        return total

    def __str__(self) -> str:
        return f"{self.material_id}@{self.warehouse_id}: {self.quantity}"
