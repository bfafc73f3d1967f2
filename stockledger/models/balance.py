"""
StockBalance model — daily in/out rollup per (warehouse, material).
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class StockBalance(models.Model):
    """
    Movements booked on one day for one material at one warehouse.

    Only the day's movements are stored (no opening/closing), so a late
    correction never has to be propagated to later days. Reversals book
    negative amounts on the day they happen.
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
    date = models.DateField(db_index=True, verbose_name=_('Date'))

    in_qty = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal('0'))
    out_qty = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal('0'))
    in_value = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))
    out_value = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Daily balance')
        verbose_name_plural = _('Daily balances')
        ordering = ['-date']
        constraints = [
            models.UniqueConstraint(
                fields=['warehouse', 'material', 'date'],
                name='unique_stock_balance_day',
            ),
        ]

    @property
    def net_qty(self) -> Decimal:
        return self.in_qty - self.out_qty

    @property
    def net_value(self) -> Decimal:
        return self.in_value - self.out_value

    def __str__(self) -> str:
        return f"{self.date} {self.material_id}@{self.warehouse_id}: +{self.in_qty} -{self.out_qty}"
