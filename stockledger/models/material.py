"""
Material model — What is stocked.
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import CostingMethod


class Material(models.Model):
    """
    A stocked material.

    Identity (code) is immutable. Changing ``costing_method`` only affects
    receipts posted afterwards; existing lots keep their stamped cost.
    """

    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Code'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    unit = models.CharField(
        max_length=20,
        default='un',
        verbose_name=_('Unit'),
        help_text=_('"un", "kg", "m", ...'),
    )
    costing_method = models.CharField(
        max_length=20,
        choices=CostingMethod.choices,
        default=CostingMethod.WEIGHTED_AVERAGE,
        verbose_name=_('Costing method'),
    )
    purchase_price = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Default purchase price'),
        help_text=_('Used when a receipt line carries no price'),
    )

    # Stock levels
    min_stock = models.DecimalField(
        max_digits=18,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Minimum stock'),
    )
    max_stock = models.DecimalField(
        max_digits=18,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Maximum stock'),
    )
    reorder_quantity = models.DecimalField(
        max_digits=18,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Reorder quantity'),
    )

    # Physical attributes (transfer estimation)
    weight_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Weight per unit (kg)'),
    )
    volume_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Volume per unit (m³)'),
    )

    is_active = models.BooleanField(default=True, verbose_name=_('Active'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Material')
        verbose_name_plural = _('Materials')
        ordering = ['code']

    @property
    def is_fifo(self) -> bool:
        return self.costing_method == CostingMethod.FIFO

    def __str__(self) -> str:
        return f"{self.code} — {self.name}"
