"""
StockLot model — dated batch of a material at a warehouse.
LotHistory model — immutable log of lot events.

First-class inventory requires lot-level tracking for:
- FIFO consumption by manufacture/expiry date
- Per-lot cost basis (FIFO costing)
- Recalls: "find all stock from lot X"
- Reservation of a whole lot for a pending issue

Usage:
    StockLot.objects.for_key(warehouse, material).open().fifo()
"""

from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import LotAction


class StockLotQuerySet(models.QuerySet):
    """Custom QuerySet for StockLot with convenience filters."""

    def for_key(self, warehouse, material):
        return self.filter(
            warehouse_id=getattr(warehouse, 'pk', warehouse),
            material_id=getattr(material, 'pk', material),
        )

    def open(self):
        """Lots with remaining quantity."""
        return self.filter(quantity__gt=0)

    def eligible_for(self, issue=None):
        """Lots not reserved, or reserved for this issue."""
        issue_id = getattr(issue, 'pk', issue)
        if issue_id is None:
            return self.filter(is_reserved=False)
        return self.filter(Q(is_reserved=False) | Q(reserved_for_issue_id=issue_id))

    def fifo(self):
        """Oldest first: manufacture date, then expiry date (nulls last), then id."""
        return self.order_by(
            F('manufacture_date').asc(nulls_last=True),
            F('expiry_date').asc(nulls_last=True),
            'id',
        )

    def expiring_before(self, date):
        """Lots expiring on or before the given date."""
        return self.filter(expiry_date__lte=date, expiry_date__isnull=False)

    def expiring_within(self, days: int, today):
        return self.expiring_before(today + timedelta(days=days))

    def total_quantity(self) -> Decimal:
        return self.aggregate(t=Coalesce(Sum('quantity'), Decimal('0')))['t']


class StockLot(models.Model):
    """
    Lot of a material at a warehouse, with its own quantity and unit cost.

    Key: (warehouse, material, lot_number, manufacture_date, expiry_date).
    Receipts with the same key merge into the same lot.

    Rules:
    - quantity never goes below zero
    - zero-quantity lots are kept for audit continuity, never deleted
    - quantity and unit_price only change through the ledger, guarded by version
    """

    warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Warehouse'),
    )
    material = models.ForeignKey(
        'stockledger.Material',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Material'),
    )
    lot_number = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Lot number'),
    )
    manufacture_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Manufacture date'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expiry date'),
    )

    quantity = models.DecimalField(
        max_digits=18,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantity'),
    )
    unit_price = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Unit cost'),
        help_text=_('Cost basis stamped at receipt'),
    )

    # Reservation (whole lot, one issue at a time)
    is_reserved = models.BooleanField(default=False, verbose_name=_('Reserved'))
    reserved_for_issue = models.ForeignKey(
        'stockledger.StockIssue',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reserved_lots',
        verbose_name=_('Reserved for issue'),
    )
    reserved_at = models.DateTimeField(null=True, blank=True)
    reserved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    # Split lineage
    parent_lot = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='children',
        verbose_name=_('Parent lot'),
    )

    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockLotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lot')
        verbose_name_plural = _('Lots')
        constraints = [
            models.UniqueConstraint(
                fields=['warehouse', 'material', 'lot_number', 'manufacture_date', 'expiry_date'],
                name='unique_stock_lot_key',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name='stock_lot_quantity_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['warehouse', 'material'], name='stock_lot_key_idx'),
        ]

    @property
    def value(self) -> Decimal:
        from stockledger.rounding import line_value
        return line_value(self.quantity, self.unit_price)

    @property
    def reference(self) -> str:
        return f"lot:{self.pk}"

    def is_expired(self, today) -> bool:
        if self.expiry_date is None:
            return False
        return today > self.expiry_date

    def __str__(self) -> str:
        number = self.lot_number or f"#{self.pk}"
        expiry = f" (exp:{self.expiry_date})" if self.expiry_date else ""
        return f"Lot {number}{expiry}: {self.quantity}"


class LotHistory(models.Model):
    """
    Immutable record of a lot event.

    Rules:
    - NEVER update() or delete()
    - Reversals are new rows (action=release), not edits
    """

    lot = models.ForeignKey(
        StockLot,
        on_delete=models.PROTECT,
        related_name='history',
        verbose_name=_('Lot'),
    )
    action = models.CharField(
        max_length=20,
        choices=LotAction.choices,
        verbose_name=_('Action'),
    )
    quantity_before = models.DecimalField(max_digits=18, decimal_places=3)
    quantity_after = models.DecimalField(max_digits=18, decimal_places=3)
    related_lots = models.CharField(
        max_length=500,
        blank=True,
        default='',
        verbose_name=_('Related lots'),
        help_text=_('Comma-separated lot ids'),
    )
    reference = models.CharField(
        max_length=50,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Reference'),
        help_text=_('Document that caused the event, e.g. "issue:12"'),
    )
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Performed by'),
    )
    performed_at = models.DateTimeField(default=timezone.now, db_index=True)
    notes = models.CharField(max_length=500, blank=True, default='')

    class Meta:
        verbose_name = _('Lot history')
        verbose_name_plural = _('Lot history')
        ordering = ['performed_at', 'id']

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Lot history is write-once. Record a new event instead.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Lot history is write-once and cannot be deleted.")

    @property
    def delta(self) -> Decimal:
        return self.quantity_after - self.quantity_before

    def __str__(self) -> str:
        return f"{self.action} lot:{self.lot_id} {self.quantity_before} → {self.quantity_after}"
