"""
Document models — receipts, issues and transfers with their lines.

Documents are created by users but only change status through the
document state machine (stockledger.services.documents).
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import DocumentStatus, DocumentType


class StockDocument(models.Model):
    """
    Common header for every stock document.

    LIFECYCLE:

        NEW ──confirm──► CONFIRMED ──post──► RECEIVED / ISSUED ──complete──► COMPLETED
         │                   │                      │
         └──────cancel───────┴────────cancel────────┴──────► CANCELED

    Transfers skip the posted state: CONFIRMED ──complete──► COMPLETED.
    """

    DOCUMENT_TYPE: str = ''

    # Unique per issuing warehouse (each warehouse runs its own series)
    number = models.CharField(
        max_length=50,
        db_index=True,
        verbose_name=_('Number'),
    )
    status = models.PositiveSmallIntegerField(
        choices=DocumentStatus.choices,
        default=DocumentStatus.NEW,
        db_index=True,
        verbose_name=_('Status'),
    )
    note = models.TextField(blank=True, default='', verbose_name=_('Note'))

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Created by'),
    )
    created_at = models.DateTimeField(default=timezone.now)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Approved by'),
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_('Set when stock was mutated by this document'),
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    @property
    def document_id(self) -> str:
        """Return document identifier in standard format."""
        return f"{self.DOCUMENT_TYPE}:{self.pk}"

    @property
    def is_terminal(self) -> bool:
        return self.status in DocumentStatus.terminal()

    @property
    def is_posted(self) -> bool:
        """Has this document mutated stock?"""
        return self.posted_at is not None

    def __str__(self) -> str:
        return f"{self.number} ({self.get_status_display()})"


# ══════════════════════════════════════════════════════════════
# RECEIPT
# ══════════════════════════════════════════════════════════════


class StockReceipt(StockDocument):
    """Goods received into one warehouse."""

    DOCUMENT_TYPE = DocumentType.RECEIPT

    warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.PROTECT,
        related_name='receipts',
        verbose_name=_('Warehouse'),
    )
    supplier = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Supplier'))

    class Meta(StockDocument.Meta):
        verbose_name = _('Stock receipt')
        verbose_name_plural = _('Stock receipts')
        constraints = [
            models.UniqueConstraint(
                fields=['warehouse', 'number'],
                name='unique_receipt_number_per_warehouse',
            ),
        ]


class StockReceiptDetail(models.Model):
    """Receipt line. Posting fills lot, unit_cost, previous_unit_cost and total_value."""

    receipt = models.ForeignKey(StockReceipt, on_delete=models.CASCADE, related_name='details')
    material = models.ForeignKey('stockledger.Material', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    unit_price = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_('Empty = material purchase price'),
    )
    lot_number = models.CharField(max_length=100, blank=True, default='')
    manufacture_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)

    # Posting results
    lot = models.ForeignKey(
        'stockledger.StockLot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
    )
    unit_cost = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)
    previous_unit_cost = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_('Lot cost before posting (empty = lot created by this line)'),
    )
    total_value = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)

    class Meta:
        verbose_name = _('Receipt line')
        verbose_name_plural = _('Receipt lines')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity} x {self.material_id}"


# ══════════════════════════════════════════════════════════════
# ISSUE
# ══════════════════════════════════════════════════════════════


class StockIssue(StockDocument):
    """Goods issued out of one warehouse."""

    DOCUMENT_TYPE = DocumentType.ISSUE

    warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.PROTECT,
        related_name='issues',
        verbose_name=_('Warehouse'),
    )

    class Meta(StockDocument.Meta):
        verbose_name = _('Stock issue')
        verbose_name_plural = _('Stock issues')
        constraints = [
            models.UniqueConstraint(
                fields=['warehouse', 'number'],
                name='unique_issue_number_per_warehouse',
            ),
        ]


class StockIssueDetail(models.Model):
    """Issue line. Posting fills unit_cost and total_cost from the allocations."""

    issue = models.ForeignKey(StockIssue, on_delete=models.CASCADE, related_name='details')
    material = models.ForeignKey('stockledger.Material', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    unit_price = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_('Informational price; the booked cost comes from the lots'),
    )
    unit_cost = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)

    class Meta:
        verbose_name = _('Issue line')
        verbose_name_plural = _('Issue lines')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity} x {self.material_id}"


class StockIssueAllocation(models.Model):
    """Quantity drawn from one lot for one issue line."""

    detail = models.ForeignKey(StockIssueDetail, on_delete=models.CASCADE, related_name='allocations')
    lot = models.ForeignKey('stockledger.StockLot', on_delete=models.PROTECT, related_name='issue_allocations')
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=18, decimal_places=2)

    class Meta:
        verbose_name = _('Issue allocation')
        verbose_name_plural = _('Issue allocations')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity} from lot:{self.lot_id}"


# ══════════════════════════════════════════════════════════════
# TRANSFER
# ══════════════════════════════════════════════════════════════


class StockTransfer(StockDocument):
    """Goods moved between two warehouses."""

    DOCUMENT_TYPE = DocumentType.TRANSFER

    from_warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.PROTECT,
        related_name='outgoing_transfers',
        verbose_name=_('From'),
    )
    to_warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.PROTECT,
        related_name='incoming_transfers',
        verbose_name=_('To'),
    )

    class Meta(StockDocument.Meta):
        verbose_name = _('Stock transfer')
        verbose_name_plural = _('Stock transfers')
        constraints = [
            models.UniqueConstraint(
                fields=['from_warehouse', 'number'],
                name='unique_transfer_number_per_warehouse',
            ),
        ]

    @property
    def warehouse(self):
        """Numbering and authorization are scoped to the source warehouse."""
        return self.from_warehouse


class StockTransferDetail(models.Model):
    """Transfer line. ``lot`` pins a specific source lot; empty = FIFO."""

    transfer = models.ForeignKey(StockTransfer, on_delete=models.CASCADE, related_name='details')
    material = models.ForeignKey('stockledger.Material', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    lot = models.ForeignKey(
        'stockledger.StockLot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
    )
    unit_cost = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)

    class Meta:
        verbose_name = _('Transfer line')
        verbose_name_plural = _('Transfer lines')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity} x {self.material_id}"


class StockTransferAllocation(models.Model):
    """Quantity moved from a source lot into a destination lot."""

    detail = models.ForeignKey(StockTransferDetail, on_delete=models.CASCADE, related_name='allocations')
    source_lot = models.ForeignKey('stockledger.StockLot', on_delete=models.PROTECT, related_name='+')
    destination_lot = models.ForeignKey('stockledger.StockLot', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=18, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=18, decimal_places=2)

    class Meta:
        verbose_name = _('Transfer allocation')
        verbose_name_plural = _('Transfer allocations')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity}: lot:{self.source_lot_id} → lot:{self.destination_lot_id}"
