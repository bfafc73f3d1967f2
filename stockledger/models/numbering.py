"""
DocumentNumbering model — sequence counter per (document type, warehouse, year).
"""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import DocumentType


class DocumentNumbering(models.Model):
    """
    Running number for one document series.

    The unique constraints are the serialization boundary: two writers
    can never own two rows for the same series. ``version`` guards the
    increment (optimistic concurrency).
    """

    document_type = models.CharField(
        max_length=20,
        choices=DocumentType.choices,
        verbose_name=_('Document type'),
    )
    warehouse = models.ForeignKey(
        'stockledger.Warehouse',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Warehouse'),
        help_text=_('Empty = one series for all warehouses'),
    )
    year = models.PositiveSmallIntegerField(verbose_name=_('Year'))

    prefix = models.CharField(max_length=20, default='CT', verbose_name=_('Prefix'))
    format = models.CharField(
        max_length=100,
        default='{Prefix}{yyMMdd}-{No:0000}',
        verbose_name=_('Format'),
        help_text=_('Tokens: {Prefix} {yyyy} {yy} {MM} {dd} {yyMM} {yyMMdd} {WH} {WHID} {No:0000}'),
    )
    current_no = models.PositiveIntegerField(default=0, verbose_name=_('Current number'))

    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Document numbering')
        verbose_name_plural = _('Document numbering')
        constraints = [
            models.UniqueConstraint(
                fields=['document_type', 'warehouse', 'year'],
                condition=Q(warehouse__isnull=False),
                name='unique_numbering_per_warehouse',
            ),
            # NULLs are distinct in unique indexes, so the shared series needs its own
            models.UniqueConstraint(
                fields=['document_type', 'year'],
                condition=Q(warehouse__isnull=True),
                name='unique_numbering_shared',
            ),
        ]

    def __str__(self) -> str:
        scope = self.warehouse_id or '*'
        return f"{self.document_type}/{scope}/{self.year}: {self.current_no}"
