"""
Document numbering — collision-free sequence numbers per series.

A series is (document type, warehouse or shared, year). The counter row
is fetched or created, incremented under its version token and formatted
with the row's template. Lost races are retried, never duplicated.

Template tokens:
    {Prefix}  series prefix          {WH}    warehouse code
    {yyyy}    4-digit year           {WHID}  warehouse id
    {yy} {MM} {dd} {yyMM} {yyMMdd}   date parts from the clock
    {No:0000} running number, zero-padded to the number of zeros
"""

import logging
import re

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from stockledger.adapters import get_clock
from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.numbering import DocumentNumbering

logger = logging.getLogger('stockledger')

_NUMBER_TOKEN = re.compile(r'\{No(?::(0+))?\}')


class DocumentNumberGenerator:
    """Issues document numbers with optimistic retry (no global lock)."""

    @classmethod
    def prefix_for(cls, document_type: str) -> str:
        return stockledger_settings.NUMBER_PREFIXES.get(
            str(document_type), stockledger_settings.NUMBER_DEFAULT_PREFIX
        )

    @classmethod
    def format_number(cls, template: str, prefix: str, number: int, day, warehouse=None) -> str:
        """Render a number template. See module docstring for tokens."""
        tokens = {
            '{Prefix}': prefix,
            '{yyyy}': f"{day.year:04d}",
            '{yyMMdd}': day.strftime('%y%m%d'),
            '{yyMM}': day.strftime('%y%m'),
            '{yy}': day.strftime('%y'),
            '{MM}': day.strftime('%m'),
            '{dd}': day.strftime('%d'),
            '{WHID}': str(warehouse.pk) if warehouse is not None else '',
            '{WH}': warehouse.code if warehouse is not None else '',
        }
        result = template
        for token, value in tokens.items():
            result = result.replace(token, value)

        def _pad(match):
            zeros = match.group(1) or ''
            return str(number).zfill(len(zeros))

        return _NUMBER_TOKEN.sub(_pad, result)

    @classmethod
    def _fetch_row(cls, document_type: str, warehouse, year: int) -> DocumentNumbering:
        row, created = DocumentNumbering.objects.get_or_create(
            document_type=document_type,
            warehouse=warehouse,
            year=year,
            defaults={
                'prefix': cls.prefix_for(document_type),
                'format': stockledger_settings.NUMBER_FORMAT,
            },
        )
        if created:
            logger.info(
                "stock.numbering.created",
                extra={
                    "document_type": str(document_type),
                    "warehouse_id": getattr(warehouse, 'pk', None),
                    "year": year,
                },
            )
        return row

    @classmethod
    def next(cls, document_type: str, warehouse=None) -> str:
        """
        Consume and return the next number of the series.

        Raises:
            StockError('CONCURRENCY_CONFLICT'): After NUMBERING_MAX_RETRIES
                lost races

        Concurrency:
            - Each attempt runs in its own transaction.atomic() (a savepoint
              when called inside a larger transaction)
            - The increment is UPDATE ... WHERE version = <read version>
            - A unique-index race on first creation counts as a conflict
        """
        max_retries = max(1, stockledger_settings.NUMBERING_MAX_RETRIES)
        day = get_clock().today()

        for attempt in range(1, max_retries + 1):
            try:
                with transaction.atomic():
                    row = cls._fetch_row(document_type, warehouse, day.year)
                    number = row.current_no + 1
                    updated = DocumentNumbering.objects.filter(
                        pk=row.pk, version=row.version,
                    ).update(
                        current_no=number,
                        version=F('version') + 1,
                        updated_at=timezone.now(),
                    )
            except IntegrityError:
                updated = 0

            if updated:
                return cls.format_number(row.format, row.prefix, number, day, warehouse)

            logger.warning(
                "stock.numbering.conflict",
                extra={
                    "document_type": str(document_type),
                    "warehouse_id": getattr(warehouse, 'pk', None),
                    "attempt": attempt,
                },
            )

        raise StockError(
            'CONCURRENCY_CONFLICT',
            document_type=str(document_type),
            attempts=max_retries,
        )

    @classmethod
    def peek(cls, document_type: str, warehouse=None) -> str:
        """The number next() would return now. Consumes nothing."""
        day = get_clock().today()
        row = DocumentNumbering.objects.filter(
            document_type=document_type, warehouse=warehouse, year=day.year,
        ).first()
        if row is None:
            return cls.format_number(
                stockledger_settings.NUMBER_FORMAT,
                cls.prefix_for(document_type),
                1, day, warehouse,
            )
        return cls.format_number(row.format, row.prefix, row.current_no + 1, day, warehouse)
