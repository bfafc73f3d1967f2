"""
Management command to audit Stock against the sum of its lots.

Usage:
    python manage.py check_stock_integrity
    python manage.py check_stock_integrity --warehouse hn-01

Reports mismatches and exits non-zero if any are found. Never corrects.
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger import ledger
from stockledger.models import Warehouse


class Command(BaseCommand):
    """Stock integrity audit command."""

    help = 'Check that every stock quantity equals the sum of its lots'

    def add_arguments(self, parser):
        parser.add_argument(
            '--warehouse',
            help='Only check this warehouse (code)',
        )

    def handle(self, *args, **options):
        warehouse = None
        if options['warehouse']:
            try:
                warehouse = Warehouse.objects.get(code=options['warehouse'])
            except Warehouse.DoesNotExist:
                raise CommandError(f"Unknown warehouse: {options['warehouse']}")

        violations = ledger.reconcile(warehouse=warehouse)
        for v in violations:
            self.stderr.write(
                f"warehouse={v['warehouse_id']} material={v['material_id']} "
                f"stock={v['stock_quantity']} lots={v['lots_quantity']}"
            )

        if violations:
            raise CommandError(f'{len(violations)} stock row(s) out of balance')

        self.stdout.write(self.style.SUCCESS('Stock is consistent with lots'))
