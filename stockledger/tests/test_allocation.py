"""
Tests for FIFO lot allocation.
"""

from datetime import date
from decimal import Decimal

import pytest

from stockledger import StockError, ledger
from stockledger.models import StockLot
from stockledger.services.allocation import LotAllocator


pytestmark = pytest.mark.django_db


def lot(warehouse, material, lot_number):
    return StockLot.objects.get(warehouse=warehouse, material=material, lot_number=lot_number)


class TestAllocationOrder:
    """Oldest lots are drawn first."""

    def test_fifo_by_manufacture_date(self, warehouse, paint, post_receipt, lot_dates):
        """15 against A(10, D1) and B(20, D2 > D1) takes 10 from A and 5 from B."""
        post_receipt(warehouse, paint, 20, 100, lot_number='B', manufacture_date=lot_dates[1])
        post_receipt(warehouse, paint, 10, 100, lot_number='A', manufacture_date=lot_dates[0])

        allocations = LotAllocator.preview(warehouse, paint, Decimal('15'))

        assert [(a.lot.lot_number, a.quantity) for a in allocations] == [
            ('A', Decimal('10')),
            ('B', Decimal('5')),
        ]
        assert sum(a.quantity for a in allocations) == Decimal('15')

    def test_undated_lots_come_last(self, warehouse, paint, post_receipt, lot_dates):
        post_receipt(warehouse, paint, 5, 100, lot_number='NODATE')
        post_receipt(warehouse, paint, 5, 100, lot_number='DATED', manufacture_date=lot_dates[2])

        allocations = LotAllocator.preview(warehouse, paint, Decimal('6'))

        assert [a.lot.lot_number for a in allocations] == ['DATED', 'NODATE']

    def test_same_manufacture_date_orders_by_expiry(self, warehouse, paint, post_receipt, lot_dates):
        post_receipt(warehouse, paint, 5, 100, lot_number='LATE',
                     manufacture_date=lot_dates[0], expiry_date=date(2026, 6, 1))
        post_receipt(warehouse, paint, 5, 100, lot_number='SOON',
                     manufacture_date=lot_dates[0], expiry_date=date(2025, 6, 1))

        allocations = LotAllocator.preview(warehouse, paint, Decimal('5'))

        assert [a.lot.lot_number for a in allocations] == ['SOON']

    def test_empty_lots_are_skipped(self, warehouse, paint, post_receipt, confirmed_issue, lot_dates):
        post_receipt(warehouse, paint, 5, 100, lot_number='A', manufacture_date=lot_dates[0])
        post_receipt(warehouse, paint, 5, 100, lot_number='B', manufacture_date=lot_dates[1])
        issue_id = confirmed_issue(warehouse, [{'material': paint, 'quantity': Decimal('5')}])
        ledger.transition(issue_id, 'post')

        allocations = LotAllocator.preview(warehouse, paint, Decimal('3'))

        assert [a.lot.lot_number for a in allocations] == ['B']


class TestAllocationFailures:

    def test_insufficient_stock_is_never_partial(self, warehouse, paint, post_receipt):
        post_receipt(warehouse, paint, 10, 100, lot_number='A')

        with pytest.raises(StockError) as exc:
            LotAllocator.allocate(warehouse, paint, Decimal('12'))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == Decimal('10')
        assert exc.value.requested == Decimal('12')

    def test_invalid_quantity(self, warehouse, paint):
        with pytest.raises(StockError) as exc:
            LotAllocator.allocate(warehouse, paint, Decimal('0'))

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_no_lots_at_all(self, warehouse, paint):
        with pytest.raises(StockError) as exc:
            LotAllocator.preview(warehouse, paint, Decimal('1'))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == Decimal('0')


class TestReservedLots:
    """Reservations exclude a lot from every other issue."""

    def test_lot_reserved_for_other_issue_is_excluded(self, warehouse, paint, post_receipt,
                                                      confirmed_issue, lot_dates):
        post_receipt(warehouse, paint, 10, 100, lot_number='A', manufacture_date=lot_dates[0])
        post_receipt(warehouse, paint, 10, 100, lot_number='B', manufacture_date=lot_dates[1])
        first = confirmed_issue(warehouse, [{'material': paint, 'quantity': Decimal('10')}])
        second = confirmed_issue(warehouse, [{'material': paint, 'quantity': Decimal('10')}])
        ledger.reserve_lot(lot(warehouse, paint, 'A'), int(first.split(':')[1]))

        for_second = LotAllocator.preview(warehouse, paint, Decimal('10'), issue=int(second.split(':')[1]))
        for_first = LotAllocator.preview(warehouse, paint, Decimal('10'), issue=int(first.split(':')[1]))

        assert [a.lot.lot_number for a in for_second] == ['B']
        assert [a.lot.lot_number for a in for_first] == ['A']

    def test_reserved_lot_counts_as_unavailable(self, warehouse, paint, post_receipt, confirmed_issue):
        post_receipt(warehouse, paint, 10, 100, lot_number='A')
        first = confirmed_issue(warehouse, [{'material': paint, 'quantity': Decimal('10')}])
        ledger.reserve_lot(lot(warehouse, paint, 'A'), int(first.split(':')[1]))

        with pytest.raises(StockError) as exc:
            LotAllocator.preview(warehouse, paint, Decimal('1'))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == Decimal('0')


class TestPinnedLot:

    def test_allocation_limited_to_pinned_lot(self, warehouse, paint, post_receipt, lot_dates):
        post_receipt(warehouse, paint, 10, 100, lot_number='A', manufacture_date=lot_dates[0])
        post_receipt(warehouse, paint, 10, 100, lot_number='B', manufacture_date=lot_dates[1])
        pinned = lot(warehouse, paint, 'B')

        allocations = LotAllocator.allocate(warehouse, paint, Decimal('4'), lot=pinned)

        assert [(a.lot.pk, a.quantity) for a in allocations] == [(pinned.pk, Decimal('4'))]

        with pytest.raises(StockError):
            LotAllocator.allocate(warehouse, paint, Decimal('11'), lot=pinned)
