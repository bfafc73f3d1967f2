"""
Tests for daily balance rollups.
"""

from datetime import date
from decimal import Decimal

import pytest

from stockledger import ledger
from stockledger.models import StockBalance


pytestmark = pytest.mark.django_db


def day_row(warehouse, material, day):
    return StockBalance.objects.get(warehouse=warehouse, material=material, date=day)


class TestDailyRows:

    def test_postings_accumulate_on_the_same_day(self, warehouse, paint, post_receipt, confirmed_issue, today):
        post_receipt(warehouse, paint, 10, 100)
        post_receipt(warehouse, paint, 5, 110, lot_number='B')
        ledger.transition(confirmed_issue(warehouse, [{'material': paint, 'quantity': 3}]), 'post')

        row = day_row(warehouse, paint, today)
        assert row.in_qty == Decimal('15')
        assert row.in_value == Decimal('1550.00')
        assert row.out_qty == Decimal('3')
        assert row.out_value == Decimal('300.00')
        assert row.net_qty == Decimal('12')
        assert StockBalance.objects.count() == 1

    def test_each_day_gets_its_own_row(self, warehouse, paint, post_receipt, confirmed_issue, clock):
        post_receipt(warehouse, paint, 10, 100)
        clock.current = date(2025, 1, 15)
        ledger.transition(confirmed_issue(warehouse, [{'material': paint, 'quantity': 4}]), 'post')

        first = day_row(warehouse, paint, date(2025, 1, 14))
        second = day_row(warehouse, paint, date(2025, 1, 15))
        assert (first.in_qty, first.out_qty) == (Decimal('10'), Decimal('0'))
        assert (second.in_qty, second.out_qty) == (Decimal('0'), Decimal('4'))

    def test_late_cancel_books_negative_movement(self, warehouse, paint, post_receipt, confirmed_issue, clock):
        post_receipt(warehouse, paint, 10, 100)
        clock.current = date(2025, 1, 15)
        issue_id = confirmed_issue(warehouse, [{'material': paint, 'quantity': 4}])
        ledger.transition(issue_id, 'post')
        clock.current = date(2025, 1, 16)

        ledger.transition(issue_id, 'cancel')

        posted = day_row(warehouse, paint, date(2025, 1, 15))
        reversed_ = day_row(warehouse, paint, date(2025, 1, 16))
        assert posted.out_qty == Decimal('4')
        assert reversed_.out_qty == Decimal('-4')
        assert reversed_.out_value == Decimal('-400.00')


class TestBalanceSummary:

    def test_summary_over_range(self, warehouse, paint, post_receipt, confirmed_issue, clock):
        post_receipt(warehouse, paint, 10, 100)
        clock.current = date(2025, 1, 15)
        issue_id = confirmed_issue(warehouse, [{'material': paint, 'quantity': 4}])
        ledger.transition(issue_id, 'post')
        clock.current = date(2025, 1, 16)
        ledger.transition(issue_id, 'cancel')

        summary = ledger.balance_summary(warehouse, paint, date(2025, 1, 14), date(2025, 1, 16))

        assert summary['in_qty'] == Decimal('10')
        assert summary['out_qty'] == Decimal('0')
        assert summary['net_qty'] == Decimal('10')
        assert summary['net_value'] == Decimal('1000.00')

    def test_summary_window_excludes_other_days(self, warehouse, paint, post_receipt, clock):
        post_receipt(warehouse, paint, 10, 100)
        clock.current = date(2025, 2, 1)
        post_receipt(warehouse, paint, 2, 100, lot_number='LATE')

        summary = ledger.balance_summary(warehouse, paint, date(2025, 2, 1), date(2025, 2, 28))

        assert summary['in_qty'] == Decimal('2')

    def test_empty_summary(self, warehouse, paint):
        summary = ledger.balance_summary(warehouse, paint, date(2025, 1, 1), date(2025, 1, 31))

        assert summary == {
            'in_qty': Decimal('0'),
            'out_qty': Decimal('0'),
            'in_value': Decimal('0'),
            'out_value': Decimal('0'),
            'net_qty': Decimal('0'),
            'net_value': Decimal('0'),
        }
