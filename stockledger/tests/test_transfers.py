"""
Tests for transfers between warehouses.
"""

from datetime import date
from decimal import Decimal

import pytest

from stockledger import StockError, ledger
from stockledger.models import (
    DocumentStatus,
    LotAction,
    LotHistory,
    StockBalance,
    StockLot,
    StockTransfer,
    StockTransferAllocation,
)
from stockledger.services.documents import parse_document_id


pytestmark = pytest.mark.django_db


def on_hand(warehouse, material):
    return ledger.get_on_hand(warehouse, [material.pk])[material.pk]


@pytest.fixture
def confirmed_transfer(user):
    def _create(source, destination, lines):
        doc_id, _ = ledger.create_document('transfer', source, lines, actor=user, to_warehouse=destination)
        ledger.transition(doc_id, 'confirm', actor=user)
        return doc_id
    return _create


class TestTransferCreation:

    def test_same_warehouse_rejected(self, warehouse, paint):
        with pytest.raises(StockError) as exc:
            ledger.create_document('transfer', warehouse, [{'material': paint, 'quantity': 1}],
                                   to_warehouse=warehouse)

        assert exc.value.code == 'SAME_WAREHOUSE'

    def test_number_uses_transfer_prefix(self, warehouse, other_warehouse, paint):
        _, number = ledger.create_document('transfer', warehouse, [{'material': paint, 'quantity': 1}],
                                           to_warehouse=other_warehouse)

        assert number == 'CK250114-0001'

    def test_pinned_lot_must_be_in_source(self, warehouse, other_warehouse, paint, post_receipt):
        post_receipt(other_warehouse, paint, 5, 100, lot_number='FAR')
        far_lot = StockLot.objects.get(lot_number='FAR')

        with pytest.raises(StockError) as exc:
            ledger.create_document('transfer', warehouse, [{'material': paint, 'quantity': 1, 'lot': far_lot}],
                                   to_warehouse=other_warehouse)

        assert exc.value.code == 'INVALID_LOT_OPERATION'


class TestTransferCompletion:

    def test_complete_moves_lots_with_metadata_and_cost(self, warehouse, other_warehouse, paint,
                                                        post_receipt, confirmed_transfer, today):
        post_receipt(warehouse, paint, 10, 100, lot_number='A',
                     manufacture_date=date(2024, 1, 1), expiry_date=date(2027, 1, 1))
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': paint, 'quantity': Decimal('4')}])

        assert ledger.transition(doc_id, 'complete') == DocumentStatus.COMPLETED

        source = StockLot.objects.get(warehouse=warehouse, material=paint)
        destination = StockLot.objects.get(warehouse=other_warehouse, material=paint)
        assert source.quantity == Decimal('6')
        assert destination.quantity == Decimal('4')
        assert destination.lot_number == 'A'
        assert destination.manufacture_date == date(2024, 1, 1)
        assert destination.expiry_date == date(2027, 1, 1)
        assert destination.unit_price == Decimal('100.00')

        assert on_hand(warehouse, paint) == Decimal('6')
        assert on_hand(other_warehouse, paint) == Decimal('4')

        out_row = StockBalance.objects.get(warehouse=warehouse, material=paint, date=today)
        in_row = StockBalance.objects.get(warehouse=other_warehouse, material=paint, date=today)
        assert (out_row.out_qty, out_row.out_value) == (Decimal('4'), Decimal('400.00'))
        assert (in_row.in_qty, in_row.in_value) == (Decimal('4'), Decimal('400.00'))

        assert LotHistory.objects.get(lot=source, action=LotAction.TRANSFER_OUT).related_lots == str(destination.pk)
        assert LotHistory.objects.get(lot=destination, action=LotAction.TRANSFER_IN).related_lots == str(source.pk)

        transfer = StockTransfer.objects.get(pk=parse_document_id(doc_id)[1])
        assert transfer.posted_at is not None
        assert transfer.completed_at is not None
        detail = transfer.details.get()
        assert detail.total_cost == Decimal('400.00')
        allocation = StockTransferAllocation.objects.get(detail=detail)
        assert (allocation.source_lot, allocation.destination_lot) == (source, destination)

    def test_fifo_across_source_lots(self, warehouse, other_warehouse, paint, post_receipt,
                                     confirmed_transfer, lot_dates):
        post_receipt(warehouse, paint, 3, 100, lot_number='OLD', manufacture_date=lot_dates[0])
        post_receipt(warehouse, paint, 10, 150, lot_number='NEW', manufacture_date=lot_dates[1])
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': paint, 'quantity': Decimal('5')}])

        ledger.transition(doc_id, 'complete')

        moved = dict(StockLot.objects.filter(warehouse=other_warehouse).values_list('lot_number', 'quantity'))
        assert moved == {'OLD': Decimal('3'), 'NEW': Decimal('2')}
        detail = StockTransfer.objects.get(pk=parse_document_id(doc_id)[1]).details.get()
        assert detail.total_cost == Decimal('600.00')
        assert detail.unit_cost == Decimal('120.00')

    def test_pinned_lot_is_used(self, warehouse, other_warehouse, paint, post_receipt,
                                confirmed_transfer, lot_dates):
        post_receipt(warehouse, paint, 5, 100, lot_number='OLD', manufacture_date=lot_dates[0])
        post_receipt(warehouse, paint, 5, 100, lot_number='NEW', manufacture_date=lot_dates[1])
        pinned = StockLot.objects.get(lot_number='NEW')
        doc_id = confirmed_transfer(warehouse, other_warehouse, [
            {'material': paint, 'quantity': Decimal('2'), 'lot': pinned},
        ])

        ledger.transition(doc_id, 'complete')

        pinned.refresh_from_db()
        assert pinned.quantity == Decimal('3')
        assert StockLot.objects.get(warehouse=other_warehouse).lot_number == 'NEW'

    def test_insufficient_source_moves_nothing(self, warehouse, other_warehouse, paint, post_receipt,
                                               confirmed_transfer):
        post_receipt(warehouse, paint, 2, 100)
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': paint, 'quantity': Decimal('3')}])

        with pytest.raises(StockError) as exc:
            ledger.transition(doc_id, 'complete')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert on_hand(warehouse, paint) == Decimal('2')
        assert on_hand(other_warehouse, paint) == Decimal('0')
        assert not StockLot.objects.filter(warehouse=other_warehouse).exists()

    def test_weighted_average_destination_blends(self, warehouse, other_warehouse, cement, post_receipt,
                                                  confirmed_transfer):
        post_receipt(warehouse, cement, 10, 100)
        post_receipt(other_warehouse, cement, 10, 200, lot_number='LOCAL')
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': cement, 'quantity': Decimal('10')}])

        ledger.transition(doc_id, 'complete')

        prices = set(StockLot.objects.filter(warehouse=other_warehouse).open().values_list('unit_price', flat=True))
        assert prices == {Decimal('150.00')}
        assert ledger.reconcile() == []


class TestTransferTransitions:

    def test_post_is_not_a_transfer_action(self, warehouse, other_warehouse, paint, confirmed_transfer):
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': paint, 'quantity': 1}])

        with pytest.raises(StockError) as exc:
            ledger.transition(doc_id, 'post')

        assert exc.value.code == 'INVALID_TRANSITION'

    def test_cancel_confirmed_transfer(self, warehouse, other_warehouse, paint, post_receipt,
                                       confirmed_transfer):
        post_receipt(warehouse, paint, 5, 100)
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': paint, 'quantity': 1}])

        assert ledger.transition(doc_id, 'cancel') == DocumentStatus.CANCELED
        assert on_hand(warehouse, paint) == Decimal('5')

    def test_completed_transfer_cannot_be_canceled(self, warehouse, other_warehouse, paint, post_receipt,
                                                   confirmed_transfer):
        post_receipt(warehouse, paint, 5, 100)
        doc_id = confirmed_transfer(warehouse, other_warehouse, [{'material': paint, 'quantity': 1}])
        ledger.transition(doc_id, 'complete')

        with pytest.raises(StockError) as exc:
            ledger.transition(doc_id, 'cancel')

        assert exc.value.code == 'INVALID_TRANSITION'
        assert on_hand(other_warehouse, paint) == Decimal('1')
