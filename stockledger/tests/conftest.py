"""
Pytest fixtures for Stockledger tests.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from stockledger import ledger
from stockledger.adapters import reset_adapters
from stockledger.models import CostingMethod, Material, Warehouse
from stockledger.tests.fakes import FrozenClock, RecordingAuditSink, ToggleAuthorizer


User = get_user_model()


@pytest.fixture(autouse=True)
def reset_fakes():
    """Fresh collaborators for every test."""
    reset_adapters()
    ToggleAuthorizer.reset()
    RecordingAuditSink.reset()
    FrozenClock.reset()
    yield
    reset_adapters()


@pytest.fixture
def clock():
    """The frozen clock class; set ``clock.current`` to move time."""
    return FrozenClock


@pytest.fixture
def today():
    return FrozenClock.DEFAULT


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='storekeeper',
        password='testpass123'
    )


@pytest.fixture
def warehouse(db):
    """Main warehouse."""
    return Warehouse.objects.create(
        code='hn-01',
        name='Hanoi Central',
        latitude=Decimal('21.028511'),
        longitude=Decimal('105.804817'),
    )


@pytest.fixture
def other_warehouse(db):
    """Second warehouse, for transfers."""
    return Warehouse.objects.create(
        code='hp-01',
        name='Hai Phong Port',
        latitude=Decimal('20.844912'),
        longitude=Decimal('106.688084'),
    )


@pytest.fixture
def cement(db):
    """Weighted-average material."""
    return Material.objects.create(
        code='CEM-40',
        name='Cement 40kg',
        unit='bag',
        costing_method=CostingMethod.WEIGHTED_AVERAGE,
        purchase_price=Decimal('90.00'),
        weight_per_unit=Decimal('40'),
        volume_per_unit=Decimal('0.03'),
    )


@pytest.fixture
def paint(db):
    """FIFO material."""
    return Material.objects.create(
        code='PNT-5L',
        name='Paint 5L',
        unit='can',
        costing_method=CostingMethod.FIFO,
        purchase_price=Decimal('120.00'),
        weight_per_unit=Decimal('6'),
        volume_per_unit=Decimal('0.005'),
    )


@pytest.fixture
def post_receipt(db, user):
    """
    Create, confirm and post a one-line receipt.

    Usage:
        doc_id = post_receipt(warehouse, paint, 10, 100, lot_number='A',
                              manufacture_date=date(2024, 1, 1))
    """
    def _post(warehouse, material, quantity, unit_price=None, **lot):
        doc_id, _ = ledger.create_document('receipt', warehouse, [{
            'material': material,
            'quantity': Decimal(str(quantity)),
            'unit_price': None if unit_price is None else Decimal(str(unit_price)),
            **lot,
        }], actor=user)
        ledger.transition(doc_id, 'confirm', actor=user)
        ledger.transition(doc_id, 'post', actor=user)
        return doc_id
    return _post


@pytest.fixture
def confirmed_issue(db, user):
    """Create and confirm an issue; returns its document id."""
    def _create(warehouse, lines):
        doc_id, _ = ledger.create_document('issue', warehouse, lines, actor=user)
        ledger.transition(doc_id, 'confirm', actor=user)
        return doc_id
    return _create


@pytest.fixture
def lot_dates():
    """Manufacture dates, oldest first."""
    return [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]
