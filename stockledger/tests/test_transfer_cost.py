"""
Tests for transfer cost estimation and source ranking.
"""

from decimal import Decimal

import pytest

from stockledger import StockError, TransferItem, ledger
from stockledger.models import Warehouse, WarehouseDistance
from stockledger.services.transfer_cost import TransferCostEstimator, haversine_km


pytestmark = pytest.mark.django_db


@pytest.fixture
def fixed_rates(settings):
    settings.STOCKLEDGER = {
        **settings.STOCKLEDGER,
        'TRANSFER_BASE_COST': '50',
        'TRANSFER_COST_PER_KM': '5',
        'TRANSFER_COST_PER_KG': '2',
        'TRANSFER_COST_PER_M3': '10',
    }


@pytest.fixture
def route(warehouse, other_warehouse):
    return WarehouseDistance.objects.create(
        from_warehouse=warehouse,
        to_warehouse=other_warehouse,
        distance_km=Decimal('100'),
        estimated_time_hours=Decimal('2.5'),
        base_cost=Decimal('50'),
    )


class TestEstimate:

    def test_estimate_is_deterministic(self, warehouse, other_warehouse, paint, route, fixed_rates):
        """100 km, base 50, 200 kg, 1 m³ (within the free allowance)."""
        items = [TransferItem(paint, Decimal('10'), weight=Decimal('200'), volume=Decimal('1'))]

        first = ledger.estimate_transfer_cost(warehouse, other_warehouse, items)
        second = ledger.estimate_transfer_cost(warehouse, other_warehouse, items)

        assert first == second
        assert first.base_cost == Decimal('50.00')
        assert first.distance_cost == Decimal('500.00')
        assert first.weight_cost == Decimal('400.00')
        assert first.volume_cost == Decimal('0')
        assert first.total_cost == Decimal('950.00')
        assert first.distance_km == Decimal('100')
        assert first.estimated_hours == Decimal('2.5')

    def test_volume_above_allowance_is_charged(self, warehouse, other_warehouse, paint, route, fixed_rates):
        items = [{'material': paint, 'quantity': 1, 'weight': 0, 'volume': Decimal('2')}]

        breakdown = TransferCostEstimator.estimate(warehouse, other_warehouse, items)

        assert breakdown.volume_cost == Decimal('20.00')
        assert breakdown.total_cost == Decimal('570.00')

    def test_weight_and_volume_from_material(self, warehouse, other_warehouse, cement, route, fixed_rates):
        breakdown = TransferCostEstimator.estimate(warehouse, other_warehouse, [
            TransferItem(cement, Decimal('50')),
        ])

        # 50 bags x 40 kg, 50 x 0.03 m³
        assert breakdown.total_weight == Decimal('2000')
        assert breakdown.total_volume == Decimal('1.5')
        assert breakdown.weight_cost == Decimal('4000.00')
        assert breakdown.volume_cost == Decimal('15.00')

    def test_distance_found_in_either_direction(self, warehouse, other_warehouse, paint, route, fixed_rates):
        forward = TransferCostEstimator.estimate(warehouse, other_warehouse, [TransferItem(paint, 1, weight=0)])
        backward = TransferCostEstimator.estimate(other_warehouse, warehouse, [TransferItem(paint, 1, weight=0)])

        assert forward.distance_km == backward.distance_km == Decimal('100')
        assert WarehouseDistance.objects.count() == 1

    def test_warehouse_rates_override_settings(self, warehouse, other_warehouse, paint, route, fixed_rates):
        warehouse.cost_per_km = Decimal('7')
        warehouse.cost_per_kg = Decimal('1')
        warehouse.save()

        breakdown = TransferCostEstimator.estimate(warehouse, other_warehouse, [
            TransferItem(paint, 1, weight=Decimal('10'), volume=0),
        ])

        assert breakdown.distance_cost == Decimal('700.00')
        assert breakdown.weight_cost == Decimal('10.00')

    def test_default_rates(self, warehouse, other_warehouse, paint):
        WarehouseDistance.objects.create(from_warehouse=warehouse, to_warehouse=other_warehouse,
                                         distance_km=Decimal('10'))

        breakdown = TransferCostEstimator.estimate(warehouse, other_warehouse, [
            TransferItem(paint, 1, weight=Decimal('1'), volume=0),
        ])

        # 50000 + 10 x 5000 + 1 x 2000
        assert breakdown.total_cost == Decimal('102000.00')
        assert breakdown.estimated_hours == Decimal('0.20')


class TestDistanceFallback:

    def test_missing_distance_computed_from_coordinates_and_cached(self, warehouse, other_warehouse, paint):
        breakdown = TransferCostEstimator.estimate(warehouse, other_warehouse, [TransferItem(paint, 1)])

        expected = haversine_km(warehouse.latitude, warehouse.longitude,
                                other_warehouse.latitude, other_warehouse.longitude)
        assert breakdown.distance_km == expected
        assert Decimal('80') < expected < Decimal('110')
        cached = WarehouseDistance.objects.get()
        assert cached.distance_km == expected

    def test_unknown_distance(self, warehouse, paint):
        remote = Warehouse.objects.create(code='remote', name='No coordinates')

        with pytest.raises(StockError) as exc:
            TransferCostEstimator.estimate(warehouse, remote, [TransferItem(paint, 1)])

        assert exc.value.code == 'DISTANCE_UNKNOWN'

    def test_same_warehouse_is_zero_distance(self, warehouse, paint):
        breakdown = TransferCostEstimator.estimate(warehouse, warehouse, [TransferItem(paint, 1, weight=0)])

        assert breakdown.distance_km == Decimal('0')
        assert breakdown.total_cost == Decimal('0')


class TestRankSources:

    def test_ranked_by_cost_and_filtered_by_stock(self, warehouse, other_warehouse, paint, post_receipt,
                                                  fixed_rates):
        destination = Warehouse.objects.create(code='dn-01', name='Da Nang')
        far = Warehouse.objects.create(code='hcm-01', name='Ho Chi Minh')
        poor = Warehouse.objects.create(code='hue-01', name='Hue')
        for source, km in ((warehouse, '300'), (other_warehouse, '120'), (far, '900'), (poor, '50')):
            WarehouseDistance.objects.create(from_warehouse=source, to_warehouse=destination,
                                             distance_km=Decimal(km))
        post_receipt(warehouse, paint, 10, 100)
        post_receipt(other_warehouse, paint, 10, 100)
        post_receipt(far, paint, 10, 100)
        post_receipt(poor, paint, 1, 100)

        options = ledger.rank_source_warehouses(paint, Decimal('5'), destination)

        assert [o.warehouse.code for o in options] == ['hp-01', 'hn-01', 'hcm-01']
        assert options[0].available == Decimal('10')
        assert options[0].breakdown.distance_km == Decimal('120')

    def test_sources_without_distance_are_skipped(self, warehouse, paint, post_receipt):
        destination = Warehouse.objects.create(code='dn-01', name='Da Nang')
        post_receipt(warehouse, paint, 10, 100)

        assert ledger.rank_source_warehouses(paint, Decimal('1'), destination) == []
