"""
Transfer cost estimation and source ranking.

    total = base + distance_km × per_km + total_weight × per_kg + volume_cost

    volume_cost = total_volume × per_m3 when total_volume exceeds the free
    allowance (TRANSFER_FREE_VOLUME_M3), else 0.

Rates come from the source warehouse when set, else from settings. The
distance comes from WarehouseDistance (either direction); if missing, it
is computed from warehouse coordinates and cached.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.lot import StockLot
from stockledger.models.material import Material
from stockledger.models.stock import Stock
from stockledger.models.warehouse import Warehouse, WarehouseDistance
from stockledger.rounding import ZERO, round_money, round_quantity, to_decimal

logger = logging.getLogger('stockledger')

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class TransferItem:
    """
    One item to move. ``weight`` (kg) and ``volume`` (m³) are line totals;
    when omitted they derive from the material's per-unit values.
    """

    material: Any
    quantity: Decimal
    weight: Decimal | None = None
    volume: Decimal | None = None

    @classmethod
    def coerce(cls, item) -> 'TransferItem':
        if isinstance(item, cls):
            return item
        return cls(**item)


@dataclass(frozen=True)
class TransferCostBreakdown:
    from_warehouse_id: int
    to_warehouse_id: int
    distance_km: Decimal
    total_weight: Decimal
    total_volume: Decimal
    base_cost: Decimal
    distance_cost: Decimal
    weight_cost: Decimal
    volume_cost: Decimal
    total_cost: Decimal
    estimated_hours: Decimal


@dataclass(frozen=True)
class SourceOption:
    """A warehouse able to supply a transfer, with its estimated cost."""

    warehouse: Warehouse
    available: Decimal
    breakdown: TransferCostBreakdown


def haversine_km(lat1, lon1, lat2, lon2) -> Decimal:
    """Great-circle distance in km between two coordinates."""
    phi1, phi2 = math.radians(float(lat1)), math.radians(float(lat2))
    d_phi = math.radians(float(lat2) - float(lat1))
    d_lambda = math.radians(float(lon2) - float(lon1))
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round_money(EARTH_RADIUS_KM * c)


def _rate(override, default) -> Decimal:
    return to_decimal(override) if override is not None else default


class TransferCostEstimator:
    """Deterministic cost estimates for moving goods between warehouses."""

    @classmethod
    def distance(cls, from_warehouse: Warehouse, to_warehouse: Warehouse) -> WarehouseDistance:
        """
        Distance row for the pair, in either direction.

        A missing row is computed from coordinates and cached.

        Raises:
            StockError('DISTANCE_UNKNOWN'): No row and no coordinates
        """
        if from_warehouse.pk == to_warehouse.pk:
            return WarehouseDistance(
                from_warehouse=from_warehouse,
                to_warehouse=to_warehouse,
                distance_km=ZERO,
                estimated_time_hours=ZERO,
                base_cost=ZERO,
            )

        row = WarehouseDistance.objects.between(from_warehouse, to_warehouse).order_by('id').first()
        if row is not None:
            return row

        if not (from_warehouse.has_coordinates and to_warehouse.has_coordinates):
            raise StockError(
                'DISTANCE_UNKNOWN',
                from_warehouse_id=from_warehouse.pk,
                to_warehouse_id=to_warehouse.pk,
            )

        km = haversine_km(
            from_warehouse.latitude, from_warehouse.longitude,
            to_warehouse.latitude, to_warehouse.longitude,
        )
        hours = round_money(km / stockledger_settings.TRANSFER_AVERAGE_SPEED_KMH)
        try:
            with transaction.atomic():
                row, _ = WarehouseDistance.objects.get_or_create(
                    from_warehouse=from_warehouse,
                    to_warehouse=to_warehouse,
                    defaults={'distance_km': km, 'estimated_time_hours': hours},
                )
        except IntegrityError:
            row = WarehouseDistance.objects.between(from_warehouse, to_warehouse).order_by('id').first()

        logger.info(
            "stock.distance.computed",
            extra={
                "from_warehouse_id": from_warehouse.pk,
                "to_warehouse_id": to_warehouse.pk,
                "distance_km": str(km),
            },
        )
        return row

    @classmethod
    def estimate(cls, from_warehouse: Warehouse, to_warehouse: Warehouse, items) -> TransferCostBreakdown:
        """
        Estimate the cost of moving ``items``.

        Args:
            items: TransferItem instances or dicts with material, quantity,
                and optional weight / volume line totals

        Raises:
            StockError('DISTANCE_UNKNOWN'): See distance()
        """
        items = [TransferItem.coerce(item) for item in items]
        materials = Material.objects.in_bulk(
            [getattr(i.material, 'pk', i.material) for i in items
             if i.weight is None or i.volume is None]
        )

        total_weight = ZERO
        total_volume = ZERO
        for item in items:
            quantity = to_decimal(item.quantity)
            material = materials.get(getattr(item.material, 'pk', item.material))
            if item.weight is not None:
                total_weight += to_decimal(item.weight)
            elif material is not None:
                total_weight += quantity * material.weight_per_unit
            if item.volume is not None:
                total_volume += to_decimal(item.volume)
            elif material is not None:
                total_volume += quantity * material.volume_per_unit

        route = cls.distance(from_warehouse, to_warehouse)
        distance_km = to_decimal(route.distance_km)

        settings = stockledger_settings
        if route.base_cost:
            base = to_decimal(route.base_cost)
        else:
            base = _rate(from_warehouse.base_transfer_cost, settings.TRANSFER_BASE_COST)
        if from_warehouse.pk == to_warehouse.pk:
            base = ZERO
        per_km = _rate(from_warehouse.cost_per_km, settings.TRANSFER_COST_PER_KM)
        per_kg = _rate(from_warehouse.cost_per_kg, settings.TRANSFER_COST_PER_KG)

        distance_cost = round_money(distance_km * per_km)
        weight_cost = round_money(total_weight * per_kg)
        if total_volume > settings.TRANSFER_FREE_VOLUME_M3:
            volume_cost = round_money(total_volume * settings.TRANSFER_COST_PER_M3)
        else:
            volume_cost = ZERO

        if route.estimated_time_hours:
            hours = to_decimal(route.estimated_time_hours)
        else:
            hours = round_money(distance_km / settings.TRANSFER_AVERAGE_SPEED_KMH)

        return TransferCostBreakdown(
            from_warehouse_id=from_warehouse.pk,
            to_warehouse_id=to_warehouse.pk,
            distance_km=distance_km,
            total_weight=round_quantity(total_weight),
            total_volume=total_volume,
            base_cost=round_money(base),
            distance_cost=distance_cost,
            weight_cost=weight_cost,
            volume_cost=volume_cost,
            total_cost=round_money(base + distance_cost + weight_cost + volume_cost),
            estimated_hours=hours,
        )

    @classmethod
    def rank_sources(cls, material, quantity, to_warehouse: Warehouse) -> list[SourceOption]:
        """
        Warehouses holding enough unreserved stock, cheapest first.

        Order: total cost, then distance, then warehouse id. Sources with
        no known distance are skipped.
        """
        quantity = to_decimal(quantity)
        material_id = getattr(material, 'pk', material)
        candidate_ids = Stock.objects.filter(
            material_id=material_id,
            quantity__gte=quantity,
            warehouse__is_active=True,
        ).exclude(warehouse_id=to_warehouse.pk).values_list('warehouse_id', flat=True)

        options = []
        for wh in Warehouse.objects.filter(pk__in=list(candidate_ids)).order_by('id'):
            available = StockLot.objects.for_key(wh, material_id).open().eligible_for(None).total_quantity()
            if available < quantity:
                continue
            try:
                breakdown = cls.estimate(wh, to_warehouse, [TransferItem(material_id, quantity)])
            except StockError as e:
                if e.code != 'DISTANCE_UNKNOWN':
                    raise
                logger.debug(
                    "stock.rank.skipped",
                    extra={"warehouse_id": wh.pk, "reason": e.code},
                )
                continue
            options.append(SourceOption(warehouse=wh, available=available, breakdown=breakdown))

        options.sort(key=lambda o: (o.breakdown.total_cost, o.breakdown.distance_km, o.warehouse.pk))
        return options
