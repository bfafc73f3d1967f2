"""
Stock level alerts — materials below minimum or above maximum stock.

Usage:
    from stockledger.services.alerts import check_stock_levels

    # Run periodically (celery beat, cron) or after postings
    for alert in check_stock_levels():
        notify(alert)
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from stockledger.models.material import Material
from stockledger.models.stock import Stock
from stockledger.models.warehouse import Warehouse
from stockledger.rounding import ZERO

logger = logging.getLogger('stockledger')


LOW = 'low'
HIGH = 'high'


@dataclass(frozen=True)
class StockLevelAlert:
    """A material outside its configured stock range at one warehouse."""

    kind: str
    warehouse: Warehouse
    material: Material
    quantity: Decimal
    threshold: Decimal
    suggested_order: Decimal = ZERO


def _suggested_order(material: Material, quantity: Decimal) -> Decimal:
    """Reorder quantity if set, else enough to reach max (or min) stock."""
    if material.reorder_quantity:
        return material.reorder_quantity
    target = material.max_stock if material.max_stock is not None else material.min_stock
    return max(target - quantity, ZERO)


def check_stock_levels(warehouse=None) -> list[StockLevelAlert]:
    """
    Check every active material with a min/max against current stock.

    A warehouse with no stock row for a material counts as 0 on hand.

    Args:
        warehouse: Optional warehouse to check (None = all active).

    Returns:
        List of StockLevelAlert, low alerts first.
    """
    warehouses = Warehouse.objects.filter(is_active=True)
    if warehouse is not None:
        warehouses = warehouses.filter(pk=getattr(warehouse, 'pk', warehouse))
    warehouses = list(warehouses)

    materials = list(
        Material.objects.filter(is_active=True).exclude(min_stock__isnull=True, max_stock__isnull=True)
    )
    if not warehouses or not materials:
        return []

    on_hand = {
        (row['warehouse_id'], row['material_id']): row['quantity']
        for row in Stock.objects.filter(
            warehouse__in=warehouses, material__in=materials,
        ).values('warehouse_id', 'material_id', 'quantity')
    }

    low, high = [], []
    for wh in warehouses:
        for material in materials:
            quantity = on_hand.get((wh.pk, material.pk), ZERO)
            if material.min_stock is not None and quantity < material.min_stock:
                low.append(StockLevelAlert(
                    kind=LOW,
                    warehouse=wh,
                    material=material,
                    quantity=quantity,
                    threshold=material.min_stock,
                    suggested_order=_suggested_order(material, quantity),
                ))
                logger.warning(
                    "stock.alert.low",
                    extra={
                        "warehouse_id": wh.pk,
                        "material_id": material.pk,
                        "min_stock": str(material.min_stock),
                        "quantity": str(quantity),
                    },
                )
            elif material.max_stock is not None and quantity > material.max_stock:
                high.append(StockLevelAlert(
                    kind=HIGH,
                    warehouse=wh,
                    material=material,
                    quantity=quantity,
                    threshold=material.max_stock,
                ))
                logger.info(
                    "stock.alert.high",
                    extra={
                        "warehouse_id": wh.pk,
                        "material_id": material.pk,
                        "max_stock": str(material.max_stock),
                        "quantity": str(quantity),
                    },
                )

    return low + high
