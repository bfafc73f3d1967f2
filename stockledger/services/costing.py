"""
Costing engine — unit cost per the material's costing method.

FIFO:
    Each lot keeps the price it was received at. A receipt merged into
    an existing lot blends the two prices by quantity.

WEIGHTED_AVERAGE:
    Every receipt re-blends the cost of all open lots:

        unit_cost = (stock_value + new_value) / (stock_qty + new_qty)

    and the result is stamped on every open lot of the same
    (warehouse, material), so issues always draw at the average.

The engine only computes. Writing the stamped prices is the ledger's job.
"""

from dataclasses import dataclass
from decimal import Decimal

from stockledger.models.lot import StockLot
from stockledger.rounding import ZERO, line_value, round_money, to_decimal


@dataclass(frozen=True)
class CostStamp:
    """Result of costing an incoming quantity."""

    unit_cost: Decimal
    previous_unit_cost: Decimal | None
    restamp_open_lots: bool


def _open_totals(warehouse, material, exclude=None) -> tuple[Decimal, Decimal]:
    """(quantity, value) over the open lots of a key."""
    lots = StockLot.objects.for_key(warehouse, material).open()
    if exclude is not None:
        lots = lots.exclude(pk=exclude.pk)
    quantity = ZERO
    value = ZERO
    for lot in lots.only('quantity', 'unit_price'):
        quantity += lot.quantity
        value += lot.quantity * lot.unit_price
    return quantity, value


def _blend(quantity_a, price_a, quantity_b, price_b) -> Decimal:
    total_qty = quantity_a + quantity_b
    if total_qty <= 0:
        return round_money(price_b)
    return round_money((quantity_a * price_a + quantity_b * price_b) / total_qty)


class CostingEngine:
    """Cost computations for receipts, issues and their reversals."""

    @classmethod
    def receipt_price(cls, detail) -> Decimal:
        """Line price, falling back to the material's purchase price."""
        if detail.unit_price is not None:
            return round_money(detail.unit_price)
        return round_money(detail.material.purchase_price)

    @classmethod
    def incoming(cls, material, lot: StockLot, quantity, unit_price) -> CostStamp:
        """
        Cost to stamp on ``lot`` when ``quantity`` arrives at ``unit_price``.

        Used for receipts and for the destination side of transfers.
        ``lot`` must be the locked row, before its quantity is increased.

        Returns:
            CostStamp. ``previous_unit_cost`` is the cost the affected lots
            carried before (None when nothing was carried yet).
        """
        quantity = to_decimal(quantity)
        unit_price = to_decimal(unit_price)

        if material.is_fifo:
            previous = lot.unit_price if lot.quantity > 0 else None
            unit_cost = _blend(lot.quantity, lot.unit_price, quantity, unit_price)
            return CostStamp(unit_cost, previous, restamp_open_lots=False)

        open_qty, open_value = _open_totals(lot.warehouse_id, lot.material_id)
        if open_qty > 0:
            previous = round_money(open_value / open_qty)
        else:
            previous = None
        total_qty = open_qty + quantity
        if total_qty > 0:
            unit_cost = round_money((open_value + quantity * unit_price) / total_qty)
        else:
            unit_cost = round_money(unit_price)
        return CostStamp(unit_cost, previous, restamp_open_lots=True)

    @classmethod
    def receipt_reversal(cls, material, lot: StockLot, detail) -> Decimal | None:
        """
        Cost the affected lots should carry once a posted receipt line is reversed.

        If nothing re-stamped the lot since posting, the pre-posting cost is
        restored exactly. Otherwise the cost is recomputed without the
        reversed quantity.

        Returns:
            The cost to stamp, or None to leave prices untouched.
        """
        if detail.unit_cost is not None and lot.unit_price == detail.unit_cost:
            return detail.previous_unit_cost

        quantity = detail.quantity
        removed_value = quantity * to_decimal(detail.unit_price)

        if material.is_fifo:
            remaining = lot.quantity - quantity
            if remaining <= 0:
                return None
            value = lot.quantity * lot.unit_price - removed_value
            return round_money(max(value, ZERO) / remaining)

        open_qty, open_value = _open_totals(lot.warehouse_id, lot.material_id)
        remaining = open_qty - quantity
        if remaining <= 0:
            return None
        return round_money(max(open_value - removed_value, ZERO) / remaining)

    @classmethod
    def issue_cost(cls, allocations) -> tuple[Decimal, Decimal]:
        """
        Cost of drawing the given lot allocations.

        Returns:
            (total_cost, unit_cost) where total = Σ qty × lot price
        """
        total = ZERO
        quantity = ZERO
        for allocation in allocations:
            total += line_value(allocation.quantity, allocation.lot.unit_price)
            quantity += allocation.quantity
        if quantity <= 0:
            return ZERO, ZERO
        return round_money(total), round_money(total / quantity)
