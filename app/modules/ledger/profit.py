"""
Profit apportionment and refund rules shared by sales and returns.
"""
from decimal import Decimal
from typing import Optional

from app.modules.ledger.projector import ZERO, to_money


def _rate(value) -> Optional[Decimal]:
    if value is None:
        return None
    rate = to_money(value)
    return rate if rate > ZERO else None


def line_profit(quantity: int, units_per_box: Optional[int], profit_per_unit=None, profit_per_box=None) -> Decimal:
    """
    Gross profit of one sale line.

    The quantity is split into whole boxes of ``units_per_box`` plus loose
    units. With both rates, boxes earn the box rate and loose units the
    unit rate. With only a box rate, loose units earn a pro-rata share of
    it (box rate / units per box). With only a unit rate, every unit earns it.
    """
    per_unit = _rate(profit_per_unit)
    per_box = _rate(profit_per_box)
    quantity = int(quantity or 0)
    if quantity <= 0 or (per_unit is None and per_box is None):
        return ZERO

    if per_box is None or not units_per_box or units_per_box <= 0:
        return to_money((per_unit or ZERO) * quantity)

    boxes, loose_units = divmod(quantity, int(units_per_box))
    box_profit = per_box * boxes
    if per_unit is not None:
        loose_profit = per_unit * loose_units
    else:
        loose_profit = per_box / Decimal(units_per_box) * loose_units
    return to_money(box_profit + loose_profit)


def sale_totals(subtotal, gross_profit, discount=None):
    """
    Returns ``(total_amount, profit)`` for a sale.

    The discount is taken out of the profit: total = subtotal + gross profit
    - discount and profit = max(0, gross profit - discount).
    """
    subtotal = to_money(subtotal)
    gross_profit = to_money(gross_profit)
    discount = to_money(discount)
    total = to_money(subtotal + gross_profit - discount)
    profit = max(ZERO, to_money(gross_profit - discount))
    return total, profit


def refund_per_unit(unit_price, sale_subtotal, sale_profit) -> Decimal:
    """
    Amount refunded for one returned unit: the unit price plus the sale's
    profit share, ``unit_price * (1 + profit / subtotal)``. A sale with a
    zero subtotal refunds the plain unit price.
    """
    unit_price = to_money(unit_price)
    sale_subtotal = to_money(sale_subtotal)
    if sale_subtotal == ZERO:
        return unit_price
    ratio = to_money(sale_profit) / sale_subtotal
    return to_money(unit_price * (1 + ratio))
