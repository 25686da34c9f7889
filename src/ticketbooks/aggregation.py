"""Totals over the orders of an event.

Amounts are summed in the order the orders were exported in.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ticketbooks.models import Order, SaleItem


class UnknownSaleItemError(LookupError):
    """An order contains a product that is not in the event's catalog."""

    def __init__(self, item_id: int):
        super().__init__(f"Order references sale item {item_id}, which the event does not have")
        self.item_id = item_id


@dataclass(frozen=True)
class OrderExportTotals:
    """Totals of a set of orders."""

    # Order totals without fees
    value: Decimal
    fees: Decimal


def orders_in_period(
    orders: Iterable[Order], start: datetime, end: datetime
) -> list[Order]:
    """Orders placed within `[start, end]`, both ends inclusive."""
    return [order for order in orders if start <= order.placed_at <= end]


def calc_totals(orders: Iterable[Order]) -> OrderExportTotals:
    """Sum of order values net of fees, and sum of fees."""
    value = Decimal("0")
    fees = Decimal("0")
    for order in orders:
        order_fees = sum((fee.value for fee in order.fees), Decimal("0"))
        value += order.total - order_fees
        fees += order_fees
    return OrderExportTotals(value=value, fees=fees)


def calc_totals_per_sale_item(orders: Iterable[Order]) -> dict[int, Decimal]:
    """Sum of position prices per sale item ID."""
    totals: dict[int, Decimal] = {}
    for order in orders:
        for position in order.positions:
            totals[position.item] = totals.get(position.item, Decimal("0")) + position.price
    return totals


def name_totals(
    totals: dict[int, Decimal], sale_items: Iterable[SaleItem]
) -> dict[str, Decimal]:
    """Key per-item totals by the sale item's name instead of its ID.

    Raises:
        UnknownSaleItemError: If an ID has no sale item.
    """
    names = {item.id: item.name for item in sale_items}
    named: dict[str, Decimal] = {}
    for item_id, total in totals.items():
        if item_id not in names:
            raise UnknownSaleItemError(item_id)
        name = names[item_id]
        named[name] = named.get(name, Decimal("0")) + total
    return named
