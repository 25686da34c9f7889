"""Tests for order totals."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ticketbooks.aggregation import (
    OrderExportTotals,
    UnknownSaleItemError,
    calc_totals,
    calc_totals_per_sale_item,
    name_totals,
    orders_in_period,
)
from ticketbooks.models import Order, OrderExport, SaleItem

CET = timezone(timedelta(hours=1))


def make_order(placed_at, total="10.00", fees=(), positions=()):
    return Order(
        placed_at=placed_at,
        total=Decimal(total),
        fees=[{"value": Decimal(v)} for v in fees],
        positions=[{"item": item, "price": Decimal(price)} for item, price in positions],
    )


@pytest.fixture
def export(order_export_payload):
    return OrderExport.model_validate(order_export_payload["event"])


class TestOrdersInPeriod:
    """Tests for the period filter."""

    START = datetime(2024, 1, 8, tzinfo=CET)
    END = datetime(2024, 1, 14, tzinfo=CET)

    def test_both_bounds_inclusive(self):
        """Test that orders exactly on the bounds are kept."""
        orders = [make_order(self.START), make_order(self.END)]

        assert orders_in_period(orders, self.START, self.END) == orders

    def test_outside_bounds_excluded(self):
        """Test that a second outside either bound is dropped."""
        orders = [
            make_order(self.START - timedelta(seconds=1)),
            make_order(self.END + timedelta(seconds=1)),
        ]

        assert orders_in_period(orders, self.START, self.END) == []

    def test_compares_instants_across_offsets(self):
        """Test that an order in UTC is compared by instant."""
        # 23:30 UTC on Sunday 7 January is 00:30 CET on Monday
        order = make_order(datetime.fromisoformat("2024-01-07T23:30:00+00:00"))

        assert orders_in_period([order], self.START, self.END) == [order]

    def test_keeps_export_order(self):
        orders = [
            make_order(self.START + timedelta(days=3)),
            make_order(self.START + timedelta(days=1)),
        ]

        assert orders_in_period(orders, self.START, self.END) == orders


class TestTotals:
    """Tests for calc_totals."""

    def test_value_is_net_of_fees(self, export):
        """Test summing order values without fees, and fees."""
        totals = calc_totals(export.orders)

        assert totals == OrderExportTotals(value=Decimal("35.00"), fees=Decimal("0.85"))

    def test_no_orders(self):
        assert calc_totals([]) == OrderExportTotals(value=Decimal("0"), fees=Decimal("0"))

    def test_multiple_fees(self):
        order = make_order(datetime(2024, 1, 9, tzinfo=CET), total="12.00", fees=["0.29", "0.71"])

        assert calc_totals([order]) == OrderExportTotals(
            value=Decimal("11.00"), fees=Decimal("1.00")
        )


class TestTotalsPerSaleItem:
    """Tests for per-product totals."""

    def test_sums_positions_across_orders(self, export):
        """Test that positions of the same product add up."""
        assert calc_totals_per_sale_item(export.orders) == {
            1: Decimal("20.00"),
            2: Decimal("15.00"),
        }

    def test_sums_positions_within_one_order(self):
        """Test that two positions of one product in one order both count."""
        order = make_order(
            datetime(2024, 1, 9, tzinfo=CET),
            positions=[(1, "10.00"), (1, "10.00"), (2, "5.00")],
        )

        assert calc_totals_per_sale_item([order]) == {1: Decimal("20.00"), 2: Decimal("5.00")}

    def test_name_totals(self, export):
        """Test keying totals by product name."""
        totals = calc_totals_per_sale_item(export.orders)

        assert name_totals(totals, export.items) == {
            "Regular ticket": Decimal("20.00"),
            "T-shirt": Decimal("15.00"),
        }

    def test_unknown_sale_item(self):
        """Test that an ID outside the catalog raises."""
        items = [SaleItem(id=1, name="Regular ticket", tax_rate=Decimal("9"))]

        with pytest.raises(UnknownSaleItemError) as exc_info:
            name_totals({1: Decimal("10"), 7: Decimal("5")}, items)

        assert exc_info.value.item_id == 7
