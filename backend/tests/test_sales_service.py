"""
Sales engine tests.

Verifies:
- Creating a sale debits stock exactly, deleting it credits it back
- Overselling is rejected and leaves no partial state
- Rejected items cannot be sold
- Unit price fallback chain and the strict-price switch
- Bulk delete partial success and all-missing handling
"""

from decimal import Decimal

import pytest

from shopstock.errors import (
    InsufficientStockError,
    InvalidInputError,
    InvalidQuantityOrPriceError,
    InvalidStatusError,
    ItemNotFoundError,
    SaleNotFoundError,
)
from shopstock.extensions import db
from shopstock.models import InventoryItem, ItemStatus, Sale
from shopstock.services import inventory_service, sales_service


def _quantity(item_id: int) -> int:
    return db.session.get(InventoryItem, item_id).quantity


def _sale_count() -> int:
    return db.session.query(Sale).count()


# =============================================================================
# STOCK DEBIT / CREDIT
# =============================================================================


class TestStockAccounting:

    def test_sell_reject_and_delete_restores_stock(self, admin, user, make_item):
        item = make_item(admin, quantity=10)

        sale = sales_service.create_sale(
            {"inventory_item_id": item.id, "quantity_sold": 3, "unit_price": "15.00"}, user,
        )
        assert _quantity(item.id) == 7
        assert sale.total_amount == Decimal("45.00")

        inventory_service.reject_item(item.id, admin)

        with pytest.raises(InvalidStatusError):
            sales_service.create_sale(
                {"inventory_item_id": item.id, "quantity_sold": 1, "unit_price": "15.00"}, user,
            )
        assert _quantity(item.id) == 7

        result = sales_service.delete_sale(sale.id, admin)
        assert result["restoredQuantity"] == 3
        assert result["inventory_item_id"] == item.id
        assert _quantity(item.id) == 10
        assert _sale_count() == 0

    def test_oversell_after_sale_then_restore(self, admin, user, make_item):
        item = make_item(admin, quantity=10, unit_price="5.00")

        sale = sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 3}, user)
        assert _quantity(item.id) == 7
        assert sale.total_amount == Decimal("15.00")

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 8}, user)
        assert exc.value.available == 7

        sales_service.delete_sale(sale.id, admin)
        assert _quantity(item.id) == 10

    def test_sell_entire_stock(self, admin, user, make_item):
        item = make_item(admin, quantity=4)
        sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 4, "unit_price": 1}, user)
        assert _quantity(item.id) == 0

    def test_oversell_rejected_without_side_effects(self, admin, user, make_item):
        item = make_item(admin, quantity=2)

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale(
                {"inventory_item_id": item.id, "quantity_sold": 3, "unit_price": "5"}, user,
            )

        assert exc.value.available == 2
        assert exc.value.requested == 3
        assert _quantity(item.id) == 2
        assert _sale_count() == 0

    def test_pending_item_is_sellable(self, admin, user, make_item):
        item = make_item(user, quantity=5, status=ItemStatus.PENDING)
        sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 2, "unit_price": "3"}, user)
        assert _quantity(item.id) == 3

    def test_unknown_item(self, user):
        with pytest.raises(ItemNotFoundError):
            sales_service.create_sale({"inventory_item_id": 999, "quantity_sold": 1, "unit_price": "1"}, user)

    def test_stock_conserved_across_sales(self, admin, user, make_item):
        item = make_item(admin, quantity=20)
        sold = 0
        for qty in (1, 4, 6):
            sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": qty, "unit_price": "2"}, user)
            sold += qty
            total_sold = db.session.query(db.func.sum(Sale.quantity_sold)).scalar()
            assert _quantity(item.id) + total_sold == 20
        assert _quantity(item.id) == 20 - sold


# =============================================================================
# INPUT VALIDATION
# =============================================================================


class TestSaleInput:

    @pytest.mark.parametrize("quantity", [0, -1, "abc", "2.5", 2.5, True, None])
    def test_invalid_quantity(self, admin, user, make_item, quantity):
        item = make_item(admin, quantity=10)
        with pytest.raises(InvalidQuantityOrPriceError):
            sales_service.create_sale(
                {"inventory_item_id": item.id, "quantity_sold": quantity, "unit_price": "1"}, user,
            )
        assert _quantity(item.id) == 10

    def test_integral_float_quantity_accepted(self, admin, user, make_item):
        item = make_item(admin, quantity=10)
        sale = sales_service.create_sale(
            {"inventory_item_id": item.id, "quantity_sold": 2.0, "unit_price": "1"}, user,
        )
        assert sale.quantity_sold == 2

    def test_missing_item_id(self, user):
        with pytest.raises(InvalidInputError):
            sales_service.create_sale({"quantity_sold": 1}, user)

    def test_metadata_stored_trimmed(self, admin, user, make_item):
        item = make_item(admin)
        sale = sales_service.create_sale({
            "inventory_item_id": item.id,
            "quantity_sold": 1,
            "unit_price": "9.99",
            "customer_name": "  Jane Doe ",
            "payment_method": "card",
            "notes": "",
        }, user)
        assert sale.customer_name == "Jane Doe"
        assert sale.payment_method == "card"
        assert sale.notes is None

    def test_metadata_too_long(self, admin, user, make_item):
        item = make_item(admin)
        with pytest.raises(InvalidInputError):
            sales_service.create_sale({
                "inventory_item_id": item.id,
                "quantity_sold": 1,
                "unit_price": "1",
                "payment_method": "x" * 33,
            }, user)


# =============================================================================
# PRICING
# =============================================================================


class TestPricing:

    def test_total_is_exact_to_the_cent(self, admin, user, make_item):
        item = make_item(admin)
        sale = sales_service.create_sale(
            {"inventory_item_id": item.id, "quantity_sold": 3, "unit_price": 0.1}, user,
        )
        assert sale.unit_price == Decimal("0.10")
        assert sale.total_amount == Decimal("0.30")
        assert sale.to_dict()["total_amount"] == "0.30"

    def test_falls_back_to_item_price(self, admin, user, make_item):
        item = make_item(admin, unit_price="12.50")
        sale = sales_service.create_sale(
            {"inventory_item_id": item.id, "quantity_sold": 2, "unit_price": "abc"}, user,
        )
        assert sale.unit_price == Decimal("12.50")
        assert sale.total_amount == Decimal("25.00")

    def test_falls_back_to_default_price(self, admin, user, make_item):
        item = make_item(admin, unit_price=None)
        sale = sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 1}, user)
        assert sale.unit_price == Decimal("29.99")

    def test_zero_price_falls_back(self, admin, user, make_item):
        item = make_item(admin, unit_price="4.00")
        sale = sales_service.create_sale(
            {"inventory_item_id": item.id, "quantity_sold": 1, "unit_price": 0}, user,
        )
        assert sale.unit_price == Decimal("4.00")

    def test_total_beyond_column_range_rejected(self, admin, user, make_item):
        item = make_item(admin, quantity=5)
        with pytest.raises(InvalidQuantityOrPriceError, match="Sale total"):
            sales_service.create_sale(
                {"inventory_item_id": item.id, "quantity_sold": 10**30, "unit_price": "9.99"}, user,
            )
        assert _quantity(item.id) == 5

    def test_strict_price_mode_rejects_missing_price(self, app, admin, user, make_item):
        app.config["SALE_REQUIRE_UNIT_PRICE"] = True
        item = make_item(admin, quantity=5, unit_price="12.50")

        with pytest.raises(InvalidQuantityOrPriceError):
            sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 1}, user)
        assert _quantity(item.id) == 5
        assert _sale_count() == 0


# =============================================================================
# DELETE / BULK DELETE
# =============================================================================


class TestDeleteSales:

    def test_delete_unknown_sale(self, admin):
        with pytest.raises(SaleNotFoundError):
            sales_service.delete_sale(12345, admin)

    def test_bulk_delete_partial(self, admin, user, make_item):
        first = make_item(admin, quantity=10, product_name="First")
        second = make_item(admin, quantity=10, product_name="Second")
        a = sales_service.create_sale({"inventory_item_id": first.id, "quantity_sold": 2, "unit_price": "1"}, user)
        b = sales_service.create_sale({"inventory_item_id": first.id, "quantity_sold": 3, "unit_price": "1"}, user)
        c = sales_service.create_sale({"inventory_item_id": second.id, "quantity_sold": 4, "unit_price": "1"}, user)
        a_id, b_id, c_id = a.id, b.id, c.id

        result = sales_service.bulk_delete_sales([a_id, b_id, c_id, 999], admin)

        assert result["deletedCount"] == 3
        assert result["missingIds"] == [999]
        assert result["message"] == "Successfully deleted 3 sale(s)"
        assert _quantity(first.id) == 10
        assert _quantity(second.id) == 10
        assert _sale_count() == 0

    def test_bulk_delete_all_missing(self, admin):
        with pytest.raises(SaleNotFoundError):
            sales_service.bulk_delete_sales([998, 999], admin)

    def test_bulk_delete_comma_string(self, admin, user, make_item):
        item = make_item(admin, quantity=10)
        sale = sales_service.create_sale({"inventory_item_id": item.id, "quantity_sold": 5, "unit_price": "1"}, user)

        result = sales_service.bulk_delete_sales(f"{sale.id}, {sale.id}", admin)

        assert result["deletedCount"] == 1
        assert "missingIds" not in result
        assert _quantity(item.id) == 10


class TestParseSaleIds:

    @pytest.mark.parametrize("raw", [None, "", []])
    def test_missing(self, raw):
        with pytest.raises(InvalidInputError, match="IDs array is required"):
            sales_service.parse_sale_ids(raw)

    def test_wrong_type(self):
        with pytest.raises(InvalidInputError, match="array or comma-separated"):
            sales_service.parse_sale_ids({"ids": [1]})

    def test_no_valid_ids(self):
        with pytest.raises(InvalidInputError, match="valid numbers"):
            sales_service.parse_sale_ids(["a", -3, 0, 1.5])

    def test_filters_and_dedupes(self):
        assert sales_service.parse_sale_ids([3, "1", "x", 3, 2.0]) == [3, 1, 2]
