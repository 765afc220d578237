"""
Sales statistics tests: totals, money formatting, periods and top products.
"""

from datetime import datetime, timedelta

import pytest

from shopstock.errors import InvalidInputError
from shopstock.services import reporting_service
from shopstock.time_utils import utcnow

from conftest import record_sale


class TestResolvePeriod:
    NOW = datetime(2024, 5, 10, 15, 30)

    def test_today(self):
        assert reporting_service.resolve_period("today", self.NOW) == (
            datetime(2024, 5, 10), datetime(2024, 5, 11),
        )

    def test_yesterday(self):
        assert reporting_service.resolve_period("yesterday", self.NOW) == (
            datetime(2024, 5, 9), datetime(2024, 5, 10),
        )

    def test_rolling_windows(self):
        assert reporting_service.resolve_period("week", self.NOW) == (self.NOW - timedelta(days=7), None)
        assert reporting_service.resolve_period("month", self.NOW) == (self.NOW - timedelta(days=30), None)

    def test_all_is_default(self):
        assert reporting_service.resolve_period(None, self.NOW) == (None, None)

    def test_unknown_period(self):
        with pytest.raises(InvalidInputError):
            reporting_service.resolve_period("decade", self.NOW)


class TestSalesStats:

    def test_empty(self, app):
        stats = reporting_service.sales_stats()
        assert stats["total_sales"] == 0
        assert stats["total_items_sold"] == 0
        assert stats["total_revenue"] == "0.00"
        assert stats["average_sale_amount"] == "0.00"
        assert stats["largest_sale"] == "0.00"
        assert stats["topProducts"] == []

    def test_totals_and_top_products(self, admin, user, make_item):
        mug = make_item(admin, product_name="Mug", brand="Acme")
        plate = make_item(admin, product_name="Plate")
        when = datetime(2024, 2, 1, 12, 0)
        record_sale(mug, user, 3, "2.50", when)
        record_sale(mug, user, 1, "2.50", when)
        record_sale(plate, user, 2, "10.00", when)

        stats = reporting_service.sales_stats()

        assert stats["total_sales"] == 3
        assert stats["total_items_sold"] == 6
        assert stats["total_revenue"] == "30.00"
        assert stats["average_sale_amount"] == "10.00"
        assert stats["largest_sale"] == "20.00"
        assert stats["smallest_sale"] == "2.50"

        top = stats["topProducts"]
        assert [p["product_name"] for p in top] == ["Mug", "Plate"]
        assert top[0]["total_quantity"] == 4
        assert top[0]["total_revenue"] == "10.00"
        assert top[0]["sale_count"] == 2
        assert top[0]["brand"] == "Acme"

    def test_explicit_range_overrides_period(self, admin, user, make_item):
        item = make_item(admin)
        record_sale(item, user, 1, "1.00", datetime(2024, 1, 1, 9))
        record_sale(item, user, 1, "1.00", datetime(2024, 1, 5, 9))

        stats = reporting_service.sales_stats(period="today", start_date="2024-01-01", end_date="2024-01-01")

        assert stats["period"] == "custom"
        assert stats["total_sales"] == 1

    def test_today_excludes_yesterday(self, admin, user, make_item):
        item = make_item(admin)
        now = utcnow()
        record_sale(item, user, 1, "1.00", now)
        record_sale(item, user, 1, "1.00", now - timedelta(days=1, hours=1))

        assert reporting_service.sales_stats(period="today")["total_sales"] == 1
        assert reporting_service.sales_stats(period="week")["total_sales"] == 2


class TestStatsRoute:

    def test_route(self, client, admin, user, user_headers, make_item):
        item = make_item(admin)
        record_sale(item, user, 2, "4.25", datetime(2024, 1, 1))

        resp = client.get("/api/sales/stats?period=all", headers=user_headers)

        assert resp.status_code == 200
        assert resp.get_json()["total_revenue"] == "8.50"

    def test_bad_period(self, client, user_headers):
        assert client.get("/api/sales/stats?period=forever", headers=user_headers).status_code == 400

    def test_end_date_at_calendar_limit(self, client, admin, user, user_headers, make_item):
        item = make_item(admin)
        record_sale(item, user, 2, "4.25", datetime(2024, 1, 1))

        resp = client.get("/api/sales/stats?startDate=2024-01-01&endDate=9999-12-31", headers=user_headers)

        assert resp.status_code == 200
        assert resp.get_json()["total_revenue"] == "8.50"
