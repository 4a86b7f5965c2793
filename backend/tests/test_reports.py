# Overview: Pytest coverage for analytics and report endpoints.

import pytest

from retail.services.reporting_service import alert_level, classify_demand, margin_tier
from retail.time_utils import utcnow


@pytest.fixture
def mixed_orders(place_order, make_product):
    """One UGX order worth 9,000 and one USD order worth 2 USD."""
    soap = make_product(name="Soap", price=1000, cost_price=600, quantity=50)
    lamp = make_product(name="Lamp", price=3700, cost_price=1850, quantity=50)
    place_order([{"product_id": soap.id, "quantity": 9}])
    place_order([{"product_id": lamp.id, "quantity": 2}], currency="USD")
    return soap, lamp


class TestDailyAnalytics:

    def test_currencies_normalised_with_current_rate(self, client, viewer_headers, mixed_orders):
        resp = client.get("/api/reports/analytics/daily", headers=viewer_headers)

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["date"] == utcnow().date().isoformat()
        assert data["total_orders"] == 2
        assert data["total_revenue_ugx"] == 16400
        # 9,000 UGX -> 2.43 USD, plus the 2 USD order
        assert data["total_revenue_usd"] == 4.43
        assert data["avg_order_value_ugx"] == 8200
        assert data["exchange_rate"] == 3700

    def test_rate_change_applies_to_history(self, app, client, viewer_headers, mixed_orders, monkeypatch):
        monkeypatch.setitem(app.config, "EXCHANGE_RATE_UGX_PER_USD", 4000)

        data = client.get("/api/reports/analytics/daily", headers=viewer_headers).get_json()
        assert data["total_revenue_ugx"] == 17000
        assert data["exchange_rate"] == 4000

    def test_empty_day(self, client, viewer_headers, mixed_orders):
        data = client.get("/api/reports/analytics/daily?date=2001-01-01", headers=viewer_headers).get_json()
        assert data["total_orders"] == 0
        assert data["total_revenue_ugx"] == 0
        assert data["avg_order_value_ugx"] == 0

    def test_bad_date(self, client, viewer_headers):
        resp = client.get("/api/reports/analytics/daily?date=yesterday", headers=viewer_headers)
        assert resp.status_code == 400


class TestPeriodAnalytics:

    def test_week_breakdown_by_day(self, client, viewer_headers, mixed_orders):
        data = client.get("/api/reports/analytics/period?period=week", headers=viewer_headers).get_json()

        assert data["period"] == "week"
        assert data["group_by"] == "day"
        assert data["total_orders"] == 2
        assert len(data["breakdown"]) == 1
        bucket = data["breakdown"][0]
        assert bucket["orders"] == 2
        assert bucket["revenue_ugx"] == 16400

    def test_quarter_groups_by_iso_week(self, client, viewer_headers, mixed_orders):
        data = client.get("/api/reports/analytics/period?period=3months", headers=viewer_headers).get_json()
        assert data["group_by"] == "week"
        assert "-W" in data["breakdown"][0]["period"]

    def test_invalid_period(self, client, viewer_headers):
        resp = client.get("/api/reports/analytics/period?period=decade", headers=viewer_headers)
        assert resp.status_code == 400


class TestProfitAnalytics:

    def test_net_profit_subtracts_expenses(self, client, viewer_headers, manager_headers, place_order,
                                           make_product):
        p = make_product(price=1000, cost_price=600, quantity=20)
        place_order([{"product_id": p.id, "quantity": 5}])
        client.post("/api/expenses", json={"amount": 500, "description": "Rent"}, headers=manager_headers)

        resp = client.get("/api/reports/profit-analytics", headers=viewer_headers)

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["total_revenue"] == 5000
        assert data["gross_profit"] == 2000
        assert data["total_expenses"] == 500
        assert data["net_profit"] == 1500
        assert data["overall_margin"] == 40.0
        assert data["margin_distribution"] == {"high_margin": 1, "medium_margin": 0, "low_margin": 0}
        assert data["top_profitable_products"][0]["margin_tier"] == "high"

    def test_window_excludes_old_orders(self, client, viewer_headers, mixed_orders):
        data = client.get(
            "/api/reports/profit-analytics?start=2000-01-01&end=2000-12-31", headers=viewer_headers
        ).get_json()
        assert data["total_orders"] == 0
        assert data["overall_margin"] == 0

    def test_start_after_end_rejected(self, client, viewer_headers):
        resp = client.get("/api/reports/profit-analytics?start=2024-02-01&end=2024-01-01",
                          headers=viewer_headers)
        assert resp.status_code == 400


class TestInventoryReports:

    def test_low_stock_alert_levels(self, client, viewer_headers, make_product):
        make_product(name="Empty", quantity=0, low_stock_threshold=5)
        make_product(name="Scarce", quantity=2, low_stock_threshold=5)
        make_product(name="Low", quantity=4, low_stock_threshold=5)
        make_product(name="Fine", quantity=10, low_stock_threshold=5)

        data = client.get("/api/reports/low-stock", headers=viewer_headers).get_json()

        assert data["count"] == 3
        assert {i["name"]: i["alert_level"] for i in data["items"]} == {
            "Empty": "critical",
            "Scarce": "high",
            "Low": "medium",
        }

    def test_stock_status_values_inventory(self, client, viewer_headers, make_product):
        make_product(price=1000, quantity=3)
        make_product(price=250.5, quantity=2)

        data = client.get("/api/reports/stock-status", headers=viewer_headers).get_json()
        assert data["total_products"] == 2
        assert data["total_items"] == 5
        assert data["total_inventory_value"] == 3501

    def test_top_products_skip_deleted(self, client, viewer_headers, admin_headers, mixed_orders):
        soap, lamp = mixed_orders
        lamp_id = lamp.id
        client.delete(f"/api/products/{lamp_id}", headers=admin_headers)

        data = client.get("/api/reports/top-products", headers=viewer_headers).get_json()
        assert [row["product_name"] for row in data] == ["Soap"]
        assert data[0]["total_quantity"] == 9
        assert data[0]["total_revenue_ugx"] == 9000

    def test_sales_trend_covers_seven_days(self, client, viewer_headers, mixed_orders):
        data = client.get("/api/reports/sales-trend", headers=viewer_headers).get_json()
        assert len(data) == 7
        assert data[-1]["orders"] == 2
        assert data[-1]["sales_ugx"] == 16400
        assert sum(d["orders"] for d in data[:-1]) == 0

    def test_sales_summary(self, client, viewer_headers, mixed_orders):
        data = client.get("/api/reports/sales-summary", headers=viewer_headers).get_json()
        assert data["total_orders"] == 2
        assert data["total_revenue_ugx"] == 16400


class TestClassifiers:

    @pytest.mark.parametrize("margin,tier", [(30.01, "high"), (30, "medium"), (15.5, "medium"), (15, "low")])
    def test_margin_tier_boundaries(self, margin, tier):
        assert margin_tier(margin) == tier

    @pytest.mark.parametrize("sold,level", [(0, "none"), (15, "high"), (5, "medium"), (4, "low")])
    def test_demand_boundaries(self, sold, level):
        assert classify_demand(sold, 10) == level

    @pytest.mark.parametrize("qty,threshold,level", [(0, 10, "critical"), (5, 10, "high"), (6, 10, "medium")])
    def test_alert_level(self, qty, threshold, level):
        assert alert_level(qty, threshold) == level


def test_reports_require_auth(client):
    assert client.get("/api/reports/sales-summary").status_code == 401
