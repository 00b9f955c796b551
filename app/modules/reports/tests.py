"""
Tests for the Reports module

Covers the business report (summary, rankings, date ranges, CSV export)
and the dashboard counters.
"""

from datetime import date
from decimal import Decimal

import pytest

from app.core.config import settings
from app.modules.reports.services import SalesReportService


D = Decimal


@pytest.fixture
def trading_day(client, make_product):
    """
    Two sales and one expense:

    - 10 x Widget (100.00, profit 20.00/unit) to Ahmed Khan: total 1200.00, profit 200.00
    - 2 x Gadget (50.00, no profit) to a walk-in: total 100.00, profit 0.00
    - 300.00 rent
    """
    widget = make_product(name="Widget", profit_per_unit=D("20.00"))
    gadget = make_product(name="Gadget", price=D("50.00"))

    credited = client.post("/api/sales/", json={
        "items": [{"product_id": widget.id, "quantity": 10}],
        "customer": {"name": "Ahmed Khan", "phone": "0300-1112233"},
    })
    assert credited.status_code == 201, credited.text
    walk_in = client.post("/api/sales/", json={
        "items": [{"product_id": gadget.id, "quantity": 2}],
        "amount_paid": "100.00",
    })
    assert walk_in.status_code == 201, walk_in.text

    today = credited.json()["created_at"][:10]
    client.post("/api/expenses/", json={"category": "rent", "amount": "300.00", "date": today})
    return {"widget": widget, "gadget": gadget, "today": today}


class TestBusinessReport:
    """GET /api/reports"""

    def test_summary(self, client, trading_day):
        response = client.get("/api/reports")
        assert response.status_code == 200
        report = response.json()

        assert report["date_range"] == "All Time"
        summary = report["summary"]
        assert summary["total_sales"] == 2
        assert D(summary["total_revenue"]) == D("1300.00")
        assert D(summary["total_profit"]) == D("200.00")
        assert D(summary["total_expenses"]) == D("300.00")
        assert D(summary["net_profit"]) == D("-100.00")
        assert D(summary["profit_margin"]) == D("15.38")
        assert D(summary["average_order_value"]) == D("650.00")

    def test_rankings(self, client, trading_day):
        report = client.get("/api/reports").json()

        products = report["top_products"]
        assert [p["name"] for p in products] == ["Widget", "Gadget"]
        assert products[0]["quantity"] == 10
        assert D(products[0]["revenue"]) == D("1000.00")
        assert D(products[0]["profit"]) == D("166.67")

        customers = {c["name"]: c for c in report["top_customers"]}
        assert customers[settings.WALK_IN_CUSTOMER_NAME]["customer_id"] is None
        assert D(customers["Ahmed Khan"]["revenue"]) == D("1200.00")

        expenses = report["expense_categories"]
        assert [(e["category"], D(e["amount"]), e["count"]) for e in expenses] == [("rent", D("300.00"), 1)]
        assert len(report["sales_trend"]) == 1
        assert report["sales_trend"][0]["sales"] == 2

        statuses = {s["customer"]: s["status"] for s in report["recent_sales"]}
        assert statuses == {"Ahmed Khan": "pending", settings.WALK_IN_CUSTOMER_NAME: "paid"}

    def test_date_range_is_inclusive(self, client, trading_day):
        today = trading_day["today"]
        report = client.get("/api/reports", params={"start_date": today, "end_date": today}).json()
        assert report["date_range"] == f"{today} - {today}"
        assert report["summary"]["total_sales"] == 2

    def test_period_without_activity(self, client, trading_day):
        report = client.get("/api/reports", params={"start_date": "2000-01-01", "end_date": "2000-01-31"}).json()
        assert report["summary"]["total_sales"] == 0
        assert D(report["summary"]["profit_margin"]) == D("0.00")
        assert D(report["summary"]["average_order_value"]) == D("0.00")
        assert report["top_products"] == []

    def test_inverted_range_is_rejected(self, client):
        response = client.get("/api/reports", params={"start_date": "2026-02-01", "end_date": "2026-01-01"})
        assert response.status_code == 422

    def test_csv_export(self, client, trading_day):
        response = client.get("/api/reports", params={"export": "csv", "section": "products"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert len(lines) == 3
        assert lines[1].startswith(str(trading_day["widget"].id))

    def test_unknown_export_section(self, client):
        response = client.get("/api/reports", params={"export": "csv", "section": "inventory"})
        assert response.status_code == 422

    def test_service_rejects_inverted_range(self, db_session):
        with pytest.raises(ValueError):
            SalesReportService(db_session).get_report(date(2026, 2, 1), date(2026, 1, 1))


class TestDashboard:
    """GET /api/dashboard"""

    def test_counters(self, client, trading_day, make_product):
        make_product(name="Almost gone", quantity=3)
        client.post("/api/ograi/transactions", json={
            "supplier_name": "Metro Wholesale",
            "product_name": "Rice 25kg",
            "quantity": "10",
            "price_per_unit": "50.00",
            "transport_fee": "20.00",
            "amount_paid": "100.00",
        })

        response = client.get("/api/dashboard")
        assert response.status_code == 200
        dashboard = response.json()

        assert dashboard["total_sales"] == 2
        assert D(dashboard["today_sales"]) == D("1300.00")
        assert D(dashboard["total_revenue"]) == D("1300.00")
        assert dashboard["total_products"] == 3
        assert dashboard["low_stock"] == 1
        assert dashboard["pending_payments"] == 1
        assert D(dashboard["supplier_balance"]) == D("420.00")

        activities = dashboard["recent_activities"]
        assert len(activities) == 2
        assert {a["type"] for a in activities} == {"sale"}
        assert any(a["description"].endswith("Ahmed Khan") for a in activities)

    def test_empty_shop(self, client):
        dashboard = client.get("/api/dashboard").json()
        assert dashboard["total_sales"] == 0
        assert D(dashboard["supplier_balance"]) == D("0.00")
        assert dashboard["recent_activities"] == []
