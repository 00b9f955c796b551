"""
Tests for the Expenses module
"""

from decimal import Decimal


D = Decimal


class TestExpenseAPI:

    def _create(self, client, **overrides):
        payload = {"category": "rent", "amount": "450.00", "date": "2026-03-01", "description": "March rent"}
        payload.update(overrides)
        response = client.post("/api/expenses/", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    def test_create_records_author(self, client, admin_user):
        expense = self._create(client)
        assert expense["created_by"] == admin_user.id
        assert D(expense["amount"]) == D("450.00")

    def test_date_range_and_category_filters(self, client):
        self._create(client)
        self._create(client, category="utilities", amount="80.25", date="2026-03-15")
        self._create(client, category="utilities", amount="90.00", date="2026-04-15")

        march = client.get("/api/expenses/", params={"start_date": "2026-03-01", "end_date": "2026-03-31"}).json()
        assert march["total"] == 2
        assert D(march["total_amount"]) == D("530.25")

        utilities = client.get("/api/expenses/", params={"category": "utilities"}).json()
        assert utilities["total"] == 2

    def test_inverted_range_is_rejected(self, client):
        response = client.get("/api/expenses/", params={"start_date": "2026-04-01", "end_date": "2026-03-01"})
        assert response.status_code == 400

    def test_non_positive_amount_is_rejected(self, client):
        response = client.post("/api/expenses/", json={"category": "rent", "amount": "0", "date": "2026-03-01"})
        assert response.status_code == 422

    def test_update_and_delete(self, client):
        expense = self._create(client)
        response = client.patch(f"/api/expenses/{expense['id']}", json={"amount": "500.00"})
        assert response.status_code == 200
        assert D(response.json()["amount"]) == D("500.00")

        assert client.delete(f"/api/expenses/{expense['id']}").status_code == 200
        assert client.get(f"/api/expenses/{expense['id']}").status_code == 404
