"""
Tests for the Customers module
"""

import pytest

from app.modules.customers.service import CustomerService


class TestFindOrCreate:
    """Customers typed at the till are matched before a new one is created"""

    def test_blank_name_is_walk_in(self, db_session):
        assert CustomerService(db_session).find_or_create("   ", "0300") is None

    def test_match_on_name_and_phone(self, db_session):
        service = CustomerService(db_session)
        first = service.find_or_create("Ahmed Khan", "0300-1112233")
        again = service.find_or_create(" Ahmed Khan ", "0300-1112233")
        other_phone = service.find_or_create("Ahmed Khan", "0311-0000000")

        assert again.id == first.id
        assert other_phone.id != first.id

    def test_name_only_match_without_phone(self, db_session):
        service = CustomerService(db_session)
        first = service.find_or_create("Bilal Shah")
        assert service.find_or_create("Bilal Shah", None).id == first.id


class TestCustomerAPI:

    def test_crud(self, client):
        response = client.post("/api/customers/", json={"name": "Sara Malik", "phone": "0301-4445566"})
        assert response.status_code == 201
        customer_id = response.json()["id"]

        listing = client.get("/api/customers/", params={"search": "sara"}).json()
        assert listing["total"] == 1

        response = client.patch(f"/api/customers/{customer_id}", json={"email": "sara@example.com"})
        assert response.status_code == 200
        assert response.json()["email"] == "sara@example.com"

        assert client.delete(f"/api/customers/{customer_id}").status_code == 200
        assert client.get(f"/api/customers/{customer_id}").status_code == 404

    def test_customer_with_sales_cannot_be_deleted(self, client, make_product):
        product = make_product()
        sale = client.post("/api/sales/", json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "customer": {"name": "Ayesha Noor", "phone": "0333-7778899"}
        }).json()

        response = client.delete(f"/api/customers/{sale['customer']['id']}")
        assert response.status_code == 409

    @pytest.mark.parametrize("payload", [{"name": ""}, {}])
    def test_name_is_required(self, client, payload):
        assert client.post("/api/customers/", json=payload).status_code == 422
