"""
Tests for the Ograi (supplier purchase) module

Covers:
- Purchase creation with the initial combined payment
- Status transitions pending -> complete / overpaid
- Payment edits and deletions re-deriving both balance pairs
- Listing filters, supplier statistics and delete guards
"""

from decimal import Decimal

import pytest

from app.modules.ledger.projector import PurchaseStatus
from app.modules.ledger.service import project_purchase
from app.modules.ograi.models import Supplier, OgraiTransaction, OgraiPaymentHistory


D = Decimal


def create_purchase(client, **overrides):
    payload = {
        "supplier_name": "Metro Wholesale",
        "contact_number": "0421-111222",
        "product_name": "Rice 25kg",
        "quantity": "10",
        "price_per_unit": "50.00",
        "transport_fee": "20.00",
    }
    payload.update(overrides)
    response = client.post("/api/ograi/transactions", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def assert_consistent(db_session, transaction_id):
    transaction = db_session.query(OgraiTransaction).filter(OgraiTransaction.id == transaction_id).first()
    db_session.refresh(transaction)
    projection = project_purchase(db_session, transaction)
    assert transaction.amount_paid == projection.amount_paid
    assert transaction.remaining_amount == projection.remaining_amount
    assert transaction.overpaid_amount == projection.overpaid_amount
    assert transaction.transport_paid == projection.secondary_paid
    assert transaction.transport_remaining == projection.secondary_remaining
    return transaction


class TestPurchaseCreation:
    """Recording purchases"""

    def test_unpaid_purchase_is_pending(self, client, db_session):
        purchase = create_purchase(client)

        assert D(purchase["total_amount"]) == D("500.00")
        assert D(purchase["remaining_amount"]) == D("500.00")
        assert D(purchase["transport_remaining"]) == D("20.00")
        assert purchase["status"] == "pending"
        assert purchase["payment_history"] == []
        assert db_session.query(Supplier).count() == 1

    def test_initial_payment_is_one_combined_entry(self, client, db_session):
        purchase = create_purchase(client, amount_paid="500.00", transport_paid="20.00")

        assert purchase["status"] == "complete"
        assert len(purchase["payment_history"]) == 1
        entry = purchase["payment_history"][0]
        assert D(entry["payment_amount"]) == D("500.00")
        assert D(entry["transport_payment"]) == D("20.00")
        assert D(entry["total_payment"]) == D("520.00")

    def test_supplier_is_reused_by_name(self, client, db_session):
        first = create_purchase(client)
        second = create_purchase(client, product_name="Sugar 50kg")
        assert first["supplier_id"] == second["supplier_id"]
        assert db_session.query(Supplier).count() == 1

    def test_non_positive_quantity_is_rejected(self, client):
        response = client.post("/api/ograi/transactions", json={
            "supplier_name": "Metro", "product_name": "Rice", "quantity": "0", "price_per_unit": "5.00"
        })
        assert response.status_code == 422


class TestPurchasePayments:
    """Status transitions and re-derivation"""

    def test_goods_then_transport_completes(self, client, db_session):
        purchase = create_purchase(client)

        response = client.put(f"/api/ograi/transactions/{purchase['id']}", json={"payment_amount": "500.00"})
        assert response.status_code == 200
        assert response.json()["status"] == "pending"

        response = client.post("/api/ograi/payment-history", json={
            "transaction_id": purchase["id"], "transport_payment": "20.00"
        })
        assert response.status_code == 201
        assert response.json()["status"] == "complete"
        assert D(response.json()["transport_remaining"]) == D("0.00")
        assert_consistent(db_session, purchase["id"])

    def test_overpaying_goods_while_transport_is_owed(self, client, db_session):
        purchase = create_purchase(client)
        response = client.put(f"/api/ograi/transactions/{purchase['id']}", json={"payment_amount": "550.00"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "overpaid"
        assert D(body["overpaid_amount"]) == D("50.00")
        assert D(body["remaining_amount"]) == D("0.00")

    def test_empty_payment_is_rejected(self, client):
        purchase = create_purchase(client)
        response = client.put(f"/api/ograi/transactions/{purchase['id']}", json={})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation_error"

    def test_deleting_the_initial_entry_is_allowed(self, client, db_session):
        purchase = create_purchase(client, amount_paid="200.00")
        client.put(f"/api/ograi/transactions/{purchase['id']}", json={"payment_amount": "100.00"})
        initial = (
            db_session.query(OgraiPaymentHistory)
            .filter(OgraiPaymentHistory.transaction_id == purchase["id"])
            .order_by(OgraiPaymentHistory.id.asc())
            .first()
        )

        response = client.delete(f"/api/ograi/payment-history/{initial.id}")
        assert response.status_code == 200
        assert D(response.json()["amount_paid"]) == D("100.00")
        assert D(response.json()["remaining_amount"]) == D("400.00")
        assert_consistent(db_session, purchase["id"])

    def test_editing_a_payment_re_derives_status(self, client, db_session):
        purchase = create_purchase(client, amount_paid="500.00", transport_paid="20.00")
        entry_id = purchase["payment_history"][0]["id"]

        response = client.patch(f"/api/ograi/payment-history/{entry_id}", json={"transport_payment": "5.00"})
        assert response.status_code == 200
        assert D(response.json()["total_payment"]) == D("505.00")

        transaction = assert_consistent(db_session, purchase["id"])
        assert transaction.status == PurchaseStatus.PENDING
        assert transaction.transport_remaining == D("15.00")

    def test_payment_history_listing(self, client):
        purchase = create_purchase(client, amount_paid="100.00")
        client.put(f"/api/ograi/transactions/{purchase['id']}", json={"payment_amount": "50.00"})
        response = client.get("/api/ograi/payment-history", params={"transaction_id": purchase["id"]})
        assert response.status_code == 200
        assert [D(p["payment_amount"]) for p in response.json()] == [D("50.00"), D("100.00")]


class TestPurchaseListing:

    def test_status_filters(self, client):
        open_purchase = create_purchase(client)
        settled = create_purchase(client, amount_paid="500.00", transport_paid="20.00")

        pending = client.get("/api/ograi/transactions", params={"status": "pending"}).json()
        assert [p["id"] for p in pending["items"]] == [open_purchase["id"]]

        cleared = client.get("/api/ograi/transactions", params={"status": "cleared"}).json()
        assert [p["id"] for p in cleared["items"]] == [settled["id"]]

        everything = client.get("/api/ograi/transactions", params={"status": "all"}).json()
        assert everything["total"] == 2

    def test_unknown_status_filter(self, client):
        response = client.get("/api/ograi/transactions", params={"status": "settled"})
        assert response.status_code == 400

    def test_search(self, client):
        create_purchase(client)
        create_purchase(client, supplier_name="City Traders", product_name="Flour")
        result = client.get("/api/ograi/transactions", params={"search": "flour"}).json()
        assert result["total"] == 1
        assert result["items"][0]["supplier_name"] == "City Traders"


class TestPurchaseDeletion:

    def test_only_complete_purchases_can_be_deleted(self, client, db_session):
        open_purchase = create_purchase(client, amount_paid="100.00")
        response = client.delete(f"/api/ograi/transactions/{open_purchase['id']}")
        assert response.status_code == 409

        settled = create_purchase(client, amount_paid="500.00", transport_paid="20.00")
        response = client.delete(f"/api/ograi/transactions/{settled['id']}")
        assert response.status_code == 200
        assert db_session.query(OgraiTransaction).count() == 1
        assert db_session.query(OgraiPaymentHistory).filter(
            OgraiPaymentHistory.transaction_id == settled["id"]
        ).count() == 0

    def test_staff_cannot_delete(self, staff_client):
        settled = create_purchase(staff_client, amount_paid="500.00", transport_paid="20.00")
        assert staff_client.delete(f"/api/ograi/transactions/{settled['id']}").status_code == 403


class TestSuppliers:
    """Supplier CRUD and outstanding totals"""

    def test_stats(self, client):
        create_purchase(client, amount_paid="100.00")
        create_purchase(client, amount_paid="500.00", transport_paid="20.00")

        suppliers = client.get("/api/ograi/suppliers").json()
        assert len(suppliers) == 1
        stats = suppliers[0]
        assert stats["total_transactions"] == 2
        assert D(stats["total_amount"]) == D("1000.00")
        assert D(stats["total_paid"]) == D("600.00")
        assert D(stats["total_remaining"]) == D("400.00")
        assert D(stats["transport_remaining"]) == D("20.00")

    def test_create_and_update(self, client):
        response = client.post("/api/ograi/suppliers", json={"name": "City Traders"})
        assert response.status_code == 201
        supplier_id = response.json()["id"]

        assert client.post("/api/ograi/suppliers", json={"name": "City Traders"}).status_code == 409

        response = client.patch(f"/api/ograi/suppliers/{supplier_id}", json={"contact_number": "0422-333444"})
        assert response.status_code == 200
        assert response.json()["contact_number"] == "0422-333444"

    def test_supplier_with_purchases_cannot_be_deleted(self, client):
        purchase = create_purchase(client)
        response = client.delete(f"/api/ograi/suppliers/{purchase['supplier_id']}")
        assert response.status_code == 409

    def test_supplier_without_purchases_is_deleted(self, client, db_session):
        supplier_id = client.post("/api/ograi/suppliers", json={"name": "Idle Supplier"}).json()["id"]
        assert client.delete(f"/api/ograi/suppliers/{supplier_id}").status_code == 200
        assert db_session.query(Supplier).count() == 0
