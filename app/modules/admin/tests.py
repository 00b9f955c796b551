"""
Tests for the Admin module

Covers the clean-database counts and deletions (ordering, guards and
re-derivation of the balances that survive) and the reconcile endpoint.
"""

from decimal import Decimal

import pytest

from app.modules.customers.models import Customer
from app.modules.ledger.projector import SaleStatus, PurchaseStatus
from app.modules.ograi.models import Supplier, OgraiTransaction, OgraiPaymentHistory
from app.modules.products.models import Product
from app.modules.sales.models import Sale, SaleItem, PaymentHistory, SaleReturn, EntryType


D = Decimal


@pytest.fixture
def shop(client, make_product):
    """One paid sale with a return (refund entry included), one paid-up purchase and one expense."""
    product = make_product(name="Widget", profit_per_unit=D("20.00"))
    sale = client.post("/api/sales/", json={
        "items": [{"product_id": product.id, "quantity": 5}],
        "customer": {"name": "Sara Malik"},
    }).json()
    refund = client.post("/api/returns/", json={
        "sale_id": sale["id"],
        "reason": "Damaged",
        "items": [{"product_id": product.id, "quantity": 1}],
    })
    assert refund.status_code == 201, refund.text
    purchase = client.post("/api/ograi/transactions", json={
        "supplier_name": "Metro Wholesale",
        "product_name": "Rice 25kg",
        "quantity": "4",
        "price_per_unit": "25.00",
        "amount_paid": "100.00",
    }).json()
    client.post("/api/expenses/", json={"category": "rent", "amount": "450.00", "date": "2026-03-01"})
    return {"product": product, "sale": sale, "purchase": purchase}


def clean(client, **groups):
    return client.request("DELETE", "/api/admin/clean-database", json=groups)


class TestCleanDatabaseCounts:

    def test_counts(self, client, shop):
        response = client.get("/api/admin/clean-database")
        assert response.status_code == 200
        counts = response.json()

        assert counts["will_delete"]["sales"] == 1
        assert counts["will_delete"]["returns"] == 1
        assert counts["will_delete"]["payment_history"] == 2
        assert counts["will_delete"]["customers"] == 1
        assert counts["will_delete"]["ograi_payment_history"] == 1
        assert counts["will_keep"] == {"categories": 1, "products": 1}


class TestCleanDatabase:

    def test_sales_take_their_children(self, client, db_session, shop):
        response = clean(client, sales=True, customers=True)
        assert response.status_code == 200
        deleted = response.json()["deleted_counts"]
        assert deleted["sales"] == 1
        assert deleted["returns"] == 1
        assert deleted["payment_history"] == 2

        for model in (Sale, SaleItem, PaymentHistory, SaleReturn, Customer):
            assert db_session.query(model).count() == 0
        assert db_session.query(Product).count() == 1
        assert db_session.query(OgraiTransaction).count() == 1

    def test_customers_referenced_by_sales_are_kept(self, client, db_session, shop):
        response = clean(client, customers=True)
        assert response.status_code == 409
        assert db_session.query(Customer).count() == 1

    def test_returns_alone_are_reversed(self, client, db_session, shop):
        response = clean(client, returns=True)
        assert response.status_code == 200
        assert response.json()["deleted_counts"] == {"return_items": 1, "returns": 1}

        assert db_session.query(SaleReturn).count() == 0
        entries = db_session.query(PaymentHistory).all()
        assert [e.entry_type for e in entries] == [EntryType.PAYMENT]

        sale = db_session.query(Sale).one()
        db_session.refresh(sale)
        assert sale.total_amount == D("600.00")
        assert sale.amount_paid == D("600.00")
        assert sale.payment_status == SaleStatus.PAID
        assert sum(item.quantity for item in sale.sale_items) == 5
        assert db_session.query(Product).one().quantity == 45

        # the initial payment is the only entry left, so it can go
        response = client.delete(f"/api/payment-history/{entries[0].id}")
        assert response.status_code == 200
        assert response.json()["payment_status"] == "pending"

    def test_entries_only_re_derives_sales(self, client, db_session, shop):
        response = clean(client, payment_history=True)
        assert response.status_code == 200

        sale = db_session.query(Sale).one()
        assert sale.amount_paid == D("0.00")
        assert sale.remaining_amount == sale.total_amount
        assert sale.payment_status == SaleStatus.PENDING
        assert db_session.query(SaleReturn).count() == 1

    def test_purchase_entries_only_re_derives_purchases(self, client, db_session, shop):
        response = clean(client, ograi_payment_history=True)
        assert response.status_code == 200

        transaction = db_session.query(OgraiTransaction).one()
        assert db_session.query(OgraiPaymentHistory).count() == 0
        assert transaction.amount_paid == D("0.00")
        assert transaction.remaining_amount == D("100.00")
        assert transaction.status == PurchaseStatus.PENDING

    def test_suppliers_take_their_purchases(self, client, db_session, shop):
        response = clean(client, suppliers=True)
        assert response.status_code == 200
        assert db_session.query(Supplier).count() == 0
        assert db_session.query(OgraiTransaction).count() == 0
        assert db_session.query(OgraiPaymentHistory).count() == 0

    def test_expenses_and_stock_reset(self, client, db_session, shop):
        response = clean(client, expenses=True, reset_product_quantities=True)
        assert response.status_code == 200
        assert response.json()["deleted_counts"] == {"expenses": 1, "reset_product_quantities": True}
        assert db_session.query(Product).one().quantity == 0

    def test_nothing_selected(self, client, db_session, shop):
        response = clean(client)
        assert response.status_code == 200
        assert response.json()["deleted_counts"] == {}
        assert db_session.query(Sale).count() == 1

    def test_staff_cannot_clean(self, staff_client):
        assert clean(staff_client, sales=True).status_code == 403
        assert staff_client.get("/api/admin/clean-database").status_code == 403


class TestReconcileEndpoint:

    def test_reports_then_repairs_drift(self, client, db_session, shop):
        sale = db_session.query(Sale).one()
        sale.amount_paid = D("999.00")
        db_session.commit()

        report = client.post("/api/admin/reconcile").json()
        assert report["checked_sales"] == 1
        assert report["checked_purchases"] == 1
        assert [(d["kind"], d["id"]) for d in report["drifted"]] == [("sale", sale.id)]
        assert report["repaired"] is False

        repaired = client.post("/api/admin/reconcile", params={"repair": "true"}).json()
        assert repaired["repaired"] is True
        assert client.post("/api/admin/reconcile").json()["drifted"] == []

    def test_staff_cannot_reconcile(self, staff_client):
        assert staff_client.post("/api/admin/reconcile").status_code == 403
