"""
Tests for the Products module

Covers CRUD, the derived stock status, search/filters and the delete guard
for products with sales history.
"""

from decimal import Decimal

from app.modules.products.models import Product, StockStatus


D = Decimal


class TestProductModel:

    def test_stock_status(self):
        assert Product(quantity=0, min_stock=10).stock_status == StockStatus.OUT_OF_STOCK
        assert Product(quantity=9, min_stock=10).stock_status == StockStatus.LOW_STOCK
        assert Product(quantity=10, min_stock=10).stock_status == StockStatus.IN_STOCK


class TestProductAPI:

    def test_create_and_get(self, client, category):
        response = client.post("/api/products/", json={
            "name": "Orange Juice 1L",
            "category_id": category.id,
            "price": "3.50",
            "quantity": 40,
            "units_per_box": 12,
            "profit_per_unit": "0.50",
            "profit_per_box": "5.00",
            "barcode": "7501234567890"
        })
        assert response.status_code == 201
        product = response.json()
        assert D(product["price"]) == D("3.50")
        assert product["stock_status"] == "In Stock"
        assert product["category"]["name"] == category.name

        response = client.get(f"/api/products/{product['id']}")
        assert response.status_code == 200
        assert response.json()["barcode"] == "7501234567890"

    def test_unknown_category_is_rejected(self, client):
        response = client.post("/api/products/", json={"name": "X", "category_id": 999, "price": "1.00", "quantity": 1})
        assert response.status_code == 404

    def test_negative_quantity_is_rejected(self, client):
        response = client.post("/api/products/", json={"name": "X", "price": "1.00", "quantity": -1})
        assert response.status_code == 422

    def test_search_and_stock_filter(self, client, make_product):
        make_product(name="Cola 1.5L", quantity=0)
        make_product(name="Cola Zero", quantity=5, barcode="111")
        make_product(name="Rice 1kg", quantity=100)

        by_name = client.get("/api/products/", params={"search": "cola"}).json()
        assert by_name["total"] == 2

        by_barcode = client.get("/api/products/", params={"search": "111"}).json()
        assert [p["name"] for p in by_barcode["items"]] == ["Cola Zero"]

        out = client.get("/api/products/", params={"stock_status": "Out of Stock"}).json()
        assert [p["name"] for p in out["items"]] == ["Cola 1.5L"]

        low = client.get("/api/products/", params={"stock_status": "Low Stock"}).json()
        assert [p["name"] for p in low["items"]] == ["Cola Zero"]

    def test_update(self, client, make_product):
        product = make_product()
        response = client.patch(f"/api/products/{product.id}", json={"quantity": 3, "price": "120.00"})
        assert response.status_code == 200
        assert response.json()["quantity"] == 3
        assert response.json()["stock_status"] == "Low Stock"

    def test_delete_unsold_product(self, client, db_session, make_product):
        product = make_product()
        assert client.delete(f"/api/products/{product.id}").status_code == 200
        assert db_session.query(Product).count() == 0

    def test_sold_product_cannot_be_deleted(self, client, make_product):
        product = make_product()
        client.post("/api/sales/", json={"items": [{"product_id": product.id, "quantity": 1}]})
        response = client.delete(f"/api/products/{product.id}")
        assert response.status_code == 409

    def test_staff_cannot_delete(self, staff_client, make_product):
        product = make_product()
        assert staff_client.delete(f"/api/products/{product.id}").status_code == 403
