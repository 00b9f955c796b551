"""
Tests for the Categories module
"""

from app.modules.categories.models import Category


class TestCategoryAPI:

    def test_create_list_and_count_products(self, client, make_product, category):
        make_product()
        make_product()

        response = client.post("/api/categories/", json={"name": "Snacks"})
        assert response.status_code == 201

        listing = client.get("/api/categories/").json()
        assert listing["total"] == 2
        counts = {c["name"]: c["product_count"] for c in listing["categories"]}
        assert counts == {"Beverages": 2, "Snacks": 0}

    def test_duplicate_name(self, client, category):
        response = client.post("/api/categories/", json={"name": category.name})
        assert response.status_code == 409

    def test_update(self, client, category):
        response = client.patch(f"/api/categories/{category.id}", json={"description": "Cold drinks"})
        assert response.status_code == 200
        assert response.json()["description"] == "Cold drinks"

    def test_category_with_products_cannot_be_deleted(self, client, make_product, category):
        make_product()
        response = client.delete(f"/api/categories/{category.id}")
        assert response.status_code == 409

    def test_delete_empty_category(self, client, db_session, category):
        assert client.delete(f"/api/categories/{category.id}").status_code == 204
        assert db_session.query(Category).count() == 0

    def test_unknown_category(self, client):
        assert client.get("/api/categories/999").status_code == 404
