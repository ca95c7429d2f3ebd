"""Tests for Product API endpoints and the product store."""
from unittest.mock import MagicMock

import pytest

from retailer.schemas.product import ProductUpdate
from retailer.services.product_service import ProductService


def test_create_product(client):
    """Test creating a new product."""
    response = client.post(
        "/api/v1/product",
        json={"name": "Test Product", "price": 99.99, "quantity": 100}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Test Product"
    assert data["price"] == 99.99
    assert data["quantity"] == 100
    assert data["id"].startswith("PROD")
    assert len(data["id"]) == 9


def test_create_product_invalid_price(client):
    """Test creating product with invalid price fails."""
    response = client.post(
        "/api/v1/product",
        json={"name": "Invalid Product", "price": -10.00, "quantity": 10}
    )

    assert response.status_code == 422


def test_create_product_negative_quantity(client):
    response = client.post(
        "/api/v1/product",
        json={"name": "Invalid Product", "price": 10.00, "quantity": -1}
    )

    assert response.status_code == 422


def test_create_product_blank_name(client):
    """A name of only whitespace passes the schema but not the business rules."""
    response = client.post(
        "/api/v1/product",
        json={"name": "   ", "price": 10.00, "quantity": 1}
    )

    assert response.status_code == 400


def test_get_product(client):
    """Test getting a product by ID."""
    create_response = client.post(
        "/api/v1/product",
        json={"name": "Get Test", "price": 50.00, "quantity": 25}
    )
    product_id = create_response.json()["id"]

    response = client.get(f"/api/v1/product/{product_id}")

    assert response.status_code == 200
    assert response.json()["name"] == "Get Test"


def test_get_product_not_found(client):
    """Test getting non-existent product returns 404."""
    response = client.get("/api/v1/product/PROD99999")

    assert response.status_code == 404


def test_update_product(client):
    """Test updating price and stock separately."""
    product_id = client.post(
        "/api/v1/product",
        json={"name": "Update Test", "price": 5.00, "quantity": 2}
    ).json()["id"]

    response = client.put(f"/api/v1/product/{product_id}", json={"quantity": 40})

    assert response.status_code == 200
    data = response.json()
    assert data["quantity"] == 40
    assert data["price"] == 5.00

    response = client.put(f"/api/v1/product/{product_id}", json={"price": 6.50})

    assert response.json()["price"] == 6.50
    assert response.json()["quantity"] == 40


def test_update_product_not_found(client):
    response = client.put("/api/v1/product/PROD99999", json={"quantity": 1})

    assert response.status_code == 404


def test_list_products(client):
    """Test listing products with pagination."""
    for i in range(3):
        client.post(
            "/api/v1/product",
            json={"name": f"Product {i}", "price": 10.00 * (i + 1), "quantity": i}
        )

    response = client.get("/api/v1/products")

    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 3
    assert data["total"] == 3

    page = client.get("/api/v1/products?limit=2&offset=2").json()
    assert len(page["items"]) == 1
    assert page["total"] == 3
    assert page["limit"] == 2


def test_search_and_stock_views(client):
    client.post("/api/v1/product", json={"name": "Blue Widget", "price": 1.00, "quantity": 0})
    client.post("/api/v1/product", json={"name": "Red Widget", "price": 1.00, "quantity": 3})
    client.post("/api/v1/product", json={"name": "Gadget", "price": 1.00, "quantity": 50})

    found = client.get("/api/v1/products/search?name=widget").json()
    assert [p["name"] for p in found] == ["Blue Widget", "Red Widget"]

    available = client.get("/api/v1/products/available").json()
    assert [p["name"] for p in available] == ["Gadget", "Red Widget"]

    low_stock = client.get("/api/v1/products/low-stock").json()
    assert [p["name"] for p in low_stock] == ["Blue Widget", "Red Widget"]

    low_stock = client.get("/api/v1/products/low-stock?threshold=3").json()
    assert [p["name"] for p in low_stock] == ["Blue Widget"]


def test_get_product_cached_falls_back_to_database(client):
    product_id = client.post(
        "/api/v1/product",
        json={"name": "Cached", "price": 3.00, "quantity": 9}
    ).json()["id"]

    response = client.get(f"/api/v1/product/{product_id}/cached")

    assert response.status_code == 200
    assert response.json()["quantity"] == 9

    assert client.get("/api/v1/product/PROD99999/cached").status_code == 404


class TestProductCache:

    @pytest.fixture
    def cache(self):
        cache = MagicMock()
        cache.get.return_value = None
        return cache

    def test_cached_read_prefers_cache(self, db_session, cache):
        cache.get.return_value = {"id": "PROD00001", "quantity": 1}

        assert ProductService(db_session, cache).get_cached("PROD00001") == {"id": "PROD00001", "quantity": 1}

    def test_cache_miss_is_filled_from_database(self, db_session, make_product, cache):
        make_product(db_session, "PROD00001", quantity=7)

        data = ProductService(db_session, cache).get_cached("PROD00001")

        assert data["quantity"] == 7
        cache.set.assert_called_once_with("product", "PROD00001", data)

    def test_update_invalidates_cache(self, db_session, make_product, cache):
        make_product(db_session, "PROD00001", quantity=7)

        ProductService(db_session, cache).update("PROD00001", ProductUpdate(quantity=2))

        cache.delete.assert_called_once_with("product", "PROD00001")

