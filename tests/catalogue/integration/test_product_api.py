"""Integration tests for the catalogue administration endpoints via TestClient."""

import pytest
from catalogue.api import product_router
from catalogue.domain import catalogue
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from ordering.api.errors import register_storefront_handlers
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()

    @app.middleware("http")
    async def catalogue_context(request: Request, call_next):
        with catalogue.domain_context():
            return await call_next(request)

    register_exception_handlers(app)
    register_storefront_handlers(app)
    app.include_router(product_router)
    return TestClient(app)


def _register(client, product_id="prod-001", **overrides):
    payload = {
        "product_id": product_id,
        "name": "Electric Kettle 1.7L",
        "sku": "KET-17-BLK",
        "price": 1000.0,
        "on_hand": 25,
        "status": "active",
    }
    payload.update(overrides)
    response = client.post("/products", json=payload)
    assert response.status_code == 201
    return response.json()["product_id"]


class TestRegisterProductEndpoint:
    def test_register_product(self, client):
        product_id = _register(client)
        assert product_id == "prod-001"

    def test_register_generates_an_id(self, client):
        response = client.post("/products", json={"name": "Jiko", "sku": "JKO-1", "price": 750.0})
        assert response.status_code == 201
        assert response.json()["product_id"]

    def test_duplicate_registration_rejected(self, client):
        _register(client)
        response = client.post(
            "/products",
            json={"product_id": "prod-001", "name": "Jiko", "sku": "JKO-1", "price": 750.0},
        )
        assert response.status_code == 400


class TestProductEndpoints:
    def test_get_product(self, client):
        _register(client)

        response = client.get("/products/prod-001")

        assert response.status_code == 200
        body = response.json()
        assert body["sku"] == "KET-17-BLK"
        assert body["on_hand"] == 25
        assert body["sellable"] == 25

    def test_get_unknown_product(self, client):
        response = client.get("/products/missing")
        assert response.status_code == 404
        assert response.json()["code"] == "NotFound"

    def test_change_status(self, client):
        _register(client)

        response = client.put("/products/prod-001/status", json={"status": "archived"})

        assert response.status_code == 200
        assert client.get("/products/prod-001").json()["status"] == "archived"

    def test_receive_stock(self, client):
        _register(client, on_hand=2)

        response = client.post("/products/prod-001/stock", json={"quantity": 3})

        assert response.status_code == 200
        assert response.json()["on_hand"] == 5
