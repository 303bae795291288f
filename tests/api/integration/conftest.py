import pytest
from checkout.api import create_app
from fastapi.testclient import TestClient


@pytest.fixture()
def app(services):
    return create_app(services)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def headers(owner):
    return {"X-Owner-Kind": owner.kind, "X-Owner-Id": owner.id}


@pytest.fixture()
def admin_headers():
    return {"X-Admin-Id": "admin-001"}


@pytest.fixture()
def product_id(client, admin_headers):
    response = client.post("/products", json={"name": "Notebook", "price": 100.0, "stock": 10}, headers=admin_headers)
    assert response.status_code == 201
    return response.json()["product_id"]
