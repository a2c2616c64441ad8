import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from ordering.api import order_router, payment_router, register_error_handlers
from ordering.domain import ordering

ADDRESS = {
    "full_name": "Ada Demir",
    "email": "ada@example.com",
    "phone": "+90 555 000 0000",
    "full_address": "Kordon Cd. 12",
    "city": "Izmir",
    "postal_code": "35210",
    "country": "TR",
}


def _order_payload(**overrides):
    payload = {
        "items": [
            {
                "product_id": "doypack-12x18",
                "name": "Stand-up pouch 12x18",
                "quantity": 1000,
                "unit_price": 0.5148,
                "options": {"size": "12x18", "material": "kraft"},
            }
        ],
        "subtotal": 514.8,
        "discount_amount": 0.0,
        "shipping_cost": 0.0,
        "vat_amount": 113.26,
        "total_amount": 628.06,
        "currency": "EUR",
        "shipping_address": ADDRESS,
        "billing_address": {**ADDRESS, "email": "accounts@example.com"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def order_payload():
    return _order_payload


@pytest.fixture()
def app():
    app = FastAPI()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with ordering.domain_context():
            return await call_next(request)

    app.include_router(order_router)
    app.include_router(payment_router)
    register_error_handlers(app)
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def placed_order(client):
    response = client.post("/orders", json=_order_payload())
    assert response.status_code == 201
    return response.json()["data"]
