"""Integration tests for Order API endpoints via TestClient."""

import re

import pytest

from ordering.order.order import Order
from protean.utils.globals import current_domain


class TestPlaceOrderEndpoint:
    def test_returns_envelope_with_order_number(self, client, order_payload):
        response = client.post("/orders", json=order_payload())
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["order_id"]
        assert re.fullmatch(r"PKG-\d{8}-[0-9A-F]{6}", body["data"]["order_number"])

    def test_order_is_stored(self, placed_order):
        order = current_domain.repository_for(Order).get(placed_order["order_id"])
        assert order.total_amount == pytest.approx(628.06)
        assert order.items[0].quantity == 1000

    def test_mismatched_total_is_400(self, client, order_payload):
        response = client.post("/orders", json=order_payload(total_amount=600.0))
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "does not match" in body["message"]
        assert "total_amount" in body["data"]["errors"]

    def test_empty_items_is_422(self, client, order_payload):
        response = client.post("/orders", json=order_payload(items=[]))
        assert response.status_code == 422

    def test_invalid_email_is_422(self, client, order_payload):
        payload = order_payload()
        payload["shipping_address"] = {**payload["shipping_address"], "email": "nobody"}
        response = client.post("/orders", json=payload)
        assert response.status_code == 422


class TestTrackOrderEndpoint:
    def test_track_with_shipping_email(self, client, placed_order):
        response = client.get(
            "/orders/track",
            params={"order_number": placed_order["order_number"], "email": "ada@example.com"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["order_number"] == placed_order["order_number"]
        assert data["status"] == "pending"
        assert data["status_history"][0]["new_status"] == "pending"
        assert data["items"][0]["options"] == {"size": "12x18", "material": "kraft"}

    def test_track_with_billing_email_and_lower_case_number(self, client, placed_order):
        response = client.get(
            "/orders/track",
            params={"order_number": placed_order["order_number"].lower(), "email": "ACCOUNTS@example.com"},
        )
        assert response.status_code == 200

    def test_wrong_email_is_404(self, client, placed_order):
        response = client.get(
            "/orders/track",
            params={"order_number": placed_order["order_number"], "email": "someone@example.com"},
        )
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Order not found", "data": None}

    def test_partial_number_is_404(self, client, placed_order):
        response = client.get(
            "/orders/track",
            params={"order_number": placed_order["order_number"][:-1], "email": "ada@example.com"},
        )
        assert response.status_code == 404


class TestAdminEndpoints:
    def test_status_update(self, client, placed_order):
        response = client.post(
            f"/orders/{placed_order['order_id']}/status",
            json={"status": "processing", "note": "Printing plates ready"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "processing"
        assert [t["new_status"] for t in data["status_history"]] == ["pending", "processing"]

    def test_backward_status_is_400(self, client, placed_order):
        order_id = placed_order["order_id"]
        client.post(f"/orders/{order_id}/status", json={"status": "shipped"})
        response = client.post(f"/orders/{order_id}/status", json={"status": "confirmed"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_unknown_order_is_404(self, client):
        response = client.post("/orders/missing/status", json={"status": "confirmed"})
        assert response.status_code == 404

    def test_list_with_status_filter(self, client, order_payload):
        first = client.post("/orders", json=order_payload()).json()["data"]
        second = client.post("/orders", json=order_payload()).json()["data"]
        client.post(f"/orders/{first['order_id']}/status", json={"status": "cancelled"})

        listed = [o["order_id"] for o in client.get("/orders").json()["data"]]
        assert first["order_id"] in listed
        assert second["order_id"] in listed

        cancelled = client.get("/orders", params={"status": "cancelled"}).json()["data"]
        ids = [o["order_id"] for o in cancelled]
        assert first["order_id"] in ids
        assert second["order_id"] not in ids
        assert all(o["status"] == "cancelled" for o in cancelled)

    def test_list_with_unknown_status_is_400(self, client):
        assert client.get("/orders", params={"status": "lost"}).status_code == 400

    def test_get_order(self, client, placed_order):
        response = client.get(f"/orders/{placed_order['order_id']}")
        assert response.status_code == 200
        assert response.json()["data"]["billing_address"]["email"] == "accounts@example.com"


class TestErrorEnvelopeSchema:
    def test_error_responses_documented(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        ref = "#/components/schemas/ErrorResponse"

        place = paths["/orders"]["post"]["responses"]
        assert place["400"]["content"]["application/json"]["schema"]["$ref"] == ref
        checkout = paths["/payments/checkout"]["post"]["responses"]
        assert checkout["402"]["content"]["application/json"]["schema"]["$ref"] == ref

    def test_not_found_matches_documented_shape(self, client):
        response = client.get("/orders/missing")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Order not found", "data": None}
