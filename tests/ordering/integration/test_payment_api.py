"""Integration tests for Payment API endpoints via TestClient."""

from ordering.payment.gateway import get_gateway


def _checkout(client, order_id):
    return client.post("/payments/checkout", json={"order_id": order_id})


class TestPaymentCheckout:
    def test_returns_payment_form(self, client, placed_order):
        response = _checkout(client, placed_order["order_id"])
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "fake-checkout-form" in body["data"]["payment_form"]
        assert body["data"]["payment_page_url"].startswith("https://")

    def test_unknown_order_is_404(self, client):
        assert _checkout(client, "missing").status_code == 404

    def test_gateway_refusal_is_402(self, client, placed_order):
        get_gateway().configure(should_succeed=False, failure_reason="Provider offline")
        response = _checkout(client, placed_order["order_id"])
        assert response.status_code == 402
        assert response.json()["message"] == "Provider offline"

    def test_paid_order_is_400(self, client, placed_order):
        order_id = placed_order["order_id"]
        token = _checkout(client, order_id).json()["data"]["token"]
        client.post("/payments/callback", json={"order_id": order_id, "token": token})

        response = _checkout(client, order_id)
        assert response.status_code == 400
        assert response.json()["message"] == "This order has already been paid"


class TestPaymentCallback:
    def test_successful_callback_confirms_order(self, client, placed_order):
        order_id = placed_order["order_id"]
        token = _checkout(client, order_id).json()["data"]["token"]

        response = client.post("/payments/callback", json={"order_id": order_id, "token": token})
        assert response.status_code == 200
        assert response.json()["data"] == {"succeeded": True, "status": "confirmed"}

    def test_declined_callback(self, client, placed_order):
        order_id = placed_order["order_id"]
        token = _checkout(client, order_id).json()["data"]["token"]
        get_gateway().configure(should_succeed=False, failure_reason="Card declined")

        response = client.post("/payments/callback", json={"order_id": order_id, "token": token})
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Card declined"
        assert body["data"]["status"] == "pending"

    def test_forged_token_is_400(self, client, placed_order):
        order_id = placed_order["order_id"]
        _checkout(client, order_id)

        response = client.post("/payments/callback", json={"order_id": order_id, "token": "forged"})
        assert response.status_code == 400
        assert response.json()["message"] == "Payment token does not belong to this order"

        order = client.get(f"/orders/{order_id}").json()["data"]
        assert order["payment_status"] == "pending"
