"""Application tests for status updates via domain.process()."""

import json

import pytest
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder
from ordering.order.status import UpdateOrderStatus
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

ADDRESS = {
    "full_name": "Ada Demir",
    "email": "ada@example.com",
    "full_address": "Kordon Cd. 12",
    "city": "Izmir",
    "country": "TR",
}


@pytest.fixture()
def order_id():
    result = current_domain.process(
        PlaceOrder(
            items=json.dumps([{"product_id": "p-1", "name": "Pouch", "quantity": 100, "unit_price": 1.0}]),
            shipping_address=json.dumps(ADDRESS),
            billing_address=json.dumps(ADDRESS),
            subtotal=100.0,
            shipping_cost=25.0,
            vat_amount=22.0,
            total_amount=147.0,
        ),
        asynchronous=False,
    )
    return result["order_id"]


def _update(order_id, status, **kwargs):
    current_domain.process(UpdateOrderStatus(order_id=order_id, new_status=status, **kwargs), asynchronous=False)
    return current_domain.repository_for(Order).get(order_id)


class TestUpdateOrderStatus:
    def test_status_moves_forward(self, order_id):
        order = _update(order_id, "confirmed")
        assert order.status == "confirmed"

    def test_history_is_persisted(self, order_id):
        _update(order_id, "confirmed", note="Artwork approved")
        order = _update(order_id, "processing")
        history = sorted(order.status_history, key=lambda t: t.created_at)
        assert [t.new_status for t in history] == ["pending", "confirmed", "processing"]
        assert "Artwork approved" in [t.note for t in history]

    def test_shipping_details(self, order_id):
        order = _update(order_id, "shipped", tracking_number="TRK-1", shipping_company="DHL")
        assert order.tracking_number == "TRK-1"
        assert order.shipping_company == "DHL"

    def test_backward_move_rejected(self, order_id):
        _update(order_id, "shipped")
        with pytest.raises(ValidationError):
            _update(order_id, "processing")
        assert current_domain.repository_for(Order).get(order_id).status == "shipped"

    def test_cancelled_order_is_final(self, order_id):
        _update(order_id, "cancelled", changed_by_type="customer")
        with pytest.raises(ValidationError):
            _update(order_id, "confirmed")

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            _update("missing-order", "confirmed")
