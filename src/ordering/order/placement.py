"""Order placement — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Float, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, generate_order_number
from ordering.settings import checkout_settings

logger = structlog.get_logger(__name__)

MAX_NUMBER_ATTEMPTS = 5


@ordering.command(part_of="Order")
class PlaceOrder:
    items = Text(required=True)  # JSON: list of item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text(required=True)  # JSON: address dict
    subtotal = Float(required=True)
    discount_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    vat_amount = Float(default=0.0)
    total_amount = Float(required=True)
    currency = String(max_length=3, default="EUR")
    coupon_code = String(max_length=32)


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


def _unused_order_number(repo, prefix):
    for _ in range(MAX_NUMBER_ATTEMPTS):
        candidate = generate_order_number(prefix)
        if not repo._dao.query.filter(order_number=candidate).all().items:
            return candidate
    raise RuntimeError(f"Could not allocate a unique order number after {MAX_NUMBER_ATTEMPTS} attempts")


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)
        settings = checkout_settings()

        order = Order.place(
            order_number=_unused_order_number(repo, settings.order_number_prefix),
            items_data=_loads(command.items),
            shipping_address=_loads(command.shipping_address),
            billing_address=_loads(command.billing_address),
            pricing={
                "subtotal": command.subtotal,
                "discount_amount": command.discount_amount or 0.0,
                "shipping_cost": command.shipping_cost or 0.0,
                "vat_amount": command.vat_amount or 0.0,
                "total_amount": command.total_amount,
            },
            currency=command.currency or settings.currency,
            coupon_code=command.coupon_code,
        )
        repo.add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=order.total_amount,
        )
        return {"order_id": str(order.id), "order_number": order.order_number}
