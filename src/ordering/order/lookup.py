"""Read-side queries over placed orders."""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


def find_order_for_tracking(order_number: str, email: str) -> Order:
    """Return the order only when both the number and a contact e-mail match.

    Order numbers are always issued upper-case, so the number is compared
    after upper-casing the input. The e-mail may be the shipping or the billing
    contact. A mismatch on either side is indistinguishable from a missing
    order.
    """
    number = (order_number or "").strip().upper()
    if not number or not (email or "").strip():
        raise ObjectNotFoundError({"_entity": "Order not found"})

    repo = current_domain.repository_for(Order)
    matches = repo._dao.query.filter(order_number=number).all().items
    for order in matches:
        if order.matches_contact(email):
            return order

    logger.info("Order tracking lookup failed", order_number=number)
    raise ObjectNotFoundError({"_entity": "Order not found"})


def list_orders(status=None) -> list[Order]:
    """Newest first, optionally restricted to one status."""
    repo = current_domain.repository_for(Order)
    if status:
        try:
            status = OrderStatus(status.strip().lower()).value
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status '{status}'"]}) from None
        orders = repo._dao.query.filter(status=status).all().items
    else:
        orders = repo._dao.query.all().items
    return sorted(orders, key=lambda o: (o.created_at is not None, o.created_at), reverse=True)
