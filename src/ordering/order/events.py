"""Domain events for the Order aggregate.

All events are versioned, immutable facts. They are raised by the aggregate
and dispatched synchronously to the order timeline logger; nothing outside the
service consumes them.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checkout submission was accepted and an order number assigned."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    total_amount = Float(required=True)
    currency = String(default="EUR")
    coupon_code = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by_type = String(required=True)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentRecorded:
    """The payment provider reported the outcome of a checkout form."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    succeeded = Boolean(required=True)
    payment_reference = String()
    reason = String()
