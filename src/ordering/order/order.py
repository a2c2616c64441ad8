"""Order aggregate — the placed order and its append-only status history.

An Order is created once at checkout submission with a server-assigned order
number. Afterwards only the fulfillment side changes it, and only its status
(plus payment and shipping bookkeeping) moves. Every status change appends a
``StatusTransition``; entries are never edited or removed.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED / REFUNDED reachable from any non-terminal state
    DELIVERED, CANCELLED and REFUNDED are terminal

Forward skips and same-status retries are accepted; moving backwards along
the canonical flow is not.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import OrderPaymentRecorded, OrderPlaced, OrderStatusChanged
from ordering.shared.money import CENT, ZERO, round_currency, to_decimal


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ChangedBy(Enum):
    SYSTEM = "system"
    ADMIN = "admin"
    CUSTOMER = "customer"


CANONICAL_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
BRANCH_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

_POSITIONS = {status: index for index, status in enumerate(CANONICAL_FLOW)}

DEFAULT_SHIPPING_COMPANY = "Standard Courier"

# Each component of the total is rounded on its own before it is sent
TOTAL_TOLERANCE = Decimal("0.02")


def canonical_position(status) -> int | None:
    """Index of ``status`` in the canonical flow, None for branches and unknown values."""
    try:
        return _POSITIONS.get(OrderStatus(status))
    except ValueError:
        return None


def can_transition(current, target) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    if current in TERMINAL_STATUSES:
        return False
    if target in BRANCH_STATUSES:
        return True
    return _POSITIONS[target] >= _POSITIONS[current]


def generate_order_number(prefix: str = "PKG", now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"{prefix.upper()}-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing contact captured at checkout time."""

    full_name = String(required=True, max_length=255)
    email = String(required=True, max_length=254)
    phone = String(max_length=50)
    company = String(max_length=255)
    full_address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=100)

    @invariant.post
    def email_must_look_like_an_address(self):
        local, _, domain = (self.email or "").partition("@")
        if not local or "." not in domain:
            raise ValidationError({"email": [f"'{self.email}' is not a valid e-mail address"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A cart line frozen at checkout; prices never change afterwards."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    options = Text()  # JSON: chosen option dict
    notes = Text()
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


@ordering.entity(part_of="Order")
class StatusTransition:
    """One recorded status change. Appended, never edited."""

    previous_status = String(max_length=20)
    new_status = String(required=True, max_length=20)
    note = String(max_length=500)
    changed_by_type = String(choices=ChangedBy, default=ChangedBy.SYSTEM.value)
    created_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=40, unique=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)
    payment_token = String(max_length=255)
    items = HasMany(OrderItem)
    status_history = HasMany(StatusTransition)
    subtotal = Float(required=True, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    vat_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="EUR")
    coupon_code = String(max_length=32)
    shipping_address = ValueObject(Address, required=True)
    billing_address = ValueObject(Address, required=True)
    shipping_company = String(max_length=100)
    tracking_number = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        items_data,
        shipping_address,
        billing_address,
        pricing,
        currency="EUR",
        coupon_code=None,
    ):
        """Create an order from a checkout submission.

        Args:
            order_number: Server-assigned, unique order number.
            items_data: List of dicts with product_id, name, quantity,
                        unit_price and optionally sku, options, notes.
            shipping_address: Address dict (full_name, email, full_address, city, country, ...).
            billing_address: Address dict; same shape as shipping_address.
            pricing: Dict with subtotal, discount_amount, shipping_cost,
                     vat_amount and total_amount.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        amounts = cls._checked_amounts(items_data, pricing)
        now = datetime.now(UTC)

        order = cls(
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            subtotal=float(amounts["subtotal"]),
            discount_amount=float(amounts["discount_amount"]),
            shipping_cost=float(amounts["shipping_cost"]),
            vat_amount=float(amounts["vat_amount"]),
            total_amount=float(amounts["total_amount"]),
            currency=currency,
            coupon_code=coupon_code,
            shipping_address=Address(**shipping_address),
            billing_address=Address(**billing_address),
            created_at=now,
            updated_at=now,
        )

        for item in items_data:
            quantity = int(item["quantity"])
            unit_price = to_decimal(item["unit_price"])
            order.add_items(
                OrderItem(
                    product_id=str(item["product_id"]),
                    name=item["name"],
                    sku=item.get("sku"),
                    options=json.dumps(item.get("options") or {}, sort_keys=True),
                    notes=item.get("notes"),
                    quantity=quantity,
                    unit_price=float(unit_price),
                    line_total=float(round_currency(unit_price * quantity)),
                )
            )

        order.add_status_history(
            StatusTransition(
                previous_status=None,
                new_status=OrderStatus.PENDING.value,
                note="Order created",
                changed_by_type=ChangedBy.SYSTEM.value,
                created_at=now,
            )
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                item_count=len(items_data),
                subtotal=order.subtotal,
                total_amount=order.total_amount,
                currency=currency,
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    @staticmethod
    def _checked_amounts(items_data, pricing) -> dict[str, Decimal]:
        """Reject submissions whose figures do not add up to the cent."""
        amounts = {
            key: to_decimal(pricing.get(key) or 0)
            for key in ("subtotal", "discount_amount", "shipping_cost", "vat_amount", "total_amount")
        }
        errors = {}
        for key, value in amounts.items():
            if value < ZERO:
                errors[key] = ["Must not be negative"]

        for item in items_data:
            if int(item["quantity"]) < 1:
                errors["items"] = ["Every item needs a quantity of at least 1"]

        if not errors:
            lines = sum(
                (to_decimal(item["unit_price"]) * int(item["quantity"]) for item in items_data),
                ZERO,
            )
            if abs(round_currency(lines) - round_currency(amounts["subtotal"])) > CENT:
                errors["subtotal"] = [f"Subtotal {amounts['subtotal']} does not match the items ({round_currency(lines)})"]
            if amounts["discount_amount"] > amounts["subtotal"]:
                errors["discount_amount"] = ["Discount cannot exceed the subtotal"]
            expected = (
                amounts["subtotal"] - amounts["discount_amount"] + amounts["shipping_cost"] + amounts["vat_amount"]
            )
            if abs(round_currency(expected) - round_currency(amounts["total_amount"])) > TOTAL_TOLERANCE:
                errors["total_amount"] = [
                    f"Total {amounts['total_amount']} does not match "
                    f"subtotal - discount + shipping + VAT ({round_currency(expected)})"
                ]

        if errors:
            raise ValidationError(errors)
        return amounts

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    def matches_contact(self, email: str) -> bool:
        """Whether ``email`` is the shipping or billing contact on file."""
        wanted = (email or "").strip().lower()
        if not wanted:
            return False
        contacts = {
            (address.email or "").strip().lower()
            for address in (self.shipping_address, self.billing_address)
            if address is not None
        }
        return wanted in contacts

    def _last_transition_at(self):
        timestamps = [t.created_at for t in self.status_history if t.created_at is not None]
        return max(timestamps) if timestamps else None

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_to(
        self,
        new_status,
        note=None,
        changed_by_type=ChangedBy.ADMIN.value,
        tracking_number=None,
        shipping_company=None,
    ):
        """Move the order to ``new_status`` and append the transition to its history."""
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status '{new_status}'"]}) from None

        current = OrderStatus(self.status)
        if not can_transition(current, target):
            if current in TERMINAL_STATUSES:
                reason = f"Order is {current.value}; no further status changes are allowed"
            else:
                reason = f"Cannot move an order back from {current.value} to {target.value}"
            raise ValidationError({"status": [reason]})

        # History timestamps never go backwards, even if the clock does
        now = datetime.now(UTC)
        last = self._last_transition_at()
        if last is not None and last > now:
            now = last

        self.add_status_history(
            StatusTransition(
                previous_status=current.value,
                new_status=target.value,
                note=note or f"Status changed from {current.value} to {target.value}",
                changed_by_type=ChangedBy(changed_by_type).value,
                created_at=now,
            )
        )
        self.status = target.value
        self.updated_at = now

        if target == OrderStatus.SHIPPED:
            self.shipping_company = shipping_company or self.shipping_company or DEFAULT_SHIPPING_COMPANY
            self.tracking_number = tracking_number or self.tracking_number or f"1{uuid4().int % 10**10:010d}"
        if target == OrderStatus.REFUNDED and self.payment_status == PaymentStatus.PAID.value:
            self.payment_status = PaymentStatus.REFUNDED.value

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target.value,
                changed_by_type=ChangedBy(changed_by_type).value,
                changed_at=now,
            )
        )

    def issue_payment_token(self, token: str) -> None:
        """Remember the checkout form token the provider will call back with."""
        self.payment_token = token
        self.updated_at = datetime.now(UTC)

    def check_payment_token(self, token) -> None:
        if not self.payment_token or token != self.payment_token:
            raise ValidationError({"token": ["Payment token does not belong to this order"]})

    def record_payment(self, succeeded, payment_reference=None, reason=None):
        """Record the payment provider's verdict; a first payment confirms the order."""
        if self.payment_status == PaymentStatus.PAID.value:
            raise ValidationError({"payment": ["This order has already been paid"]})
        if self.is_terminal:
            raise ValidationError({"payment": [f"Order is {self.status}; it can no longer be paid"]})

        if succeeded:
            self.payment_status = PaymentStatus.PAID.value
            self.payment_reference = payment_reference
        else:
            self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderPaymentRecorded(
                order_id=str(self.id),
                order_number=self.order_number,
                succeeded=bool(succeeded),
                payment_reference=payment_reference,
                reason=reason,
            )
        )

        if succeeded and OrderStatus(self.status) == OrderStatus.PENDING:
            self.transition_to(
                OrderStatus.CONFIRMED.value,
                note="Payment received",
                changed_by_type=ChangedBy.SYSTEM.value,
            )
