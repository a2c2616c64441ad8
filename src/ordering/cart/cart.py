"""Shopping Cart aggregate — the shopper's line items and session coupon.

The cart is a plain CQRS aggregate held in memory by ``CartStore`` and
persisted as a snapshot through a ``CartStorage`` port. Lines are keyed by
product and chosen options; adding the same product with the same options
again grows the existing line instead of creating a new one.

Every line respects its product's ordering rules: the quantity is never below
the minimum order and is always a multiple of the order increment.
"""

import json
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from ordering.coupon.coupon import Coupon
from ordering.domain import ordering
from ordering.shared.money import ZERO, to_decimal

SNAPSHOT_VERSION = 2


def _canonical_options(options) -> str:
    return json.dumps(options or {}, sort_keys=True, separators=(",", ":"))


def _round_up(quantity: int, increment: int) -> int:
    return math.ceil(quantity / increment) * increment


def _largest_allowed(max_order: int | None, increment: int) -> int | None:
    if max_order is None:
        return None
    return max_order - (max_order % increment)


@dataclass(frozen=True)
class ProductSelection:
    """A configured product the shopper wants to put in the cart.

    Without an explicit ``order_increment`` quantities step by ``min_order``.
    """

    product_id: str
    name: str
    unit_price: Decimal
    min_order: int = 1
    order_increment: int | None = None
    max_order: int | None = None
    options: dict | None = None
    sku: str | None = None
    notes: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        if self.order_increment is None:
            object.__setattr__(self, "order_increment", self.min_order)
        errors = {}
        if self.unit_price < ZERO:
            errors["unit_price"] = ["Unit price must not be negative"]
        if self.min_order < 1:
            errors["min_order"] = ["Minimum order must be at least 1"]
        if self.order_increment < 1:
            errors["order_increment"] = ["Order increment must be at least 1"]
        elif self.min_order % self.order_increment:
            errors["min_order"] = [f"Minimum order must be a multiple of the order increment ({self.order_increment})"]
        if self.max_order is not None and self.max_order < self.min_order:
            errors["max_order"] = ["Maximum order must not be below the minimum order"]
        if errors:
            raise ValidationError(errors)


@ordering.entity(part_of="ShoppingCart")
class CartLineItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    min_order = Integer(default=1, min_value=1)
    order_increment = Integer(default=1, min_value=1)
    max_order = Integer()
    options = Text()  # JSON: canonical option dict
    notes = Text()
    added_at = DateTime()

    @invariant.post
    def quantity_must_respect_ordering_rules(self):
        if self.quantity is None:
            return
        if self.quantity < (self.min_order or 1):
            raise ValidationError({"quantity": [f"Quantity must be at least {self.min_order}"]})
        if self.quantity % (self.order_increment or 1):
            raise ValidationError({"quantity": [f"Quantity must be a multiple of {self.order_increment}"]})

    @property
    def line_total(self) -> Decimal:
        return to_decimal(self.unit_price) * self.quantity

    @property
    def option_values(self) -> dict:
        return json.loads(self.options) if self.options else {}

    def accepts(self, quantity: int) -> bool:
        """Whether ``quantity`` satisfies this line's ordering rules."""
        return quantity >= self.min_order and quantity % self.order_increment == 0

    def fit(self, quantity: int) -> int:
        """Clamp ``quantity`` to the line's maximum order, if it has one."""
        cap = _largest_allowed(self.max_order, self.order_increment)
        if cap is not None and cap >= self.min_order:
            return min(quantity, cap)
        return quantity


@ordering.aggregate
class ShoppingCart:
    session_id = String(max_length=255)
    items = HasMany(CartLineItem)
    applied_coupon = Text()  # JSON: coupon snapshot held for this session
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id=None):
        now = datetime.now(UTC)
        return cls(session_id=session_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_line(self, line_id):
        return next((i for i in self.items if str(i.id) == str(line_id)), None)

    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), ZERO)

    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def coupon(self) -> Coupon | None:
        return Coupon.from_dict(json.loads(self.applied_coupon)) if self.applied_coupon else None

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product: ProductSelection, quantity=None):
        """Add a product, or grow the line that already holds it with the same options."""
        if quantity is None:
            quantity = product.min_order
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be a whole number of at least 1"]})

        options = _canonical_options(product.options)
        existing = next(
            (i for i in self.items if str(i.product_id) == str(product.product_id) and (i.options or "{}") == options),
            None,
        )
        added = _round_up(quantity, product.order_increment)
        now = datetime.now(UTC)

        if existing:
            existing.quantity = existing.fit(existing.quantity + added)
            line = existing
        else:
            line = CartLineItem(
                product_id=product.product_id,
                name=product.name,
                sku=product.sku,
                unit_price=float(product.unit_price),
                quantity=max(added, product.min_order),
                min_order=product.min_order,
                order_increment=product.order_increment,
                max_order=product.max_order,
                options=options,
                notes=product.notes,
                added_at=now,
            )
            line.quantity = line.fit(line.quantity)
            self.add_items(line)

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                product_id=str(product.product_id),
                unit_price=line.unit_price,
                quantity_added=added,
                line_quantity=line.quantity,
            )
        )
        return line

    def update_item_quantity(self, line_id, new_quantity) -> bool:
        """Set a line's quantity. Quantities breaking the line's rules are ignored."""
        line = self.find_line(line_id)
        if line is None:
            raise ValidationError({"line_id": ["Item not found in cart"]})

        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or not line.accepts(new_quantity):
            return False

        new_quantity = line.fit(new_quantity)
        if new_quantity == line.quantity:
            return True

        previous_quantity = line.quantity
        line.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )
        return True

    def update_item_notes(self, line_id, notes):
        line = self.find_line(line_id)
        if line is None:
            raise ValidationError({"line_id": ["Item not found in cart"]})

        line.notes = notes
        self.updated_at = datetime.now(UTC)

    def remove_item(self, line_id):
        line = self.find_line(line_id)
        if line is None:
            raise ValidationError({"line_id": ["Item not found in cart"]})

        self.remove_items(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self):
        """Drop every line and the session coupon."""
        lines = list(self.items)
        for line in lines:
            self.remove_items(line)
        self.applied_coupon = None
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), lines_removed=len(lines)))

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def attach_coupon(self, coupon: Coupon):
        self.applied_coupon = json.dumps(coupon.to_dict())
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=coupon.code,
                discount_type=coupon.discount_type.value,
                discount_value=float(coupon.value),
            )
        )

    def detach_coupon(self):
        coupon = self.coupon
        self.applied_coupon = None
        if coupon is None:
            return

        self.updated_at = datetime.now(UTC)
        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=coupon.code))

    # -------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------
    def to_snapshot(self) -> dict:
        return {
            "version": SNAPSHOT_VERSION,
            "cart_id": str(self.id),
            "session_id": self.session_id,
            "applied_coupon": json.loads(self.applied_coupon) if self.applied_coupon else None,
            "items": [
                {
                    "id": str(item.id),
                    "product_id": str(item.product_id),
                    "name": item.name,
                    "sku": item.sku,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                    "min_order": item.min_order,
                    "order_increment": item.order_increment,
                    "max_order": item.max_order,
                    "options": item.option_values,
                    "notes": item.notes,
                    "added_at": item.added_at.isoformat() if item.added_at else None,
                }
                for item in self.items
            ],
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_snapshot(cls, snapshot: dict):
        if snapshot.get("version") != SNAPSHOT_VERSION:
            raise ValidationError({"snapshot": [f"Unsupported cart snapshot version {snapshot.get('version')!r}"]})

        updated_at = snapshot.get("updated_at")
        coupon = snapshot.get("applied_coupon")
        cart = cls(
            id=snapshot["cart_id"],
            session_id=snapshot.get("session_id"),
            applied_coupon=json.dumps(Coupon.from_dict(coupon).to_dict()) if coupon else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
        for item in snapshot.get("items", []):
            added_at = item.get("added_at")
            cart.add_items(
                CartLineItem(
                    id=item["id"],
                    product_id=item["product_id"],
                    name=item["name"],
                    sku=item.get("sku"),
                    unit_price=item["unit_price"],
                    quantity=item["quantity"],
                    min_order=item.get("min_order") or 1,
                    order_increment=item.get("order_increment") or item.get("min_order") or 1,
                    max_order=item.get("max_order"),
                    options=_canonical_options(item.get("options")),
                    notes=item.get("notes"),
                    added_at=datetime.fromisoformat(added_at) if added_at else None,
                )
            )
        return cart
