"""Cart store — the state container injected wherever the cart is needed.

Wraps a ``ShoppingCart`` aggregate and writes a snapshot through the
``CartStorage`` port after every mutation. ``get_total()`` is the single
source of the cart subtotal; checkout reads it and never recomputes it.
"""

from decimal import Decimal

import structlog
from protean.exceptions import ValidationError

from ordering.cart.cart import ProductSelection, ShoppingCart
from ordering.cart.storage import CartStorage
from ordering.coupon.coupon import Coupon

logger = structlog.get_logger(__name__)


class CartStore:
    def __init__(self, storage: CartStorage, session_id: str | None = None) -> None:
        self._storage = storage
        self._cart = self._restore(session_id)

    def _restore(self, session_id):
        snapshot = self._storage.load()
        if snapshot is None:
            return ShoppingCart.create(session_id=session_id)

        try:
            return ShoppingCart.from_snapshot(snapshot)
        except (ValidationError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Starting with an empty cart, stored snapshot is invalid", error=str(exc))
            return ShoppingCart.create(session_id=session_id)

    def _persist(self) -> None:
        self._storage.save(self._cart.to_snapshot())

        # The cart lives outside a unit of work, so its events end here
        for event in self._cart._events:
            logger.debug("Cart event", event=event.__class__.__name__, cart_id=str(self._cart.id))
        self._cart._events.clear()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def cart(self) -> ShoppingCart:
        return self._cart

    @property
    def items(self) -> tuple:
        return tuple(self._cart.items)

    def get_item(self, line_id):
        return self._cart.find_line(line_id)

    def is_in_cart(self, product_id) -> bool:
        return any(str(item.product_id) == str(product_id) for item in self._cart.items)

    def get_total(self) -> Decimal:
        """Sum of unit price x quantity over all lines, at full precision."""
        return self._cart.subtotal()

    def get_count(self) -> int:
        """Total units across lines (the cart badge number)."""
        return self._cart.total_quantity()

    def get_item_count(self) -> int:
        """Number of distinct lines."""
        return len(self._cart.items)

    @property
    def applied_coupon(self) -> Coupon | None:
        return self._cart.coupon

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, product: ProductSelection, quantity: int | None = None):
        line = self._cart.add_item(product, quantity)
        self._persist()
        logger.debug("Cart item added", product_id=str(product.product_id), line_quantity=line.quantity)
        return line

    def update_quantity(self, line_id, quantity: int) -> bool:
        """Set a line's quantity; returns False (and changes nothing) when rejected."""
        if self._cart.find_line(line_id) is None:
            logger.info("Cart quantity rejected, no such line", line_id=str(line_id))
            return False

        accepted = self._cart.update_item_quantity(line_id, quantity)
        if not accepted:
            line = self._cart.find_line(line_id)
            logger.info(
                "Cart quantity rejected",
                line_id=str(line_id),
                requested=quantity,
                min_order=line.min_order,
                order_increment=line.order_increment,
            )
            return False
        self._persist()
        return True

    def update_notes(self, line_id, notes: str | None) -> None:
        self._cart.update_item_notes(line_id, notes)
        self._persist()

    def remove_item(self, line_id) -> None:
        self._cart.remove_item(line_id)
        self._persist()

    def clear(self) -> None:
        self._cart.clear()
        self._persist()

    def set_coupon(self, coupon: Coupon) -> None:
        self._cart.attach_coupon(coupon)
        self._persist()

    def remove_coupon(self) -> None:
        self._cart.detach_coupon()
        self._persist()
