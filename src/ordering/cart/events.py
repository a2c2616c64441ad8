"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its line quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    unit_price = Float(required=True)
    quantity_added = Integer(required=True)
    line_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """Every line and the session coupon were dropped."""

    __version__ = 1

    cart_id = Identifier(required=True)
    lines_removed = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A coupon was attached to the cart session."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponRemoved:
    """The session coupon was detached."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
