"""Shared BDD fixtures and step definitions for the Ordering domain."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from ordering.cart.cart import ProductSelection
from ordering.cart.storage import InMemoryCartStorage
from ordering.cart.store import CartStore
from ordering.checkout.ports import OrderService, PaymentService
from ordering.checkout.session import CheckoutSession
from ordering.coupon.catalog import InMemoryCouponCatalog
from ordering.coupon.coupon import Coupon, DiscountType
from ordering.settings import CheckoutSettings
from pytest_bdd import given, parsers, then

NOW = datetime(2026, 3, 1, tzinfo=UTC)


class _OfflineOrderService(OrderService):
    async def submit_order(self, submission):
        raise AssertionError("Totals scenarios never submit orders")

    async def lookup_order(self, order_number, email):
        raise AssertionError("Totals scenarios never look up orders")


class _OfflinePaymentService(PaymentService):
    async def initiate_payment(self, order_id):
        raise AssertionError("Totals scenarios never start payments")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def cart():
    return CartStore(InMemoryCartStorage())


@pytest.fixture()
def coupons():
    return InMemoryCouponCatalog()


@pytest.fixture()
def session(cart, coupons):
    return CheckoutSession(
        cart,
        coupons,
        _OfflineOrderService(),
        _OfflinePaymentService(),
        settings=CheckoutSettings(),
        clock=lambda: NOW,
    )


@pytest.fixture()
def outcome():
    """Container for results captured by When steps."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.parse('a coupon "{code}" worth {value:d} percent with a minimum cart total of {minimum:d}'))
def _(coupons, code, value, minimum):
    coupons.issue(
        Coupon(
            code=code,
            discount_type=DiscountType.PERCENTAGE,
            value=value,
            minimum_cart_total=minimum,
        )
    )


@given(
    parsers.parse("a cart line priced {price} with quantity {quantity:d} and minimum order {minimum:d}"),
    target_fixture="line",
)
def _(cart, price, quantity, minimum):
    product = ProductSelection(
        product_id="doypack-12x18",
        name="Stand-up pouch 12x18",
        unit_price=Decimal(price),
        min_order=minimum,
    )
    return cart.add_item(product, quantity)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse("the cart total is {amount}"))
def _(cart, amount):
    assert cart.get_total() == Decimal(amount)


@then(parsers.parse("the discount is {amount}"))
def _(session, amount):
    assert session.totals().discount == Decimal(amount)


@then(parsers.parse("the shipping cost is {amount}"))
def _(session, amount):
    assert session.totals().shipping_cost == Decimal(amount)


@then(parsers.parse("the grand total is {amount}"))
def _(session, amount):
    assert session.totals().rounded().grand_total == Decimal(amount)
