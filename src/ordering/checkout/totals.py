"""Checkout total composition.

Combines the cart subtotal, the session coupon, VAT and the shipping rule into
the payable amount. Every screen that shows a total reads it from here.

    discount    = coupon re-evaluated against the current subtotal (0 if invalid)
    shipping    = 0 if (subtotal - discount) >= free-shipping threshold else flat fee
    vat         = vat_rate * (subtotal - discount)      # shipping is not taxed
    grand_total = subtotal - discount + shipping + vat

Amounts stay at full precision; ``CheckoutTotals.rounded()`` is the display
and wire form.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from protean.exceptions import ValidationError

from ordering.coupon.coupon import AppliedCoupon, Coupon, CouponError
from ordering.coupon.evaluator import evaluate_coupon
from ordering.shared.money import ZERO, round_currency, to_decimal


@dataclass(frozen=True)
class ShippingRule:
    free_shipping_threshold: Decimal = Decimal("500")
    flat_fee: Decimal = Decimal("25")

    def __post_init__(self):
        object.__setattr__(self, "free_shipping_threshold", to_decimal(self.free_shipping_threshold))
        object.__setattr__(self, "flat_fee", to_decimal(self.flat_fee))
        if self.free_shipping_threshold < ZERO or self.flat_fee < ZERO:
            raise ValidationError({"shipping_rule": ["Shipping threshold and fee must not be negative"]})

    def cost_for(self, amount) -> Decimal:
        return ZERO if to_decimal(amount) >= self.free_shipping_threshold else self.flat_fee

    def amount_to_free_shipping(self, amount) -> Decimal:
        """How much more the shopper needs to spend to ship for free."""
        return max(ZERO, self.free_shipping_threshold - to_decimal(amount))


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    vat_amount: Decimal
    grand_total: Decimal
    applied_coupon: AppliedCoupon | None = None
    coupon_error: CouponError | None = None

    @property
    def discounted_subtotal(self) -> Decimal:
        return self.subtotal - self.discount

    def rounded(self) -> "CheckoutTotals":
        """Quantize every amount to currency precision for display."""
        return replace(
            self,
            subtotal=round_currency(self.subtotal),
            discount=round_currency(self.discount),
            shipping_cost=round_currency(self.shipping_cost),
            vat_amount=round_currency(self.vat_amount),
            grand_total=round_currency(self.grand_total),
        )


def compute_final_total(
    cart_subtotal,
    coupon: Coupon | None = None,
    shipping_rule: ShippingRule | None = None,
    vat_rate=ZERO,
    now: datetime | None = None,
    currency: str = "EUR",
) -> CheckoutTotals:
    """Compose the payable total for the current cart subtotal.

    ``coupon`` is the coupon held by the session, never a cached discount: it
    is re-validated here on every call, so a coupon whose minimum the cart no
    longer meets contributes nothing and is reported in ``coupon_error``.
    """
    subtotal = to_decimal(cart_subtotal)
    vat_rate = to_decimal(vat_rate)
    shipping_rule = shipping_rule or ShippingRule()

    if subtotal < ZERO:
        raise ValidationError({"cart_subtotal": ["Subtotal must not be negative"]})
    if vat_rate < ZERO:
        raise ValidationError({"vat_rate": ["VAT rate must not be negative"]})

    applied = None
    coupon_error = None
    discount = ZERO
    if coupon is not None:
        try:
            applied = evaluate_coupon(coupon, subtotal, now=now, currency=currency)
            discount = applied.computed_discount
        except CouponError as exc:
            coupon_error = exc

    taxable = subtotal - discount
    shipping_cost = shipping_rule.cost_for(taxable)
    vat_amount = vat_rate * taxable

    return CheckoutTotals(
        subtotal=subtotal,
        discount=discount,
        shipping_cost=shipping_cost,
        vat_amount=vat_amount,
        grand_total=taxable + shipping_cost + vat_amount,
        applied_coupon=applied,
        coupon_error=coupon_error,
    )
