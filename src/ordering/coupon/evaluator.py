"""Coupon evaluation — validate a code against a cart subtotal.

Checks run in a fixed order and the first failure wins:

    1. the code exists             -> CouponNotFound
    2. it has not expired          -> CouponExpired
    3. its usage budget remains    -> CouponExhausted
    4. subtotal >= minimum total   -> CouponBelowMinimum

The resulting discount never exceeds the subtotal, so a coupon cannot make
the payable total negative.
"""

import re
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from protean.exceptions import ValidationError

from ordering.coupon.catalog import CouponCatalog
from ordering.coupon.coupon import (
    AppliedCoupon,
    Coupon,
    CouponBelowMinimum,
    CouponError,
    CouponExhausted,
    CouponExpired,
    CouponNotFound,
    DiscountType,
)
from ordering.shared.money import ZERO, to_decimal

logger = structlog.get_logger(__name__)

_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{1,32}$")
_HUNDRED = Decimal("100")


def normalize_code(code) -> str:
    """Trim and upper-case a code, rejecting malformed input locally."""
    if not isinstance(code, str) or not code.strip():
        raise ValidationError({"coupon_code": ["Enter a coupon code"]})

    normalized = code.strip().upper()
    if not _CODE_PATTERN.match(normalized):
        raise ValidationError(
            {"coupon_code": ["Coupon codes use up to 32 letters, digits, hyphens or underscores"]}
        )
    return normalized


def compute_discount(coupon: Coupon, subtotal) -> Decimal:
    subtotal = to_decimal(subtotal)
    if subtotal <= ZERO:
        return ZERO

    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * coupon.value / _HUNDRED
        if coupon.max_discount is not None:
            discount = min(discount, coupon.max_discount)
    else:
        discount = coupon.value

    return max(ZERO, min(discount, subtotal))


def _is_expired(coupon: Coupon, now: datetime) -> bool:
    if coupon.expires_at is None:
        return False
    expires_at = coupon.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return now >= expires_at


def evaluate_coupon(coupon: Coupon, cart_subtotal, now: datetime | None = None, currency: str = "EUR") -> AppliedCoupon:
    """Run checks 2-4 for a coupon already in hand.

    Used both on first application and whenever the cart changes, because a
    previously valid coupon becomes invalid once the subtotal drops below its
    minimum.
    """
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    subtotal = to_decimal(cart_subtotal)

    if _is_expired(coupon, now):
        raise CouponExpired(coupon.code, coupon.expires_at)

    if coupon.max_uses is not None and coupon.times_used >= coupon.max_uses:
        raise CouponExhausted(coupon.code, coupon.max_uses)

    if subtotal < coupon.minimum_cart_total:
        raise CouponBelowMinimum(
            coupon.code,
            minimum=coupon.minimum_cart_total,
            shortfall=coupon.minimum_cart_total - subtotal,
            currency=currency,
        )

    return AppliedCoupon(
        code=coupon.code,
        discount_type=coupon.discount_type,
        value=coupon.value,
        computed_discount=compute_discount(coupon, subtotal),
    )


def apply_coupon(
    code: str,
    cart_subtotal,
    catalog: CouponCatalog,
    now: datetime | None = None,
    currency: str = "EUR",
) -> AppliedCoupon:
    """Look up ``code`` and evaluate it against ``cart_subtotal``."""
    normalized = normalize_code(code)

    coupon = catalog.find(normalized)
    if coupon is None:
        logger.info("Coupon rejected", coupon_code=normalized, reason="NotFound")
        raise CouponNotFound(normalized)

    try:
        applied = evaluate_coupon(coupon, cart_subtotal, now=now, currency=currency)
    except CouponError as exc:
        logger.info("Coupon rejected", coupon_code=normalized, reason=exc.kind)
        raise
    logger.info("Coupon applied", coupon_code=applied.code, discount=str(applied.computed_discount))
    return applied
