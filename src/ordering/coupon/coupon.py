"""Coupon shapes and rejection errors.

A ``Coupon`` is issued by an external catalogue and never changes once issued;
only its usage counter moves. Applying one produces an ``AppliedCoupon`` that
is valid for a single cart snapshot.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from ordering.shared.money import ZERO, format_money, to_decimal


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


@dataclass(frozen=True)
class Coupon:
    code: str
    discount_type: DiscountType
    value: Decimal
    minimum_cart_total: Decimal = ZERO
    expires_at: datetime | None = None
    max_uses: int | None = None
    times_used: int = 0
    max_discount: Decimal | None = None
    description: str = ""

    def __post_init__(self):
        # Normalise loose inputs (floats, strings) without making the instance mutable
        object.__setattr__(self, "discount_type", DiscountType(self.discount_type))
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "minimum_cart_total", to_decimal(self.minimum_cart_total))
        if self.max_discount is not None:
            object.__setattr__(self, "max_discount", to_decimal(self.max_discount))

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "discount_type": self.discount_type.value,
            "value": str(self.value),
            "minimum_cart_total": str(self.minimum_cart_total),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "max_uses": self.max_uses,
            "times_used": self.times_used,
            "max_discount": str(self.max_discount) if self.max_discount is not None else None,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Coupon":
        expires_at = data.get("expires_at")
        return cls(
            code=data["code"],
            discount_type=DiscountType(data["discount_type"]),
            value=data["value"],
            minimum_cart_total=data.get("minimum_cart_total") or ZERO,
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            max_uses=data.get("max_uses"),
            times_used=data.get("times_used") or 0,
            max_discount=data.get("max_discount"),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class AppliedCoupon:
    """A coupon's effect computed against one cart subtotal."""

    code: str
    discount_type: DiscountType
    value: Decimal
    computed_discount: Decimal


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------
class CouponError(Exception):
    """Base class for coupon rejections. Never fatal: the cart stays usable."""

    kind = "CouponError"

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class CouponNotFound(CouponError):
    kind = "NotFound"

    def __init__(self, code: str):
        super().__init__(code, f"Coupon code '{code}' does not exist. Check the code and try again.")


class CouponExpired(CouponError):
    kind = "Expired"

    def __init__(self, code: str, expired_at: datetime):
        super().__init__(code, f"Coupon code '{code}' expired on {expired_at:%Y-%m-%d}.")
        self.expired_at = expired_at


class CouponExhausted(CouponError):
    kind = "ExhaustedUses"

    def __init__(self, code: str, max_uses: int):
        super().__init__(code, f"Coupon code '{code}' has reached its usage limit of {max_uses}.")
        self.max_uses = max_uses


class CouponBelowMinimum(CouponError):
    kind = "BelowMinimum"

    def __init__(self, code: str, minimum: Decimal, shortfall: Decimal, currency: str = "EUR"):
        super().__init__(
            code,
            f"Add {format_money(shortfall, currency)} more to use this code "
            f"(minimum order {format_money(minimum, currency)}).",
        )
        self.minimum = minimum
        self.shortfall = shortfall

