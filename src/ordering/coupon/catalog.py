"""Coupon catalogue port (abstract interface) and in-memory adapter.

The catalogue lives outside the pricing core; the core only consumes the
``Coupon`` shape it returns. Lookups are case-insensitive.
"""

from abc import ABC, abstractmethod
from dataclasses import replace

from ordering.coupon.coupon import Coupon


class CouponCatalog(ABC):
    """Abstract coupon lookup interface."""

    @abstractmethod
    def find(self, code: str) -> Coupon | None:
        """Return the coupon issued under ``code`` (any case), or None."""
        ...


class InMemoryCouponCatalog(CouponCatalog):
    """Coupon catalogue held in a dict, for development and tests."""

    def __init__(self, coupons=()) -> None:
        self._coupons: dict[str, Coupon] = {}
        for coupon in coupons:
            self.issue(coupon)

    def issue(self, coupon: Coupon) -> None:
        self._coupons[coupon.code.strip().upper()] = coupon

    def find(self, code: str) -> Coupon | None:
        return self._coupons.get(code.strip().upper())

    def record_use(self, code: str) -> Coupon | None:
        """Bump the usage counter; the issued coupon itself is replaced, not edited."""
        coupon = self.find(code)
        if coupon is None:
            return None
        updated = replace(coupon, times_used=coupon.times_used + 1)
        self.issue(updated)
        return updated
