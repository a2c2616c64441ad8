"""Checkout settings read from the domain configuration.

Business settings live in the ``[custom]`` table of ``domain.toml`` and are
overridable per ``PROTEAN_ENV`` overlay. Missing keys fall back to the
defaults below.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from protean.exceptions import ValidationError

from ordering.domain import ordering

_DEFAULTS = {
    "CURRENCY": "EUR",
    "VAT_RATE": "0.22",
    "FREE_SHIPPING_THRESHOLD": "500",
    "FLAT_SHIPPING_FEE": "25",
    "ORDER_NUMBER_PREFIX": "PKG",
}


@dataclass(frozen=True)
class CheckoutSettings:
    currency: str = "EUR"
    vat_rate: Decimal = Decimal("0.22")
    free_shipping_threshold: Decimal = Decimal("500")
    flat_shipping_fee: Decimal = Decimal("25")
    order_number_prefix: str = "PKG"

    @property
    def shipping_rule(self):
        from ordering.checkout.totals import ShippingRule

        return ShippingRule(
            free_shipping_threshold=self.free_shipping_threshold,
            flat_fee=self.flat_shipping_fee,
        )


def _decimal_setting(custom, key):
    raw = custom.get(key, _DEFAULTS[key])
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise ValidationError({key.lower(): [f"'{raw}' is not a valid number"]}) from None
    if value < 0:
        raise ValidationError({key.lower(): ["Must not be negative"]})
    return value


def checkout_settings(config=None) -> CheckoutSettings:
    """Build ``CheckoutSettings`` from the domain's custom configuration."""
    if config is None:
        config = ordering.config
    custom = config.get("custom") or {}

    return CheckoutSettings(
        currency=str(custom.get("CURRENCY", _DEFAULTS["CURRENCY"])).upper(),
        vat_rate=_decimal_setting(custom, "VAT_RATE"),
        free_shipping_threshold=_decimal_setting(custom, "FREE_SHIPPING_THRESHOLD"),
        flat_shipping_fee=_decimal_setting(custom, "FLAT_SHIPPING_FEE"),
        order_number_prefix=str(custom.get("ORDER_NUMBER_PREFIX", _DEFAULTS["ORDER_NUMBER_PREFIX"])),
    )

