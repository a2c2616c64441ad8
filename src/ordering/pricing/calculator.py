"""Bulk pricing calculator — tiered quantity discounts for pre-sales estimates.

Prices are derived from a bag size's base price, a material multiplier and a
quantity-discount tier. The computation is pure and runs on ``Decimal``; VAT
is never folded into the unit price.
"""

from dataclasses import dataclass
from decimal import Decimal

from protean.exceptions import ValidationError

from ordering.shared.money import ZERO, to_decimal

ONE = Decimal("1")


@dataclass(frozen=True)
class PricingTier:
    """A quantity threshold mapped to a price multiplier."""

    min_quantity: int
    discount_multiplier: Decimal


@dataclass(frozen=True)
class BagSize:
    id: str
    name: str
    base_price: Decimal


@dataclass(frozen=True)
class Material:
    id: str
    name: str
    multiplier: Decimal


@dataclass(frozen=True)
class PriceQuote:
    size_id: str
    material_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    vat_amount: Decimal
    grand_total: Decimal
    tier: PricingTier | None = None


BAG_SIZES = {
    size.id: size
    for size in (
        BagSize("8x13", "8x13 cm", Decimal("0.45")),
        BagSize("10x15", "10x15 cm", Decimal("0.52")),
        BagSize("12x18", "12x18 cm", Decimal("0.58")),
        BagSize("14x20", "14x20 cm", Decimal("0.65")),
        BagSize("16x22", "16x22 cm", Decimal("0.72")),
    )
}

MATERIALS = {
    material.id: material
    for material in (
        Material("alu", "Aluminium barrier", Decimal("1.0")),
        Material("kraft", "Kraft paper", Decimal("1.1")),
        Material("recyclable", "Recyclable mono-material", Decimal("1.2")),
    )
}

DEFAULT_PRICING_TIERS = (
    PricingTier(500, Decimal("0.95")),
    PricingTier(1000, Decimal("0.90")),
    PricingTier(2000, Decimal("0.85")),
    PricingTier(3000, Decimal("0.80")),
    PricingTier(5000, Decimal("0.75")),
)


def _validate_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be a whole number of at least 1"]})


def normalize_tiers(tiers) -> tuple[PricingTier, ...]:
    """Sort a tier schedule ascending and reject inconsistent schedules.

    Accepts ``PricingTier`` instances or ``(min_quantity, multiplier)`` pairs.
    A schedule must have unique thresholds and multipliers in ``(0, 1]``
    that never grow as the threshold grows.
    """
    normalized = []
    for tier in tiers:
        if not isinstance(tier, PricingTier):
            min_quantity, multiplier = tier
            tier = PricingTier(int(min_quantity), to_decimal(multiplier))
        else:
            tier = PricingTier(tier.min_quantity, to_decimal(tier.discount_multiplier))

        if tier.min_quantity < 1:
            raise ValidationError({"tiers": [f"Tier threshold {tier.min_quantity} must be at least 1"]})
        if not (ZERO < tier.discount_multiplier <= ONE):
            raise ValidationError(
                {"tiers": [f"Tier multiplier {tier.discount_multiplier} must be greater than 0 and at most 1"]}
            )
        normalized.append(tier)

    normalized.sort(key=lambda t: t.min_quantity)

    for lower, higher in zip(normalized, normalized[1:], strict=False):
        if lower.min_quantity == higher.min_quantity:
            raise ValidationError({"tiers": [f"Duplicate tier threshold {lower.min_quantity}"]})
        if higher.discount_multiplier > lower.discount_multiplier:
            raise ValidationError(
                {
                    "tiers": [
                        f"Tier at {higher.min_quantity} ({higher.discount_multiplier}) must not be priced "
                        f"above tier at {lower.min_quantity} ({lower.discount_multiplier})"
                    ]
                }
            )

    return tuple(normalized)


def select_tier(quantity: int, tiers=DEFAULT_PRICING_TIERS) -> PricingTier | None:
    """Return the tier with the greatest threshold not above ``quantity``."""
    _validate_quantity(quantity)
    for tier in reversed(normalize_tiers(tiers)):
        if tier.min_quantity <= quantity:
            return tier
    return None


def compute_unit_price(base_price, material_multiplier, quantity: int, tiers=DEFAULT_PRICING_TIERS) -> Decimal:
    """unit price = base price × material multiplier × tier multiplier."""
    base_price = to_decimal(base_price)
    material_multiplier = to_decimal(material_multiplier)
    if base_price < ZERO:
        raise ValidationError({"base_price": ["Base price must not be negative"]})
    if material_multiplier <= ZERO:
        raise ValidationError({"material_multiplier": ["Material multiplier must be positive"]})

    tier = select_tier(quantity, tiers)
    tier_multiplier = tier.discount_multiplier if tier else ONE
    return base_price * material_multiplier * tier_multiplier


def compute_line_total(unit_price, quantity: int) -> Decimal:
    _validate_quantity(quantity)
    return to_decimal(unit_price) * quantity


def quote_price(size_id: str, material_id: str, quantity: int, vat_rate, tiers=DEFAULT_PRICING_TIERS) -> PriceQuote:
    """Estimate a bulk order for the pricing calculator page.

    VAT is charged on the line total, the same post-discount, pre-shipping
    base checkout uses (an estimate carries no coupon).
    """
    size = BAG_SIZES.get(size_id)
    if size is None:
        raise ValidationError({"size_id": [f"Unknown bag size '{size_id}'"]})
    material = MATERIALS.get(material_id)
    if material is None:
        raise ValidationError({"material_id": [f"Unknown material '{material_id}'"]})

    vat_rate = to_decimal(vat_rate)
    if vat_rate < ZERO:
        raise ValidationError({"vat_rate": ["VAT rate must not be negative"]})

    unit_price = compute_unit_price(size.base_price, material.multiplier, quantity, tiers)
    line_total = compute_line_total(unit_price, quantity)
    vat_amount = line_total * vat_rate

    return PriceQuote(
        size_id=size.id,
        material_id=material.id,
        quantity=quantity,
        unit_price=unit_price,
        line_total=line_total,
        vat_amount=vat_amount,
        grand_total=line_total + vat_amount,
        tier=select_tier(quantity, tiers),
    )
