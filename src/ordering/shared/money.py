"""Money helpers shared by the pricing, coupon and checkout modules.

All arithmetic runs on ``Decimal`` at full precision. Rounding to currency
precision happens only when an amount is displayed or sent over the wire.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0")

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "TRY": "₺"}


def to_decimal(value) -> Decimal:
    """Convert ints, floats, strings and Decimals without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not amounts")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{value}' is not a valid amount") from None


def round_currency(amount) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount, currency: str = "EUR") -> str:
    """Render an amount for a customer-facing message."""
    rounded = round_currency(amount)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{rounded}"
    return f"{rounded} {currency.upper()}"
