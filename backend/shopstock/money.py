# Overview: Fixed-point money helpers. Amounts are Decimal with 2 places, never float.

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")

# Largest amount that fits NUMERIC(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


def quantize_money(value) -> Decimal:
    """Round to cents, half-up. Accepts Decimal, int or numeric str."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value) -> Decimal | None:
    """
    Parse a client-supplied amount.

    Returns None when the value is missing or cannot be read as a finite
    number, so callers can decide between rejecting and falling back.
    Floats go through str() to avoid binary artefacts (5.1 -> "5.1").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    # Out of range: left unrounded for the caller's MAX_AMOUNT check
    if abs(amount) > MAX_AMOUNT:
        return amount
    return quantize_money(amount)


def format_money(value) -> str | None:
    """Serialize an amount as a fixed 2-place string ("15.00")."""
    if value is None:
        return None
    return str(quantize_money(value))


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    """total_amount for a sale: quantity * unit_price, exact to the cent."""
    total = Decimal(quantity) * unit_price
    if total > MAX_AMOUNT:
        return total
    return quantize_money(total)
