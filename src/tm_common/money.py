"""Decimal money utilities.

All prices, amounts and balances are Decimal with two fractional digits.
Never float: binary rounding would break the wallet conservation checks.
"""

from decimal import ROUND_HALF_EVEN, Decimal

_QUANT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Normalize to a 2-place Decimal. Strings are parsed exactly."""
    return Decimal(value).quantize(_QUANT, rounding=ROUND_HALF_EVEN)


def validate_unit_price(price: Decimal) -> None:
    """A unit price must be strictly positive."""
    if price <= 0:
        raise ValueError(f"Unit price must be positive, got {price}")


def money_to_display(amount: Decimal) -> str:
    """Convert to display string: 1234.5 -> '$1,234.50', -12 -> '-$12.00'."""
    amount = to_money(amount)
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"
