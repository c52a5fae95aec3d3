"""Money helpers for deterministic rounding and display."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "INR": "₹",
}


def to_decimal(value: float | int | str | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: float | int | str | Decimal | None) -> float:
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency.strip().upper(), "")


def format_money(value: float | int | None, currency: str = "USD") -> str:
    """Format an amount with its currency symbol and two decimals, e.g. `$1,234.50`."""
    amount = round_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency_symbol(currency)}{abs(amount):,.2f}"
