"""
Fixed-point money helpers.

Everything inside the ledger and optimizer is an ``int`` number of cents.
These helpers are the only place amounts cross between cents and the
2-decimal values stored in the database or sent over the API.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENTS = Decimal("0.01")

# Balances at or below this many cents are treated as settled.
DUST_CENTS = 1

# Largest amount a Numeric(15, 2) column can hold.
MAX_AMOUNT = Decimal("9999999999999.99")
MAX_AMOUNT_CENTS = 999999999999999

Amount = Union[Decimal, int, float, str]


def to_cents(value: Amount) -> int:
    """
    Convert a decimal amount to integer cents, rounding half up.

    Floats go through ``str`` first so 0.1 becomes exactly 10 cents.
    Raises ``decimal.InvalidOperation`` for non-numeric input.
    """
    if isinstance(value, float):
        value = str(value)
    amount = Decimal(value)
    if not amount.is_finite():
        raise InvalidOperation(f"Amount is not a finite number: {value}")
    return int(amount.quantize(CENTS, rounding=ROUND_HALF_UP) * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents to a 2-decimal ``Decimal``."""
    return (Decimal(cents) / 100).quantize(CENTS)


def format_cents(cents: int) -> str:
    """Render cents as a plain 2-decimal string, e.g. ``1250 -> "12.50"``."""
    return str(from_cents(cents))
