"""
Values -- Decimal money helpers for payroll arithmetic.

Responsibility:
    Conversion of incoming amounts to ``Decimal`` and rounding to currency
    precision.  Every amount on a salary slip passes through
    ``quantize_money``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary amounts are ``Decimal``, never ``float``.
    - Rounding is ROUND_HALF_UP to ``places`` decimal places (currency
      minor units, 2 by default).

Failure modes:
    - TypeError when a float is passed (binary floats cannot represent
      currency exactly).
    - ValueError when a string is not a valid decimal number.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_PLACES = 2


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """Convert an incoming amount to Decimal; None becomes zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary amount")
    if isinstance(value, float):
        raise TypeError(
            "Float amounts are not accepted; pass Decimal, int or str"
        )
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal amount: {value!r}") from exc


def quantize_money(amount: Decimal, places: int = DEFAULT_PLACES) -> Decimal:
    """Round to currency precision (ROUND_HALF_UP)."""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


def percent_of(
    base: Decimal,
    percentage: Decimal,
    places: int = DEFAULT_PLACES,
) -> Decimal:
    """``round(base * percentage / 100)`` at currency precision."""
    return quantize_money(to_decimal(base) * to_decimal(percentage) / HUNDRED, places)


def sum_money(amounts, places: int = DEFAULT_PLACES) -> Decimal:
    """Sum an iterable of amounts and round the total."""
    total = ZERO
    for amount in amounts:
        total += to_decimal(amount)
    return quantize_money(total, places)
