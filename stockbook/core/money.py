"""Decimal helpers shared by the ledger, the reports and the database layer."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Convert user or database input to ``Decimal`` without going through float math.

    Floats are converted via ``str`` so ``38.5`` becomes ``Decimal("38.5")``
    rather than its binary approximation. Anything that cannot be parsed raises
    ``ValueError``.
    """

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"not a decimal amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            raise ValueError("empty amount")
        try:
            return Decimal(cleaned)
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal amount: {value!r}") from exc
    raise ValueError(f"not a decimal amount: {value!r}")


def quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100`` rounded to cents, or 0 when ``whole`` is not positive."""

    if whole <= 0:
        return Decimal("0.00")
    return quantize_currency(part / whole * HUNDRED)
