"""Conversion between decimal major units and integer cents."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from django.core.exceptions import ValidationError

CENT = Decimal("0.01")
CENTS_PER_UNIT = 100

MoneyInput = Union[int, float, str, Decimal]


def to_minor_units(value: MoneyInput, field_name: str = "amount") -> int:
    """
    Convert a major-unit amount (e.g. ``"123.455"``) to integer cents.

    Rounds half-up at the cent. Negative or non-numeric input raises
    ValidationError keyed by ``field_name``.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError({field_name: "A numeric amount is required."})
    try:
        # float goes through str so 0.1 stays 0.1
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({field_name: f"'{value}' is not a valid amount."})
    if not amount.is_finite():
        raise ValidationError({field_name: f"'{value}' is not a valid amount."})
    if amount < 0:
        raise ValidationError({field_name: "Amount cannot be negative."})
    return int(amount.quantize(CENT, rounding=ROUND_HALF_UP) * CENTS_PER_UNIT)


def from_minor_units(cents: int) -> Decimal:
    """Integer cents to a two-decimal Decimal for presentation."""
    return (Decimal(cents) / CENTS_PER_UNIT).quantize(CENT)
