"""Decimal helpers shared by pricing and billing."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS = Decimal("0.01")
HOUR_FRACTION = Decimal("0.0001")
MINUTES_PER_HOUR = Decimal(60)
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, str]


def to_decimal(value: Amount | float) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through str() so 0.1 stays 0.1 instead of its binary expansion
        return Decimal(str(value))
    return Decimal(value)


def to_money(value: Amount | float) -> Decimal:
    """Round half-up to cents; every externally visible amount goes through here."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def hours_for(minutes: int) -> Decimal:
    """Minutes as an hour fraction, kept at four digits before any rate is applied."""
    return (Decimal(minutes) / MINUTES_PER_HOUR).quantize(HOUR_FRACTION, rounding=ROUND_HALF_UP)


def sum_money(values) -> Decimal:
    return to_money(sum(values, Decimal(0)))
