"""Tiered, duration-based room pricing.

A room price may carry tiers, each covering the half-open duration range
``[from_minutes, to_minutes)`` (``to_minutes=None`` means unbounded):

- FIXED tiers charge their price once, as soon as any minute of the booking
  falls inside them. They are never pro-rated.
- HOURLY tiers charge their price per hour for the minutes that fall inside.

Example, 90 minutes against ``[0,30) FIXED 75`` + ``[30,∞) HOURLY 120``::

    75.00 + 60/60 * 120.00 = 195.00

Without tiers the base hourly rate is applied to the whole duration.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence
from uuid import uuid4

from .clock import utcnow
from .errors import InvalidDuration, InvalidTier
from .money import hours_for, to_decimal, to_money

PREVIEW_DURATIONS = (15, 30, 60, 90, 120, 180, 240)


class PriceType(str, Enum):
    FIXED = "FIXED"
    HOURLY = "HOURLY"


@dataclass(frozen=True)
class PriceTier:
    room_price_id: str
    from_minutes: int
    to_minutes: Optional[int]
    price_type: PriceType
    price: Decimal
    sort_order: int = 0
    tier_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.from_minutes < 0:
            raise InvalidTier("from_minutes must be >= 0")
        if self.to_minutes is not None and self.to_minutes <= self.from_minutes:
            raise InvalidTier("to_minutes must be > from_minutes")
        if to_decimal(self.price) <= 0:
            raise InvalidTier("price must be > 0")
        object.__setattr__(self, "price_type", PriceType(self.price_type))
        object.__setattr__(self, "price", to_money(self.price))

    def overlaps(self, from_minutes: int, to_minutes: Optional[int]) -> bool:
        """Half-open overlap test, open upper bounds count as infinity."""
        new_end = float("inf") if to_minutes is None else to_minutes
        own_end = float("inf") if self.to_minutes is None else self.to_minutes
        return from_minutes < own_end and new_end > self.from_minutes

    def minutes_in_tier(self, duration_minutes: int, position: int) -> int:
        """Minutes of a booking that fall in this tier, given ``position`` minutes already priced."""
        tier_end = self.to_minutes if self.to_minutes is not None else duration_minutes
        if tier_end <= position:
            return 0
        minutes = min(tier_end, duration_minutes) - max(self.from_minutes, position)
        return max(0, minutes)


def compute_price(base_hourly_rate: Decimal, tiers: Sequence[PriceTier], duration_minutes: int) -> Decimal:
    """Price a booking of ``duration_minutes``; tiers take precedence over the base rate."""
    if duration_minutes <= 0:
        raise InvalidDuration(duration_minutes)
    if not tiers:
        return to_money(to_decimal(base_hourly_rate) * hours_for(duration_minutes))
    return _tiered_price(tiers, duration_minutes)


def _tiered_price(tiers: Iterable[PriceTier], duration_minutes: int) -> Decimal:
    total = Decimal(0)
    position = 0
    for tier in sorted(tiers, key=lambda t: t.from_minutes):
        minutes = tier.minutes_in_tier(duration_minutes, position)
        if minutes <= 0:
            continue

        if tier.price_type is PriceType.FIXED:
            contribution = tier.price
        elif tier.price_type is PriceType.HOURLY:
            contribution = tier.price * hours_for(minutes)
        else:  # pragma: no cover - PriceType is closed
            raise InvalidTier(f"Unknown price type: {tier.price_type}")
        total += contribution

        tier_end = tier.to_minutes if tier.to_minutes is not None else duration_minutes
        position = min(tier_end, duration_minutes)
        if position >= duration_minutes:
            break
    return to_money(total)


def preview_prices(
    base_hourly_rate: Decimal,
    tiers: Sequence[PriceTier],
    durations: Iterable[int] = PREVIEW_DURATIONS,
) -> Dict[int, Decimal]:
    return {minutes: compute_price(base_hourly_rate, tiers, minutes) for minutes in durations}
