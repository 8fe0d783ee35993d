"""Rate records valid over ``[valid_from, valid_to)``; ``valid_to=None`` marks the open one."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from .clock import utcnow


class _ValidityWindow:
    valid_from: datetime
    valid_to: Optional[datetime]

    def is_valid_at(self, timestamp: datetime) -> bool:
        return timestamp >= self.valid_from and (self.valid_to is None or timestamp < self.valid_to)

    @property
    def is_open(self) -> bool:
        return self.valid_to is None


@dataclass(frozen=True)
class RoomPrice(_ValidityWindow):
    room_id: str
    price: Decimal
    valid_from: datetime
    valid_to: Optional[datetime] = None
    price_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class UpgradePrice(_ValidityWindow):
    upgrade_id: str
    price: Decimal
    valid_from: datetime
    valid_to: Optional[datetime] = None
    price_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
