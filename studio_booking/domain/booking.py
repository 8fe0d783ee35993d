"""Room reservations made by a service provider."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List
from uuid import uuid4

from .clock import utcnow


class BookingStatus(str, Enum):
    UPCOMING = "UPCOMING"
    TODAY = "TODAY"
    PAST = "PAST"

    @classmethod
    def of(cls, start_time: datetime, today: date) -> "BookingStatus":
        """Classify by the calendar day the booking starts on."""
        if start_time.date() < today:
            return cls.PAST
        if start_time.date() == today:
            return cls.TODAY
        return cls.UPCOMING


@dataclass
class BookingUpgrade:
    upgrade_id: str
    quantity: int = 1


@dataclass
class Booking:
    provider_id: str
    room_id: str
    start_time: datetime
    duration_minutes: int
    resting_time_minutes: int = 0
    client_alias: str = ""
    upgrades: List[BookingUpgrade] = field(default_factory=list)
    booking_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    def total_end_time(self) -> datetime:
        """End of the slot including resting/buffer time."""
        return self.end_time() + timedelta(minutes=self.resting_time_minutes)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.total_end_time() and end > self.start_time
