"""Bookable durations offered to providers.

A fixed option allows exactly ``minutes``. A variable option allows any
duration from ``min_minutes`` to ``max_minutes`` in ``step_minutes`` steps
(``minutes`` is stored as 0 for those).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from .clock import utcnow

MAX_DURATION_MINUTES = 480
MAX_LABEL_LENGTH = 50


@dataclass
class DurationOption:
    label: str
    minutes: int = 0
    is_variable: bool = False
    min_minutes: Optional[int] = None
    max_minutes: Optional[int] = None
    step_minutes: Optional[int] = None
    sort_order: int = 0
    active: bool = True
    option_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def allows(self, duration_minutes: int) -> bool:
        if not self.is_variable:
            return self.minutes == duration_minutes
        if not self.min_minutes <= duration_minutes <= self.max_minutes:
            return False
        return (duration_minutes - self.min_minutes) % self.step_minutes == 0

    def describe(self) -> str:
        if self.is_variable:
            return f"{self.min_minutes}-{self.max_minutes} min (steps of {self.step_minutes})"
        return f"{self.minutes} min"
