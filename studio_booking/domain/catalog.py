"""Bookable rooms, the providers who rent them, and add-on upgrades."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from .clock import utcnow

DEFAULT_ROOM_COLOR = "#3B82F6"
DEFAULT_PROVIDER_COLOR = "#10B981"


@dataclass
class Room:
    name: str
    active: bool = True
    sort_order: int = 0
    color: str = DEFAULT_ROOM_COLOR
    room_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ServiceProvider:
    """The counterparty invoices are issued to."""

    name: str
    active: bool = True
    sort_order: int = 0
    color: str = DEFAULT_PROVIDER_COLOR
    provider_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Upgrade:
    name: str
    active: bool = True
    upgrade_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
