"""Invoices and their frozen line items.

A ``BillingItem`` copies every fact needed to reproduce its charge (times,
room name, the rate used, the upgrade names, quantities and unit rates) at
the moment it is created. Nothing on it is looked up again later, so
editing a room, a booking or a price never changes an issued invoice.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from .booking import Booking
from .catalog import Room, Upgrade
from .clock import utcnow
from .money import ZERO, sum_money, to_money
from .price import RoomPrice, UpgradePrice


@dataclass(frozen=True)
class BillingItemUpgrade:
    upgrade_price_id: str
    frozen_upgrade_name: str
    frozen_quantity: int
    frozen_upgrade_price_amount: Decimal
    total_amount: Decimal
    item_upgrade_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def freeze(cls, upgrade: Upgrade, quantity: int, upgrade_price: UpgradePrice) -> "BillingItemUpgrade":
        return cls(
            upgrade_price_id=upgrade_price.price_id,
            frozen_upgrade_name=upgrade.name,
            frozen_quantity=quantity,
            frozen_upgrade_price_amount=to_money(upgrade_price.price),
            total_amount=to_money(upgrade_price.price * quantity),
        )


@dataclass(frozen=True)
class BillingItem:
    billing_id: str
    booking_id: str
    room_price_id: str
    frozen_start_time: datetime
    frozen_end_time: datetime
    frozen_duration_minutes: int
    frozen_resting_time_minutes: int
    frozen_client_alias: Optional[str]
    frozen_room_name: str
    frozen_room_price_amount: Decimal
    subtotal_room: Decimal
    subtotal_upgrades: Decimal
    total_amount: Decimal
    upgrades: Tuple[BillingItemUpgrade, ...] = ()
    item_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def freeze(
        cls,
        billing_id: str,
        booking: Booking,
        room: Room,
        room_price: RoomPrice,
        subtotal_room: Decimal,
        upgrades: Sequence[BillingItemUpgrade] = (),
    ) -> "BillingItem":
        subtotal_room = to_money(subtotal_room)
        subtotal_upgrades = sum_money(upgrade.total_amount for upgrade in upgrades)
        return cls(
            billing_id=billing_id,
            booking_id=booking.booking_id,
            room_price_id=room_price.price_id,
            frozen_start_time=booking.start_time,
            frozen_end_time=booking.end_time(),
            frozen_duration_minutes=booking.duration_minutes,
            frozen_resting_time_minutes=booking.resting_time_minutes,
            frozen_client_alias=booking.client_alias,
            frozen_room_name=room.name,
            frozen_room_price_amount=to_money(room_price.price),
            subtotal_room=subtotal_room,
            subtotal_upgrades=subtotal_upgrades,
            total_amount=to_money(subtotal_room + subtotal_upgrades),
            upgrades=tuple(upgrades),
        )


@dataclass
class Billing:
    """One invoice per provider and generation batch."""

    provider_id: str
    period_start: datetime
    period_end: datetime
    total_amount: Decimal = ZERO
    invoice_document_url: Optional[str] = None
    billing_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    items: List[BillingItem] = field(default_factory=list)

    def add_item(self, item: BillingItem) -> None:
        self.items.append(item)

    def calculate_total_amount(self) -> Decimal:
        return sum_money(item.total_amount for item in self.items)

    def update_total_amount(self) -> None:
        self.total_amount = self.calculate_total_amount()
        self.updated_at = utcnow()
