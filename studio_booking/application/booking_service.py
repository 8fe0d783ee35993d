"""Booking management.

Only the contract of the room scheduler is enforced here: the slot
``[start, start + duration + resting)`` must not intersect another booking
of the same room.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.booking import Booking, BookingUpgrade
from studio_booking.domain.clock import as_naive_utc
from studio_booking.domain.errors import (
    BookingBilled,
    BookingOverlap,
    EntityNotFound,
    ValidationError,
)
from studio_booking.infrastructure.repository import StudioRepository
from .duration_option_service import DurationOptionService

logger = get_logger(__name__)


class BookingService:
    def __init__(self, config: AppConfig, repository: StudioRepository, duration_options: DurationOptionService):
        self.config = config
        self.repository = repository
        self.duration_options = duration_options

    def create_booking(
        self,
        provider_id: str,
        room_id: str,
        start_time: datetime,
        duration_minutes: int,
        resting_time_minutes: int = 0,
        client_alias: str = "",
        upgrades: Optional[Dict[str, int]] = None,
    ) -> Booking:
        self._check_slot_request(provider_id, room_id, duration_minutes, resting_time_minutes)
        booking = Booking(
            provider_id=provider_id,
            room_id=room_id,
            start_time=as_naive_utc(start_time),
            duration_minutes=duration_minutes,
            resting_time_minutes=resting_time_minutes,
            client_alias=client_alias or "",
            upgrades=self._booking_upgrades(upgrades or {}),
        )
        self._validate_no_overlap(booking)
        self.repository.save_booking(booking)
        logger.info("Booking %s created for room %s at %s", booking.booking_id, room_id, booking.start_time)
        return booking

    def update_booking(
        self,
        booking_id: str,
        provider_id: str,
        room_id: str,
        start_time: datetime,
        duration_minutes: int,
        resting_time_minutes: int = 0,
        client_alias: str = "",
        upgrades: Optional[Dict[str, int]] = None,
    ) -> Booking:
        """Replace the booking's slot and upgrades, keeping its id and creation time.

        A billed booking is frozen into its invoice and cannot change.
        """
        existing = self.get_booking(booking_id)
        if self.repository.has_billing_item(booking_id):
            raise BookingBilled(booking_id)
        self._check_slot_request(provider_id, room_id, duration_minutes, resting_time_minutes)

        updated = replace(
            existing,
            provider_id=provider_id,
            room_id=room_id,
            start_time=as_naive_utc(start_time),
            duration_minutes=duration_minutes,
            resting_time_minutes=resting_time_minutes,
            client_alias=client_alias or "",
            upgrades=self._booking_upgrades(upgrades or {}),
        )
        self._validate_no_overlap(updated)
        self.repository.save_booking(updated)
        logger.info("Booking %s moved to room %s at %s", booking_id, room_id, updated.start_time)
        return updated

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if not booking:
            raise EntityNotFound("Booking", booking_id)
        return booking

    def list_bookings(self, room_id: Optional[str] = None) -> List[Booking]:
        return list(self.repository.list_bookings(room_id))

    def delete_booking(self, booking_id: str) -> None:
        self.get_booking(booking_id)
        if self.repository.has_billing_item(booking_id):
            raise BookingBilled(booking_id)
        self.repository.delete_booking(booking_id)

    def _check_slot_request(
        self, provider_id: str, room_id: str, duration_minutes: int, resting_time_minutes: int
    ) -> None:
        room = self.repository.get_room(room_id)
        if not room:
            raise EntityNotFound("Room", room_id)
        if not room.active:
            raise ValidationError(f"Room {room.name} is not active")
        provider = self.repository.get_provider(provider_id)
        if not provider:
            raise EntityNotFound("Provider", provider_id)
        if not provider.active:
            raise ValidationError(f"Provider {provider.name} is not active")
        self.duration_options.validate_duration(duration_minutes)
        if resting_time_minutes < 0:
            raise ValidationError("Resting time must not be negative")

    def _booking_upgrades(self, upgrades: Dict[str, int]) -> List[BookingUpgrade]:
        result = []
        for upgrade_id, quantity in upgrades.items():
            if not self.repository.get_upgrade(upgrade_id):
                raise EntityNotFound("Upgrade", upgrade_id)
            if quantity <= 0:
                raise ValidationError(f"Quantity for upgrade {upgrade_id} must be positive")
            result.append(BookingUpgrade(upgrade_id=upgrade_id, quantity=quantity))
        return result

    def _validate_no_overlap(self, booking: Booking) -> None:
        for other in self.repository.list_bookings(booking.room_id):
            if other.booking_id == booking.booking_id:
                continue
            if other.overlaps(booking.start_time, booking.total_end_time()):
                raise BookingOverlap(booking.room_id, other.booking_id)
