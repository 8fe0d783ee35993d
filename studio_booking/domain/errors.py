"""Error kinds raised by the domain and application layers.

Every error the services raise on purpose derives from one of four kinds:

- ``ValidationError``: malformed input, fixable by the caller.
- ``NotFoundError``: a referenced entity does not exist.
- ``ConflictError``: rejected because of current state (already billed,
  overlapping tier, duplicate name, ...).
- ``IntegrityError``: an invariant that earlier validation should have
  guaranteed does not hold. Fatal for the current operation.

The HTTP layer maps the kinds to status codes; nothing below it catches them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional


class StudioError(Exception):
    """Base class for failures raised deliberately by the service."""


class ValidationError(StudioError):
    pass


class NotFoundError(StudioError):
    pass


class ConflictError(StudioError):
    pass


class IntegrityError(StudioError):
    pass


# Validation ---------------------------------------------------------------
class InvalidDuration(ValidationError):
    def __init__(self, duration_minutes: int):
        super().__init__(f"Duration must be positive, got {duration_minutes} minutes")
        self.duration_minutes = duration_minutes


class DurationNotAllowed(ValidationError):
    def __init__(self, duration_minutes: int, allowed: Iterable[str]):
        self.duration_minutes = duration_minutes
        self.allowed: List[str] = list(allowed)
        super().__init__(
            f"Duration of {duration_minutes} minutes is not offered. Allowed: {', '.join(self.allowed)}"
        )


class InvalidTier(ValidationError):
    pass


class InvalidOrdering(ValidationError):
    def __init__(self, valid_from: datetime, current_valid_from: datetime):
        super().__init__(
            f"New price valid_from {valid_from.isoformat()} must be after "
            f"current price valid_from {current_valid_from.isoformat()}"
        )
        self.valid_from = valid_from
        self.current_valid_from = current_valid_from


# Not found ----------------------------------------------------------------
class EntityNotFound(NotFoundError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class NoBookingsFound(NotFoundError):
    def __init__(self, booking_ids: Iterable[str]):
        self.booking_ids: List[str] = list(booking_ids)
        super().__init__("No bookings found for the provided IDs")


# Conflict -----------------------------------------------------------------
class AlreadyBilled(ConflictError):
    def __init__(self, booking_ids: Iterable[str]):
        self.booking_ids: List[str] = sorted(booking_ids)
        super().__init__(f"Some bookings are already billed: {', '.join(self.booking_ids)}")


class OverlappingTier(ConflictError):
    def __init__(self, from_minutes: int, to_minutes: Optional[int]):
        upper = "∞" if to_minutes is None else str(to_minutes)
        super().__init__(f"Price tier overlaps with existing tier: {from_minutes}-{upper}")
        self.from_minutes = from_minutes
        self.to_minutes = to_minutes


class DuplicateName(ConflictError):
    def __init__(self, kind: str, name: str):
        super().__init__(f"A {kind.lower()} named '{name}' already exists")
        self.kind = kind
        self.name = name


class BookingOverlap(ConflictError):
    def __init__(self, room_id: str, other_booking_id: str):
        super().__init__(f"Room {room_id} is already booked by {other_booking_id} in that slot")
        self.room_id = room_id
        self.other_booking_id = other_booking_id


class BookingBilled(ConflictError):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} is referenced by an invoice")
        self.booking_id = booking_id


class LastActiveDurationOption(ConflictError):
    def __init__(self, option_id: str):
        super().__init__("At least one active duration option must remain")
        self.option_id = option_id


class EntityInUse(ConflictError):
    """Delete refused while future bookings still reference the entity."""

    def __init__(self, kind: str, entity_id: str, future_bookings: int):
        super().__init__(
            f"{kind} {entity_id} has {future_bookings} upcoming booking(s); deactivate it instead of deleting"
        )
        self.kind = kind
        self.entity_id = entity_id
        self.future_bookings = future_bookings


# Integrity ----------------------------------------------------------------
class RoomPriceMissing(IntegrityError):
    def __init__(self, room_id: str, at: datetime):
        super().__init__(f"No room price found for room {room_id} at {at.isoformat()}")
        self.room_id = room_id
        self.at = at


class UpgradePriceMissing(IntegrityError):
    def __init__(self, upgrade_id: str, at: datetime):
        super().__init__(f"No upgrade price found for upgrade {upgrade_id} at {at.isoformat()}")
        self.upgrade_id = upgrade_id
        self.at = at
