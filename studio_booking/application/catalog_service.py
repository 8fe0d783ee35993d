"""Rooms, providers and upgrades."""
from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.catalog import DEFAULT_PROVIDER_COLOR, DEFAULT_ROOM_COLOR, Room, ServiceProvider, Upgrade
from studio_booking.domain.clock import utcnow
from studio_booking.domain.errors import DuplicateName, EntityInUse, EntityNotFound, ValidationError
from studio_booking.infrastructure.repository import StudioRepository
from .price_service import PriceService

logger = get_logger(__name__)

MAX_NAME_LENGTH = 100
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class CatalogService:
    def __init__(self, config: AppConfig, repository: StudioRepository, price_service: PriceService):
        self.config = config
        self.repository = repository
        self.price_service = price_service

    # Rooms ----------------------------------------------------------------
    def list_rooms(self, include_inactive: bool = False) -> List[Room]:
        return [room for room in self.repository.list_rooms() if include_inactive or room.active]

    def get_room(self, room_id: str) -> Room:
        room = self.repository.get_room(room_id)
        if not room:
            raise EntityNotFound("Room", room_id)
        return room

    def create_room(
        self,
        name: str,
        hourly_rate: Decimal,
        valid_from: Optional[datetime] = None,
        sort_order: Optional[int] = None,
        color: Optional[str] = None,
    ) -> Room:
        """Create a room and open its first price record at ``hourly_rate``."""
        name = self._validate_name(name)
        color = self._validate_color(color or DEFAULT_ROOM_COLOR)
        self._ensure_unique("Room", name, self.repository.list_rooms(), lambda r: r.room_id)
        hourly_rate = self.price_service.checked_rate(hourly_rate, allow_zero=False)
        if sort_order is None:
            sort_order = max((room.sort_order for room in self.repository.list_rooms()), default=0) + 1

        room = Room(name=name, sort_order=sort_order, color=color)
        self.repository.save_room(room)
        self.price_service.update_room_rate(room.room_id, hourly_rate, valid_from or utcnow())
        return room

    def update_room(self, room_id: str, name: str, active: bool, sort_order: int, color: str) -> Room:
        room = self.get_room(room_id)
        name = self._validate_name(name)
        color = self._validate_color(color)
        self._ensure_unique("Room", name, self.repository.list_rooms(), lambda r: r.room_id, exclude=room_id)
        room.name = name
        room.active = active
        room.sort_order = sort_order
        room.color = color
        room.updated_at = utcnow()
        self.repository.save_room(room)
        return room

    def delete_room(self, room_id: str) -> bool:
        """Delete, or only deactivate when past bookings reference the room.

        Returns ``True`` when the room was removed.
        """
        room = self.get_room(room_id)
        return self._retire(
            "Room",
            room_id,
            lambda **filters: self.repository.list_bookings(room_id=room_id, **filters),
            lambda: self._deactivate(room, self.repository.save_room),
            lambda: self.repository.delete_room(room_id),
        )

    # Providers ------------------------------------------------------------
    def list_providers(self, include_inactive: bool = False) -> List[ServiceProvider]:
        return [p for p in self.repository.list_providers() if include_inactive or p.active]

    def get_provider(self, provider_id: str) -> ServiceProvider:
        provider = self.repository.get_provider(provider_id)
        if not provider:
            raise EntityNotFound("Provider", provider_id)
        return provider

    def create_provider(self, name: str, sort_order: Optional[int] = None, color: Optional[str] = None) -> ServiceProvider:
        name = self._validate_name(name)
        color = self._validate_color(color or DEFAULT_PROVIDER_COLOR)
        self._ensure_unique("Provider", name, self.repository.list_providers(), lambda p: p.provider_id)
        if sort_order is None:
            sort_order = max((p.sort_order for p in self.repository.list_providers()), default=0) + 1
        provider = ServiceProvider(name=name, sort_order=sort_order, color=color)
        self.repository.save_provider(provider)
        return provider

    def delete_provider(self, provider_id: str) -> bool:
        provider = self.get_provider(provider_id)
        return self._retire(
            "Provider",
            provider_id,
            lambda **filters: self.repository.list_bookings(provider_id=provider_id, **filters),
            lambda: self._deactivate(provider, self.repository.save_provider),
            lambda: self.repository.delete_provider(provider_id),
        )

    def update_provider(self, provider_id: str, name: str, active: bool, sort_order: int, color: str) -> ServiceProvider:
        provider = self.get_provider(provider_id)
        name = self._validate_name(name)
        color = self._validate_color(color)
        self._ensure_unique(
            "Provider", name, self.repository.list_providers(), lambda p: p.provider_id, exclude=provider_id
        )
        provider.name = name
        provider.active = active
        provider.sort_order = sort_order
        provider.color = color
        provider.updated_at = utcnow()
        self.repository.save_provider(provider)
        return provider

    # Upgrades -------------------------------------------------------------
    def list_upgrades(self, include_inactive: bool = False) -> List[Upgrade]:
        return [u for u in self.repository.list_upgrades() if include_inactive or u.active]

    def get_upgrade(self, upgrade_id: str) -> Upgrade:
        upgrade = self.repository.get_upgrade(upgrade_id)
        if not upgrade:
            raise EntityNotFound("Upgrade", upgrade_id)
        return upgrade

    def create_upgrade(self, name: str, price: Decimal, valid_from: Optional[datetime] = None) -> Upgrade:
        """Create an upgrade and open its first price record."""
        name = self._validate_name(name)
        self._ensure_unique("Upgrade", name, self.repository.list_upgrades(), lambda u: u.upgrade_id)
        price = self.price_service.checked_rate(price, allow_zero=True)
        upgrade = Upgrade(name=name)
        self.repository.save_upgrade(upgrade)
        self.price_service.update_upgrade_rate(upgrade.upgrade_id, price, valid_from or utcnow())
        return upgrade

    def update_upgrade(self, upgrade_id: str, name: str, active: bool) -> Upgrade:
        upgrade = self.get_upgrade(upgrade_id)
        name = self._validate_name(name)
        self._ensure_unique(
            "Upgrade", name, self.repository.list_upgrades(), lambda u: u.upgrade_id, exclude=upgrade_id
        )
        upgrade.name = name
        upgrade.active = active
        self.repository.save_upgrade(upgrade)
        return upgrade

    def delete_upgrade(self, upgrade_id: str) -> bool:
        upgrade = self.get_upgrade(upgrade_id)
        return self._retire(
            "Upgrade",
            upgrade_id,
            lambda **filters: self.repository.list_bookings(upgrade_id=upgrade_id, **filters),
            lambda: self._deactivate(upgrade, self.repository.save_upgrade),
            lambda: self.repository.delete_upgrade(upgrade_id),
        )

    # Retirement -----------------------------------------------------------
    @staticmethod
    def _retire(
        kind: str,
        entity_id: str,
        bookings_of: Callable[..., Iterable],
        deactivate: Callable[[], None],
        delete: Callable[[], None],
    ) -> bool:
        upcoming = list(bookings_of(start=utcnow()))
        if upcoming:
            raise EntityInUse(kind, entity_id, len(upcoming))
        if list(bookings_of()):
            deactivate()
            logger.info("%s %s has past bookings, deactivated instead of deleted", kind, entity_id)
            return False
        delete()
        logger.info("%s %s deleted", kind, entity_id)
        return True

    @staticmethod
    def _deactivate(entity, save) -> None:
        entity.active = False
        if hasattr(entity, "updated_at"):
            entity.updated_at = utcnow()
        save(entity)

    # Validation -----------------------------------------------------------
    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name must not be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")
        return name

    @staticmethod
    def _validate_color(color: str) -> str:
        if not COLOR_PATTERN.match(color):
            raise ValidationError("Color must use the #RRGGBB format")
        return color

    @staticmethod
    def _ensure_unique(kind: str, name: str, existing: Iterable, id_of, exclude: Optional[str] = None) -> None:
        for entity in existing:
            if id_of(entity) != exclude and entity.name.lower() == name.lower():
                raise DuplicateName(kind, name)
