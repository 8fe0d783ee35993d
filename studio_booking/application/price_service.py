"""Rate history for rooms and upgrades.

Rates are never edited in place. ``update_room_rate`` / ``update_upgrade_rate``
close the currently open record at ``valid_from`` and open a new one, both
written by a single repository call.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, TypeVar

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.clock import as_naive_utc
from studio_booking.domain.errors import EntityNotFound, InvalidOrdering, ValidationError
from studio_booking.domain.money import to_decimal, to_money
from studio_booking.domain.price import RoomPrice, UpgradePrice
from studio_booking.infrastructure.repository import StudioRepository

logger = get_logger(__name__)

P = TypeVar("P", RoomPrice, UpgradePrice)


class PriceService:
    def __init__(self, config: AppConfig, repository: StudioRepository):
        self.config = config
        self.repository = repository

    # Updates --------------------------------------------------------------
    def update_room_rate(self, room_id: str, new_rate: Decimal, valid_from: datetime) -> RoomPrice:
        if not self.repository.get_room(room_id):
            raise EntityNotFound("Room", room_id)
        rate = self.checked_rate(new_rate, allow_zero=False)
        valid_from = as_naive_utc(valid_from)

        current = self.repository.find_open_room_price(room_id)
        closed = self._close(current, valid_from)
        opened = RoomPrice(room_id=room_id, price=rate, valid_from=valid_from)
        self.repository.supersede_room_price(closed, opened)
        logger.info("Room %s rate set to %s from %s", room_id, rate, valid_from.isoformat())
        return opened

    def update_upgrade_rate(self, upgrade_id: str, new_rate: Decimal, valid_from: datetime) -> UpgradePrice:
        if not self.repository.get_upgrade(upgrade_id):
            raise EntityNotFound("Upgrade", upgrade_id)
        rate = self.checked_rate(new_rate, allow_zero=True)
        valid_from = as_naive_utc(valid_from)

        current = self.repository.find_open_upgrade_price(upgrade_id)
        closed = self._close(current, valid_from)
        opened = UpgradePrice(upgrade_id=upgrade_id, price=rate, valid_from=valid_from)
        self.repository.supersede_upgrade_price(closed, opened)
        logger.info("Upgrade %s rate set to %s from %s", upgrade_id, rate, valid_from.isoformat())
        return opened

    # Resolution -----------------------------------------------------------
    def resolve_room_price_at(self, room_id: str, timestamp: datetime) -> Optional[RoomPrice]:
        return self.repository.find_room_price_valid_at(room_id, as_naive_utc(timestamp))

    def resolve_upgrade_price_at(self, upgrade_id: str, timestamp: datetime) -> Optional[UpgradePrice]:
        return self.repository.find_upgrade_price_valid_at(upgrade_id, as_naive_utc(timestamp))

    def current_room_price(self, room_id: str) -> Optional[RoomPrice]:
        return self.repository.find_open_room_price(room_id)

    def current_upgrade_price(self, upgrade_id: str) -> Optional[UpgradePrice]:
        return self.repository.find_open_upgrade_price(upgrade_id)

    def room_price_history(self, room_id: str) -> List[RoomPrice]:
        return self.repository.list_room_prices(room_id)

    def upgrade_price_history(self, upgrade_id: str) -> List[UpgradePrice]:
        return self.repository.list_upgrade_prices(upgrade_id)

    def get_room_price(self, price_id: str) -> RoomPrice:
        price = self.repository.get_room_price(price_id)
        if not price:
            raise EntityNotFound("Room price", price_id)
        return price

    # Helpers --------------------------------------------------------------
    @staticmethod
    def _close(current: Optional[P], valid_from: datetime) -> Optional[P]:
        if current is None:
            return None
        if not valid_from > current.valid_from:
            raise InvalidOrdering(valid_from, current.valid_from)
        return replace(current, valid_to=valid_from)

    @staticmethod
    def checked_rate(rate: Decimal, allow_zero: bool) -> Decimal:
        value = to_decimal(rate)
        if value < 0 or (value == 0 and not allow_zero):
            raise ValidationError(f"Rate must be {'>= 0' if allow_zero else '> 0'}, got {rate}")
        return to_money(value)
