"""In-memory data store used by tests and the ``memory`` storage backend."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from studio_booking.domain.billing import Billing, BillingItem
from studio_booking.domain.booking import Booking
from studio_booking.domain.catalog import Room, ServiceProvider, Upgrade
from studio_booking.domain.duration import DurationOption
from studio_booking.domain.errors import AlreadyBilled, IntegrityError
from studio_booking.domain.price import RoomPrice, UpgradePrice
from studio_booking.domain.pricing import PriceTier
from .repository import StudioRepository


class InMemoryStudioRepository(StudioRepository):
    def __init__(self):
        self._lock = threading.RLock()
        self._rooms: Dict[str, Room] = {}
        self._providers: Dict[str, ServiceProvider] = {}
        self._upgrades: Dict[str, Upgrade] = {}
        self._duration_options: Dict[str, DurationOption] = {}
        self._bookings: Dict[str, Booking] = {}
        self._room_prices: Dict[str, RoomPrice] = {}
        self._upgrade_prices: Dict[str, UpgradePrice] = {}
        self._tiers: Dict[str, PriceTier] = {}
        self._billings: Dict[str, Billing] = {}
        self._billed_bookings: Dict[str, str] = {}  # booking_id -> billing_item id

    # Rooms / providers / upgrades -----------------------------------------
    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def list_rooms(self) -> Iterable[Room]:
        return sorted(self._rooms.values(), key=lambda room: (room.sort_order, room.name))

    def save_room(self, room: Room) -> None:
        self._rooms[room.room_id] = room

    def delete_room(self, room_id: str) -> None:
        with self._lock:
            self._rooms.pop(room_id, None)
            price_ids = {p.price_id for p in self._room_prices.values() if p.room_id == room_id}
            for price_id in price_ids:
                del self._room_prices[price_id]
            for tier_id in [t.tier_id for t in self._tiers.values() if t.room_price_id in price_ids]:
                del self._tiers[tier_id]

    def get_provider(self, provider_id: str) -> Optional[ServiceProvider]:
        return self._providers.get(provider_id)

    def list_providers(self) -> Iterable[ServiceProvider]:
        return sorted(self._providers.values(), key=lambda provider: (provider.sort_order, provider.name))

    def save_provider(self, provider: ServiceProvider) -> None:
        self._providers[provider.provider_id] = provider

    def delete_provider(self, provider_id: str) -> None:
        self._providers.pop(provider_id, None)

    def get_upgrade(self, upgrade_id: str) -> Optional[Upgrade]:
        return self._upgrades.get(upgrade_id)

    def list_upgrades(self) -> Iterable[Upgrade]:
        return sorted(self._upgrades.values(), key=lambda upgrade: upgrade.name)

    def save_upgrade(self, upgrade: Upgrade) -> None:
        self._upgrades[upgrade.upgrade_id] = upgrade

    def delete_upgrade(self, upgrade_id: str) -> None:
        with self._lock:
            self._upgrades.pop(upgrade_id, None)
            for price_id in [p.price_id for p in self._upgrade_prices.values() if p.upgrade_id == upgrade_id]:
                del self._upgrade_prices[price_id]

    # Duration options -----------------------------------------------------
    def get_duration_option(self, option_id: str) -> Optional[DurationOption]:
        return self._duration_options.get(option_id)

    def list_duration_options(self) -> List[DurationOption]:
        return sorted(self._duration_options.values(), key=lambda option: option.sort_order)

    def save_duration_option(self, option: DurationOption) -> None:
        self._duration_options[option.option_id] = option

    def delete_duration_option(self, option_id: str) -> None:
        self._duration_options.pop(option_id, None)

    # Bookings -------------------------------------------------------------
    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def get_bookings(self, booking_ids: Sequence[str]) -> List[Booking]:
        seen = set()
        result = []
        for booking_id in booking_ids:
            booking = self._bookings.get(booking_id)
            if booking and booking_id not in seen:
                seen.add(booking_id)
                result.append(booking)
        return result

    def list_bookings(
        self,
        room_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        upgrade_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        client_search: Optional[str] = None,
    ) -> Iterable[Booking]:
        search = client_search.lower() if client_search else None
        bookings = [
            b
            for b in self._bookings.values()
            if (room_id is None or b.room_id == room_id)
            and (provider_id is None or b.provider_id == provider_id)
            and (upgrade_id is None or any(u.upgrade_id == upgrade_id for u in b.upgrades))
            and (start is None or b.start_time >= start)
            and (end is None or b.start_time <= end)
            and (search is None or search in b.client_alias.lower())
        ]
        return sorted(bookings, key=lambda booking: booking.start_time)

    def save_booking(self, booking: Booking) -> None:
        self._bookings[booking.booking_id] = booking

    def delete_booking(self, booking_id: str) -> None:
        self._bookings.pop(booking_id, None)

    def has_billing_item(self, booking_id: str) -> bool:
        return booking_id in self._billed_bookings

    # Room prices ----------------------------------------------------------
    def get_room_price(self, price_id: str) -> Optional[RoomPrice]:
        return self._room_prices.get(price_id)

    def find_room_price_valid_at(self, room_id: str, timestamp: datetime) -> Optional[RoomPrice]:
        for price in self.list_room_prices(room_id):
            if price.is_valid_at(timestamp):
                return price
        return None

    def find_open_room_price(self, room_id: str) -> Optional[RoomPrice]:
        for price in self._room_prices.values():
            if price.room_id == room_id and price.is_open:
                return price
        return None

    def list_room_prices(self, room_id: str) -> List[RoomPrice]:
        prices = [p for p in self._room_prices.values() if p.room_id == room_id]
        return sorted(prices, key=lambda price: price.valid_from, reverse=True)

    def supersede_room_price(self, closed: Optional[RoomPrice], opened: RoomPrice) -> RoomPrice:
        with self._lock:
            self._check_single_open(self._room_prices, closed, opened, lambda p: p.room_id)
            if closed is not None:
                self._room_prices[closed.price_id] = closed
            self._room_prices[opened.price_id] = opened
        return opened

    # Upgrade prices -------------------------------------------------------
    def find_upgrade_price_valid_at(self, upgrade_id: str, timestamp: datetime) -> Optional[UpgradePrice]:
        for price in self.list_upgrade_prices(upgrade_id):
            if price.is_valid_at(timestamp):
                return price
        return None

    def find_open_upgrade_price(self, upgrade_id: str) -> Optional[UpgradePrice]:
        for price in self._upgrade_prices.values():
            if price.upgrade_id == upgrade_id and price.is_open:
                return price
        return None

    def list_upgrade_prices(self, upgrade_id: str) -> List[UpgradePrice]:
        prices = [p for p in self._upgrade_prices.values() if p.upgrade_id == upgrade_id]
        return sorted(prices, key=lambda price: price.valid_from, reverse=True)

    def supersede_upgrade_price(self, closed: Optional[UpgradePrice], opened: UpgradePrice) -> UpgradePrice:
        with self._lock:
            self._check_single_open(self._upgrade_prices, closed, opened, lambda p: p.upgrade_id)
            if closed is not None:
                self._upgrade_prices[closed.price_id] = closed
            self._upgrade_prices[opened.price_id] = opened
        return opened

    # Price tiers ----------------------------------------------------------
    def get_price_tier(self, tier_id: str) -> Optional[PriceTier]:
        return self._tiers.get(tier_id)

    def list_price_tiers(self, room_price_id: str) -> List[PriceTier]:
        tiers = [t for t in self._tiers.values() if t.room_price_id == room_price_id]
        return sorted(tiers, key=lambda tier: tier.from_minutes)

    def save_price_tier(self, tier: PriceTier) -> None:
        self._tiers[tier.tier_id] = tier

    def delete_price_tier(self, tier_id: str) -> None:
        self._tiers.pop(tier_id, None)

    def delete_price_tiers(self, room_price_id: str) -> None:
        with self._lock:
            for tier_id in [t.tier_id for t in self._tiers.values() if t.room_price_id == room_price_id]:
                del self._tiers[tier_id]

    # Billing --------------------------------------------------------------
    def add_billings(self, billings: Sequence[Billing]) -> List[Billing]:
        with self._lock:
            booking_ids = [item.booking_id for billing in billings for item in billing.items]
            taken = {booking_id for booking_id in booking_ids if booking_id in self._billed_bookings}
            if taken or len(set(booking_ids)) != len(booking_ids):
                duplicates = {b for b in booking_ids if booking_ids.count(b) > 1}
                raise AlreadyBilled(taken | duplicates)
            for billing in billings:
                self._billings[billing.billing_id] = self._detached(billing)
                for item in billing.items:
                    self._billed_bookings[item.booking_id] = item.item_id
        return list(billings)

    def get_billing(self, billing_id: str) -> Optional[Billing]:
        billing = self._billings.get(billing_id)
        return self._detached(billing) if billing else None

    def list_billings(self, provider_id: Optional[str] = None) -> List[Billing]:
        billings = [b for b in self._billings.values() if provider_id is None or b.provider_id == provider_id]
        return [self._detached(b) for b in sorted(billings, key=lambda billing: billing.created_at, reverse=True)]

    def list_billing_items(self, billing_id: str) -> List[BillingItem]:
        billing = self._billings.get(billing_id)
        return list(billing.items) if billing else []

    # Helpers --------------------------------------------------------------
    @staticmethod
    def _detached(billing: Billing) -> Billing:
        """Copy with its own item list; items themselves are frozen."""
        return replace(billing, items=list(billing.items))

    @staticmethod
    def _check_single_open(store: Dict, closed, opened, owner_of) -> None:
        owner = owner_of(opened)
        for price in store.values():
            if owner_of(price) != owner or not price.is_open:
                continue
            if closed is None or price.price_id != closed.price_id:
                raise IntegrityError(f"Another open price already exists for {owner}: {price.price_id}")
