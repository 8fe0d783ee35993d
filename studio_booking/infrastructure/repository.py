"""Abstract repository interface for persistence."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from studio_booking.domain.billing import Billing, BillingItem
from studio_booking.domain.booking import Booking
from studio_booking.domain.catalog import Room, ServiceProvider, Upgrade
from studio_booking.domain.duration import DurationOption
from studio_booking.domain.price import RoomPrice, UpgradePrice
from studio_booking.domain.pricing import PriceTier


class StudioRepository(ABC):
    """Unified gateway so memory store / SQL database share the same API.

    Compound writes (``supersede_*_price`` and ``add_billings``) are atomic:
    either every record lands or none does.
    """

    # Rooms ----------------------------------------------------------------
    @abstractmethod
    def get_room(self, room_id: str) -> Optional[Room]:
        raise NotImplementedError

    @abstractmethod
    def list_rooms(self) -> Iterable[Room]:
        raise NotImplementedError

    @abstractmethod
    def save_room(self, room: Room) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_room(self, room_id: str) -> None:
        """Remove the room with its price history and tiers."""
        raise NotImplementedError

    # Providers ------------------------------------------------------------
    @abstractmethod
    def get_provider(self, provider_id: str) -> Optional[ServiceProvider]:
        raise NotImplementedError

    @abstractmethod
    def list_providers(self) -> Iterable[ServiceProvider]:
        raise NotImplementedError

    @abstractmethod
    def save_provider(self, provider: ServiceProvider) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_provider(self, provider_id: str) -> None:
        raise NotImplementedError

    # Upgrades -------------------------------------------------------------
    @abstractmethod
    def get_upgrade(self, upgrade_id: str) -> Optional[Upgrade]:
        raise NotImplementedError

    @abstractmethod
    def list_upgrades(self) -> Iterable[Upgrade]:
        raise NotImplementedError

    @abstractmethod
    def save_upgrade(self, upgrade: Upgrade) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_upgrade(self, upgrade_id: str) -> None:
        """Remove the upgrade with its price history."""
        raise NotImplementedError

    # Duration options -----------------------------------------------------
    @abstractmethod
    def get_duration_option(self, option_id: str) -> Optional[DurationOption]:
        raise NotImplementedError

    @abstractmethod
    def list_duration_options(self) -> List[DurationOption]:
        """Ordered by ``sort_order``."""
        raise NotImplementedError

    @abstractmethod
    def save_duration_option(self, option: DurationOption) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_duration_option(self, option_id: str) -> None:
        raise NotImplementedError

    # Bookings -------------------------------------------------------------
    @abstractmethod
    def get_booking(self, booking_id: str) -> Optional[Booking]:
        raise NotImplementedError

    @abstractmethod
    def get_bookings(self, booking_ids: Sequence[str]) -> List[Booking]:
        """Load many by id; unknown ids are skipped."""
        raise NotImplementedError

    @abstractmethod
    def list_bookings(
        self,
        room_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        upgrade_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        client_search: Optional[str] = None,
    ) -> Iterable[Booking]:
        """Bookings by ascending start; ``start``/``end`` bound the start time inclusively.

        ``client_search`` matches a case-insensitive substring of the client alias.
        """
        raise NotImplementedError

    @abstractmethod
    def save_booking(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_booking(self, booking_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def has_billing_item(self, booking_id: str) -> bool:
        raise NotImplementedError

    # Room prices ----------------------------------------------------------
    @abstractmethod
    def get_room_price(self, price_id: str) -> Optional[RoomPrice]:
        raise NotImplementedError

    @abstractmethod
    def find_room_price_valid_at(self, room_id: str, timestamp: datetime) -> Optional[RoomPrice]:
        raise NotImplementedError

    @abstractmethod
    def find_open_room_price(self, room_id: str) -> Optional[RoomPrice]:
        raise NotImplementedError

    @abstractmethod
    def list_room_prices(self, room_id: str) -> List[RoomPrice]:
        """Price history, newest ``valid_from`` first."""
        raise NotImplementedError

    @abstractmethod
    def supersede_room_price(self, closed: Optional[RoomPrice], opened: RoomPrice) -> RoomPrice:
        """Store ``closed`` (the former open record, now with ``valid_to``) and ``opened`` together."""
        raise NotImplementedError

    # Upgrade prices -------------------------------------------------------
    @abstractmethod
    def find_upgrade_price_valid_at(self, upgrade_id: str, timestamp: datetime) -> Optional[UpgradePrice]:
        raise NotImplementedError

    @abstractmethod
    def find_open_upgrade_price(self, upgrade_id: str) -> Optional[UpgradePrice]:
        raise NotImplementedError

    @abstractmethod
    def list_upgrade_prices(self, upgrade_id: str) -> List[UpgradePrice]:
        raise NotImplementedError

    @abstractmethod
    def supersede_upgrade_price(self, closed: Optional[UpgradePrice], opened: UpgradePrice) -> UpgradePrice:
        raise NotImplementedError

    # Price tiers ----------------------------------------------------------
    @abstractmethod
    def get_price_tier(self, tier_id: str) -> Optional[PriceTier]:
        raise NotImplementedError

    @abstractmethod
    def list_price_tiers(self, room_price_id: str) -> List[PriceTier]:
        """Tiers of one room price sorted by ``from_minutes``."""
        raise NotImplementedError

    @abstractmethod
    def save_price_tier(self, tier: PriceTier) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_price_tier(self, tier_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_price_tiers(self, room_price_id: str) -> None:
        raise NotImplementedError

    # Billing --------------------------------------------------------------
    @abstractmethod
    def add_billings(self, billings: Sequence[Billing]) -> List[Billing]:
        """Persist invoices with their items; raises ``AlreadyBilled`` if any booking already has an item."""
        raise NotImplementedError

    @abstractmethod
    def get_billing(self, billing_id: str) -> Optional[Billing]:
        raise NotImplementedError

    @abstractmethod
    def list_billings(self, provider_id: Optional[str] = None) -> List[Billing]:
        """Newest first, optionally restricted to one provider."""
        raise NotImplementedError

    @abstractmethod
    def list_billing_items(self, billing_id: str) -> List[BillingItem]:
        raise NotImplementedError
