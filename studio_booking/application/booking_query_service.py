"""Filtered booking listing with status and an estimated price per booking."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.booking import Booking, BookingStatus
from studio_booking.domain.catalog import Room, ServiceProvider, Upgrade
from studio_booking.domain.clock import utcnow
from studio_booking.domain.errors import ValidationError
from studio_booking.domain.money import to_money
from studio_booking.infrastructure.repository import StudioRepository
from .price_service import PriceService
from .pricing_service import PriceCalculationService

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 50


@dataclass
class BookingListItem:
    booking: Booking
    room: Optional[Room]
    provider: Optional[ServiceProvider]
    upgrades: List[tuple] = field(default_factory=list)  # (Upgrade, quantity)
    status: BookingStatus = BookingStatus.UPCOMING
    total_price: Optional[Decimal] = None


@dataclass
class BookingPage:
    items: List[BookingListItem]
    number: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_elements // self.size) if self.size else 0


class BookingQueryService:
    def __init__(
        self,
        config: AppConfig,
        repository: StudioRepository,
        price_service: PriceService,
        price_calculation: PriceCalculationService,
    ):
        self.config = config
        self.repository = repository
        self.price_service = price_service
        self.price_calculation = price_calculation

    def search_bookings(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        provider_id: Optional[str] = None,
        room_id: Optional[str] = None,
        client_search: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        now: Optional[datetime] = None,
    ) -> BookingPage:
        """Newest first.

        Dates are whole days. ``status`` narrows the range further: UPCOMING
        keeps bookings starting from ``now``, PAST those up to ``now`` and
        TODAY those starting on today's date.
        """
        if page < 0 or size <= 0:
            raise ValidationError("Page must be >= 0 and size > 0")
        now = now or utcnow()
        start = datetime.combine(start_date, time.min) if start_date else None
        end = datetime.combine(end_date, time.max) if end_date else None
        if status is BookingStatus.UPCOMING:
            start = max(start, now) if start else now
        elif status is BookingStatus.PAST:
            end = min(end, now) if end else now
        elif status is BookingStatus.TODAY:
            day_start, day_end = datetime.combine(now.date(), time.min), datetime.combine(now.date(), time.max)
            start = max(start, day_start) if start else day_start
            end = min(end, day_end) if end else day_end

        bookings = self.repository.list_bookings(
            room_id=room_id,
            provider_id=provider_id,
            start=start,
            end=end,
            client_search=(client_search or "").strip() or None,
        )
        bookings = sorted(bookings, key=lambda b: b.start_time, reverse=True)
        window = bookings[page * size:(page + 1) * size]
        items = [self._list_item(booking, now.date()) for booking in window]
        return BookingPage(items=items, number=page, size=size, total_elements=len(bookings))

    def _list_item(self, booking: Booking, today: date) -> BookingListItem:
        upgrades = []
        for booking_upgrade in booking.upgrades:
            upgrade = self.repository.get_upgrade(booking_upgrade.upgrade_id)
            if upgrade:
                upgrades.append((upgrade, booking_upgrade.quantity))
        return BookingListItem(
            booking=booking,
            room=self.repository.get_room(booking.room_id),
            provider=self.repository.get_provider(booking.provider_id),
            upgrades=upgrades,
            status=BookingStatus.of(booking.start_time, today),
            total_price=self._estimate_total(booking, upgrades),
        )

    def _estimate_total(self, booking: Booking, upgrades: List[tuple]) -> Optional[Decimal]:
        """Price in effect at the start, else the current price; ``None`` when neither exists."""
        room_price = self.price_service.resolve_room_price_at(booking.room_id, booking.start_time)
        room_price = room_price or self.price_service.current_room_price(booking.room_id)
        if not room_price:
            logger.debug("No room price to estimate booking %s", booking.booking_id)
            return None
        total = self.price_calculation.calculate_room_price(room_price, booking.duration_minutes)

        for upgrade, quantity in upgrades:
            upgrade_price = self._upgrade_price(upgrade, booking.start_time)
            if not upgrade_price:
                logger.debug("No price for upgrade %s to estimate booking %s", upgrade.upgrade_id, booking.booking_id)
                return None
            total += upgrade_price.price * quantity
        return to_money(total)

    def _upgrade_price(self, upgrade: Upgrade, at: datetime):
        price = self.price_service.resolve_upgrade_price_at(upgrade.upgrade_id, at)
        return price or self.price_service.current_upgrade_price(upgrade.upgrade_id)
