"""Invoice generation: price completed bookings and freeze them into line items."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Sequence

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.billing import Billing, BillingItem, BillingItemUpgrade
from studio_booking.domain.booking import Booking
from studio_booking.domain.clock import as_naive_utc
from studio_booking.domain.errors import (
    AlreadyBilled,
    EntityNotFound,
    NoBookingsFound,
    RoomPriceMissing,
    UpgradePriceMissing,
    ValidationError,
)
from studio_booking.infrastructure.repository import StudioRepository
from .price_service import PriceService
from .pricing_service import PriceCalculationService

logger = get_logger(__name__)


class BillingService:
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

    # Generation -----------------------------------------------------------
    def generate_billings(
        self,
        booking_ids: Sequence[str],
        period_start: datetime,
        period_end: datetime,
    ) -> List[Billing]:
        """Create one invoice per provider for the given bookings.

        The batch is all or nothing: every booking is priced and frozen in
        memory first, then all invoices are written by one repository call.
        Any failure leaves the store untouched.
        """
        period_start = as_naive_utc(period_start)
        period_end = as_naive_utc(period_end)
        if period_end < period_start:
            raise ValidationError("Billing period end must not be before its start")

        bookings = self.repository.get_bookings(list(booking_ids))
        if not bookings:
            raise NoBookingsFound(booking_ids)

        already_billed = [b.booking_id for b in bookings if self.repository.has_billing_item(b.booking_id)]
        if already_billed:
            logger.warning("Rejected billing batch, already billed: %s", already_billed)
            raise AlreadyBilled(already_billed)

        billings = []
        for provider_id, provider_bookings in self._group_by_provider(bookings).items():
            billing = Billing(provider_id=provider_id, period_start=period_start, period_end=period_end)
            for booking in provider_bookings:
                billing.add_item(self._freeze_booking(billing, booking))
            billing.update_total_amount()
            billings.append(billing)

        saved = self.repository.add_billings(billings)
        for billing in saved:
            logger.info(
                "Billing %s for provider %s: %d items, total %s",
                billing.billing_id,
                billing.provider_id,
                len(billing.items),
                billing.total_amount,
            )
        return saved

    def _freeze_booking(self, billing: Billing, booking: Booking) -> BillingItem:
        room = self.repository.get_room(booking.room_id)
        if not room:
            raise EntityNotFound("Room", booking.room_id)

        room_price = self.price_service.resolve_room_price_at(booking.room_id, booking.start_time)
        if not room_price:
            logger.error("No room price in effect for room %s at %s", booking.room_id, booking.start_time)
            raise RoomPriceMissing(booking.room_id, booking.start_time)

        subtotal_room = self.price_calculation.calculate_room_price(room_price, booking.duration_minutes)

        upgrades = []
        for booking_upgrade in booking.upgrades:
            upgrade = self.repository.get_upgrade(booking_upgrade.upgrade_id)
            if not upgrade:
                raise EntityNotFound("Upgrade", booking_upgrade.upgrade_id)
            upgrade_price = self.price_service.resolve_upgrade_price_at(upgrade.upgrade_id, booking.start_time)
            if not upgrade_price:
                logger.error("No upgrade price in effect for upgrade %s at %s", upgrade.upgrade_id, booking.start_time)
                raise UpgradePriceMissing(upgrade.upgrade_id, booking.start_time)
            upgrades.append(BillingItemUpgrade.freeze(upgrade, booking_upgrade.quantity, upgrade_price))

        return BillingItem.freeze(
            billing_id=billing.billing_id,
            booking=booking,
            room=room,
            room_price=room_price,
            subtotal_room=subtotal_room,
            upgrades=upgrades,
        )

    @staticmethod
    def _group_by_provider(bookings: Sequence[Booking]) -> Dict[str, List[Booking]]:
        groups: Dict[str, List[Booking]] = {}
        for booking in bookings:
            groups.setdefault(booking.provider_id, []).append(booking)
        return groups

    # Queries --------------------------------------------------------------
    def list_billings(self) -> List[Billing]:
        return self.repository.list_billings()

    def list_billings_for_provider(self, provider_id: str) -> List[Billing]:
        return self.repository.list_billings(provider_id=provider_id)

    def get_billing(self, billing_id: str) -> Billing:
        billing = self.repository.get_billing(billing_id)
        if not billing:
            raise EntityNotFound("Billing", billing_id)
        return billing

    def get_billing_items(self, billing_id: str) -> List[BillingItem]:
        self.get_billing(billing_id)
        return self.repository.list_billing_items(billing_id)
