"""Room pricing backed by the stored tiers of a price record."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.price import RoomPrice
from studio_booking.domain.pricing import compute_price, preview_prices
from studio_booking.infrastructure.repository import StudioRepository

logger = get_logger(__name__)


class PriceCalculationService:
    def __init__(self, config: AppConfig, repository: StudioRepository):
        self.config = config
        self.repository = repository

    def calculate_room_price(self, room_price: RoomPrice, duration_minutes: int) -> Decimal:
        """Tiered price when ``room_price`` has tiers, plain hourly rate otherwise."""
        tiers = self.repository.list_price_tiers(room_price.price_id)
        amount = compute_price(room_price.price, tiers, duration_minutes)
        logger.debug(
            "Priced %s min against room price %s (%d tiers): %s",
            duration_minutes,
            room_price.price_id,
            len(tiers),
            amount,
        )
        return amount

    def calculate_price_preview(self, room_price: RoomPrice) -> Dict[int, Decimal]:
        tiers = self.repository.list_price_tiers(room_price.price_id)
        return preview_prices(room_price.price, tiers, self.config.preview_durations)
