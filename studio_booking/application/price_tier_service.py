"""Create, update and delete the duration tiers of a room price."""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from studio_booking.app.config import AppConfig
from studio_booking.app.logging import get_logger
from studio_booking.domain.errors import EntityNotFound, OverlappingTier
from studio_booking.domain.pricing import PriceTier, PriceType
from studio_booking.infrastructure.repository import StudioRepository

logger = get_logger(__name__)


class PriceTierService:
    def __init__(self, config: AppConfig, repository: StudioRepository):
        self.config = config
        self.repository = repository

    def list_tiers(self, room_price_id: str) -> List[PriceTier]:
        """Tiers in display order."""
        tiers = self.repository.list_price_tiers(room_price_id)
        return sorted(tiers, key=lambda tier: (tier.sort_order, tier.from_minutes))

    def create_tier(
        self,
        room_price_id: str,
        from_minutes: int,
        to_minutes: Optional[int],
        price_type: PriceType,
        price: Decimal,
        sort_order: int = 0,
    ) -> PriceTier:
        if not self.repository.get_room_price(room_price_id):
            raise EntityNotFound("Room price", room_price_id)

        tier = PriceTier(
            room_price_id=room_price_id,
            from_minutes=from_minutes,
            to_minutes=to_minutes,
            price_type=price_type,
            price=price,
            sort_order=sort_order,
        )
        self._validate_no_overlap(tier)
        self.repository.save_price_tier(tier)
        logger.info(
            "Tier %s-%s %s %s added to room price %s",
            from_minutes,
            to_minutes,
            tier.price_type.value,
            tier.price,
            room_price_id,
        )
        return tier

    def update_tier(
        self,
        room_price_id: str,
        tier_id: str,
        from_minutes: int,
        to_minutes: Optional[int],
        price_type: PriceType,
        price: Decimal,
        sort_order: int = 0,
    ) -> PriceTier:
        existing = self._owned_tier(room_price_id, tier_id)

        # tiers are value objects: the update is a new record under the same id
        updated = replace(
            existing,
            from_minutes=from_minutes,
            to_minutes=to_minutes,
            price_type=price_type,
            price=price,
            sort_order=sort_order,
        )
        self._validate_no_overlap(updated)
        self.repository.save_price_tier(updated)
        return updated

    def delete_tier(self, room_price_id: str, tier_id: str) -> None:
        self._owned_tier(room_price_id, tier_id)
        self.repository.delete_price_tier(tier_id)

    def delete_all_tiers(self, room_price_id: str) -> None:
        self.repository.delete_price_tiers(room_price_id)

    def _owned_tier(self, room_price_id: str, tier_id: str) -> PriceTier:
        """A tier addressed under another price is reported as missing."""
        tier = self.repository.get_price_tier(tier_id)
        if not tier or tier.room_price_id != room_price_id:
            raise EntityNotFound("Price tier", tier_id)
        return tier

    def _validate_no_overlap(self, tier: PriceTier) -> None:
        for existing in self.repository.list_price_tiers(tier.room_price_id):
            if existing.tier_id == tier.tier_id:
                continue
            if existing.overlaps(tier.from_minutes, tier.to_minutes):
                raise OverlappingTier(existing.from_minutes, existing.to_minutes)
