"""Routers for rate history and duration tiers."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Response
from pydantic import BaseModel, Field

from studio_booking.domain.pricing import PriceType
from studio_booking.interfaces import deps
from studio_booking.interfaces.serializers import (
    money,
    serialize_room_price,
    serialize_tier,
    serialize_upgrade_price,
)

price_service = deps.price_service
price_tier_service = deps.price_tier_service
price_calculation_service = deps.price_calculation_service

router = APIRouter(tags=["prices"])


class UpdatePriceRequest(BaseModel):
    price: Decimal = Field(..., ge=0)
    validFrom: datetime


class PriceTierRequest(BaseModel):
    fromMinutes: int = Field(..., ge=0)
    toMinutes: Optional[int] = Field(None, description="Exclusive upper bound, omitted means unbounded")
    priceType: PriceType
    price: Decimal = Field(..., gt=0)
    sortOrder: int = 0


def _room_price_of(room_id: str, price_id: str):
    room_price = price_service.get_room_price(price_id)
    if room_price.room_id != room_id:
        raise HTTPException(status_code=404, detail=f"Room price {price_id} does not belong to room {room_id}")
    return room_price


# Room prices --------------------------------------------------------------
@router.get("/rooms/{room_id}/prices")
def room_price_history(room_id: str) -> List[Dict[str, Any]]:
    return [serialize_room_price(p) for p in price_service.room_price_history(room_id)]


@router.get("/rooms/{room_id}/prices/current")
def current_room_price(room_id: str) -> Dict[str, Any]:
    price = price_service.current_room_price(room_id)
    if not price:
        raise HTTPException(status_code=404, detail=f"Room {room_id} has no current price")
    return serialize_room_price(price)


@router.get("/rooms/{room_id}/prices/at")
def room_price_at(room_id: str, timestamp: datetime = Query(...)) -> Dict[str, Any]:
    price = price_service.resolve_room_price_at(room_id, timestamp)
    if not price:
        raise HTTPException(status_code=404, detail=f"Room {room_id} has no price at {timestamp.isoformat()}")
    return serialize_room_price(price)


@router.post("/rooms/{room_id}/prices")
def update_room_price(room_id: str, payload: UpdatePriceRequest) -> Dict[str, Any]:
    return serialize_room_price(price_service.update_room_rate(room_id, payload.price, payload.validFrom))


# Upgrade prices -----------------------------------------------------------
@router.get("/upgrades/{upgrade_id}/prices")
def upgrade_price_history(upgrade_id: str) -> List[Dict[str, Any]]:
    return [serialize_upgrade_price(p) for p in price_service.upgrade_price_history(upgrade_id)]


@router.get("/upgrades/{upgrade_id}/prices/current")
def current_upgrade_price(upgrade_id: str) -> Dict[str, Any]:
    price = price_service.current_upgrade_price(upgrade_id)
    if not price:
        raise HTTPException(status_code=404, detail=f"Upgrade {upgrade_id} has no current price")
    return serialize_upgrade_price(price)


@router.get("/upgrades/{upgrade_id}/prices/at")
def upgrade_price_at(upgrade_id: str, timestamp: datetime = Query(...)) -> Dict[str, Any]:
    price = price_service.resolve_upgrade_price_at(upgrade_id, timestamp)
    if not price:
        raise HTTPException(status_code=404, detail=f"Upgrade {upgrade_id} has no price at {timestamp.isoformat()}")
    return serialize_upgrade_price(price)


@router.post("/upgrades/{upgrade_id}/prices")
def update_upgrade_price(upgrade_id: str, payload: UpdatePriceRequest) -> Dict[str, Any]:
    return serialize_upgrade_price(price_service.update_upgrade_rate(upgrade_id, payload.price, payload.validFrom))


# Tiers --------------------------------------------------------------------
@router.get("/rooms/{room_id}/prices/{price_id}/tiers")
def list_tiers(room_id: str, price_id: str) -> List[Dict[str, Any]]:
    _room_price_of(room_id, price_id)
    return [serialize_tier(tier) for tier in price_tier_service.list_tiers(price_id)]


@router.post("/rooms/{room_id}/prices/{price_id}/tiers", status_code=201)
def create_tier(room_id: str, price_id: str, payload: PriceTierRequest) -> Dict[str, Any]:
    _room_price_of(room_id, price_id)
    tier = price_tier_service.create_tier(
        room_price_id=price_id,
        from_minutes=payload.fromMinutes,
        to_minutes=payload.toMinutes,
        price_type=payload.priceType,
        price=payload.price,
        sort_order=payload.sortOrder,
    )
    return serialize_tier(tier)


@router.put("/rooms/{room_id}/prices/{price_id}/tiers/{tier_id}")
def update_tier(room_id: str, price_id: str, tier_id: str, payload: PriceTierRequest) -> Dict[str, Any]:
    _room_price_of(room_id, price_id)
    tier = price_tier_service.update_tier(
        room_price_id=price_id,
        tier_id=tier_id,
        from_minutes=payload.fromMinutes,
        to_minutes=payload.toMinutes,
        price_type=payload.priceType,
        price=payload.price,
        sort_order=payload.sortOrder,
    )
    return serialize_tier(tier)


@router.delete("/rooms/{room_id}/prices/{price_id}/tiers/{tier_id}", status_code=204)
def delete_tier(room_id: str, price_id: str, tier_id: str) -> Response:
    _room_price_of(room_id, price_id)
    price_tier_service.delete_tier(price_id, tier_id)
    return Response(status_code=204)


@router.get("/rooms/{room_id}/prices/{price_id}/preview")
def price_preview(room_id: str, price_id: str) -> Dict[str, Any]:
    """Room price for the configured sample durations."""
    room_price = _room_price_of(room_id, price_id)
    preview = price_calculation_service.calculate_price_preview(room_price)
    return {
        "roomPriceId": price_id,
        "currency": deps.settings.currency,
        "prices": {str(minutes): money(amount) for minutes, amount in preview.items()},
    }
