"""Routers for room bookings."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, Field

from studio_booking.domain.booking import BookingStatus
from studio_booking.domain.errors import ValidationError
from studio_booking.interfaces import deps
from studio_booking.interfaces.serializers import serialize_booking, serialize_booking_page

booking_service = deps.booking_service
booking_query_service = deps.booking_query_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


class BookingUpgradeRequest(BaseModel):
    upgradeId: str
    quantity: int = Field(1, ge=1)


class BookingRequest(BaseModel):
    providerId: str
    roomId: str
    startTime: datetime
    durationMinutes: int = Field(..., gt=0)
    restingTimeMinutes: int = Field(0, ge=0, description="Buffer after the booking, not billed")
    clientAlias: str = ""
    upgrades: List[BookingUpgradeRequest] = Field(default_factory=list)

    def upgrade_quantities(self) -> Dict[str, int]:
        """Repeated upgrade ids add up."""
        quantities: Dict[str, int] = {}
        for upgrade in self.upgrades:
            quantities[upgrade.upgradeId] = quantities.get(upgrade.upgradeId, 0) + upgrade.quantity
        return quantities


@router.get("")
def list_bookings(roomId: Optional[str] = Query(None)) -> List[Dict[str, Any]]:
    return [serialize_booking(b) for b in booking_service.list_bookings(roomId)]


@router.get("/search")
def search_bookings(
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    providerId: Optional[str] = Query(None),
    roomId: Optional[str] = Query(None),
    clientSearch: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="UPCOMING, TODAY or PAST"),
    page: int = Query(0, ge=0),
    size: int = Query(50, ge=1, le=500),
) -> Dict[str, Any]:
    """Newest first, with a status and an estimated total per booking."""
    parsed_status = None
    if status:
        try:
            parsed_status = BookingStatus(status.upper())
        except ValueError as exc:
            raise ValidationError(f"Unknown booking status: {status}") from exc
    result = booking_query_service.search_bookings(
        start_date=startDate,
        end_date=endDate,
        provider_id=providerId,
        room_id=roomId,
        client_search=clientSearch,
        status=parsed_status,
        page=page,
        size=size,
    )
    return serialize_booking_page(result)


@router.post("", status_code=201)
def create_booking(payload: BookingRequest) -> Dict[str, Any]:
    booking = booking_service.create_booking(
        provider_id=payload.providerId,
        room_id=payload.roomId,
        start_time=payload.startTime,
        duration_minutes=payload.durationMinutes,
        resting_time_minutes=payload.restingTimeMinutes,
        client_alias=payload.clientAlias,
        upgrades=payload.upgrade_quantities(),
    )
    return serialize_booking(booking)


@router.get("/{booking_id}")
def get_booking(booking_id: str) -> Dict[str, Any]:
    return serialize_booking(booking_service.get_booking(booking_id))


@router.put("/{booking_id}")
def update_booking(booking_id: str, payload: BookingRequest) -> Dict[str, Any]:
    booking = booking_service.update_booking(
        booking_id,
        provider_id=payload.providerId,
        room_id=payload.roomId,
        start_time=payload.startTime,
        duration_minutes=payload.durationMinutes,
        resting_time_minutes=payload.restingTimeMinutes,
        client_alias=payload.clientAlias,
        upgrades=payload.upgrade_quantities(),
    )
    return serialize_booking(booking)


@router.delete("/{booking_id}", status_code=204)
def delete_booking(booking_id: str) -> Response:
    booking_service.delete_booking(booking_id)
    return Response(status_code=204)
