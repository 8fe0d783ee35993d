"""Routers for rooms, service providers and upgrades."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, Field

from studio_booking.interfaces import deps
from studio_booking.interfaces.serializers import serialize_provider, serialize_room, serialize_upgrade

catalog_service = deps.catalog_service

router = APIRouter(tags=["catalog"])


class CreateRoomRequest(BaseModel):
    name: str = Field(..., max_length=100)
    hourlyRate: Decimal = Field(..., gt=0, description="Opening hourly rate")
    validFrom: Optional[datetime] = Field(None, description="Start of the first price period, defaults to now")
    sortOrder: Optional[int] = None
    color: Optional[str] = None


class UpdateRoomRequest(BaseModel):
    name: str = Field(..., max_length=100)
    active: bool = True
    sortOrder: int = 0
    color: str = "#3B82F6"


class CreateProviderRequest(BaseModel):
    name: str = Field(..., max_length=100)
    sortOrder: Optional[int] = None
    color: Optional[str] = None


class UpdateProviderRequest(BaseModel):
    name: str = Field(..., max_length=100)
    active: bool = True
    sortOrder: int = 0
    color: str = "#10B981"


class CreateUpgradeRequest(BaseModel):
    name: str = Field(..., max_length=100)
    price: Decimal = Field(..., ge=0)
    validFrom: Optional[datetime] = None


class UpdateUpgradeRequest(BaseModel):
    name: str = Field(..., max_length=100)
    active: bool = True


# Rooms --------------------------------------------------------------------
@router.get("/rooms")
def list_rooms(includeInactive: bool = Query(False)) -> List[Dict[str, Any]]:
    return [serialize_room(room) for room in catalog_service.list_rooms(includeInactive)]


@router.post("/rooms", status_code=201)
def create_room(payload: CreateRoomRequest) -> Dict[str, Any]:
    room = catalog_service.create_room(
        name=payload.name,
        hourly_rate=payload.hourlyRate,
        valid_from=payload.validFrom,
        sort_order=payload.sortOrder,
        color=payload.color,
    )
    return serialize_room(room)


@router.get("/rooms/{room_id}")
def get_room(room_id: str) -> Dict[str, Any]:
    return serialize_room(catalog_service.get_room(room_id))


@router.put("/rooms/{room_id}")
def update_room(room_id: str, payload: UpdateRoomRequest) -> Dict[str, Any]:
    room = catalog_service.update_room(room_id, payload.name, payload.active, payload.sortOrder, payload.color)
    return serialize_room(room)


@router.delete("/rooms/{room_id}", status_code=204)
def delete_room(room_id: str) -> Response:
    """Rooms with past bookings are only deactivated."""
    catalog_service.delete_room(room_id)
    return Response(status_code=204)


# Providers ----------------------------------------------------------------
@router.get("/providers")
def list_providers(includeInactive: bool = Query(False)) -> List[Dict[str, Any]]:
    return [serialize_provider(p) for p in catalog_service.list_providers(includeInactive)]


@router.post("/providers", status_code=201)
def create_provider(payload: CreateProviderRequest) -> Dict[str, Any]:
    provider = catalog_service.create_provider(payload.name, payload.sortOrder, payload.color)
    return serialize_provider(provider)


@router.get("/providers/{provider_id}")
def get_provider(provider_id: str) -> Dict[str, Any]:
    return serialize_provider(catalog_service.get_provider(provider_id))


@router.put("/providers/{provider_id}")
def update_provider(provider_id: str, payload: UpdateProviderRequest) -> Dict[str, Any]:
    provider = catalog_service.update_provider(
        provider_id, payload.name, payload.active, payload.sortOrder, payload.color
    )
    return serialize_provider(provider)


@router.delete("/providers/{provider_id}", status_code=204)
def delete_provider(provider_id: str) -> Response:
    catalog_service.delete_provider(provider_id)
    return Response(status_code=204)


# Upgrades -----------------------------------------------------------------
@router.get("/upgrades")
def list_upgrades(includeInactive: bool = Query(False)) -> List[Dict[str, Any]]:
    return [serialize_upgrade(u) for u in catalog_service.list_upgrades(includeInactive)]


@router.post("/upgrades", status_code=201)
def create_upgrade(payload: CreateUpgradeRequest) -> Dict[str, Any]:
    upgrade = catalog_service.create_upgrade(payload.name, payload.price, payload.validFrom)
    return serialize_upgrade(upgrade)


@router.get("/upgrades/{upgrade_id}")
def get_upgrade(upgrade_id: str) -> Dict[str, Any]:
    return serialize_upgrade(catalog_service.get_upgrade(upgrade_id))


@router.put("/upgrades/{upgrade_id}")
def update_upgrade(upgrade_id: str, payload: UpdateUpgradeRequest) -> Dict[str, Any]:
    return serialize_upgrade(catalog_service.update_upgrade(upgrade_id, payload.name, payload.active))


@router.delete("/upgrades/{upgrade_id}", status_code=204)
def delete_upgrade(upgrade_id: str) -> Response:
    catalog_service.delete_upgrade(upgrade_id)
    return Response(status_code=204)
