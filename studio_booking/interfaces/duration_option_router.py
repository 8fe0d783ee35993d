"""Routers for the bookable duration options."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, Field

from studio_booking.interfaces import deps
from studio_booking.interfaces.serializers import serialize_duration_option

duration_option_service = deps.duration_option_service

router = APIRouter(prefix="/duration-options", tags=["duration-options"])


class CreateDurationOptionRequest(BaseModel):
    label: str = Field(..., max_length=50)
    minutes: int = 0
    isVariable: bool = False
    minMinutes: Optional[int] = None
    maxMinutes: Optional[int] = None
    stepMinutes: Optional[int] = None
    sortOrder: Optional[int] = None


class UpdateDurationOptionRequest(BaseModel):
    label: str = Field(..., max_length=50)
    minutes: int = 0
    isVariable: bool = False
    minMinutes: Optional[int] = None
    maxMinutes: Optional[int] = None
    stepMinutes: Optional[int] = None
    sortOrder: int = 0
    active: bool = True


@router.get("")
def list_duration_options(includeInactive: bool = Query(False)) -> List[Dict[str, Any]]:
    return [serialize_duration_option(o) for o in duration_option_service.list_options(includeInactive)]


@router.post("", status_code=201)
def create_duration_option(payload: CreateDurationOptionRequest) -> Dict[str, Any]:
    option = duration_option_service.create_option(
        label=payload.label,
        minutes=payload.minutes,
        is_variable=payload.isVariable,
        min_minutes=payload.minMinutes,
        max_minutes=payload.maxMinutes,
        step_minutes=payload.stepMinutes,
        sort_order=payload.sortOrder,
    )
    return serialize_duration_option(option)


@router.get("/{option_id}")
def get_duration_option(option_id: str) -> Dict[str, Any]:
    return serialize_duration_option(duration_option_service.get_option(option_id))


@router.put("/{option_id}")
def update_duration_option(option_id: str, payload: UpdateDurationOptionRequest) -> Dict[str, Any]:
    option = duration_option_service.update_option(
        option_id,
        label=payload.label,
        minutes=payload.minutes,
        is_variable=payload.isVariable,
        min_minutes=payload.minMinutes,
        max_minutes=payload.maxMinutes,
        step_minutes=payload.stepMinutes,
        sort_order=payload.sortOrder,
        active=payload.active,
    )
    return serialize_duration_option(option)


@router.delete("/{option_id}", status_code=204)
def delete_duration_option(option_id: str) -> Response:
    duration_option_service.delete_option(option_id)
    return Response(status_code=204)
