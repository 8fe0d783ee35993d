"""Routers for invoice generation and lookup."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from studio_booking.interfaces import deps
from studio_booking.interfaces.serializers import serialize_billing, serialize_billing_item

billing_service = deps.billing_service

router = APIRouter(prefix="/billings", tags=["billing"])


class CreateBillingRequest(BaseModel):
    bookingIds: List[str] = Field(..., min_length=1)
    periodStart: datetime
    periodEnd: datetime


@router.post("", status_code=201)
def create_billings(payload: CreateBillingRequest) -> List[Dict[str, Any]]:
    """One invoice per provider; the whole batch fails if any booking is already billed."""
    billings = billing_service.generate_billings(payload.bookingIds, payload.periodStart, payload.periodEnd)
    return [serialize_billing(billing, with_items=True) for billing in billings]


@router.get("")
def list_billings(providerId: Optional[str] = Query(None)) -> List[Dict[str, Any]]:
    if providerId:
        billings = billing_service.list_billings_for_provider(providerId)
    else:
        billings = billing_service.list_billings()
    return [serialize_billing(billing) for billing in billings]


@router.get("/{billing_id}")
def get_billing(billing_id: str) -> Dict[str, Any]:
    return serialize_billing(billing_service.get_billing(billing_id), with_items=True)


@router.get("/{billing_id}/items")
def get_billing_items(billing_id: str) -> List[Dict[str, Any]]:
    return [serialize_billing_item(item) for item in billing_service.get_billing_items(billing_id)]
