"""camelCase JSON views of domain objects; money is rendered as a 2-digit string."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from studio_booking.application.booking_query_service import BookingListItem, BookingPage
from studio_booking.domain.billing import Billing, BillingItem, BillingItemUpgrade
from studio_booking.domain.booking import Booking
from studio_booking.domain.catalog import Room, ServiceProvider, Upgrade
from studio_booking.domain.duration import DurationOption
from studio_booking.domain.money import to_money
from studio_booking.domain.price import RoomPrice, UpgradePrice
from studio_booking.domain.pricing import PriceTier


def money(value: Decimal) -> str:
    return str(to_money(value))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_room(room: Room) -> Dict[str, Any]:
    return {
        "roomId": room.room_id,
        "name": room.name,
        "active": room.active,
        "sortOrder": room.sort_order,
        "color": room.color,
    }


def serialize_provider(provider: ServiceProvider) -> Dict[str, Any]:
    return {
        "providerId": provider.provider_id,
        "name": provider.name,
        "active": provider.active,
        "sortOrder": provider.sort_order,
        "color": provider.color,
    }


def serialize_upgrade(upgrade: Upgrade) -> Dict[str, Any]:
    return {"upgradeId": upgrade.upgrade_id, "name": upgrade.name, "active": upgrade.active}


def serialize_booking(booking: Booking) -> Dict[str, Any]:
    return {
        "bookingId": booking.booking_id,
        "providerId": booking.provider_id,
        "roomId": booking.room_id,
        "startTime": _iso(booking.start_time),
        "endTime": _iso(booking.end_time()),
        "durationMinutes": booking.duration_minutes,
        "restingTimeMinutes": booking.resting_time_minutes,
        "clientAlias": booking.client_alias,
        "upgrades": [{"upgradeId": u.upgrade_id, "quantity": u.quantity} for u in booking.upgrades],
    }


def serialize_booking_list_item(item: BookingListItem) -> Dict[str, Any]:
    booking = item.booking
    return {
        "bookingId": booking.booking_id,
        "startTime": _iso(booking.start_time),
        "endTime": _iso(booking.total_end_time()),
        "durationMinutes": booking.duration_minutes,
        "restingTimeMinutes": booking.resting_time_minutes,
        "clientAlias": booking.client_alias,
        "provider": {
            "providerId": booking.provider_id,
            "name": item.provider.name if item.provider else None,
            "color": item.provider.color if item.provider else None,
        },
        "room": {
            "roomId": booking.room_id,
            "name": item.room.name if item.room else None,
            "color": item.room.color if item.room else None,
        },
        "upgrades": [
            {"upgradeId": upgrade.upgrade_id, "name": upgrade.name, "quantity": quantity}
            for upgrade, quantity in item.upgrades
        ],
        "status": item.status.value,
        "totalPrice": money(item.total_price) if item.total_price is not None else None,
    }


def serialize_booking_page(page: BookingPage) -> Dict[str, Any]:
    return {
        "content": [serialize_booking_list_item(item) for item in page.items],
        "page": {
            "number": page.number,
            "size": page.size,
            "totalElements": page.total_elements,
            "totalPages": page.total_pages,
        },
    }


def serialize_duration_option(option: DurationOption) -> Dict[str, Any]:
    return {
        "durationOptionId": option.option_id,
        "label": option.label,
        "minutes": option.minutes,
        "isVariable": option.is_variable,
        "minMinutes": option.min_minutes,
        "maxMinutes": option.max_minutes,
        "stepMinutes": option.step_minutes,
        "sortOrder": option.sort_order,
        "active": option.active,
    }


def serialize_room_price(price: RoomPrice) -> Dict[str, Any]:
    return {
        "priceId": price.price_id,
        "roomId": price.room_id,
        "price": money(price.price),
        "validFrom": _iso(price.valid_from),
        "validTo": _iso(price.valid_to),
    }


def serialize_upgrade_price(price: UpgradePrice) -> Dict[str, Any]:
    return {
        "priceId": price.price_id,
        "upgradeId": price.upgrade_id,
        "price": money(price.price),
        "validFrom": _iso(price.valid_from),
        "validTo": _iso(price.valid_to),
    }


def serialize_tier(tier: PriceTier) -> Dict[str, Any]:
    return {
        "tierId": tier.tier_id,
        "roomPriceId": tier.room_price_id,
        "fromMinutes": tier.from_minutes,
        "toMinutes": tier.to_minutes,
        "priceType": tier.price_type.value,
        "price": money(tier.price),
        "sortOrder": tier.sort_order,
    }


def serialize_item_upgrade(upgrade: BillingItemUpgrade) -> Dict[str, Any]:
    return {
        "upgradeName": upgrade.frozen_upgrade_name,
        "quantity": upgrade.frozen_quantity,
        "unitPrice": money(upgrade.frozen_upgrade_price_amount),
        "totalAmount": money(upgrade.total_amount),
    }


def serialize_billing_item(item: BillingItem) -> Dict[str, Any]:
    return {
        "itemId": item.item_id,
        "billingId": item.billing_id,
        "bookingId": item.booking_id,
        "startTime": _iso(item.frozen_start_time),
        "endTime": _iso(item.frozen_end_time),
        "durationMinutes": item.frozen_duration_minutes,
        "restingTimeMinutes": item.frozen_resting_time_minutes,
        "clientAlias": item.frozen_client_alias,
        "roomName": item.frozen_room_name,
        "roomPriceAmount": money(item.frozen_room_price_amount),
        "subtotalRoom": money(item.subtotal_room),
        "subtotalUpgrades": money(item.subtotal_upgrades),
        "totalAmount": money(item.total_amount),
        "upgrades": [serialize_item_upgrade(upgrade) for upgrade in item.upgrades],
    }


def serialize_billing(billing: Billing, with_items: bool = False) -> Dict[str, Any]:
    data = {
        "billingId": billing.billing_id,
        "providerId": billing.provider_id,
        "periodStart": _iso(billing.period_start),
        "periodEnd": _iso(billing.period_end),
        "totalAmount": money(billing.total_amount),
        "itemCount": len(billing.items),
        "invoiceDocumentUrl": billing.invoice_document_url,
        "createdAt": _iso(billing.created_at),
    }
    if with_items:
        data["items"] = [serialize_billing_item(item) for item in billing.items]
    return data
