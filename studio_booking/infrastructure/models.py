"""SQLModel ORM tables mirroring the domain entities."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from studio_booking.domain.clock import utcnow

_OPEN_PRICE = text("valid_to IS NULL")


class RoomModel(SQLModel, table=True):
    room_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    color: str = Field(default="#3B82F6")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ServiceProviderModel(SQLModel, table=True):
    provider_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    color: str = Field(default="#10B981")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UpgradeModel(SQLModel, table=True):
    upgrade_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)


class DurationOptionModel(SQLModel, table=True):
    option_id: str = Field(primary_key=True)
    label: str
    minutes: int = Field(default=0)
    is_variable: bool = Field(default=False)
    min_minutes: Optional[int] = Field(default=None)
    max_minutes: Optional[int] = Field(default=None)
    step_minutes: Optional[int] = Field(default=None)
    sort_order: int = Field(default=0)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)


class BookingModel(SQLModel, table=True):
    booking_id: str = Field(primary_key=True)
    provider_id: str = Field(index=True)
    room_id: str = Field(index=True)
    start_time: datetime = Field(index=True)
    duration_minutes: int
    resting_time_minutes: int = Field(default=0)
    client_alias: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow)


class BookingUpgradeModel(SQLModel, table=True):
    booking_id: str = Field(primary_key=True)
    upgrade_id: str = Field(primary_key=True)
    quantity: int = Field(default=1)


class RoomPriceModel(SQLModel, table=True):
    # at most one open (valid_to IS NULL) record per room
    __table_args__ = (
        Index(
            "uq_roomprice_open",
            "room_id",
            unique=True,
            sqlite_where=_OPEN_PRICE,
            postgresql_where=_OPEN_PRICE,
        ),
    )

    price_id: str = Field(primary_key=True)
    room_id: str = Field(index=True)
    price: Decimal = Field(max_digits=10, decimal_places=2)
    valid_from: datetime
    valid_to: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class UpgradePriceModel(SQLModel, table=True):
    __table_args__ = (
        Index(
            "uq_upgradeprice_open",
            "upgrade_id",
            unique=True,
            sqlite_where=_OPEN_PRICE,
            postgresql_where=_OPEN_PRICE,
        ),
    )

    price_id: str = Field(primary_key=True)
    upgrade_id: str = Field(index=True)
    price: Decimal = Field(max_digits=10, decimal_places=2)
    valid_from: datetime
    valid_to: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class RoomPriceTierModel(SQLModel, table=True):
    tier_id: str = Field(primary_key=True)
    room_price_id: str = Field(index=True)
    from_minutes: int
    to_minutes: Optional[int] = Field(default=None)
    price_type: str
    price: Decimal = Field(max_digits=10, decimal_places=2)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)


class BillingModel(SQLModel, table=True):
    billing_id: str = Field(primary_key=True)
    provider_id: str = Field(index=True)
    period_start: datetime
    period_end: datetime
    total_amount: Decimal = Field(max_digits=10, decimal_places=2)
    invoice_document_url: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class BillingItemModel(SQLModel, table=True):
    item_id: str = Field(primary_key=True)
    billing_id: str = Field(index=True)
    # one booking -> at most one billing item, the backstop against double billing
    booking_id: str = Field(unique=True)
    room_price_id: str
    frozen_start_time: datetime
    frozen_end_time: datetime
    frozen_duration_minutes: int
    frozen_resting_time_minutes: int
    frozen_client_alias: Optional[str] = Field(default=None)
    frozen_room_name: str
    frozen_room_price_amount: Decimal = Field(max_digits=10, decimal_places=2)
    subtotal_room: Decimal = Field(max_digits=10, decimal_places=2)
    subtotal_upgrades: Decimal = Field(max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(max_digits=10, decimal_places=2)
    created_at: datetime = Field(default_factory=utcnow)


class BillingItemUpgradeModel(SQLModel, table=True):
    item_upgrade_id: str = Field(primary_key=True)
    billing_item_id: str = Field(index=True)
    upgrade_price_id: str
    frozen_upgrade_name: str
    frozen_quantity: int
    frozen_upgrade_price_amount: Decimal = Field(max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(max_digits=10, decimal_places=2)
    created_at: datetime = Field(default_factory=utcnow)
