"""SQL-backed repository implementation (SQLite by default, any SQLAlchemy URL works)."""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Type

from sqlalchemy import delete, func, or_
from sqlalchemy.exc import IntegrityError as SQLIntegrityError
from sqlmodel import Session, SQLModel, select

from studio_booking.app.logging import get_logger
from studio_booking.domain.billing import Billing, BillingItem, BillingItemUpgrade
from studio_booking.domain.booking import Booking, BookingUpgrade
from studio_booking.domain.catalog import Room, ServiceProvider, Upgrade
from studio_booking.domain.duration import DurationOption
from studio_booking.domain.errors import AlreadyBilled, IntegrityError
from studio_booking.domain.price import RoomPrice, UpgradePrice
from studio_booking.domain.pricing import PriceTier, PriceType
from .database import create_db_engine, init_db, session_for
from .models import (
    BillingItemModel,
    BillingItemUpgradeModel,
    BillingModel,
    BookingModel,
    BookingUpgradeModel,
    DurationOptionModel,
    RoomModel,
    RoomPriceModel,
    RoomPriceTierModel,
    ServiceProviderModel,
    UpgradeModel,
    UpgradePriceModel,
)
from .repository import StudioRepository

logger = get_logger(__name__)


class SQLStudioRepository(StudioRepository):
    def __init__(self, database_url: str):
        self.engine = create_db_engine(database_url)
        init_db(self.engine)

    def _session(self) -> Session:
        return session_for(self.engine)

    # Rooms ----------------------------------------------------------------
    def get_room(self, room_id: str) -> Optional[Room]:
        with self._session() as session:
            model = session.get(RoomModel, room_id)
            return self._room_from_model(model) if model else None

    def list_rooms(self) -> Iterable[Room]:
        with self._session() as session:
            models = session.exec(select(RoomModel).order_by(RoomModel.sort_order, RoomModel.name)).all()
            return [self._room_from_model(model) for model in models]

    def save_room(self, room: Room) -> None:
        with self._session() as session, session.begin():
            session.merge(
                RoomModel(
                    room_id=room.room_id,
                    name=room.name,
                    active=room.active,
                    sort_order=room.sort_order,
                    color=room.color,
                    created_at=room.created_at,
                    updated_at=room.updated_at,
                )
            )

    def delete_room(self, room_id: str) -> None:
        with self._session() as session, session.begin():
            price_ids = select(RoomPriceModel.price_id).where(RoomPriceModel.room_id == room_id)
            session.execute(delete(RoomPriceTierModel).where(RoomPriceTierModel.room_price_id.in_(price_ids)))
            session.execute(delete(RoomPriceModel).where(RoomPriceModel.room_id == room_id))
            session.execute(delete(RoomModel).where(RoomModel.room_id == room_id))

    # Providers ------------------------------------------------------------
    def get_provider(self, provider_id: str) -> Optional[ServiceProvider]:
        with self._session() as session:
            model = session.get(ServiceProviderModel, provider_id)
            return self._provider_from_model(model) if model else None

    def list_providers(self) -> Iterable[ServiceProvider]:
        with self._session() as session:
            statement = select(ServiceProviderModel).order_by(
                ServiceProviderModel.sort_order, ServiceProviderModel.name
            )
            return [self._provider_from_model(model) for model in session.exec(statement).all()]

    def save_provider(self, provider: ServiceProvider) -> None:
        with self._session() as session, session.begin():
            session.merge(
                ServiceProviderModel(
                    provider_id=provider.provider_id,
                    name=provider.name,
                    active=provider.active,
                    sort_order=provider.sort_order,
                    color=provider.color,
                    created_at=provider.created_at,
                    updated_at=provider.updated_at,
                )
            )

    def delete_provider(self, provider_id: str) -> None:
        with self._session() as session, session.begin():
            session.execute(delete(ServiceProviderModel).where(ServiceProviderModel.provider_id == provider_id))

    # Upgrades -------------------------------------------------------------
    def get_upgrade(self, upgrade_id: str) -> Optional[Upgrade]:
        with self._session() as session:
            model = session.get(UpgradeModel, upgrade_id)
            return self._upgrade_from_model(model) if model else None

    def list_upgrades(self) -> Iterable[Upgrade]:
        with self._session() as session:
            models = session.exec(select(UpgradeModel).order_by(UpgradeModel.name)).all()
            return [self._upgrade_from_model(model) for model in models]

    def save_upgrade(self, upgrade: Upgrade) -> None:
        with self._session() as session, session.begin():
            session.merge(
                UpgradeModel(
                    upgrade_id=upgrade.upgrade_id,
                    name=upgrade.name,
                    active=upgrade.active,
                    created_at=upgrade.created_at,
                )
            )

    def delete_upgrade(self, upgrade_id: str) -> None:
        with self._session() as session, session.begin():
            session.execute(delete(UpgradePriceModel).where(UpgradePriceModel.upgrade_id == upgrade_id))
            session.execute(delete(UpgradeModel).where(UpgradeModel.upgrade_id == upgrade_id))

    # Duration options -----------------------------------------------------
    def get_duration_option(self, option_id: str) -> Optional[DurationOption]:
        with self._session() as session:
            model = session.get(DurationOptionModel, option_id)
            return self._duration_option_from_model(model) if model else None

    def list_duration_options(self) -> List[DurationOption]:
        with self._session() as session:
            statement = select(DurationOptionModel).order_by(DurationOptionModel.sort_order)
            return [self._duration_option_from_model(model) for model in session.exec(statement).all()]

    def save_duration_option(self, option: DurationOption) -> None:
        with self._session() as session, session.begin():
            session.merge(
                DurationOptionModel(
                    option_id=option.option_id,
                    label=option.label,
                    minutes=option.minutes,
                    is_variable=option.is_variable,
                    min_minutes=option.min_minutes,
                    max_minutes=option.max_minutes,
                    step_minutes=option.step_minutes,
                    sort_order=option.sort_order,
                    active=option.active,
                    created_at=option.created_at,
                )
            )

    def delete_duration_option(self, option_id: str) -> None:
        with self._session() as session, session.begin():
            session.execute(delete(DurationOptionModel).where(DurationOptionModel.option_id == option_id))

    # Bookings -------------------------------------------------------------
    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._session() as session:
            model = session.get(BookingModel, booking_id)
            return self._booking_from_model(session, model) if model else None

    def get_bookings(self, booking_ids: Sequence[str]) -> List[Booking]:
        if not booking_ids:
            return []
        with self._session() as session:
            statement = select(BookingModel).where(BookingModel.booking_id.in_(list(booking_ids)))
            by_id = {model.booking_id: model for model in session.exec(statement).all()}
            ordered = dict.fromkeys(booking_id for booking_id in booking_ids if booking_id in by_id)
            return [self._booking_from_model(session, by_id[booking_id]) for booking_id in ordered]

    def list_bookings(
        self,
        room_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        upgrade_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        client_search: Optional[str] = None,
    ) -> Iterable[Booking]:
        with self._session() as session:
            statement = select(BookingModel).order_by(BookingModel.start_time)
            if room_id:
                statement = statement.where(BookingModel.room_id == room_id)
            if provider_id:
                statement = statement.where(BookingModel.provider_id == provider_id)
            if upgrade_id:
                with_upgrade = select(BookingUpgradeModel.booking_id).where(
                    BookingUpgradeModel.upgrade_id == upgrade_id
                )
                statement = statement.where(BookingModel.booking_id.in_(with_upgrade))
            if start is not None:
                statement = statement.where(BookingModel.start_time >= start)
            if end is not None:
                statement = statement.where(BookingModel.start_time <= end)
            if client_search:
                statement = statement.where(
                    func.lower(BookingModel.client_alias).contains(client_search.lower(), autoescape=True)
                )
            return [self._booking_from_model(session, model) for model in session.exec(statement).all()]

    def save_booking(self, booking: Booking) -> None:
        with self._session() as session, session.begin():
            session.merge(
                BookingModel(
                    booking_id=booking.booking_id,
                    provider_id=booking.provider_id,
                    room_id=booking.room_id,
                    start_time=booking.start_time,
                    duration_minutes=booking.duration_minutes,
                    resting_time_minutes=booking.resting_time_minutes,
                    client_alias=booking.client_alias,
                    created_at=booking.created_at,
                )
            )
            session.execute(delete(BookingUpgradeModel).where(BookingUpgradeModel.booking_id == booking.booking_id))
            for upgrade in booking.upgrades:
                session.add(
                    BookingUpgradeModel(
                        booking_id=booking.booking_id,
                        upgrade_id=upgrade.upgrade_id,
                        quantity=upgrade.quantity,
                    )
                )

    def delete_booking(self, booking_id: str) -> None:
        with self._session() as session, session.begin():
            session.execute(delete(BookingUpgradeModel).where(BookingUpgradeModel.booking_id == booking_id))
            model = session.get(BookingModel, booking_id)
            if model:
                session.delete(model)

    def has_billing_item(self, booking_id: str) -> bool:
        with self._session() as session:
            statement = select(BillingItemModel.item_id).where(BillingItemModel.booking_id == booking_id)
            return session.exec(statement).first() is not None

    # Room prices ----------------------------------------------------------
    def get_room_price(self, price_id: str) -> Optional[RoomPrice]:
        with self._session() as session:
            model = session.get(RoomPriceModel, price_id)
            return self._room_price_from_model(model) if model else None

    def find_room_price_valid_at(self, room_id: str, timestamp: datetime) -> Optional[RoomPrice]:
        with self._session() as session:
            statement = (
                select(RoomPriceModel)
                .where(RoomPriceModel.room_id == room_id)
                .where(RoomPriceModel.valid_from <= timestamp)
                .where(or_(RoomPriceModel.valid_to.is_(None), RoomPriceModel.valid_to > timestamp))
                .order_by(RoomPriceModel.valid_from.desc())
            )
            model = session.exec(statement).first()
            return self._room_price_from_model(model) if model else None

    def find_open_room_price(self, room_id: str) -> Optional[RoomPrice]:
        with self._session() as session:
            statement = (
                select(RoomPriceModel)
                .where(RoomPriceModel.room_id == room_id)
                .where(RoomPriceModel.valid_to.is_(None))
            )
            model = session.exec(statement).first()
            return self._room_price_from_model(model) if model else None

    def list_room_prices(self, room_id: str) -> List[RoomPrice]:
        with self._session() as session:
            statement = (
                select(RoomPriceModel)
                .where(RoomPriceModel.room_id == room_id)
                .order_by(RoomPriceModel.valid_from.desc())
            )
            return [self._room_price_from_model(model) for model in session.exec(statement).all()]

    def supersede_room_price(self, closed: Optional[RoomPrice], opened: RoomPrice) -> RoomPrice:
        self._supersede(
            RoomPriceModel,
            closed,
            lambda: RoomPriceModel(
                price_id=opened.price_id,
                room_id=opened.room_id,
                price=opened.price,
                valid_from=opened.valid_from,
                valid_to=opened.valid_to,
                created_at=opened.created_at,
            ),
            owner=f"room {opened.room_id}",
        )
        return opened

    # Upgrade prices -------------------------------------------------------
    def find_upgrade_price_valid_at(self, upgrade_id: str, timestamp: datetime) -> Optional[UpgradePrice]:
        with self._session() as session:
            statement = (
                select(UpgradePriceModel)
                .where(UpgradePriceModel.upgrade_id == upgrade_id)
                .where(UpgradePriceModel.valid_from <= timestamp)
                .where(or_(UpgradePriceModel.valid_to.is_(None), UpgradePriceModel.valid_to > timestamp))
                .order_by(UpgradePriceModel.valid_from.desc())
            )
            model = session.exec(statement).first()
            return self._upgrade_price_from_model(model) if model else None

    def find_open_upgrade_price(self, upgrade_id: str) -> Optional[UpgradePrice]:
        with self._session() as session:
            statement = (
                select(UpgradePriceModel)
                .where(UpgradePriceModel.upgrade_id == upgrade_id)
                .where(UpgradePriceModel.valid_to.is_(None))
            )
            model = session.exec(statement).first()
            return self._upgrade_price_from_model(model) if model else None

    def list_upgrade_prices(self, upgrade_id: str) -> List[UpgradePrice]:
        with self._session() as session:
            statement = (
                select(UpgradePriceModel)
                .where(UpgradePriceModel.upgrade_id == upgrade_id)
                .order_by(UpgradePriceModel.valid_from.desc())
            )
            return [self._upgrade_price_from_model(model) for model in session.exec(statement).all()]

    def supersede_upgrade_price(self, closed: Optional[UpgradePrice], opened: UpgradePrice) -> UpgradePrice:
        self._supersede(
            UpgradePriceModel,
            closed,
            lambda: UpgradePriceModel(
                price_id=opened.price_id,
                upgrade_id=opened.upgrade_id,
                price=opened.price,
                valid_from=opened.valid_from,
                valid_to=opened.valid_to,
                created_at=opened.created_at,
            ),
            owner=f"upgrade {opened.upgrade_id}",
        )
        return opened

    # Price tiers ----------------------------------------------------------
    def get_price_tier(self, tier_id: str) -> Optional[PriceTier]:
        with self._session() as session:
            model = session.get(RoomPriceTierModel, tier_id)
            return self._tier_from_model(model) if model else None

    def list_price_tiers(self, room_price_id: str) -> List[PriceTier]:
        with self._session() as session:
            statement = (
                select(RoomPriceTierModel)
                .where(RoomPriceTierModel.room_price_id == room_price_id)
                .order_by(RoomPriceTierModel.from_minutes)
            )
            return [self._tier_from_model(model) for model in session.exec(statement).all()]

    def save_price_tier(self, tier: PriceTier) -> None:
        with self._session() as session, session.begin():
            session.merge(
                RoomPriceTierModel(
                    tier_id=tier.tier_id,
                    room_price_id=tier.room_price_id,
                    from_minutes=tier.from_minutes,
                    to_minutes=tier.to_minutes,
                    price_type=tier.price_type.value,
                    price=tier.price,
                    sort_order=tier.sort_order,
                    created_at=tier.created_at,
                )
            )

    def delete_price_tier(self, tier_id: str) -> None:
        with self._session() as session, session.begin():
            model = session.get(RoomPriceTierModel, tier_id)
            if model:
                session.delete(model)

    def delete_price_tiers(self, room_price_id: str) -> None:
        with self._session() as session, session.begin():
            session.execute(delete(RoomPriceTierModel).where(RoomPriceTierModel.room_price_id == room_price_id))

    # Billing --------------------------------------------------------------
    def add_billings(self, billings: Sequence[Billing]) -> List[Billing]:
        try:
            with self._session() as session, session.begin():
                for billing in billings:
                    session.add(self._billing_model(billing))
                    for item in billing.items:
                        session.add(self._item_model(item))
                        for upgrade in item.upgrades:
                            session.add(self._item_upgrade_model(item, upgrade))
        except SQLIntegrityError as exc:
            booking_ids = [item.booking_id for billing in billings for item in billing.items]
            taken = {booking_id for booking_id in booking_ids if self.has_billing_item(booking_id)}
            taken |= {booking_id for booking_id in booking_ids if booking_ids.count(booking_id) > 1}
            if taken:
                raise AlreadyBilled(taken) from exc
            logger.error("Billing insert rejected by the database: %s", exc.orig)
            raise IntegrityError(f"Billing insert rejected by the database: {exc.orig}") from exc
        return list(billings)

    def get_billing(self, billing_id: str) -> Optional[Billing]:
        with self._session() as session:
            model = session.get(BillingModel, billing_id)
            return self._billing_from_model(session, model) if model else None

    def list_billings(self, provider_id: Optional[str] = None) -> List[Billing]:
        with self._session() as session:
            statement = select(BillingModel).order_by(BillingModel.created_at.desc())
            if provider_id:
                statement = statement.where(BillingModel.provider_id == provider_id)
            return [self._billing_from_model(session, model) for model in session.exec(statement).all()]

    def list_billing_items(self, billing_id: str) -> List[BillingItem]:
        with self._session() as session:
            return self._items_for(session, billing_id)

    # Helpers --------------------------------------------------------------
    def _supersede(
        self,
        model_cls: Type[SQLModel],
        closed,
        build_opened: Callable[[], SQLModel],
        owner: str,
    ) -> None:
        try:
            with self._session() as session, session.begin():
                if closed is not None:
                    model = session.get(model_cls, closed.price_id)
                    if model is None:
                        raise IntegrityError(f"Price {closed.price_id} of {owner} vanished before it was closed")
                    model.valid_to = closed.valid_to
                    session.add(model)
                    # close first so the "one open price" index never sees two open rows
                    session.flush()
                session.add(build_opened())
        except SQLIntegrityError as exc:
            raise IntegrityError(f"Another open price already exists for {owner}") from exc

    def _room_from_model(self, model: RoomModel) -> Room:
        return Room(
            room_id=model.room_id,
            name=model.name,
            active=model.active,
            sort_order=model.sort_order,
            color=model.color,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _provider_from_model(self, model: ServiceProviderModel) -> ServiceProvider:
        return ServiceProvider(
            provider_id=model.provider_id,
            name=model.name,
            active=model.active,
            sort_order=model.sort_order,
            color=model.color,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _upgrade_from_model(self, model: UpgradeModel) -> Upgrade:
        return Upgrade(
            upgrade_id=model.upgrade_id,
            name=model.name,
            active=model.active,
            created_at=model.created_at,
        )

    def _duration_option_from_model(self, model: DurationOptionModel) -> DurationOption:
        return DurationOption(
            option_id=model.option_id,
            label=model.label,
            minutes=model.minutes,
            is_variable=model.is_variable,
            min_minutes=model.min_minutes,
            max_minutes=model.max_minutes,
            step_minutes=model.step_minutes,
            sort_order=model.sort_order,
            active=model.active,
            created_at=model.created_at,
        )

    def _booking_from_model(self, session: Session, model: BookingModel) -> Booking:
        upgrade_rows = session.exec(
            select(BookingUpgradeModel).where(BookingUpgradeModel.booking_id == model.booking_id)
        ).all()
        return Booking(
            booking_id=model.booking_id,
            provider_id=model.provider_id,
            room_id=model.room_id,
            start_time=model.start_time,
            duration_minutes=model.duration_minutes,
            resting_time_minutes=model.resting_time_minutes,
            client_alias=model.client_alias,
            upgrades=[BookingUpgrade(upgrade_id=row.upgrade_id, quantity=row.quantity) for row in upgrade_rows],
            created_at=model.created_at,
        )

    def _room_price_from_model(self, model: RoomPriceModel) -> RoomPrice:
        return RoomPrice(
            price_id=model.price_id,
            room_id=model.room_id,
            price=model.price,
            valid_from=model.valid_from,
            valid_to=model.valid_to,
            created_at=model.created_at,
        )

    def _upgrade_price_from_model(self, model: UpgradePriceModel) -> UpgradePrice:
        return UpgradePrice(
            price_id=model.price_id,
            upgrade_id=model.upgrade_id,
            price=model.price,
            valid_from=model.valid_from,
            valid_to=model.valid_to,
            created_at=model.created_at,
        )

    def _tier_from_model(self, model: RoomPriceTierModel) -> PriceTier:
        return PriceTier(
            tier_id=model.tier_id,
            room_price_id=model.room_price_id,
            from_minutes=model.from_minutes,
            to_minutes=model.to_minutes,
            price_type=PriceType(model.price_type),
            price=model.price,
            sort_order=model.sort_order,
            created_at=model.created_at,
        )

    def _billing_model(self, billing: Billing) -> BillingModel:
        return BillingModel(
            billing_id=billing.billing_id,
            provider_id=billing.provider_id,
            period_start=billing.period_start,
            period_end=billing.period_end,
            total_amount=billing.total_amount,
            invoice_document_url=billing.invoice_document_url,
            created_at=billing.created_at,
            updated_at=billing.updated_at,
        )

    def _item_model(self, item: BillingItem) -> BillingItemModel:
        return BillingItemModel(
            item_id=item.item_id,
            billing_id=item.billing_id,
            booking_id=item.booking_id,
            room_price_id=item.room_price_id,
            frozen_start_time=item.frozen_start_time,
            frozen_end_time=item.frozen_end_time,
            frozen_duration_minutes=item.frozen_duration_minutes,
            frozen_resting_time_minutes=item.frozen_resting_time_minutes,
            frozen_client_alias=item.frozen_client_alias,
            frozen_room_name=item.frozen_room_name,
            frozen_room_price_amount=item.frozen_room_price_amount,
            subtotal_room=item.subtotal_room,
            subtotal_upgrades=item.subtotal_upgrades,
            total_amount=item.total_amount,
            created_at=item.created_at,
        )

    def _item_upgrade_model(self, item: BillingItem, upgrade: BillingItemUpgrade) -> BillingItemUpgradeModel:
        return BillingItemUpgradeModel(
            item_upgrade_id=upgrade.item_upgrade_id,
            billing_item_id=item.item_id,
            upgrade_price_id=upgrade.upgrade_price_id,
            frozen_upgrade_name=upgrade.frozen_upgrade_name,
            frozen_quantity=upgrade.frozen_quantity,
            frozen_upgrade_price_amount=upgrade.frozen_upgrade_price_amount,
            total_amount=upgrade.total_amount,
            created_at=upgrade.created_at,
        )

    def _items_for(self, session: Session, billing_id: str) -> List[BillingItem]:
        statement = (
            select(BillingItemModel)
            .where(BillingItemModel.billing_id == billing_id)
            .order_by(BillingItemModel.frozen_start_time, BillingItemModel.item_id)
        )
        items = []
        for model in session.exec(statement).all():
            upgrade_rows = session.exec(
                select(BillingItemUpgradeModel)
                .where(BillingItemUpgradeModel.billing_item_id == model.item_id)
                .order_by(BillingItemUpgradeModel.frozen_upgrade_name)
            ).all()
            items.append(
                BillingItem(
                    item_id=model.item_id,
                    billing_id=model.billing_id,
                    booking_id=model.booking_id,
                    room_price_id=model.room_price_id,
                    frozen_start_time=model.frozen_start_time,
                    frozen_end_time=model.frozen_end_time,
                    frozen_duration_minutes=model.frozen_duration_minutes,
                    frozen_resting_time_minutes=model.frozen_resting_time_minutes,
                    frozen_client_alias=model.frozen_client_alias,
                    frozen_room_name=model.frozen_room_name,
                    frozen_room_price_amount=model.frozen_room_price_amount,
                    subtotal_room=model.subtotal_room,
                    subtotal_upgrades=model.subtotal_upgrades,
                    total_amount=model.total_amount,
                    created_at=model.created_at,
                    upgrades=tuple(
                        BillingItemUpgrade(
                            item_upgrade_id=row.item_upgrade_id,
                            upgrade_price_id=row.upgrade_price_id,
                            frozen_upgrade_name=row.frozen_upgrade_name,
                            frozen_quantity=row.frozen_quantity,
                            frozen_upgrade_price_amount=row.frozen_upgrade_price_amount,
                            total_amount=row.total_amount,
                            created_at=row.created_at,
                        )
                        for row in upgrade_rows
                    ),
                )
            )
        return items

    def _billing_from_model(self, session: Session, model: BillingModel) -> Billing:
        return Billing(
            billing_id=model.billing_id,
            provider_id=model.provider_id,
            period_start=model.period_start,
            period_end=model.period_end,
            total_amount=model.total_amount,
            invoice_document_url=model.invoice_document_url,
            created_at=model.created_at,
            updated_at=model.updated_at,
            items=self._items_for(session, model.billing_id),
        )
