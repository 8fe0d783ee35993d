"""Tests for catalog management and booking rules."""
from datetime import datetime
from decimal import Decimal

import pytest

from studio_booking.domain.errors import (
    BookingBilled,
    BookingOverlap,
    DuplicateName,
    EntityInUse,
    EntityNotFound,
    InvalidDuration,
    ValidationError,
)


class TestCatalog:
    def test_names_are_unique_ignoring_case(self, services, studio):
        with pytest.raises(DuplicateName):
            services.catalog.create_room(" room a ", Decimal("50.00"))
        with pytest.raises(DuplicateName):
            services.catalog.create_provider("ALICE")
        with pytest.raises(DuplicateName):
            services.catalog.create_upgrade("towels", Decimal("1.00"))

    def test_rename_to_own_name_allowed(self, services, studio):
        room = studio["room"]
        updated = services.catalog.update_room(room.room_id, "ROOM A", True, 3, "#000000")
        assert (updated.name, updated.sort_order, updated.color) == ("ROOM A", 3, "#000000")

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_names(self, services, name):
        with pytest.raises(ValidationError):
            services.catalog.create_provider(name)

    @pytest.mark.parametrize("color", ["red", "#FFF", "#12345G", "3B82F6"])
    def test_invalid_colors(self, services, color):
        with pytest.raises(ValidationError):
            services.catalog.create_provider("Carol", color=color)

    def test_default_colors_and_sort_order(self, services, studio):
        assert studio["room"].color == "#3B82F6"
        assert studio["alice"].color == "#10B981"
        assert studio["bob"].sort_order == studio["alice"].sort_order + 1

    def test_invalid_opening_rate_creates_nothing(self, services):
        with pytest.raises(ValidationError):
            services.catalog.create_room("Room Z", Decimal("0"))
        assert services.catalog.list_rooms(include_inactive=True) == []

    def test_inactive_hidden_by_default(self, services, studio):
        bob = studio["bob"]
        services.catalog.update_provider(bob.provider_id, bob.name, False, bob.sort_order, bob.color)
        assert [p.name for p in services.catalog.list_providers()] == ["Alice"]
        assert len(services.catalog.list_providers(include_inactive=True)) == 2

    def test_unknown_entities(self, services):
        with pytest.raises(EntityNotFound):
            services.catalog.get_room("missing")
        with pytest.raises(EntityNotFound):
            services.catalog.get_provider("missing")
        with pytest.raises(EntityNotFound):
            services.catalog.get_upgrade("missing")


class TestBookings:
    def create(self, services, studio, start, minutes=60, **kwargs):
        return services.bookings.create_booking(
            studio["alice"].provider_id, studio["room"].room_id, start, minutes, **kwargs
        )

    def test_create_and_list(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10), upgrades={studio["towels"].upgrade_id: 2})
        assert services.bookings.get_booking(booking.booking_id).upgrades[0].quantity == 2
        assert [b.booking_id for b in services.bookings.list_bookings(studio["room"].room_id)] == [booking.booking_id]

    def test_resting_time_blocks_the_slot(self, services, studio):
        self.create(services, studio, datetime(2024, 3, 4, 10), resting_time_minutes=15)
        with pytest.raises(BookingOverlap):
            self.create(services, studio, datetime(2024, 3, 4, 11, 10))
        self.create(services, studio, datetime(2024, 3, 4, 11, 15))

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_duration_must_be_positive(self, services, studio, minutes):
        with pytest.raises(InvalidDuration):
            self.create(services, studio, datetime(2024, 3, 4, 10), minutes)

    def test_inactive_room_rejected(self, services, studio):
        room = studio["room"]
        services.catalog.update_room(room.room_id, room.name, False, room.sort_order, room.color)
        with pytest.raises(ValidationError):
            self.create(services, studio, datetime(2024, 3, 4, 10))

    def test_unknown_upgrade_rejected(self, services, studio):
        with pytest.raises(EntityNotFound):
            self.create(services, studio, datetime(2024, 3, 4, 10), upgrades={"missing": 1})

    def test_delete_unbilled(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10))
        services.bookings.delete_booking(booking.booking_id)
        with pytest.raises(EntityNotFound):
            services.bookings.get_booking(booking.booking_id)

    def test_billed_booking_cannot_be_deleted(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10))
        services.billing.generate_billings([booking.booking_id], datetime(2024, 3, 1), datetime(2024, 4, 1))
        with pytest.raises(BookingBilled):
            services.bookings.delete_booking(booking.booking_id)
        assert services.bookings.get_booking(booking.booking_id)


FUTURE = datetime(2099, 6, 1, 10)


class TestUpdateBooking:
    def create(self, services, studio, start, minutes=60, **kwargs):
        return services.bookings.create_booking(
            studio["alice"].provider_id, studio["room"].room_id, start, minutes, **kwargs
        )

    def update(self, services, studio, booking, start, minutes=60, **kwargs):
        return services.bookings.update_booking(
            booking.booking_id, studio["bob"].provider_id, studio["room"].room_id, start, minutes, **kwargs
        )

    def test_update_keeps_identity(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10), upgrades={studio["towels"].upgrade_id: 1})
        updated = self.update(services, studio, booking, datetime(2024, 3, 4, 14), 90, client_alias="K.")

        stored = services.bookings.get_booking(booking.booking_id)
        assert (updated.booking_id, updated.created_at) == (booking.booking_id, booking.created_at)
        assert (stored.provider_id, stored.start_time) == (studio["bob"].provider_id, datetime(2024, 3, 4, 14))
        assert (stored.duration_minutes, stored.client_alias, stored.upgrades) == (90, "K.", [])

    def test_may_overlap_its_own_previous_slot(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10))
        self.update(services, studio, booking, datetime(2024, 3, 4, 10, 30))
        assert services.bookings.get_booking(booking.booking_id).start_time == datetime(2024, 3, 4, 10, 30)

    def test_overlap_with_another_booking_rejected(self, services, studio):
        self.create(services, studio, datetime(2024, 3, 4, 12))
        booking = self.create(services, studio, datetime(2024, 3, 4, 10))
        with pytest.raises(BookingOverlap):
            self.update(services, studio, booking, datetime(2024, 3, 4, 11, 30))
        assert services.bookings.get_booking(booking.booking_id).start_time == datetime(2024, 3, 4, 10)

    def test_inactive_provider_rejected(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10))
        bob = studio["bob"]
        services.catalog.update_provider(bob.provider_id, bob.name, False, bob.sort_order, bob.color)
        with pytest.raises(ValidationError):
            self.update(services, studio, booking, datetime(2024, 3, 4, 10))

    def test_billed_booking_is_frozen(self, services, studio):
        booking = self.create(services, studio, datetime(2024, 3, 4, 10))
        services.billing.generate_billings([booking.booking_id], datetime(2024, 3, 1), datetime(2024, 4, 1))
        with pytest.raises(BookingBilled):
            self.update(services, studio, booking, datetime(2024, 3, 5, 10))
        assert services.bookings.get_booking(booking.booking_id).provider_id == studio["alice"].provider_id

    def test_unknown_booking(self, services, studio):
        with pytest.raises(EntityNotFound):
            services.bookings.update_booking(
                "missing", studio["alice"].provider_id, studio["room"].room_id, datetime(2024, 3, 4, 10), 60
            )


class TestCatalogDeletion:
    def book(self, services, studio, start, **kwargs):
        return services.bookings.create_booking(
            studio["alice"].provider_id, studio["room"].room_id, start, 60, **kwargs
        )

    def test_unused_entities_are_removed(self, services, studio):
        room = studio["room"]
        assert services.catalog.delete_room(room.room_id) is True
        assert services.catalog.delete_provider(studio["bob"].provider_id) is True
        assert services.catalog.delete_upgrade(studio["towels"].upgrade_id) is True

        with pytest.raises(EntityNotFound):
            services.catalog.get_room(room.room_id)
        assert services.prices.room_price_history(room.room_id) == []
        assert services.prices.upgrade_price_history(studio["towels"].upgrade_id) == []
        assert [p.name for p in services.catalog.list_providers(include_inactive=True)] == ["Alice"]

    def test_past_bookings_only_deactivate(self, services, studio):
        self.book(services, studio, datetime(2024, 3, 4, 10), upgrades={studio["towels"].upgrade_id: 1})

        assert services.catalog.delete_room(studio["room"].room_id) is False
        assert services.catalog.delete_provider(studio["alice"].provider_id) is False
        assert services.catalog.delete_upgrade(studio["towels"].upgrade_id) is False

        assert services.catalog.get_room(studio["room"].room_id).active is False
        assert services.catalog.get_provider(studio["alice"].provider_id).active is False
        assert services.catalog.get_upgrade(studio["towels"].upgrade_id).active is False
        assert services.prices.current_room_price(studio["room"].room_id) is not None

    def test_future_bookings_block_deletion(self, services, studio):
        self.book(services, studio, FUTURE, upgrades={studio["towels"].upgrade_id: 1})

        with pytest.raises(EntityInUse) as excinfo:
            services.catalog.delete_room(studio["room"].room_id)
        assert excinfo.value.future_bookings == 1
        with pytest.raises(EntityInUse):
            services.catalog.delete_provider(studio["alice"].provider_id)
        with pytest.raises(EntityInUse):
            services.catalog.delete_upgrade(studio["towels"].upgrade_id)

        assert services.catalog.get_room(studio["room"].room_id).active is True
        assert services.catalog.get_upgrade(studio["towels"].upgrade_id).active is True

    def test_other_entities_bookings_do_not_count(self, services, studio):
        self.book(services, studio, FUTURE)
        assert services.catalog.delete_provider(studio["bob"].provider_id) is True
        assert services.catalog.delete_upgrade(studio["towels"].upgrade_id) is True
