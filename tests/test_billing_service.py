"""Tests for invoice generation, run against both storage backends."""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from studio_booking.domain.errors import (
    AlreadyBilled,
    NoBookingsFound,
    RoomPriceMissing,
    UpgradePriceMissing,
    ValidationError,
)
from studio_booking.domain.pricing import PriceType

PERIOD_START = datetime(2024, 3, 1)
PERIOD_END = datetime(2024, 4, 1)


def book(services, provider, room, start, minutes, **kwargs):
    return services.bookings.create_booking(
        provider_id=provider.provider_id,
        room_id=room.room_id,
        start_time=start,
        duration_minutes=minutes,
        **kwargs,
    )


def generate(services, *bookings):
    return services.billing.generate_billings([b.booking_id for b in bookings], PERIOD_START, PERIOD_END)


def billed_booking_ids(services):
    return {item.booking_id for billing in services.billing.list_billings() for item in billing.items}


class TestGenerateBillings:
    def test_single_booking_with_upgrades(self, services, studio):
        booking = book(
            services,
            studio["alice"],
            studio["room"],
            datetime(2024, 3, 4, 10),
            90,
            resting_time_minutes=15,
            client_alias="Client 1",
            upgrades={studio["towels"].upgrade_id: 2},
        )

        [billing] = generate(services, booking)

        assert billing.provider_id == studio["alice"].provider_id
        assert (billing.period_start, billing.period_end) == (PERIOD_START, PERIOD_END)
        [item] = billing.items
        assert item.booking_id == booking.booking_id
        assert item.frozen_room_name == "Room A"
        assert item.frozen_room_price_amount == Decimal("100.00")
        assert item.frozen_start_time == datetime(2024, 3, 4, 10)
        assert item.frozen_end_time == datetime(2024, 3, 4, 11, 30)
        assert item.frozen_resting_time_minutes == 15
        assert item.frozen_client_alias == "Client 1"
        assert item.subtotal_room == Decimal("150.00")
        [upgrade] = item.upgrades
        assert (upgrade.frozen_upgrade_name, upgrade.frozen_quantity) == ("Towels", 2)
        assert upgrade.frozen_upgrade_price_amount == Decimal("20.00")
        assert upgrade.total_amount == Decimal("40.00")
        assert item.subtotal_upgrades == Decimal("40.00")
        assert item.total_amount == Decimal("190.00")
        assert billing.total_amount == Decimal("190.00")

    def test_tiered_room_price(self, services, studio):
        room_price = services.prices.current_room_price(studio["room"].room_id)
        services.tiers.create_tier(room_price.price_id, 0, 30, PriceType.FIXED, Decimal("75.00"))
        services.tiers.create_tier(room_price.price_id, 30, None, PriceType.HOURLY, Decimal("120.00"))
        booking = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 90)

        [billing] = generate(services, booking)

        assert billing.items[0].subtotal_room == Decimal("195.00")
        assert billing.total_amount == Decimal("195.00")

    def test_price_in_effect_at_booking_start(self, services, studio):
        room_id = studio["room"].room_id
        services.prices.update_room_rate(room_id, Decimal("120.00"), datetime(2024, 3, 10))
        before = book(services, studio["alice"], studio["room"], datetime(2024, 3, 9, 23), 60)
        after = book(services, studio["alice"], studio["room"], datetime(2024, 3, 10), 60)

        [billing] = generate(services, before, after)

        amounts = {item.booking_id: item.frozen_room_price_amount for item in billing.items}
        assert amounts == {before.booking_id: Decimal("100.00"), after.booking_id: Decimal("120.00")}
        assert billing.total_amount == Decimal("220.00")

    def test_partitioned_by_provider(self, services, studio):
        day = datetime(2024, 3, 5, 9)
        a1 = book(services, studio["alice"], studio["room"], day, 60)
        a2 = book(services, studio["alice"], studio["room"], day + timedelta(hours=2), 30)
        b1 = book(services, studio["bob"], studio["room"], day + timedelta(hours=4), 120)

        billings = generate(services, a1, a2, b1)

        assert len(billings) == 2
        by_provider = {billing.provider_id: billing for billing in billings}
        alice = by_provider[studio["alice"].provider_id]
        bob = by_provider[studio["bob"].provider_id]
        assert {item.booking_id for item in alice.items} == {a1.booking_id, a2.booking_id}
        assert alice.total_amount == Decimal("150.00")
        assert [item.booking_id for item in bob.items] == [b1.booking_id]
        assert bob.total_amount == Decimal("200.00")

    def test_unknown_ids_are_skipped(self, services, studio):
        booking = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        billings = services.billing.generate_billings(["missing", booking.booking_id], PERIOD_START, PERIOD_END)
        assert len(billings[0].items) == 1

    def test_no_bookings_found(self, services, studio):
        with pytest.raises(NoBookingsFound):
            services.billing.generate_billings(["missing-1", "missing-2"], PERIOD_START, PERIOD_END)
        assert services.billing.list_billings() == []

    def test_period_end_before_start(self, services, studio):
        booking = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        with pytest.raises(ValidationError):
            services.billing.generate_billings([booking.booking_id], PERIOD_END, PERIOD_START)


class TestBatchAtomicity:
    def test_billing_twice_is_rejected(self, services, studio):
        booking = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        [first] = generate(services, booking)

        with pytest.raises(AlreadyBilled) as excinfo:
            generate(services, booking)

        assert excinfo.value.booking_ids == [booking.booking_id]
        [stored] = services.billing.list_billings()
        assert stored.billing_id == first.billing_id
        assert len(stored.items) == 1
        assert stored.total_amount == Decimal("100.00")

    def test_mixed_batch_bills_nothing(self, services, studio):
        billed = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        fresh = book(services, studio["bob"], studio["room"], datetime(2024, 3, 4, 12), 60)
        generate(services, billed)

        with pytest.raises(AlreadyBilled) as excinfo:
            generate(services, billed, fresh)

        assert excinfo.value.booking_ids == [billed.booking_id]
        assert not services.repository.has_billing_item(fresh.booking_id)
        assert billed_booking_ids(services) == {billed.booking_id}
        assert len(services.billing.list_billings()) == 1

    def test_missing_room_price_aborts_whole_batch(self, services, studio):
        priced = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        too_early = book(services, studio["bob"], studio["room"], datetime(2023, 12, 31, 10), 60)

        with pytest.raises(RoomPriceMissing):
            generate(services, priced, too_early)

        assert services.billing.list_billings() == []
        assert not services.repository.has_billing_item(priced.booking_id)

    def test_missing_upgrade_price_aborts_whole_batch(self, services, studio):
        late_upgrade = services.catalog.create_upgrade("Oils", Decimal("5.00"), valid_from=datetime(2024, 6, 1))
        priced = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        unpriced = book(
            services,
            studio["alice"],
            studio["room"],
            datetime(2024, 3, 4, 12),
            60,
            upgrades={late_upgrade.upgrade_id: 1},
        )

        with pytest.raises(UpgradePriceMissing):
            generate(services, priced, unpriced)

        assert services.billing.list_billings() == []


class TestFrozenItems:
    def test_later_changes_do_not_touch_issued_items(self, services, studio):
        room = studio["room"]
        towels = studio["towels"]
        booking = book(
            services,
            studio["alice"],
            room,
            datetime(2024, 3, 4, 10),
            60,
            upgrades={towels.upgrade_id: 3},
        )
        [billing] = generate(services, booking)

        services.catalog.update_room(room.room_id, "Room A (renovated)", True, room.sort_order, room.color)
        services.catalog.update_upgrade(towels.upgrade_id, "Premium towels", True)
        services.prices.update_room_rate(room.room_id, Decimal("250.00"), datetime(2024, 3, 2))
        services.prices.update_upgrade_rate(towels.upgrade_id, Decimal("99.00"), datetime(2024, 3, 2))
        room_price = services.prices.current_room_price(room.room_id)
        services.tiers.create_tier(room_price.price_id, 0, None, PriceType.FIXED, Decimal("999.00"))

        [item] = services.billing.get_billing_items(billing.billing_id)
        assert item.frozen_room_name == "Room A"
        assert item.frozen_room_price_amount == Decimal("100.00")
        assert item.subtotal_room == Decimal("100.00")
        [upgrade] = item.upgrades
        assert upgrade.frozen_upgrade_name == "Towels"
        assert upgrade.frozen_upgrade_price_amount == Decimal("20.00")
        assert upgrade.total_amount == Decimal("60.00")
        assert services.billing.get_billing(billing.billing_id).total_amount == Decimal("160.00")

    def test_items_are_immutable(self, services, studio):
        booking = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        [billing] = generate(services, booking)
        with pytest.raises(AttributeError):
            billing.items[0].total_amount = Decimal("0.00")


class TestBillingQueries:
    def test_list_for_provider(self, services, studio):
        a = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 60)
        b = book(services, studio["bob"], studio["room"], datetime(2024, 3, 4, 12), 60)
        generate(services, a, b)

        [alice_billing] = services.billing.list_billings_for_provider(studio["alice"].provider_id)
        assert alice_billing.provider_id == studio["alice"].provider_id
        assert len(services.billing.list_billings()) == 2

    def test_round_trip_keeps_amounts(self, services, studio):
        booking = book(services, studio["alice"], studio["room"], datetime(2024, 3, 4, 10), 7)
        [billing] = generate(services, booking)

        stored = services.billing.get_billing(billing.billing_id)
        assert stored.total_amount == Decimal("11.67")
        assert stored.items[0].subtotal_room == Decimal("11.67")
        assert stored.items[0].frozen_duration_minutes == 7
