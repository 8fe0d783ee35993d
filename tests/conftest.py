"""Shared fixtures: both storage backends and a wired set of services."""
import os

os.environ.setdefault("STORAGE", "memory")

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest

from studio_booking.app.config import get_settings
from studio_booking.application.billing_service import BillingService
from studio_booking.application.booking_query_service import BookingQueryService
from studio_booking.application.booking_service import BookingService
from studio_booking.application.catalog_service import CatalogService
from studio_booking.application.duration_option_service import DurationOptionService
from studio_booking.application.price_service import PriceService
from studio_booking.application.price_tier_service import PriceTierService
from studio_booking.application.pricing_service import PriceCalculationService
from studio_booking.infrastructure.memory_store import InMemoryStudioRepository
from studio_booking.infrastructure.sql_repo import SQLStudioRepository

JAN_1 = datetime(2024, 1, 1)


@dataclass
class Services:
    repository: object
    prices: PriceService
    calculation: PriceCalculationService
    tiers: PriceTierService
    catalog: CatalogService
    durations: DurationOptionService
    bookings: BookingService
    queries: BookingQueryService
    billing: BillingService


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def memory_repository():
    return InMemoryStudioRepository()


@pytest.fixture
def sql_repository(tmp_path):
    return SQLStudioRepository(f"sqlite:///{tmp_path / 'studio.db'}")


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    """Runs the test once per storage backend."""
    return request.getfixturevalue(f"{request.param}_repository")


@pytest.fixture
def services(settings, repository):
    prices = PriceService(settings, repository)
    calculation = PriceCalculationService(settings, repository)
    durations = DurationOptionService(settings, repository)
    return Services(
        repository=repository,
        prices=prices,
        calculation=calculation,
        tiers=PriceTierService(settings, repository),
        catalog=CatalogService(settings, repository, prices),
        durations=durations,
        bookings=BookingService(settings, repository, durations),
        queries=BookingQueryService(settings, repository, prices, calculation),
        billing=BillingService(settings, repository, prices, calculation),
    )


@pytest.fixture
def studio(services):
    """One room at 100.00/h from Jan 1st, two providers and a 20.00 upgrade."""
    room = services.catalog.create_room("Room A", Decimal("100.00"), valid_from=JAN_1)
    alice = services.catalog.create_provider("Alice")
    bob = services.catalog.create_provider("Bob")
    towels = services.catalog.create_upgrade("Towels", Decimal("20.00"), valid_from=JAN_1)
    return {"room": room, "alice": alice, "bob": bob, "towels": towels}
