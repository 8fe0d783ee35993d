"""Shared singletons for settings, repository and services.

The storage backend (``sqlite`` or ``memory``) comes from app_config.yaml,
overridable through the ``STORAGE`` environment variable.
"""
from __future__ import annotations

from studio_booking.app.config import get_settings
from studio_booking.app.logging import get_logger
from studio_booking.application.billing_service import BillingService
from studio_booking.application.booking_query_service import BookingQueryService
from studio_booking.application.booking_service import BookingService
from studio_booking.application.catalog_service import CatalogService
from studio_booking.application.duration_option_service import DurationOptionService
from studio_booking.application.price_service import PriceService
from studio_booking.application.price_tier_service import PriceTierService
from studio_booking.application.pricing_service import PriceCalculationService
from studio_booking.infrastructure.memory_store import InMemoryStudioRepository
from studio_booking.infrastructure.repository import StudioRepository
from studio_booking.infrastructure.sql_repo import SQLStudioRepository

logger = get_logger(__name__)

settings = get_settings()


def _create_repository() -> StudioRepository:
    """Create the repository for the configured backend."""
    backend = settings.database_backend
    if backend == "memory":
        return InMemoryStudioRepository()
    elif backend == "sqlite":
        return SQLStudioRepository(settings.database_url)
    else:
        raise ValueError(f"Unknown database backend: {backend}. Supported: sqlite, memory")


repository = _create_repository()

price_service = PriceService(settings, repository)
price_calculation_service = PriceCalculationService(settings, repository)
price_tier_service = PriceTierService(settings, repository)
catalog_service = CatalogService(settings, repository, price_service)
duration_option_service = DurationOptionService(settings, repository)
booking_service = BookingService(settings, repository, duration_option_service)
booking_query_service = BookingQueryService(settings, repository, price_service, price_calculation_service)
billing_service = BillingService(settings, repository, price_service, price_calculation_service)

logger.info("Database backend: %s", settings.database_backend)

