from .billing_router import router as billing_router
from .booking_router import router as booking_router
from .catalog_router import router as catalog_router
from .duration_option_router import router as duration_option_router
from .price_router import router as price_router

__all__ = [
    "billing_router",
    "booking_router",
    "catalog_router",
    "duration_option_router",
    "price_router",
]
