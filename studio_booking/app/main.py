"""FastAPI entry point for the Studio Booking & Billing service."""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studio_booking.app.logging import get_logger, setup_logging
from studio_booking.domain.errors import (
    AlreadyBilled,
    ConflictError,
    IntegrityError,
    NotFoundError,
    ValidationError,
)
from studio_booking.interfaces import (
    billing_router,
    booking_router,
    catalog_router,
    deps,
    duration_option_router,
    price_router,
)

setup_logging(deps.settings)
logger = get_logger(__name__)

app = FastAPI(title="Studio Booking & Billing")

app.include_router(catalog_router)
app.include_router(duration_option_router)
app.include_router(booking_router)
app.include_router(price_router)
app.include_router(billing_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:5174"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error kinds ----------------------------------------------------------------
@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    content = {"detail": str(exc)}
    if isinstance(exc, AlreadyBilled):
        content["bookingIds"] = exc.booking_ids
    return JSONResponse(status_code=409, content=content)


@app.exception_handler(IntegrityError)
async def _integrity(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Integrity failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health", tags=["health"])
def health_check() -> dict:
    """Expose a minimal health endpoint to help dev tooling."""
    return {"status": "ok", "configVersion": deps.settings.version}
