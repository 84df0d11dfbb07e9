"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from hotelcore.api.routes import bookings, hotels, payments, search

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(bookings.router)
router.include_router(search.router)
router.include_router(hotels.router)
router.include_router(payments.router)
