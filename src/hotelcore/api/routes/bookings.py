"""Booking endpoints.

POST   /bookings                               → create
GET    /bookings/{id}                          → read (with status history)
PATCH  /bookings/{id}                          → modify
POST   /bookings/{id}/actions/confirm          → confirm
POST   /bookings/{id}/actions/cancel           → cancel
POST   /bookings/{id}/actions/complete         → complete
POST   /bookings/{id}/actions/no-show          → mark no-show
GET    /bookings/rooms/{room_id}/availability  → per-night ledger view
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, HTTPException, Path, Query
from pydantic import BaseModel, ConfigDict, Field

from hotelcore.api.errors import domain_errors
from hotelcore.domain.availability import get_availability
from hotelcore.domain.booking_status import BookingStatus
from hotelcore.domain.booking_validation import BookingDraft
from hotelcore.domain.bookings import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])

MAX_AVAILABILITY_DAYS = 366


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hotel_id: str
    room_id: str
    check_in: date
    check_out: date
    adults: int
    children: int = 0
    room_rate_cents: int
    total_cents: int
    currency: str = Field("USD", min_length=3, max_length=3)
    guest_name: str = Field(..., min_length=1)
    guest_email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    guest_phone: str | None = None
    user_id: str | None = None
    confirmation_number: str | None = None
    cancellation_deadline: datetime | None = None
    status: BookingStatus = BookingStatus.PENDING


class ModifyBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str | None = None
    check_in: date | None = None
    check_out: date | None = None
    adults: int | None = None
    children: int | None = None
    room_rate_cents: int | None = None
    total_cents: int | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    guest_name: str | None = Field(None, min_length=1)
    guest_email: str | None = Field(None, pattern=r"^[^@\s]+@[^@\s]+$")
    guest_phone: str | None = None
    cancellation_deadline: datetime | None = None


class CancelBookingRequest(BaseModel):
    """Request body for cancel action."""

    reason: str | None = None
    force: bool = False


def _service() -> BookingService:
    return BookingService()


@router.post("", status_code=201)
def create_booking(body: CreateBookingRequest) -> dict:
    fields = body.model_dump(exclude={"status"})
    fields["currency"] = fields["currency"].upper()
    with domain_errors():
        return _service().create(BookingDraft(**fields), initial_status=body.status)


@router.get("/rooms/{room_id}/availability")
def room_availability(
    room_id: str = Path(..., description="Room UUID"),
    start: date = Query(..., description="First night"),
    end: date = Query(..., description="Day after the last night"),
) -> dict:
    if end <= start:
        raise HTTPException(status_code=422, detail="end must be after start")
    if (end - start).days > MAX_AVAILABILITY_DAYS:
        raise HTTPException(status_code=422, detail="Date range too long")
    return {"room_id": room_id, "nights": get_availability(room_id, start, end)}


@router.get("/{booking_id}")
def get_booking(booking_id: str = Path(..., description="Booking UUID")) -> dict:
    with domain_errors():
        return _service().get(booking_id)


@router.patch("/{booking_id}")
def modify_booking(
    body: ModifyBookingRequest,
    booking_id: str = Path(..., description="Booking UUID"),
) -> dict:
    changes = body.model_dump(exclude_unset=True)
    if "currency" in changes and changes["currency"]:
        changes["currency"] = changes["currency"].upper()
    with domain_errors():
        return _service().modify(booking_id, changes)


@router.post("/{booking_id}/actions/confirm")
def confirm_booking(booking_id: str = Path(..., description="Booking UUID")) -> dict:
    with domain_errors():
        return _service().confirm(booking_id)


@router.post("/{booking_id}/actions/cancel")
def cancel_booking(
    body: CancelBookingRequest | None = None,
    booking_id: str = Path(..., description="Booking UUID"),
) -> dict:
    body = body or CancelBookingRequest()
    with domain_errors():
        return _service().cancel(booking_id, body.reason, force=body.force)


@router.post("/{booking_id}/actions/complete")
def complete_booking(booking_id: str = Path(..., description="Booking UUID")) -> dict:
    with domain_errors():
        return _service().complete(booking_id)


@router.post("/{booking_id}/actions/no-show")
def no_show_booking(booking_id: str = Path(..., description="Booking UUID")) -> dict:
    with domain_errors():
        return _service().mark_no_show(booking_id)
