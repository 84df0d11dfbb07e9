"""Booking validation and derived fields.

Pure functions: no database access. BookingService calls validate_booking
before it writes anything, so a rejected request leaves no trace.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal

from hotelcore.config import Settings
from hotelcore.domain.errors import BookingValidationError
from hotelcore.infra.time import start_of_day_utc


@dataclass(frozen=True)
class BookingDraft:
    """Caller-supplied booking fields, before derivation."""

    hotel_id: str
    room_id: str
    check_in: date
    check_out: date
    adults: int
    children: int
    room_rate_cents: int
    total_cents: int
    currency: str
    guest_name: str
    guest_email: str
    guest_phone: str | None = None
    user_id: str | None = None
    confirmation_number: str | None = None
    cancellation_deadline: datetime | None = None

    def with_changes(self, **changes) -> "BookingDraft":
        return replace(self, **changes)


@dataclass(frozen=True)
class RoomContext:
    """Room and hotel facts a booking is validated against."""

    room_id: str
    hotel_id: str
    hotel_active: bool
    room_active: bool
    max_occupancy: int
    total_quantity: int


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def validate_booking(
    draft: BookingDraft,
    room: RoomContext | None,
    *,
    today: date,
    settings: Settings,
) -> int:
    """Check every booking rule and return the number of nights.

    Raises:
        BookingValidationError: On the first violated rule.
    """
    if draft.check_in >= draft.check_out:
        raise BookingValidationError(
            "invalid_dates", "Check-out date must be after check-in date"
        )
    if draft.check_in < today:
        raise BookingValidationError(
            "check_in_in_past", "Check-in date cannot be in the past"
        )

    if draft.adults < 1:
        raise BookingValidationError("adults_required", "At least one adult is required")
    if draft.children < 0:
        raise BookingValidationError("invalid_children", "Children count cannot be negative")

    guests = draft.adults + draft.children
    if guests > settings.max_guests:
        raise BookingValidationError(
            "too_many_guests", f"Maximum {settings.max_guests} guests per booking"
        )

    if room is None or not room.room_active or room.hotel_id != draft.hotel_id:
        raise BookingValidationError("room_not_found", "The selected room is not available")
    if not room.hotel_active:
        raise BookingValidationError("hotel_inactive", "Cannot book an inactive hotel")
    if guests > room.max_occupancy:
        raise BookingValidationError(
            "over_room_capacity",
            f"Guest count exceeds room capacity of {room.max_occupancy}",
        )

    if draft.total_cents <= 0:
        raise BookingValidationError(
            "non_positive_amount", "Total amount must be positive"
        )

    nights = nights_between(draft.check_in, draft.check_out)
    expected = draft.room_rate_cents * nights
    if abs(expected - draft.total_cents) > Decimal(draft.total_cents) * settings.rate_tolerance:
        raise BookingValidationError(
            "inconsistent_rate", "Room rate appears inconsistent with total amount"
        )

    return nights


def generate_confirmation_number(prefix: str, now: datetime) -> str:
    """e.g. BK20261019-3FA9C2"""
    return f"{prefix}{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def default_cancellation_deadline(check_in: date, hours: int) -> datetime:
    return start_of_day_utc(check_in) - timedelta(hours=hours)
