"""Tests for booking validation rules and derived fields."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from hotelcore.config import Settings
from hotelcore.domain.booking_validation import (
    BookingDraft,
    RoomContext,
    default_cancellation_deadline,
    generate_confirmation_number,
    validate_booking,
)
from hotelcore.domain.errors import BookingValidationError

TODAY = date(2026, 6, 1)
SETTINGS = Settings()


def _draft(**overrides) -> BookingDraft:
    fields = dict(
        hotel_id="h1",
        room_id="r1",
        check_in=date(2026, 6, 10),
        check_out=date(2026, 6, 13),
        adults=2,
        children=0,
        room_rate_cents=10_000,
        total_cents=30_000,
        currency="USD",
        guest_name="Ana Souza",
        guest_email="ana@example.com",
    )
    fields.update(overrides)
    return BookingDraft(**fields)


def _room(**overrides) -> RoomContext:
    fields = dict(
        room_id="r1",
        hotel_id="h1",
        hotel_active=True,
        room_active=True,
        max_occupancy=4,
        total_quantity=5,
    )
    fields.update(overrides)
    return RoomContext(**fields)


def _code(draft, room=None, settings=SETTINGS) -> str:
    with pytest.raises(BookingValidationError) as exc_info:
        validate_booking(draft, room if room is not None else _room(), today=TODAY, settings=settings)
    return exc_info.value.code


def test_valid_booking_returns_nights():
    assert validate_booking(_draft(), _room(), today=TODAY, settings=SETTINGS) == 3


def test_check_in_today_is_allowed():
    draft = _draft(check_in=TODAY, check_out=date(2026, 6, 2), total_cents=10_000)
    assert validate_booking(draft, _room(), today=TODAY, settings=SETTINGS) == 1


def test_checkout_must_follow_checkin():
    assert _code(_draft(check_out=date(2026, 6, 10))) == "invalid_dates"


def test_check_in_in_past():
    assert _code(_draft(check_in=date(2026, 5, 31))) == "check_in_in_past"


def test_adults_required():
    assert _code(_draft(adults=0)) == "adults_required"


def test_negative_children():
    assert _code(_draft(children=-1)) == "invalid_children"


def test_guest_cap():
    assert _code(_draft(adults=8, children=3), _room(max_occupancy=20)) == "too_many_guests"


def test_room_capacity():
    assert _code(_draft(adults=3, children=2)) == "over_room_capacity"


def test_missing_room():
    with pytest.raises(BookingValidationError) as exc_info:
        validate_booking(_draft(), None, today=TODAY, settings=SETTINGS)
    assert exc_info.value.code == "room_not_found"


def test_room_of_other_hotel():
    assert _code(_draft(), _room(hotel_id="h2")) == "room_not_found"


def test_inactive_room():
    assert _code(_draft(), _room(room_active=False)) == "room_not_found"


def test_inactive_hotel():
    assert _code(_draft(), _room(hotel_active=False)) == "hotel_inactive"


def test_non_positive_amount():
    assert _code(_draft(total_cents=0)) == "non_positive_amount"


def test_rate_within_tolerance():
    # expected 30_000; |30_000 - 20_000| = 10_000 <= 20_000 * 0.5
    draft = _draft(total_cents=20_000)
    assert validate_booking(draft, _room(), today=TODAY, settings=SETTINGS) == 3


def test_rate_outside_tolerance():
    assert _code(_draft(total_cents=15_000)) == "inconsistent_rate"


def test_tolerance_is_configurable():
    strict = Settings(rate_tolerance=Decimal("0.01"))
    assert _code(_draft(total_cents=29_000), settings=strict) == "inconsistent_rate"


def test_with_changes_returns_new_draft():
    draft = _draft()
    changed = draft.with_changes(adults=1)
    assert changed.adults == 1
    assert draft.adults == 2


def test_confirmation_number_format():
    number = generate_confirmation_number("BK", datetime(2026, 6, 1, tzinfo=timezone.utc))
    assert number.startswith("BK20260601-")
    assert len(number.split("-")[1]) == 6


def test_default_cancellation_deadline():
    assert default_cancellation_deadline(date(2026, 6, 10), 24) == datetime(
        2026, 6, 9, tzinfo=timezone.utc
    )
