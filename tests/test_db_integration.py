"""Booking and ledger behaviour against a real, migrated database.

Requires DATABASE_URL pointing at a database with migrations applied.
"""

from __future__ import annotations

import os
import threading
from datetime import date, timedelta

import pytest

pytestmark = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@pytest.fixture
def make_room():
    """Factory for an active hotel with one room of the given quantity.

    Everything created for the hotel is removed afterwards, including the
    commission rows and events of bookings purged during the test.
    """
    from hotelcore.infra.db import txn

    hotel_ids = []
    booking_ids: list[str] = []

    def _make(total_quantity: int) -> tuple[str, str, list[str]]:
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO hotels (name, slug, city, country)
                VALUES ('Integration Inn', 'integration-inn-' || gen_random_uuid(), 'Porto', 'PT')
                RETURNING id
                """
            )
            hotel_id = str(cur.fetchone()[0])
            cur.execute(
                """
                INSERT INTO rooms (hotel_id, name, max_occupancy, total_quantity)
                VALUES (%s, 'Standard', 2, %s)
                RETURNING id
                """,
                (hotel_id, total_quantity),
            )
            room_id = str(cur.fetchone()[0])
        hotel_ids.append(hotel_id)
        return hotel_id, room_id, booking_ids

    yield _make

    with txn() as cur:
        for hotel_id in hotel_ids:
            cur.execute("SELECT id FROM bookings WHERE hotel_id = %s", (hotel_id,))
            ids = [str(row[0]) for row in cur.fetchall()] + booking_ids
            if ids:
                cur.execute(
                    "DELETE FROM commissions WHERE booking_id::text = ANY(%s::text[])"
                    " RETURNING payment_id",
                    (ids,),
                )
                payment_ids = [str(row[0]) for row in cur.fetchall() if row[0] is not None]
                cur.execute(
                    "DELETE FROM payments"
                    " WHERE booking_id::text = ANY(%s::text[]) OR id::text = ANY(%s::text[])",
                    (ids, payment_ids),
                )
                cur.execute(
                    "DELETE FROM outbox_events WHERE aggregate_id = ANY(%s::text[])", (ids,)
                )
            cur.execute("DELETE FROM bookings WHERE hotel_id = %s", (hotel_id,))
            cur.execute("DELETE FROM hotels WHERE id = %s", (hotel_id,))


def _draft(hotel_id: str, room_id: str, email: str):
    from hotelcore.domain.booking_validation import BookingDraft

    check_in = date.today() + timedelta(days=30)
    return BookingDraft(
        hotel_id=hotel_id,
        room_id=room_id,
        check_in=check_in,
        check_out=check_in + timedelta(days=2),
        adults=1,
        children=0,
        room_rate_cents=10_000,
        total_cents=20_000,
        currency="USD",
        guest_name="Guest",
        guest_email=email,
    )


def _ledger(room_id: str) -> list[tuple[int, int]]:
    from hotelcore.domain.availability import get_availability

    draft = _draft("-", room_id, "x@example.com")
    nights = get_availability(room_id, draft.check_in, draft.check_out)
    return [(n["available"], n["booked"]) for n in nights]


def test_last_unit_goes_to_exactly_one_booking(make_room):
    from hotelcore.domain.booking_status import BookingStatus
    from hotelcore.domain.bookings import BookingService
    from hotelcore.domain.errors import RoomUnavailableError

    hotel_id, room_id, _ = make_room(1)
    service = BookingService()
    barrier = threading.Barrier(2)
    outcomes: list = []

    def book(email: str) -> None:
        barrier.wait()
        try:
            outcomes.append(
                service.create(
                    _draft(hotel_id, room_id, email), initial_status=BookingStatus.CONFIRMED
                )
            )
        except RoomUnavailableError as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=book, args=(f"g{i}@example.com",)) for i in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    booked = [o for o in outcomes if isinstance(o, dict)]
    refused = [o for o in outcomes if isinstance(o, RoomUnavailableError)]
    assert len(booked) == 1
    assert len(refused) == 1
    assert _ledger(room_id) == [(0, 1), (0, 1)]


def test_confirm_then_cancel_restores_inventory(make_room):
    from hotelcore.domain.bookings import BookingService

    hotel_id, room_id, _ = make_room(1)
    service = BookingService()

    booking = service.create(_draft(hotel_id, room_id, "roundtrip@example.com"))
    assert booking["status"] == "pending"
    assert _ledger(room_id) == [(1, 0), (1, 0)]

    assert service.confirm(booking["id"])["status"] == "confirmed"
    assert _ledger(room_id) == [(0, 1), (0, 1)]

    assert service.cancel(booking["id"], "plans changed")["status"] == "cancelled"
    assert _ledger(room_id) == [(1, 0), (1, 0)]

    history = service.get(booking["id"])["status_history"]
    assert [h["new_status"] for h in history] == ["pending", "confirmed", "cancelled"]


def test_no_drift_across_repeated_book_cancel_cycles(make_room):
    from hotelcore.domain.bookings import BookingService
    from hotelcore.domain.errors import RoomUnavailableError

    hotel_id, room_id, _ = make_room(2)
    service = BookingService()
    confirmed: list[str] = []

    for cycle in range(4):
        for slot in range(2 - len(confirmed)):
            booking = service.create(_draft(hotel_id, room_id, f"c{cycle}s{slot}@example.com"))
            service.confirm(booking["id"])
            # a repeated confirm is a no-op
            service.confirm(booking["id"])
            confirmed.append(booking["id"])

        extra = service.create(_draft(hotel_id, room_id, f"extra{cycle}@example.com"))
        with pytest.raises(RoomUnavailableError):
            service.confirm(extra["id"])

        service.cancel(confirmed.pop(0), "cycle")
        for available, booked in _ledger(room_id):
            assert booked == len(confirmed)
            assert available + booked == 2

    for booking_id in confirmed:
        service.cancel(booking_id, "done")
    assert _ledger(room_id) == [(2, 0), (2, 0)]


def test_status_change_writes_outbox_event(make_room):
    from hotelcore.domain.bookings import BookingService
    from hotelcore.infra.db import read_only_txn

    hotel_id, room_id, _ = make_room(1)
    service = BookingService()
    booking = service.create(_draft(hotel_id, room_id, "events@example.com"))
    service.confirm(booking["id"])
    service.confirm(booking["id"])

    with read_only_txn() as cur:
        cur.execute(
            """
            SELECT event_type, payload->>'old_status', payload->>'new_status'
            FROM outbox_events
            WHERE aggregate_id = %s
            ORDER BY id
            """,
            (str(booking["id"]),),
        )
        rows = cur.fetchall()

    assert rows == [("booking_status_changed", "pending", "confirmed")]


def test_purge_keeps_earned_commission_unchanged(make_room):
    from hotelcore.domain.bookings import BookingService
    from hotelcore.domain.payments import PaymentResult, apply_payment_result
    from hotelcore.infra.db import read_only_txn

    hotel_id, room_id, purged_ids = make_room(1)
    service = BookingService()
    booking = service.create(_draft(hotel_id, room_id, "paid@example.com"))
    booking_id = str(booking["id"])
    purged_ids.append(booking_id)

    applied = apply_payment_result(
        PaymentResult(booking_id, f"tx-{booking_id}", 20_000, "USD", "completed"),
        service=service,
    )
    assert applied["booking_status"] == "confirmed"

    def commission_rows():
        with read_only_txn() as cur:
            cur.execute(
                """
                SELECT kind, booking_id::text, commission_cents, status
                FROM commissions WHERE booking_id = %s ORDER BY created_at, kind
                """,
                (booking_id,),
            )
            return cur.fetchall()

    [charge] = commission_rows()
    assert charge[0] == "charge"

    service.purge(booking_id)

    rows = commission_rows()
    assert rows[0] == charge
    assert rows[1][0] == "reversal"
    assert rows[1][2] == -charge[2]
    assert _ledger(room_id) == [(1, 0), (1, 0)]
