"""Room availability ledger - per (room, night) inventory counters.

The ledger is derived from booking transitions only; nothing else writes it.

Overselling policy: check-and-decrement. A night is taken with a single
conditional UPDATE (available >= 1). Two transactions confirming the last
unit of the same night serialize on the row lock; the second one finds
available = 0 and fails with RoomUnavailableError, rolling back its whole
booking mutation. Ledger rows are always visited in ascending
(room_id, date) order so concurrent multi-night mutations lock rows in the
same order.
"""

from __future__ import annotations

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from hotelcore.domain.errors import LedgerConsistencyError, RoomUnavailableError
from hotelcore.infra.db import read_only_txn
from hotelcore.infra.repositories.availability_repository import (
    get_nights,
    release_night,
    seed_night,
    take_night,
)
from hotelcore.infra.repositories.bookings_repository import get_room_context
from hotelcore.infra.time import iter_nights
from hotelcore.observability.logging import get_logger

logger = get_logger(__name__)


def _take(
    cur: PgCursor,
    *,
    room_id: str,
    night: date,
    total_quantity: int,
    price_cents: int,
    currency: str,
) -> None:
    seed_night(
        cur,
        room_id=room_id,
        night_date=night,
        total_quantity=total_quantity,
        price_cents=price_cents,
        currency=currency,
    )
    if not take_night(cur, room_id=room_id, night_date=night, price_cents=price_cents):
        logger.info(
            "room sold out",
            extra={"extra_fields": {"room_id": room_id, "night": night.isoformat()}},
        )
        raise RoomUnavailableError(room_id, night)


def _release(cur: PgCursor, *, room_id: str, night: date) -> None:
    if not release_night(cur, room_id=room_id, night_date=night):
        logger.error(
            "ledger release found nothing booked",
            extra={"extra_fields": {"room_id": room_id, "night": night.isoformat()}},
        )
        raise LedgerConsistencyError(
            f"No booked inventory to release for room {room_id} on {night}"
        )


def reserve_stay(
    cur: PgCursor,
    *,
    room_id: str,
    total_quantity: int,
    check_in: date,
    check_out: date,
    price_cents: int,
    currency: str,
) -> int:
    """Take one unit of the room for every night of the stay.

    Returns:
        Number of nights reserved.

    Raises:
        RoomUnavailableError: If any night has no unit left. The caller's
            transaction must be rolled back (txn() does this).
    """
    reserved = 0
    for night in iter_nights(check_in, check_out):
        _take(
            cur,
            room_id=room_id,
            night=night,
            total_quantity=total_quantity,
            price_cents=price_cents,
            currency=currency,
        )
        reserved += 1
    return reserved


def release_stay(
    cur: PgCursor,
    *,
    room_id: str,
    check_in: date,
    check_out: date,
) -> int:
    """Give back one unit of the room for every night of the stay.

    Raises:
        LedgerConsistencyError: If a night has nothing booked. Clamping
            would hide drift, so the mutation is aborted instead.
    """
    released = 0
    for night in iter_nights(check_in, check_out):
        _release(cur, room_id=room_id, night=night)
        released += 1
    return released


def move_stay(
    cur: PgCursor,
    *,
    old_room_id: str,
    old_check_in: date,
    old_check_out: date,
    new_room_id: str,
    total_quantity: int,
    new_check_in: date,
    new_check_out: date,
    price_cents: int,
    currency: str,
) -> None:
    """Move a confirmed stay to another room and/or dates.

    The old and new nights are visited in one ascending (room_id, date)
    pass. A night in both stays is released before it is taken again, on
    the same locked row.

    Raises:
        RoomUnavailableError: If a new night has no unit left.
        LedgerConsistencyError: If an old night has nothing booked.
    """
    old = {(str(old_room_id), night) for night in iter_nights(old_check_in, old_check_out)}
    new = {(str(new_room_id), night) for night in iter_nights(new_check_in, new_check_out)}

    for room_id, night in sorted(old | new):
        if (room_id, night) in old:
            _release(cur, room_id=room_id, night=night)
        if (room_id, night) in new:
            _take(
                cur,
                room_id=room_id,
                night=night,
                total_quantity=total_quantity,
                price_cents=price_cents,
                currency=currency,
            )

def get_availability(room_id: str, start: date, end: date) -> list[dict]:
    """Per-night availability for display.

    Nights without a ledger row have the room's full inventory available.
    Snapshot read; may lag concurrent writes.
    """
    with read_only_txn() as cur:
        room = get_room_context(cur, room_id)
        if room is None:
            return []
        rows = {row["date"]: row for row in get_nights(cur, room_id=room_id, start=start, end=end)}

    result = []
    for night in iter_nights(start, end):
        row = rows.get(night)
        if row is None:
            result.append(
                {"date": night, "available": room.total_quantity, "booked": 0, "price_cents": None}
            )
        else:
            result.append(
                {
                    "date": night,
                    "available": row["available"],
                    "booked": row["booked"],
                    "price_cents": row["price_cents"],
                }
            )
    return result
