"""Availability repository - the room_availability ledger.

Uses raw SQL with psycopg2 (no ORM).
Every counter change is a conditional UPDATE: the WHERE guard is evaluated
under the row lock, so concurrent writers on one (room_id, date) serialize
and the loser sees the committed counters.
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor


def seed_night(
    cur: PgCursor,
    *,
    room_id: str,
    night_date: date,
    total_quantity: int,
    price_cents: int,
    currency: str,
) -> None:
    """Create the ledger row for a night if it does not exist yet.

    New rows start with the room's full inventory available.
    """
    cur.execute(
        """
        INSERT INTO room_availability (
            room_id, date, available, booked, price_cents, currency
        )
        VALUES (%s, %s, %s, 0, %s, %s)
        ON CONFLICT (room_id, date) DO NOTHING
        """,
        (room_id, night_date, total_quantity, price_cents, currency),
    )


def take_night(
    cur: PgCursor,
    *,
    room_id: str,
    night_date: date,
    price_cents: int,
) -> bool:
    """Book one unit for a night with availability guard.

    Guard: available >= 1. Never drives available below zero.

    Returns:
        True if a unit was taken, False if the night is sold out.
    """
    cur.execute(
        """
        UPDATE room_availability
        SET booked = booked + 1,
            available = available - 1,
            price_cents = %s,
            last_updated = now()
        WHERE room_id = %s
          AND date = %s
          AND available >= 1
        RETURNING booked
        """,
        (price_cents, room_id, night_date),
    )
    return cur.fetchone() is not None


def release_night(
    cur: PgCursor,
    *,
    room_id: str,
    night_date: date,
) -> bool:
    """Return one booked unit for a night.

    Guard: booked >= 1.

    Returns:
        True if released, False if nothing was booked (ledger drift).
    """
    cur.execute(
        """
        UPDATE room_availability
        SET booked = booked - 1,
            available = available + 1,
            last_updated = now()
        WHERE room_id = %s
          AND date = %s
          AND booked >= 1
        RETURNING booked
        """,
        (room_id, night_date),
    )
    return cur.fetchone() is not None


def get_nights(
    cur: PgCursor,
    *,
    room_id: str,
    start: date,
    end: date,
) -> list[dict]:
    """Ledger rows for [start, end), ascending."""
    cur.execute(
        """
        SELECT date, available, booked, price_cents, currency
        FROM room_availability
        WHERE room_id = %s AND date >= %s AND date < %s
        ORDER BY date
        """,
        (room_id, start, end),
    )
    return [
        {
            "date": row[0],
            "available": row[1],
            "booked": row[2],
            "price_cents": row[3],
            "currency": row[4],
        }
        for row in cur.fetchall()
    ]
