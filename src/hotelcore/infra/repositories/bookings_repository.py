"""Bookings repository - persistence for bookings and their room context.

Uses raw SQL with psycopg2 (no ORM). Callers own the transaction.
"""

from psycopg2.extensions import cursor as PgCursor

from hotelcore.domain.booking_validation import RoomContext
from hotelcore.infra.db import row_to_dict

BOOKING_COLUMNS = (
    "id",
    "hotel_id",
    "room_id",
    "user_id",
    "guest_name",
    "guest_email",
    "guest_phone",
    "check_in",
    "check_out",
    "nights",
    "adults",
    "children",
    "room_rate_cents",
    "total_cents",
    "currency",
    "status",
    "payment_status",
    "confirmation_number",
    "cancellation_deadline",
    "cancellation_reason",
    "created_at",
    "updated_at",
)

_SELECT = ", ".join(BOOKING_COLUMNS)

# Columns BookingService may write; id and timestamps are database-owned
WRITABLE_COLUMNS = frozenset(BOOKING_COLUMNS) - {"id", "created_at", "updated_at"}


def get_booking(cur: PgCursor, booking_id: str, *, lock: bool = False) -> dict | None:
    """Fetch a booking, optionally locking it FOR UPDATE.

    Args:
        cur: Database cursor.
        booking_id: Booking UUID.
        lock: Lock the row until the transaction ends.

    Returns:
        Booking dict or None if not found.
    """
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"SELECT {_SELECT} FROM bookings WHERE id = %s{suffix}",
        (booking_id,),
    )
    booking = row_to_dict(BOOKING_COLUMNS, cur.fetchone())
    if booking is not None:
        booking["id"] = str(booking["id"])
    return booking


def confirmation_number_exists(cur: PgCursor, confirmation_number: str) -> bool:
    cur.execute(
        "SELECT 1 FROM bookings WHERE confirmation_number = %s",
        (confirmation_number,),
    )
    return cur.fetchone() is not None


def insert_booking(cur: PgCursor, fields: dict) -> dict:
    """Insert a booking row and return it as stored.

    Raises:
        ValueError: If fields contains a column that is not writable.
        psycopg2.errors.UniqueViolation: On confirmation_number collision.
    """
    unknown = set(fields) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown booking columns: {sorted(unknown)}")

    columns = sorted(fields)
    placeholders = ", ".join(["%s"] * len(columns))
    cur.execute(
        f"""
        INSERT INTO bookings ({", ".join(columns)})
        VALUES ({placeholders})
        RETURNING {_SELECT}
        """,
        [fields[c] for c in columns],
    )
    booking = row_to_dict(BOOKING_COLUMNS, cur.fetchone())
    booking["id"] = str(booking["id"])
    return booking


def update_booking(cur: PgCursor, booking_id: str, changes: dict) -> dict:
    """Apply column changes to a booking and return the new row."""
    unknown = set(changes) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown booking columns: {sorted(unknown)}")

    columns = sorted(changes)
    assignments = ", ".join(f"{c} = %s" for c in columns)
    cur.execute(
        f"""
        UPDATE bookings
        SET {assignments}, updated_at = now()
        WHERE id = %s
        RETURNING {_SELECT}
        """,
        [changes[c] for c in columns] + [booking_id],
    )
    booking = row_to_dict(BOOKING_COLUMNS, cur.fetchone())
    booking["id"] = str(booking["id"])
    return booking


def delete_booking(cur: PgCursor, booking_id: str) -> bool:
    cur.execute("DELETE FROM bookings WHERE id = %s", (booking_id,))
    return cur.rowcount > 0


def get_room_context(cur: PgCursor, room_id: str) -> RoomContext | None:
    """Load room capacity/inventory and the owning hotel's active flag."""
    cur.execute(
        """
        SELECT r.id, r.hotel_id, h.is_active, r.is_active,
               r.max_occupancy, r.total_quantity
        FROM rooms r
        JOIN hotels h ON h.id = r.hotel_id
        WHERE r.id = %s
        """,
        (room_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return RoomContext(
        room_id=str(row[0]),
        hotel_id=str(row[1]),
        hotel_active=bool(row[2]),
        room_active=bool(row[3]),
        max_occupancy=row[4],
        total_quantity=row[5],
    )
