"""Payments repository - gateway results recorded against bookings.

Uses raw SQL with psycopg2 (no ORM). transaction_id is unique, so a
gateway retrying the same callback never records the payment twice.
"""

from psycopg2.extensions import cursor as PgCursor

from hotelcore.infra.db import row_to_dict

PAYMENT_COLUMNS = (
    "id",
    "booking_id",
    "transaction_id",
    "amount_cents",
    "currency",
    "status",
    "received_at",
)

_SELECT = ", ".join(PAYMENT_COLUMNS)


def _normalize(row) -> dict | None:
    payment = row_to_dict(PAYMENT_COLUMNS, row)
    if payment is not None:
        payment["id"] = str(payment["id"])
        if payment["booking_id"] is not None:
            payment["booking_id"] = str(payment["booking_id"])
    return payment


def insert_payment(
    cur: PgCursor,
    *,
    booking_id: str,
    transaction_id: str,
    amount_cents: int,
    currency: str,
    status: str,
) -> dict | None:
    """Record a gateway result.

    Returns:
        The stored payment, or None if transaction_id was already recorded.
    """
    cur.execute(
        f"""
        INSERT INTO payments (booking_id, transaction_id, amount_cents, currency, status)
        VALUES (%s, %s, %s, %s, %s)
        ON CONFLICT (transaction_id) DO NOTHING
        RETURNING {_SELECT}
        """,
        (booking_id, transaction_id, amount_cents, currency, status),
    )
    return _normalize(cur.fetchone())


def get_payment_by_transaction(cur: PgCursor, transaction_id: str) -> dict | None:
    cur.execute(
        f"SELECT {_SELECT} FROM payments WHERE transaction_id = %s",
        (transaction_id,),
    )
    return _normalize(cur.fetchone())


def update_payment_status(cur: PgCursor, payment_id: str, status: str) -> dict:
    """Settle a pending payment (pending -> completed | failed)."""
    cur.execute(
        f"""
        UPDATE payments
        SET status = %s, received_at = now()
        WHERE id = %s AND status = 'pending'
        RETURNING {_SELECT}
        """,
        (status, payment_id),
    )
    return _normalize(cur.fetchone())


def get_completed_payment(cur: PgCursor, booking_id: str) -> dict | None:
    """Latest completed payment of a booking, or None."""
    cur.execute(
        f"""
        SELECT {_SELECT} FROM payments
        WHERE booking_id = %s AND status = 'completed'
        ORDER BY received_at DESC
        LIMIT 1
        """,
        (booking_id,),
    )
    return _normalize(cur.fetchone())
