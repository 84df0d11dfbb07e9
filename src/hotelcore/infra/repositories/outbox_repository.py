"""Outbox repository - booking events for async consumers.

Uses raw SQL with psycopg2 (no ORM).
"""

import json

from psycopg2.extensions import cursor as PgCursor

BOOKING_STATUS_CHANGED = "booking_status_changed"


def emit_event(
    cur: PgCursor,
    *,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str,
    payload: dict,
    correlation_id: str | None = None,
) -> int:
    """Write an event to the outbox and NOTIFY listeners on its channel.

    Both take effect only when the caller's transaction commits.

    Args:
        cur: Database cursor (within transaction).
        event_type: Event type, also used as the NOTIFY channel.
        aggregate_type: Aggregate type (e.g., booking).
        aggregate_id: Aggregate ID.
        payload: JSON payload (IDs and statuses only, no PII).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        The generated event ID.
    """
    payload_json = json.dumps(payload, default=str, sort_keys=True)

    cur.execute(
        """
        INSERT INTO outbox_events (
            event_type, aggregate_type, aggregate_id, payload, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (event_type, aggregate_type, aggregate_id, payload_json, correlation_id),
    )
    event_id = cur.fetchone()[0]
    cur.execute("SELECT pg_notify(%s, %s)", (event_type, payload_json))
    return event_id


def emit_booking_status_changed(
    cur: PgCursor,
    *,
    booking: dict,
    old_status: str,
    new_status: str,
    occurred_at: str,
    correlation_id: str | None = None,
) -> int:
    """Emit booking_status_changed.

    Payload: booking_id, old_status, new_status, hotel_id, user_id, timestamp.
    """
    payload = {
        "booking_id": str(booking["id"]),
        "old_status": old_status,
        "new_status": new_status,
        "hotel_id": str(booking["hotel_id"]),
        "user_id": booking.get("user_id"),
        "timestamp": occurred_at,
    }

    return emit_event(
        cur,
        event_type=BOOKING_STATUS_CHANGED,
        aggregate_type="booking",
        aggregate_id=str(booking["id"]),
        payload=payload,
        correlation_id=correlation_id,
    )
