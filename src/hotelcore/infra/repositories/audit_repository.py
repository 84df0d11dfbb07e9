"""Audit repository - append-only audit_log and booking_status_history.

Uses raw SQL with psycopg2 (no ORM). Nothing here updates a row: entries
are inserted by mutations and deleted only by the retention purge.
"""

import json
from datetime import datetime

from psycopg2.extensions import cursor as PgCursor


def _to_json(snapshot: dict | None) -> str | None:
    if snapshot is None:
        return None
    return json.dumps(snapshot, default=str, sort_keys=True)


def insert_audit_entry(
    cur: PgCursor,
    *,
    table_name: str,
    record_id: str,
    operation: str,
    old_data: dict | None,
    new_data: dict | None,
    changed_by: str | None,
    ip_address: str | None,
    user_agent: str | None,
    correlation_id: str | None,
) -> int:
    """Insert one audit entry.

    Args:
        cur: Database cursor (within the mutating transaction).
        table_name: Tracked table (e.g. bookings).
        record_id: Primary key of the mutated row.
        operation: INSERT, UPDATE or DELETE.
        old_data: Row snapshot before the change (None for INSERT).
        new_data: Row snapshot after the change (None for DELETE).
        changed_by: Acting user from request context.
        ip_address: Client IP from request context.
        user_agent: Client user agent from request context.
        correlation_id: Request correlation ID.

    Returns:
        The generated audit entry ID.
    """
    cur.execute(
        """
        INSERT INTO audit_log (
            table_name, record_id, operation, old_data, new_data,
            changed_by, ip_address, user_agent, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            table_name,
            record_id,
            operation,
            _to_json(old_data),
            _to_json(new_data),
            changed_by,
            ip_address,
            user_agent,
            correlation_id or None,
        ),
    )
    return cur.fetchone()[0]


def insert_status_history(
    cur: PgCursor,
    *,
    booking_id: str,
    previous_status: str | None,
    new_status: str,
    reason: str | None,
    changed_by: str | None,
) -> int:
    """Insert one booking_status_history row (previous_status None on creation)."""
    cur.execute(
        """
        INSERT INTO booking_status_history (
            booking_id, previous_status, new_status, reason, changed_by
        )
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (booking_id, previous_status, new_status, reason, changed_by),
    )
    return cur.fetchone()[0]


def list_status_history(cur: PgCursor, booking_id: str) -> list[dict]:
    cur.execute(
        """
        SELECT previous_status, new_status, reason, changed_by, changed_at
        FROM booking_status_history
        WHERE booking_id = %s
        ORDER BY id
        """,
        (booking_id,),
    )
    return [
        {
            "previous_status": row[0],
            "new_status": row[1],
            "reason": row[2],
            "changed_by": row[3],
            "changed_at": row[4],
        }
        for row in cur.fetchall()
    ]


def delete_audit_batch(cur: PgCursor, *, older_than: datetime, batch_size: int) -> int:
    """Delete up to batch_size entries older than the cutoff.

    Oldest first, by primary key, so each batch touches a contiguous range
    and never competes with inserts at the head of the table.

    Returns:
        Number of rows deleted.
    """
    cur.execute(
        """
        DELETE FROM audit_log
        WHERE id IN (
            SELECT id FROM audit_log
            WHERE changed_at < %s
            ORDER BY id
            LIMIT %s
        )
        """,
        (older_than, batch_size),
    )
    return cur.rowcount
