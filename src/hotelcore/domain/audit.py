"""Audit log - one immutable entry per mutation of a tracked entity.

record_change() runs on the caller's cursor, inside the mutating
transaction, so the entry commits or rolls back with the change itself.
Actor and client metadata come from the ambient request context.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Literal

from psycopg2.extensions import cursor as PgCursor

from hotelcore.infra.db import txn
from hotelcore.infra.repositories.audit_repository import (
    delete_audit_batch,
    insert_audit_entry,
)
from hotelcore.infra.time import utc_now
from hotelcore.observability.context import get_correlation_id, get_request_context
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

logger = get_logger(__name__)

Operation = Literal["INSERT", "UPDATE", "DELETE"]

TRACKED_TABLES = frozenset({"bookings", "hotels", "reviews", "payments", "commissions"})

# Columns that change on every write and carry no business meaning
VOLATILE_COLUMNS = frozenset({"updated_at", "last_updated", "last_indexed"})


def strip_volatile(snapshot: dict | None) -> dict | None:
    if snapshot is None:
        return None
    return {k: v for k, v in snapshot.items() if k not in VOLATILE_COLUMNS}


def record_change(
    cur: PgCursor,
    *,
    table_name: str,
    record_id: str,
    operation: Operation,
    old: dict | None = None,
    new: dict | None = None,
) -> int | None:
    """Append an audit entry for a mutation.

    UPDATEs whose snapshots are equal once volatile columns are removed
    are not recorded.

    Returns:
        The audit entry ID, or None if the update was suppressed.

    Raises:
        ValueError: If table_name is not tracked.
    """
    if table_name not in TRACKED_TABLES:
        raise ValueError(f"Table {table_name} is not audited")

    old_data = strip_volatile(old)
    new_data = strip_volatile(new)

    if operation == "UPDATE" and old_data == new_data:
        return None

    ctx = get_request_context()
    return insert_audit_entry(
        cur,
        table_name=table_name,
        record_id=str(record_id),
        operation=operation,
        old_data=old_data,
        new_data=new_data,
        changed_by=ctx.actor_id,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
        correlation_id=get_correlation_id(),
    )


def purge_expired_audit_entries(
    *,
    retention_days: int = 365,
    batch_size: int = 1000,
    max_batches: int | None = None,
) -> int:
    """Delete audit entries older than the retention window.

    Each batch is its own short transaction, so booking writes are never
    held up behind the purge.

    Args:
        retention_days: Entries older than this many days are deleted.
        batch_size: Rows per transaction.
        max_batches: Optional cap on the number of batches for one run.

    Returns:
        Total number of entries deleted.
    """
    if retention_days < 1:
        raise ValueError("retention_days must be at least 1")

    cutoff = utc_now() - timedelta(days=retention_days)
    total = 0
    batches = 0

    while max_batches is None or batches < max_batches:
        with txn() as cur:
            deleted = delete_audit_batch(cur, older_than=cutoff, batch_size=batch_size)
        total += deleted
        batches += 1
        if deleted < batch_size:
            break

    logger.info(
        "audit log purged",
        extra={
            "extra_fields": safe_log_context(
                deleted=total, batches=batches, retention_days=retention_days
            )
        },
    )
    return total
