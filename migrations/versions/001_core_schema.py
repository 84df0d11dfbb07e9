"""Core schema (SQL-only).

Catalogue, bookings with status history, the room_availability ledger,
audit_log, the hotel_search index, search analytics, payments and
commissions.

Revision ID: 001_core_schema
Revises:
Create Date: 2026-10-12
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_core_schema"
down_revision = None
branch_labels = None
depends_on = None


def _read_sql() -> str:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "001_core_schema.sql"
    return sql_path.read_text(encoding="utf-8")


def upgrade() -> None:
    sql = _read_sql()
    conn = op.get_bind()
    conn.exec_driver_sql(sql)


def downgrade() -> None:
    raise NotImplementedError("Downgrade not supported")
