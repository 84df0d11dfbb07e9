"""Ranking and search performance materialized views.

Revision ID: 002_ranking_views
Revises: 001_core_schema
Create Date: 2026-10-14
"""
from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_ranking_views"
down_revision = "001_core_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "002_ranking_views.sql"


def upgrade() -> None:
    sql = _SQL_FILE.read_text(encoding="utf-8")
    op.get_bind().exec_driver_sql(sql)


def downgrade() -> None:
    raise NotImplementedError("Downgrade not supported")
