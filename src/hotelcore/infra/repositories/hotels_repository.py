"""Hotels repository - hotels and their reviews.

Uses raw SQL with psycopg2 (no ORM). Callers own the transaction.
"""

import json
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from hotelcore.infra.db import row_to_dict

HOTEL_COLUMNS = (
    "id",
    "name",
    "slug",
    "description",
    "short_description",
    "city",
    "neighborhood",
    "country",
    "amenities",
    "star_rating",
    "price_min_cents",
    "price_max_cents",
    "currency",
    "price_range",
    "rating",
    "review_count",
    "is_active",
    "is_featured",
    "created_at",
    "updated_at",
)

WRITABLE_HOTEL_COLUMNS = frozenset(HOTEL_COLUMNS) - {
    "id",
    "rating",
    "review_count",
    "created_at",
    "updated_at",
}

REVIEW_COLUMNS = ("id", "hotel_id", "rating", "title", "body", "is_approved", "created_at")

_HOTEL_SELECT = ", ".join(HOTEL_COLUMNS)
_REVIEW_SELECT = ", ".join(REVIEW_COLUMNS)


def _hotel(row) -> dict | None:
    hotel = row_to_dict(HOTEL_COLUMNS, row)
    if hotel is not None:
        hotel["id"] = str(hotel["id"])
        hotel["amenities"] = list(hotel["amenities"] or [])
    return hotel


def _review(row) -> dict | None:
    review = row_to_dict(REVIEW_COLUMNS, row)
    if review is not None:
        review["id"] = str(review["id"])
        review["hotel_id"] = str(review["hotel_id"])
    return review


def _params(fields: dict, columns: list[str]) -> list:
    return [json.dumps(fields[c]) if c == "amenities" else fields[c] for c in columns]


def get_hotel(cur: PgCursor, hotel_id: str, *, lock: bool = False) -> dict | None:
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(f"SELECT {_HOTEL_SELECT} FROM hotels WHERE id = %s{suffix}", (hotel_id,))
    return _hotel(cur.fetchone())


def list_hotel_ids(cur: PgCursor) -> list[str]:
    cur.execute("SELECT id FROM hotels ORDER BY id")
    return [str(row[0]) for row in cur.fetchall()]


def insert_hotel(cur: PgCursor, fields: dict) -> dict:
    """Insert a hotel and return it as stored.

    Raises:
        ValueError: If fields contains a column that is not writable.
        psycopg2.errors.UniqueViolation: On slug collision.
    """
    unknown = set(fields) - WRITABLE_HOTEL_COLUMNS
    if unknown:
        raise ValueError(f"Unknown hotel columns: {sorted(unknown)}")
    columns = sorted(fields)
    cur.execute(
        f"""
        INSERT INTO hotels ({", ".join(columns)})
        VALUES ({", ".join(["%s"] * len(columns))})
        RETURNING {_HOTEL_SELECT}
        """,
        _params(fields, columns),
    )
    return _hotel(cur.fetchone())


def update_hotel(cur: PgCursor, hotel_id: str, changes: dict) -> dict | None:
    unknown = set(changes) - WRITABLE_HOTEL_COLUMNS
    if unknown:
        raise ValueError(f"Unknown hotel columns: {sorted(unknown)}")
    columns = sorted(changes)
    assignments = ", ".join(f"{c} = %s" for c in columns)
    cur.execute(
        f"""
        UPDATE hotels
        SET {assignments}, updated_at = now()
        WHERE id = %s
        RETURNING {_HOTEL_SELECT}
        """,
        _params(changes, columns) + [hotel_id],
    )
    return _hotel(cur.fetchone())


def set_rating(cur: PgCursor, hotel_id: str, *, rating: Decimal, review_count: int) -> dict:
    cur.execute(
        f"""
        UPDATE hotels
        SET rating = %s, review_count = %s, updated_at = now()
        WHERE id = %s
        RETURNING {_HOTEL_SELECT}
        """,
        (rating, review_count, hotel_id),
    )
    return _hotel(cur.fetchone())


# ── Reviews ───────────────────────────────────────────────────────────────


def get_review(cur: PgCursor, review_id: str) -> dict | None:
    cur.execute(f"SELECT {_REVIEW_SELECT} FROM reviews WHERE id = %s", (review_id,))
    return _review(cur.fetchone())


def insert_review(
    cur: PgCursor,
    *,
    hotel_id: str,
    rating: int,
    title: str | None,
    body: str | None,
    is_approved: bool,
) -> dict:
    cur.execute(
        f"""
        INSERT INTO reviews (hotel_id, rating, title, body, is_approved)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING {_REVIEW_SELECT}
        """,
        (hotel_id, rating, title, body, is_approved),
    )
    return _review(cur.fetchone())


def update_review(cur: PgCursor, review_id: str, changes: dict) -> dict:
    columns = sorted(changes)
    assignments = ", ".join(f"{c} = %s" for c in columns)
    cur.execute(
        f"""
        UPDATE reviews SET {assignments}
        WHERE id = %s
        RETURNING {_REVIEW_SELECT}
        """,
        [changes[c] for c in columns] + [review_id],
    )
    return _review(cur.fetchone())


def delete_review(cur: PgCursor, review_id: str) -> bool:
    cur.execute("DELETE FROM reviews WHERE id = %s", (review_id,))
    return cur.rowcount > 0


def approved_review_stats(cur: PgCursor, hotel_id: str) -> tuple[Decimal, int]:
    """Average rating (2 decimals) and count of approved reviews."""
    cur.execute(
        """
        SELECT COALESCE(ROUND(AVG(rating)::numeric, 2), 0), COUNT(*)
        FROM reviews
        WHERE hotel_id = %s AND is_approved = true
        """,
        (hotel_id,),
    )
    avg_rating, count = cur.fetchone()
    return Decimal(avg_rating), count
