"""Hotel catalogue writes and search index maintenance.

Every hotel or review change rewrites the hotel's search index entry in
the same transaction, so the index never lags the catalogue.
"""

from __future__ import annotations

import re

from psycopg2.extensions import cursor as PgCursor

from hotelcore.domain.audit import record_change
from hotelcore.domain.errors import (
    HotelNotFoundError,
    HotelValidationError,
    ReviewNotFoundError,
)
from hotelcore.domain.search_cache import get_search_cache
from hotelcore.domain.search_index import build_search_document, price_range_for
from hotelcore.infra.db import read_only_txn, txn
from hotelcore.infra.repositories import hotels_repository as repo
from hotelcore.infra.repositories.search_repository import upsert_search_entry
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

logger = get_logger(__name__)

HOTEL_FIELDS = frozenset(
    {
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
        "is_active",
        "is_featured",
    }
)

REVIEW_FIELDS = frozenset({"rating", "title", "body", "is_approved"})

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-")


def _check_hotel(hotel: dict) -> None:
    if not (hotel.get("name") or "").strip():
        raise HotelValidationError("name_required", "Hotel name is required")
    star_rating = hotel.get("star_rating")
    if star_rating is not None and not 1 <= star_rating <= 5:
        raise HotelValidationError("invalid_star_rating", "Star rating must be between 1 and 5")
    price_min = hotel.get("price_min_cents")
    price_max = hotel.get("price_max_cents")
    if price_min is not None and price_min < 0:
        raise HotelValidationError("invalid_price", "Prices cannot be negative")
    if price_min is not None and price_max is not None and price_max < price_min:
        raise HotelValidationError(
            "invalid_price", "Maximum price cannot be below the minimum price"
        )


def _check_review_rating(rating: int) -> None:
    if not 1 <= rating <= 5:
        raise HotelValidationError("invalid_rating", "Review rating must be between 1 and 5")


def index_hotel(cur: PgCursor, hotel: dict) -> bool:
    """Rewrite the search entry of a hotel on the caller's cursor."""
    return upsert_search_entry(cur, build_search_document(hotel))


def _invalidate_search_cache() -> None:
    try:
        get_search_cache().clear()
    except Exception:
        logger.warning("search cache clear failed", exc_info=True)


# ── Hotels ────────────────────────────────────────────────────────────────


def create_hotel(fields: dict) -> dict:
    """Insert a hotel and its search index entry.

    Raises:
        HotelValidationError: On invalid fields.
    """
    unknown = set(fields) - HOTEL_FIELDS
    if unknown:
        raise HotelValidationError(
            "unknown_fields", f"Unknown hotel fields: {', '.join(sorted(unknown))}"
        )
    _check_hotel(fields)

    row = dict(fields)
    row.setdefault("slug", slugify(row["name"]))
    row.setdefault("amenities", [])
    row["price_range"] = price_range_for(row.get("price_min_cents"))

    with txn() as cur:
        hotel = repo.insert_hotel(cur, row)
        record_change(cur, table_name="hotels", record_id=hotel["id"], operation="INSERT", new=hotel)
        index_hotel(cur, hotel)

    _invalidate_search_cache()
    logger.info("hotel created", extra={"extra_fields": {"hotel_id": hotel["id"]}})
    return hotel


def update_hotel(hotel_id: str, changes: dict) -> dict:
    """Apply changes to a hotel and rewrite its search entry.

    Raises:
        HotelNotFoundError: If the hotel does not exist.
        HotelValidationError: On invalid fields.
    """
    unknown = set(changes) - HOTEL_FIELDS
    if unknown:
        raise HotelValidationError(
            "unknown_fields", f"Unknown hotel fields: {', '.join(sorted(unknown))}"
        )

    with txn() as cur:
        current = repo.get_hotel(cur, hotel_id, lock=True)
        if current is None:
            raise HotelNotFoundError(f"Hotel {hotel_id} not found")

        merged = {**current, **changes}
        _check_hotel(merged)

        row = dict(changes)
        if "price_min_cents" in changes:
            row["price_range"] = price_range_for(changes["price_min_cents"])
        if not row:
            return current

        hotel = repo.update_hotel(cur, hotel_id, row)
        record_change(
            cur, table_name="hotels", record_id=hotel_id, operation="UPDATE", old=current, new=hotel
        )
        index_hotel(cur, hotel)

    _invalidate_search_cache()
    logger.info(
        "hotel updated",
        extra={"extra_fields": safe_log_context(hotel_id=hotel_id, fields=sorted(changes))},
    )
    return hotel


# ── Ratings ───────────────────────────────────────────────────────────────


def refresh_hotel_rating(cur: PgCursor, hotel_id: str) -> dict:
    """Recompute rating and review_count from approved reviews.

    Locks the hotel row, writes the aggregate back, then rewrites the search
    entry (quality_score follows the rating). Runs on the caller's cursor so
    the review change and its effects commit together.
    """
    current = repo.get_hotel(cur, hotel_id, lock=True)
    if current is None:
        raise HotelNotFoundError(f"Hotel {hotel_id} not found")

    rating, review_count = repo.approved_review_stats(cur, hotel_id)
    hotel = repo.set_rating(cur, hotel_id, rating=rating, review_count=review_count)
    record_change(
        cur, table_name="hotels", record_id=hotel_id, operation="UPDATE", old=current, new=hotel
    )
    index_hotel(cur, hotel)
    return hotel


def submit_review(
    hotel_id: str,
    *,
    rating: int,
    title: str | None = None,
    body: str | None = None,
    is_approved: bool = False,
) -> dict:
    """Add a review; an approved one moves the hotel's rating immediately."""
    _check_review_rating(rating)
    with txn() as cur:
        if repo.get_hotel(cur, hotel_id) is None:
            raise HotelNotFoundError(f"Hotel {hotel_id} not found")
        review = repo.insert_review(
            cur,
            hotel_id=hotel_id,
            rating=rating,
            title=title,
            body=body,
            is_approved=is_approved,
        )
        record_change(cur, table_name="reviews", record_id=review["id"], operation="INSERT", new=review)
        refresh_hotel_rating(cur, hotel_id)

    _invalidate_search_cache()
    return review


def update_review(review_id: str, changes: dict) -> dict:
    """Edit or moderate a review.

    Raises:
        ReviewNotFoundError: If the review does not exist.
        HotelValidationError: On unknown fields or an invalid rating.
    """
    unknown = set(changes) - REVIEW_FIELDS
    if unknown:
        raise HotelValidationError(
            "unknown_fields", f"Unknown review fields: {', '.join(sorted(unknown))}"
        )
    if "rating" in changes:
        _check_review_rating(changes["rating"])

    with txn() as cur:
        current = repo.get_review(cur, review_id)
        if current is None:
            raise ReviewNotFoundError(f"Review {review_id} not found")
        if not changes:
            return current

        review = repo.update_review(cur, review_id, changes)
        record_change(
            cur, table_name="reviews", record_id=review_id, operation="UPDATE", old=current, new=review
        )
        refresh_hotel_rating(cur, review["hotel_id"])

    _invalidate_search_cache()
    return review


def delete_review(review_id: str) -> None:
    with txn() as cur:
        current = repo.get_review(cur, review_id)
        if current is None:
            raise ReviewNotFoundError(f"Review {review_id} not found")
        repo.delete_review(cur, review_id)
        record_change(cur, table_name="reviews", record_id=review_id, operation="DELETE", old=current)
        refresh_hotel_rating(cur, current["hotel_id"])

    _invalidate_search_cache()


# ── Reindexing ────────────────────────────────────────────────────────────


def reindex_hotel(hotel_id: str) -> bool:
    """Rebuild one hotel's search entry. Returns True if it changed."""
    with txn() as cur:
        hotel = repo.get_hotel(cur, hotel_id)
        if hotel is None:
            raise HotelNotFoundError(f"Hotel {hotel_id} not found")
        return index_hotel(cur, hotel)


def reindex_all_hotels() -> dict:
    """Rebuild every search entry, one short transaction per hotel.

    Entries whose content_hash is current are left untouched, so a second
    run right after the first rewrites nothing.
    """
    with read_only_txn() as cur:
        hotel_ids = repo.list_hotel_ids(cur)

    rewritten = 0
    missing = 0
    for hotel_id in hotel_ids:
        try:
            if reindex_hotel(hotel_id):
                rewritten += 1
        except HotelNotFoundError:
            # deleted since the id list was read
            missing += 1

    result = {"hotels": len(hotel_ids), "rewritten": rewritten, "missing": missing}
    logger.info("search index rebuilt", extra={"extra_fields": result})
    return result
