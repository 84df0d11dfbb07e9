"""Hotel search: filtered and full-text modes, ranking, caching, analytics.

Reads run in READ ONLY transactions. The search cache and analytics are
soft dependencies: their failures are logged and never fail a search.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

import psycopg2

from hotelcore.domain.errors import SearchUnavailableError
from hotelcore.domain.search_cache import SearchCache, cache_key, get_search_cache
from hotelcore.domain.search_index import PRICE_RANGES
from hotelcore.infra.db import read_only_txn, txn
from hotelcore.infra.repositories.analytics_repository import insert_search_analytics
from hotelcore.observability.context import get_correlation_id
from hotelcore.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MIN_FULL_TEXT_LENGTH = 2

SORT_KEYS = ("price", "rating", "popularity", "recommended")

# Composite ranking weights (sum to 1)
RATING_WEIGHT = Decimal("0.30")
REVIEWS_WEIGHT = Decimal("0.20")
POPULARITY_WEIGHT = Decimal("0.25")
QUALITY_WEIGHT = Decimal("0.25")
REVIEW_COUNT_CAP = 100
FEATURED_BOOST = Decimal("1.2")
RECENT_BOOKINGS_BOOST = Decimal("1.1")
RECENT_BOOKINGS_THRESHOLD = 10


@dataclass(frozen=True)
class SearchFilters:
    """Structured search filters. Prices are nightly amounts in cents."""

    city: str | None = None
    country: str | None = None
    min_price: int | None = None
    max_price: int | None = None
    star_rating: int | None = None
    amenities: tuple[str, ...] = field(default_factory=tuple)
    price_range: str | None = None
    check_in: date | None = None
    check_out: date | None = None
    guests: int = 1
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    sort_by: str | None = None
    sort_order: str = "desc"

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be at least 1")
        if self.limit > MAX_LIMIT:
            object.__setattr__(self, "limit", MAX_LIMIT)
        if self.offset < 0:
            raise ValueError("offset cannot be negative")
        if self.sort_by is not None and self.sort_by not in SORT_KEYS:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_KEYS)}")
        if self.sort_order not in ("asc", "desc"):
            raise ValueError("sort_order must be asc or desc")
        if self.price_range is not None and self.price_range not in PRICE_RANGES:
            raise ValueError(f"price_range must be one of {', '.join(PRICE_RANGES)}")
        if (self.check_in is None) != (self.check_out is None):
            raise ValueError("check_in and check_out must be given together")
        if self.check_in is not None and self.check_in >= self.check_out:
            raise ValueError("check_out must be after check_in")
        if self.guests < 1:
            raise ValueError("guests must be at least 1")
        object.__setattr__(self, "amenities", tuple(sorted(set(self.amenities))))

    @property
    def has_date_range(self) -> bool:
        return self.check_in is not None

    @property
    def has_price_filter(self) -> bool:
        return self.min_price is not None or self.max_price is not None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["amenities"] = list(self.amenities)
        return {k: v for k, v in data.items() if v not in (None, [])}


def effective_query(query: str | None) -> str | None:
    """Free text worth a full-text search, or None."""
    if query is None:
        return None
    stripped = " ".join(query.split())
    return stripped if len(stripped) >= MIN_FULL_TEXT_LENGTH else None


def classify_complexity(filters: SearchFilters, query: str | None) -> str:
    """Weighted heuristic: text +2, amenities +2, date range +3, price +1."""
    score = 0
    if query:
        score += 2
    if filters.amenities:
        score += 2
    if filters.has_date_range:
        score += 3
    if filters.has_price_filter:
        score += 1
    if score >= 5:
        return "complex"
    if score >= 3:
        return "moderate"
    return "simple"


def composite_ranking_score(
    *,
    rating,
    review_count: int,
    popularity,
    quality,
    is_featured: bool,
    recent_bookings: int,
) -> Decimal:
    """Browse-order score on a 0..100 scale before boosts.

    popularity and quality are 0..100; rating is 0..5.
    """
    base = (
        Decimal(str(rating or 0)) / 5 * RATING_WEIGHT
        + Decimal(min(review_count or 0, REVIEW_COUNT_CAP)) / REVIEW_COUNT_CAP * REVIEWS_WEIGHT
        + Decimal(str(popularity or 0)) / 100 * POPULARITY_WEIGHT
        + Decimal(str(quality or 0)) / 100 * QUALITY_WEIGHT
    ) * 100
    if is_featured:
        base *= FEATURED_BOOST
    if recent_bookings > RECENT_BOOKINGS_THRESHOLD:
        base *= RECENT_BOOKINGS_BOOST
    return base.quantize(Decimal("0.0001"))


# Same formula as composite_ranking_score, for hotels not yet in hotel_ranking_mv
_LIVE_RANKING_SQL = f"""
    (
        COALESCE(h.rating, 0) / 5.0 * {RATING_WEIGHT}
        + LEAST(COALESCE(h.review_count, 0), {REVIEW_COUNT_CAP}) / {REVIEW_COUNT_CAP}.0 * {REVIEWS_WEIGHT}
        + LEAST(COALESCE(rb.recent_bookings, 0), 100) / 100.0 * {POPULARITY_WEIGHT}
        + COALESCE(hs.quality_score, 0) / 100.0 * {QUALITY_WEIGHT}
    ) * 100
    * CASE WHEN h.is_featured THEN {FEATURED_BOOST} ELSE 1.0 END
    * CASE WHEN COALESCE(rb.recent_bookings, 0) > {RECENT_BOOKINGS_THRESHOLD}
           THEN {RECENT_BOOKINGS_BOOST} ELSE 1.0 END
"""

_SELECT = f"""
    SELECT h.id, h.name, h.slug, h.short_description, h.city, h.country,
           h.rating, h.review_count, h.star_rating, h.price_min_cents,
           h.price_max_cents, h.currency, h.price_range, h.amenities,
           h.is_featured,
           COALESCE(rk.ranking_score, {_LIVE_RANKING_SQL}) AS ranking_score,
           COALESCE(rb.recent_bookings, 0) AS popularity,
           {{relevance}} AS relevance
    FROM hotels h
    LEFT JOIN hotel_search hs ON hs.hotel_id = h.id
    LEFT JOIN hotel_ranking_mv rk ON rk.hotel_id = h.id
    LEFT JOIN (
        SELECT hotel_id, COUNT(*) AS recent_bookings
        FROM bookings
        WHERE status = 'confirmed' AND created_at >= now() - interval '90 days'
        GROUP BY hotel_id
    ) rb ON rb.hotel_id = h.id
"""

RESULT_COLUMNS = (
    "id",
    "name",
    "slug",
    "short_description",
    "city",
    "country",
    "rating",
    "review_count",
    "star_rating",
    "price_min_cents",
    "price_max_cents",
    "currency",
    "price_range",
    "amenities",
    "is_featured",
    "ranking_score",
    "popularity",
    "relevance",
)


def build_where(filters: SearchFilters) -> tuple[list[str], dict]:
    """Conjunction of predicates for the structured filters (active hotels only)."""
    clauses = ["h.is_active = true"]
    params: dict = {}

    if filters.city:
        clauses.append("h.city ILIKE %(city)s")
        params["city"] = f"%{filters.city}%"
    if filters.country:
        clauses.append("h.country = %(country)s")
        params["country"] = filters.country
    if filters.min_price is not None:
        clauses.append("h.price_min_cents >= %(min_price)s")
        params["min_price"] = filters.min_price
    if filters.max_price is not None:
        clauses.append("h.price_max_cents <= %(max_price)s")
        params["max_price"] = filters.max_price
    if filters.star_rating is not None:
        clauses.append("h.star_rating = %(star_rating)s")
        params["star_rating"] = filters.star_rating
    if filters.price_range:
        clauses.append("h.price_range = %(price_range)s")
        params["price_range"] = filters.price_range
    if filters.amenities:
        clauses.append("h.amenities @> %(amenities)s::jsonb")
        params["amenities"] = json.dumps(list(filters.amenities))
    if filters.has_date_range:
        # some active room fits the party and has no sold-out night in range
        clauses.append(
            """
            EXISTS (
                SELECT 1 FROM rooms rm
                WHERE rm.hotel_id = h.id
                  AND rm.is_active = true
                  AND rm.total_quantity > 0
                  AND rm.max_occupancy >= %(guests)s
                  AND NOT EXISTS (
                      SELECT 1 FROM room_availability ra
                      WHERE ra.room_id = rm.id
                        AND ra.date >= %(check_in)s
                        AND ra.date < %(check_out)s
                        AND ra.available <= 0
                  )
            )
            """
        )
        params["guests"] = filters.guests
        params["check_in"] = filters.check_in
        params["check_out"] = filters.check_out

    return clauses, params


def build_order_by(filters: SearchFilters, full_text: bool) -> str:
    direction = "ASC" if filters.sort_order == "asc" else "DESC"
    if filters.sort_by == "price":
        return f"h.price_min_cents {direction} NULLS LAST, h.id"
    if filters.sort_by == "rating":
        return f"h.rating {direction} NULLS LAST, h.review_count DESC, h.id"
    if filters.sort_by == "popularity":
        return f"popularity {direction}, h.review_count {direction}, h.id"
    if filters.sort_by == "recommended":
        return f"ranking_score {direction}, h.id"
    if full_text:
        return "relevance DESC, ranking_score DESC, h.id"
    return "h.is_featured DESC, ranking_score DESC, h.rating DESC NULLS LAST, h.id"


def build_search_query(filters: SearchFilters, query: str | None) -> tuple[str, dict]:
    """SQL and parameters for one search. query must already be effective."""
    clauses, params = build_where(filters)
    if query:
        relevance = "ts_rank_cd(hs.combined_vector, plainto_tsquery('english', %(q)s)) * 100"
        clauses.append("hs.combined_vector @@ plainto_tsquery('english', %(q)s)")
        params["q"] = query
    else:
        relevance = "0"

    sql = (
        _SELECT.format(relevance=relevance)
        + "\nWHERE "
        + "\n  AND ".join(c.strip() for c in clauses)
        + f"\nORDER BY {build_order_by(filters, bool(query))}"
        + "\nLIMIT %(limit)s OFFSET %(offset)s"
    )
    params["limit"] = filters.limit
    params["offset"] = filters.offset
    return sql, params


def _row_to_hotel(row) -> dict:
    hotel = dict(zip(RESULT_COLUMNS, row))
    hotel["id"] = str(hotel["id"])
    hotel["amenities"] = list(hotel["amenities"] or [])
    return hotel


def _fetch(filters: SearchFilters, query: str | None) -> list[dict]:
    sql, params = build_search_query(filters, query)
    with read_only_txn() as cur:
        cur.execute(sql, params)
        return [_row_to_hotel(row) for row in cur.fetchall()]


def _record_analytics(
    filters: SearchFilters,
    raw_query: str | None,
    query: str | None,
    *,
    total_results: int,
    execution_time_ms: int,
    cache_hit: bool,
    complexity: str,
) -> None:
    try:
        with txn() as cur:
            insert_search_analytics(
                cur,
                query=raw_query or "filtered_search",
                normalized_query=query.lower() if query else None,
                query_type="full_text" if query else "filtered",
                filters=filters.to_dict(),
                total_results=total_results,
                execution_time_ms=execution_time_ms,
                cache_hit=cache_hit,
                query_complexity=complexity,
                correlation_id=get_correlation_id(),
            )
    except Exception:
        logger.warning("search analytics write failed", exc_info=True)


def search_hotels(
    filters: SearchFilters,
    query: str | None = None,
    *,
    cache: SearchCache | None = None,
) -> dict:
    """Run a hotel search.

    Args:
        filters: Structured filters.
        query: Optional free text; used for full-text ranking when it has at
            least two non-space characters.
        cache: Result cache; defaults to the process-wide one.

    Returns:
        {"hotels": [...], "metrics": {execution_time_ms, cache_hit,
        total_results, query_complexity, query_type}}

    Raises:
        SearchUnavailableError: If the database cannot serve the search.
    """
    started = time.perf_counter()
    text = effective_query(query)
    complexity = classify_complexity(filters, text)
    key = cache_key(filters.to_dict(), text)

    if cache is None:
        try:
            cache = get_search_cache()
        except Exception:
            logger.warning("search cache unavailable", exc_info=True)

    hotels = None
    if cache is not None:
        try:
            hotels = cache.get(key)
        except Exception:
            logger.warning("search cache read failed", exc_info=True)
    cache_hit = hotels is not None

    if not cache_hit:
        try:
            hotels = _fetch(filters, text)
        except psycopg2.Error as exc:
            logger.error(
                "search query failed",
                extra={"extra_fields": {"error": type(exc).__name__}},
            )
            raise SearchUnavailableError() from exc
        if cache is not None:
            try:
                cache.put(key, hotels)
            except Exception:
                logger.warning("search cache write failed", exc_info=True)

    execution_time_ms = int((time.perf_counter() - started) * 1000)
    _record_analytics(
        filters,
        query,
        text,
        total_results=len(hotels),
        execution_time_ms=execution_time_ms,
        cache_hit=cache_hit,
        complexity=complexity,
    )

    return {
        "hotels": hotels,
        "metrics": {
            "execution_time_ms": execution_time_ms,
            "cache_hit": cache_hit,
            "total_results": len(hotels),
            "query_complexity": complexity,
            "query_type": "full_text" if text else "filtered",
        },
    }
