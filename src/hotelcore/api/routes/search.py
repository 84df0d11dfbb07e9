"""Hotel search endpoint.

GET /search?q=&city=&...  → {"hotels": [...], "metrics": {...}}
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Query

from hotelcore.api.errors import domain_errors
from hotelcore.domain.search import DEFAULT_LIMIT, MAX_LIMIT, SearchFilters, search_hotels

router = APIRouter(tags=["search"])


@router.get("/search")
def search(
    q: str | None = Query(None, description="Free-text query"),
    city: str | None = Query(None),
    country: str | None = Query(None),
    min_price: int | None = Query(None, ge=0, description="Cents"),
    max_price: int | None = Query(None, ge=0, description="Cents"),
    star_rating: int | None = Query(None, ge=1, le=5),
    amenities: list[str] = Query(default_factory=list),
    price_range: str | None = Query(None),
    check_in: date | None = Query(None),
    check_out: date | None = Query(None),
    guests: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
    sort_by: str | None = Query(None),
    sort_order: str = Query("desc"),
) -> dict:
    try:
        filters = SearchFilters(
            city=city,
            country=country,
            min_price=min_price,
            max_price=max_price,
            star_rating=star_rating,
            amenities=tuple(amenities),
            price_range=price_range,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            limit=limit,
            offset=offset,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    with domain_errors():
        return search_hotels(filters, q)
