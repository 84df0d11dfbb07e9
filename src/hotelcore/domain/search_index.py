"""Search index documents.

The index entry of a hotel is a pure function of the hotel row: the text
fed to each tsvector column, the searchable string, keyword tags and the
quality score. content_hash identifies a document so that reindexing an
unchanged hotel writes nothing.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

# Exclusive upper bound (cents) of each price_range bucket, by price_min
PRICE_RANGE_THRESHOLDS = (
    (10_000, "budget"),
    (20_000, "mid-range"),
    (40_000, "upscale"),
)
PRICE_RANGES = ("budget", "mid-range", "upscale", "luxury")


def price_range_for(price_min_cents: int | None) -> str | None:
    """Bucket a minimum nightly price (cents) into a price range label."""
    if price_min_cents is None:
        return None
    for upper, label in PRICE_RANGE_THRESHOLDS:
        if price_min_cents < upper:
            return label
    return "luxury"


def quality_score_for(rating) -> Decimal:
    """rating / 5 × 100, on a 0..100 scale with 2 decimals."""
    score = Decimal(str(rating or 0)) / Decimal(5) * Decimal(100)
    return score.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _join(*parts) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


@dataclass(frozen=True)
class SearchDocument:
    hotel_id: str
    name_text: str
    description_text: str
    location_text: str
    amenities_text: str
    combined_text: str
    searchable_text: str
    keyword_tags: tuple[str, ...]
    quality_score: Decimal

    @property
    def content_hash(self) -> str:
        payload = asdict(self)
        payload["quality_score"] = str(self.quality_score)
        payload["keyword_tags"] = list(self.keyword_tags)
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_search_document(hotel: dict) -> SearchDocument:
    """Derive the index document of a hotel row."""
    amenities = tuple(str(a) for a in (hotel.get("amenities") or []))
    amenities_text = " ".join(amenities)
    return SearchDocument(
        hotel_id=str(hotel["id"]),
        name_text=_join(hotel.get("name")),
        description_text=_join(hotel.get("description"), hotel.get("short_description")),
        location_text=_join(hotel.get("city"), hotel.get("neighborhood"), hotel.get("country")),
        amenities_text=amenities_text,
        combined_text=_join(
            hotel.get("name"),
            hotel.get("description"),
            hotel.get("city"),
            hotel.get("neighborhood"),
            amenities_text,
        ),
        searchable_text=_join(hotel.get("name"), hotel.get("description"), hotel.get("city")),
        keyword_tags=amenities,
        quality_score=quality_score_for(hotel.get("rating")),
    )
