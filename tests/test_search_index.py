"""Tests for search index documents."""

from decimal import Decimal

import pytest

from hotelcore.domain.search_index import (
    build_search_document,
    price_range_for,
    quality_score_for,
)

HOTEL = {
    "id": "h1",
    "name": "Casa Azul",
    "description": "Boutique hotel by the river",
    "short_description": "Riverside boutique",
    "city": "Porto",
    "neighborhood": "Ribeira",
    "country": "PT",
    "amenities": ["wifi", "spa"],
    "rating": Decimal("4.50"),
}


@pytest.mark.parametrize(
    "price,expected",
    [
        (None, None),
        (0, "budget"),
        (9_999, "budget"),
        (10_000, "mid-range"),
        (19_999, "mid-range"),
        (20_000, "upscale"),
        (39_999, "upscale"),
        (40_000, "luxury"),
    ],
)
def test_price_range_buckets(price, expected):
    assert price_range_for(price) == expected


def test_quality_score_scale():
    assert quality_score_for(Decimal("4.5")) == Decimal("90.00")
    assert quality_score_for(None) == Decimal("0.00")


def test_document_fields():
    doc = build_search_document(HOTEL)
    assert doc.hotel_id == "h1"
    assert doc.location_text == "Porto Ribeira PT"
    assert doc.amenities_text == "wifi spa"
    assert "Casa Azul" in doc.combined_text
    assert "wifi spa" in doc.combined_text
    assert doc.keyword_tags == ("wifi", "spa")
    assert doc.quality_score == Decimal("90.00")


def test_missing_optional_text_skipped():
    doc = build_search_document({"id": "h2", "name": "Plain", "city": "Lima", "country": "PE"})
    assert doc.description_text == ""
    assert doc.location_text == "Lima PE"
    assert doc.keyword_tags == ()


def test_content_hash_stable_and_sensitive():
    first = build_search_document(HOTEL)
    assert first.content_hash == build_search_document(dict(HOTEL)).content_hash
    changed = build_search_document({**HOTEL, "rating": Decimal("4.0")})
    assert changed.content_hash != first.content_hash


def test_unindexed_columns_do_not_change_hash():
    doc = build_search_document({**HOTEL, "is_featured": True, "updated_at": "later"})
    assert doc.content_hash == build_search_document(HOTEL).content_hash
