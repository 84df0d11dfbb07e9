"""Search repository - hotel_search index entries.

Uses raw SQL with psycopg2 (no ORM). tsvectors are built in SQL from the
texts of a SearchDocument; writes are skipped when content_hash matches.
"""

import json

from psycopg2.extensions import cursor as PgCursor

from hotelcore.domain.search_index import SearchDocument


def upsert_search_entry(cur: PgCursor, doc: SearchDocument) -> bool:
    """Write the index entry of a hotel unless it is already current.

    Returns:
        True if the entry was inserted or rewritten, False if unchanged.
    """
    cur.execute(
        """
        INSERT INTO hotel_search (
            hotel_id, name_vector, description_vector, location_vector,
            amenities_vector, combined_vector, searchable_text, keyword_tags,
            quality_score, content_hash, last_indexed
        )
        VALUES (
            %(hotel_id)s,
            to_tsvector('english', %(name_text)s),
            to_tsvector('english', %(description_text)s),
            to_tsvector('english', %(location_text)s),
            to_tsvector('english', %(amenities_text)s),
            to_tsvector('english', %(combined_text)s),
            %(searchable_text)s,
            %(keyword_tags)s::jsonb,
            %(quality_score)s,
            %(content_hash)s,
            now()
        )
        ON CONFLICT (hotel_id) DO UPDATE SET
            name_vector = EXCLUDED.name_vector,
            description_vector = EXCLUDED.description_vector,
            location_vector = EXCLUDED.location_vector,
            amenities_vector = EXCLUDED.amenities_vector,
            combined_vector = EXCLUDED.combined_vector,
            searchable_text = EXCLUDED.searchable_text,
            keyword_tags = EXCLUDED.keyword_tags,
            quality_score = EXCLUDED.quality_score,
            content_hash = EXCLUDED.content_hash,
            last_indexed = now()
        WHERE hotel_search.content_hash IS DISTINCT FROM EXCLUDED.content_hash
        RETURNING hotel_id
        """,
        {
            "hotel_id": doc.hotel_id,
            "name_text": doc.name_text,
            "description_text": doc.description_text,
            "location_text": doc.location_text,
            "amenities_text": doc.amenities_text,
            "combined_text": doc.combined_text,
            "searchable_text": doc.searchable_text,
            "keyword_tags": json.dumps(list(doc.keyword_tags)),
            "quality_score": doc.quality_score,
            "content_hash": doc.content_hash,
        },
    )
    return cur.fetchone() is not None

