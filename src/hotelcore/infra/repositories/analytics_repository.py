"""Analytics repository - one search_analytics row per search.

Uses raw SQL with psycopg2 (no ORM).
"""

import json

from psycopg2.extensions import cursor as PgCursor


def insert_search_analytics(
    cur: PgCursor,
    *,
    query: str,
    normalized_query: str | None,
    query_type: str,
    filters: dict,
    total_results: int,
    execution_time_ms: int,
    cache_hit: bool,
    query_complexity: str,
    correlation_id: str | None,
) -> None:
    cur.execute(
        """
        INSERT INTO search_analytics (
            query, normalized_query, query_type, filters, total_results,
            execution_time_ms, cache_hit, query_complexity, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            query,
            normalized_query,
            query_type,
            json.dumps(filters, default=str, sort_keys=True),
            total_results,
            execution_time_ms,
            cache_hit,
            query_complexity,
            correlation_id or None,
        ),
    )
