"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an alembic context.
DATABASE_URL may be a URL or a libpq key=value DSN; DB_PASSWORD fills in a
missing password in either form.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

from psycopg2.extensions import parse_dsn

DRIVER_SCHEME = "postgresql+psycopg2"


def dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    Unix-socket hosts (e.g. /cloudsql/PROJECT:REGION:INSTANCE) go in the
    query string, as SQLAlchemy expects.
    """
    params = parse_dsn(dsn)
    password = params.get("password") or os.environ.get("DB_PASSWORD", "")

    user = quote_plus(params.get("user", ""))
    dbname = quote_plus(params.get("dbname", ""))
    host = params.get("host", "localhost")
    port = params.get("port", "5432")
    credentials = f"{user}:{quote_plus(password)}" if password else user

    if host.startswith("/"):
        return f"{DRIVER_SCHEME}://{credentials}@/{dbname}?host={quote_plus(host)}"
    return f"{DRIVER_SCHEME}://{credentials}@{host}:{port}/{dbname}"


def normalize_url(url: str) -> str:
    """Force the psycopg2 driver and inject DB_PASSWORD when absent."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = f"{DRIVER_SCHEME}://" + url[len(prefix):]
            break

    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" in url:
        return normalize_url(url)
    return dsn_to_url(url)
