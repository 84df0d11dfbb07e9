"""Tests for migrations/env_helpers.py URL handling."""

from __future__ import annotations

import os
import sys

import pytest

# Make migrations importable without alembic context
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from migrations.env_helpers import dsn_to_url, get_database_url, normalize_url  # noqa: E402


class TestDsnToUrl:
    def test_cloudsql_socket(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        dsn = "dbname=hotelcore user=core-sa password=s3cret host=/cloudsql/proj:us-central1:inst"
        assert dsn_to_url(dsn) == (
            "postgresql+psycopg2://core-sa:s3cret@/hotelcore"
            "?host=%2Fcloudsql%2Fproj%3Aus-central1%3Ainst"
        )

    def test_tcp_host(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        dsn = "dbname=hotelcore user=admin password=pw host=localhost port=5433"
        assert dsn_to_url(dsn) == "postgresql+psycopg2://admin:pw@localhost:5433/hotelcore"

    def test_default_port(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        assert dsn_to_url("dbname=db user=u password=p host=myhost") == (
            "postgresql+psycopg2://u:p@myhost:5432/db"
        )

    def test_special_chars_encoded(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        result = dsn_to_url("dbname=db user=u@domain password=p@ss=word host=h port=5432")
        assert "u%40domain" in result
        assert "p%40ss%3Dword" in result

    def test_db_password_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        result = dsn_to_url("dbname=db user=u host=h port=5432")
        assert result == "postgresql+psycopg2://u:from-env@h:5432/db"


class TestNormalizeUrl:
    def test_postgres_scheme_rewritten(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        assert normalize_url("postgres://u:p@h:5432/db") == "postgresql+psycopg2://u:p@h:5432/db"

    def test_password_injected_when_missing(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "s3cret")
        assert normalize_url("postgresql://u@h:5432/db") == (
            "postgresql+psycopg2://u:s3cret@h:5432/db"
        )

    def test_existing_password_kept(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "other")
        assert normalize_url("postgresql://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"


class TestGetDatabaseUrl:
    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            get_database_url()

    def test_dispatches_on_format(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        monkeypatch.setenv("DATABASE_URL", "dbname=db user=u password=p host=h")
        assert get_database_url() == "postgresql+psycopg2://u:p@h:5432/db"
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@h/db")
        assert get_database_url() == "postgresql+psycopg2://u:p@h/db"
