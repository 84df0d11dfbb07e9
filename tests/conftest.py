"""Shared pytest fixtures for hotelcore tests."""
import sys
sys.dont_write_bytecode = True

from contextlib import contextmanager  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Reset cached settings and the search cache between tests.

    Both are process-wide singletons; a test that changes env vars or fills
    the cache must not leak into the next one.
    """
    from hotelcore.config import get_settings
    from hotelcore.domain.search_cache import reset_search_cache

    get_settings.cache_clear()
    reset_search_cache()
    yield
    get_settings.cache_clear()
    reset_search_cache()


@pytest.fixture
def mock_cur():
    return MagicMock()


@pytest.fixture
def fake_txn(mock_cur):
    """Context manager factory standing in for txn()/read_only_txn()."""

    @contextmanager
    def _txn(*args, **kwargs):
        yield mock_cur

    return _txn
