"""Runtime settings loaded from environment variables.

All knobs of the booking core live here so that domain code never reads
os.environ directly. Values are parsed once per process (see get_settings).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return Decimal(default)
    return Decimal(raw)


@dataclass(frozen=True)
class Settings:
    """Booking core configuration.

    Attributes:
        rate_tolerance: Allowed relative deviation between room_rate * nights
            and the booking total before the booking is rejected.
        max_guests: Hard cap on adults + children per booking.
        confirmation_prefix: Prefix of generated confirmation numbers.
        confirmation_max_attempts: Retries when a confirmation number collides.
        cancellation_deadline_hours: Default deadline offset before check-in.
        commission_rate: Platform commission on paid bookings.
        platform_fee_rate: Processing fee deducted from hotel earnings.
        search_cache_ttl_seconds: Lifetime of cached search results.
        search_cache_max_entries: LRU bound of the search cache.
        audit_retention_days: Audit entries older than this are purged.
        audit_purge_batch_size: Rows deleted per purge transaction.
        maintenance_max_workers: Concurrency bound of the maintenance worker.
    """

    rate_tolerance: Decimal = Decimal("0.5")
    max_guests: int = 10
    confirmation_prefix: str = "BK"
    confirmation_max_attempts: int = 5
    cancellation_deadline_hours: int = 24
    commission_rate: Decimal = Decimal("0.05")
    platform_fee_rate: Decimal = Decimal("0")
    search_cache_ttl_seconds: int = 300
    search_cache_max_entries: int = 1024
    audit_retention_days: int = 365
    audit_purge_batch_size: int = 1000
    maintenance_max_workers: int = 2
    audit_purge_interval_seconds: int = 24 * 3600
    reindex_interval_seconds: int = 6 * 3600
    view_refresh_interval_seconds: int = 3600
    payment_callback_secret: str = ""


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        rate_tolerance=_env_decimal("BOOKING_RATE_TOLERANCE", "0.5"),
        max_guests=_env_int("BOOKING_MAX_GUESTS", 10),
        confirmation_prefix=os.environ.get("CONFIRMATION_PREFIX", "BK"),
        confirmation_max_attempts=_env_int("CONFIRMATION_MAX_ATTEMPTS", 5),
        cancellation_deadline_hours=_env_int("CANCELLATION_DEADLINE_HOURS", 24),
        commission_rate=_env_decimal("COMMISSION_RATE", "0.05"),
        platform_fee_rate=_env_decimal("PLATFORM_FEE_RATE", "0"),
        search_cache_ttl_seconds=_env_int("SEARCH_CACHE_TTL_SECONDS", 300),
        search_cache_max_entries=_env_int("SEARCH_CACHE_MAX_ENTRIES", 1024),
        audit_retention_days=_env_int("AUDIT_RETENTION_DAYS", 365),
        audit_purge_batch_size=_env_int("AUDIT_PURGE_BATCH_SIZE", 1000),
        maintenance_max_workers=_env_int("MAINTENANCE_MAX_WORKERS", 2),
        audit_purge_interval_seconds=_env_int(
            "MAINTENANCE_AUDIT_PURGE_INTERVAL_SECONDS", 24 * 3600
        ),
        reindex_interval_seconds=_env_int(
            "MAINTENANCE_REINDEX_INTERVAL_SECONDS", 6 * 3600
        ),
        view_refresh_interval_seconds=_env_int(
            "MAINTENANCE_VIEW_REFRESH_INTERVAL_SECONDS", 3600
        ),
        payment_callback_secret=os.environ.get("PAYMENT_CALLBACK_SECRET", ""),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings (cached). Tests call get_settings.cache_clear()."""
    return load_settings()
