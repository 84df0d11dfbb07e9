"""Worker task endpoints (APP_ROLE=worker), guarded by task auth.

POST /tasks/search/reindex-hotel        {"hotel_id": ...}
POST /tasks/search/reindex-all
POST /tasks/commissions/recompute       {"booking_id": ...}
POST /tasks/maintenance/purge-audit     {"retention_days"?: int}
POST /tasks/maintenance/refresh-views
POST /tasks/bookings/purge              {"booking_id": ...}

Every task is idempotent; schedulers may retry freely.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from hotelcore.api.errors import domain_errors
from hotelcore.api.task_auth import require_task_auth
from hotelcore.config import get_settings
from hotelcore.domain.audit import purge_expired_audit_entries
from hotelcore.domain.bookings import BookingService
from hotelcore.domain.commissions import recompute_commission
from hotelcore.domain.hotels import reindex_all_hotels, reindex_hotel
from hotelcore.maintenance import refresh_materialized_views
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_auth)])

logger = get_logger(__name__)


class HotelTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    hotel_id: str


class BookingTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    booking_id: str


class PurgeAuditTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    retention_days: int | None = Field(None, ge=1)


@router.post("/search/reindex-hotel")
def task_reindex_hotel(body: HotelTask) -> dict:
    with domain_errors():
        changed = reindex_hotel(body.hotel_id)
    return {"ok": True, "hotel_id": body.hotel_id, "rewritten": changed}


@router.post("/search/reindex-all")
def task_reindex_all() -> dict:
    return {"ok": True, **reindex_all_hotels()}


@router.post("/commissions/recompute")
def task_recompute_commission(body: BookingTask) -> dict:
    with domain_errors():
        result = recompute_commission(body.booking_id)
    return {"ok": True, **result}


@router.post("/maintenance/purge-audit")
def task_purge_audit(body: PurgeAuditTask | None = None) -> dict:
    settings = get_settings()
    retention_days = (body.retention_days if body else None) or settings.audit_retention_days
    deleted = purge_expired_audit_entries(
        retention_days=retention_days,
        batch_size=settings.audit_purge_batch_size,
    )
    return {"ok": True, "deleted": deleted, "retention_days": retention_days}


@router.post("/maintenance/refresh-views")
def task_refresh_views() -> dict:
    return {"ok": True, "views": refresh_materialized_views()}


@router.post("/bookings/purge")
def task_purge_booking(body: BookingTask) -> dict:
    logger.info(
        "booking purge requested",
        extra={"extra_fields": safe_log_context(booking_id=body.booking_id)},
    )
    with domain_errors():
        return {"ok": True, **BookingService().purge(body.booking_id)}
