"""Translation of domain exceptions into HTTP responses.

Messages of validation and state errors are user-safe and passed through;
consistency and infrastructure errors get a generic detail.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from hotelcore.domain.errors import (
    BookingNotFoundError,
    BookingValidationError,
    CommissionNotFoundError,
    ConfirmationNumberCollisionError,
    HotelNotFoundError,
    HotelValidationError,
    InvalidTransitionError,
    LedgerConsistencyError,
    ReviewNotFoundError,
    RoomUnavailableError,
    SearchUnavailableError,
)
from hotelcore.observability.logging import get_logger

logger = get_logger(__name__)

_NOT_FOUND = (
    BookingNotFoundError,
    HotelNotFoundError,
    ReviewNotFoundError,
    CommissionNotFoundError,
)


def to_http_exception(exc: Exception) -> HTTPException | None:
    """HTTPException for a domain error, or None if exc is not one."""
    if isinstance(exc, (BookingValidationError, HotelValidationError)):
        return HTTPException(status_code=422, detail={"code": exc.code, "message": exc.message})
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, _NOT_FOUND):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, RoomUnavailableError):
        return HTTPException(status_code=409, detail="The room is not available for the selected dates")
    if isinstance(exc, ConfirmationNumberCollisionError):
        return HTTPException(status_code=409, detail="Could not allocate a confirmation number, please retry")
    if isinstance(exc, LedgerConsistencyError):
        logger.error("ledger consistency error", exc_info=exc)
        return HTTPException(status_code=500, detail="Internal error")
    if isinstance(exc, SearchUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    return None


@contextmanager
def domain_errors() -> Iterator[None]:
    """Re-raise domain exceptions raised inside the block as HTTPException."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as exc:
        http_exc = to_http_exception(exc)
        if http_exc is None:
            raise
        raise http_exc from exc
