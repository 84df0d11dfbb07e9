"""Revenue/commission ledger.

A charge is earned once per (booking, completed payment) when the booking is
confirmed. Charges are never edited: cancelling a paid booking appends a
reversal row with negated amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from psycopg2.extensions import cursor as PgCursor

from hotelcore.config import Settings, get_settings
from hotelcore.domain.audit import record_change
from hotelcore.domain.booking_status import BookingStatus
from hotelcore.domain.errors import BookingNotFoundError, CommissionNotFoundError
from hotelcore.infra.db import txn
from hotelcore.infra.repositories.bookings_repository import get_booking
from hotelcore.infra.repositories.commissions_repository import (
    get_commission,
    insert_charge,
    insert_reversal,
    list_unreversed_charges,
    set_payout,
)
from hotelcore.infra.repositories.payments_repository import get_completed_payment
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

logger = get_logger(__name__)

_CENT = Decimal("1")


@dataclass(frozen=True)
class CommissionBreakdown:
    base_cents: int
    commission_rate: Decimal
    commission_cents: int
    platform_fee_cents: int
    hotel_earnings_cents: int


def _cents(amount: Decimal) -> int:
    return int(amount.quantize(_CENT, rounding=ROUND_HALF_UP))


def compute_commission(
    base_cents: int,
    *,
    rate: Decimal,
    platform_fee_rate: Decimal = Decimal("0"),
) -> CommissionBreakdown:
    """Split a booking amount into commission, platform fee and hotel earnings.

    Commission and fee are rounded half-up to whole cents; hotel earnings
    take the remainder so the three parts always sum to the base.
    """
    if base_cents < 0:
        raise ValueError("base_cents must not be negative")
    commission_cents = _cents(Decimal(base_cents) * rate)
    platform_fee_cents = _cents(Decimal(base_cents) * platform_fee_rate)
    return CommissionBreakdown(
        base_cents=base_cents,
        commission_rate=rate,
        commission_cents=commission_cents,
        platform_fee_cents=platform_fee_cents,
        hotel_earnings_cents=base_cents - commission_cents - platform_fee_cents,
    )


def record_for_booking(
    cur: PgCursor,
    booking: dict,
    *,
    settings: Settings | None = None,
) -> dict | None:
    """Create the earned charge for a confirmed, paid booking.

    Runs on the caller's cursor. No-op (returns None) when the booking is
    not confirmed, has no completed payment, or was already charged for it.
    """
    if booking["status"] != BookingStatus.CONFIRMED.value:
        return None

    payment = get_completed_payment(cur, booking["id"])
    if payment is None:
        return None

    settings = settings or get_settings()
    breakdown = compute_commission(
        booking["total_cents"],
        rate=settings.commission_rate,
        platform_fee_rate=settings.platform_fee_rate,
    )
    charge = insert_charge(
        cur,
        booking_id=booking["id"],
        payment_id=payment["id"],
        base_cents=breakdown.base_cents,
        commission_rate=breakdown.commission_rate,
        commission_cents=breakdown.commission_cents,
        platform_fee_cents=breakdown.platform_fee_cents,
        hotel_earnings_cents=breakdown.hotel_earnings_cents,
        currency=booking["currency"],
    )
    if charge is None:
        return None

    record_change(
        cur,
        table_name="commissions",
        record_id=charge["id"],
        operation="INSERT",
        new=charge,
    )
    logger.info(
        "commission earned",
        extra={
            "extra_fields": safe_log_context(
                booking_id=booking["id"],
                commission_id=charge["id"],
                commission_cents=charge["commission_cents"],
            )
        },
    )
    return charge


def reverse_for_booking(cur: PgCursor, booking_id: str) -> list[dict]:
    """Append a reversal for every charge of the booking not yet reversed."""
    reversals = []
    for charge in list_unreversed_charges(cur, booking_id):
        reversal = insert_reversal(cur, charge=charge)
        if reversal is None:
            continue
        record_change(
            cur,
            table_name="commissions",
            record_id=reversal["id"],
            operation="INSERT",
            new=reversal,
        )
        reversals.append(reversal)

    if reversals:
        logger.info(
            "commission reversed",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking_id, reversals=len(reversals)
                )
            },
        )
    return reversals


def recompute_commission(booking_id: str, *, settings: Settings | None = None) -> dict:
    """Bring the commission ledger of one booking in line with its state.

    Idempotent: safe for backfill and repair. Confirmed and paid bookings
    get their charge; cancelled bookings get their reversals.

    Returns:
        {"status": "charged" | "reversed" | "unchanged", ...}
    """
    with txn() as cur:
        booking = get_booking(cur, booking_id, lock=True)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        if booking["status"] == BookingStatus.CANCELLED.value:
            reversals = reverse_for_booking(cur, booking_id)
            if reversals:
                return {"status": "reversed", "commission_ids": [r["id"] for r in reversals]}
            return {"status": "unchanged"}

        charge = record_for_booking(cur, booking, settings=settings)
        if charge is not None:
            return {"status": "charged", "commission_id": charge["id"]}
        return {"status": "unchanged"}


def assign_payout(commission_id: str, payout_id: str) -> dict:
    """Link an earned charge to a payout, exactly once.

    Re-assigning the same payout is a no-op; a different payout is refused.

    Raises:
        CommissionNotFoundError: If the charge does not exist, is not earned,
            or is already linked to another payout.
    """
    with txn() as cur:
        current = get_commission(cur, commission_id, lock=True)
        if current is None:
            raise CommissionNotFoundError(f"Commission {commission_id} not found")
        if current["payout_id"] == payout_id:
            return current

        updated = set_payout(cur, commission_id, payout_id)
        if updated is None:
            raise CommissionNotFoundError(
                f"Commission {commission_id} is not payable"
            )
        record_change(
            cur,
            table_name="commissions",
            record_id=commission_id,
            operation="UPDATE",
            old=current,
            new=updated,
        )
        return updated
