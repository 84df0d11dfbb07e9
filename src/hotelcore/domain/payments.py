"""Payment result intake.

The gateway is an opaque collaborator reporting
{booking_id, transaction_id, amount_cents, currency, status}. A result is
applied once per transaction_id: the payment row, the booking's payment
status and any resulting transition commit together.
"""

from __future__ import annotations

from dataclasses import dataclass

from hotelcore.domain import commissions
from hotelcore.domain.audit import record_change
from hotelcore.domain.booking_status import BookingStatus
from hotelcore.domain.bookings import BookingService
from hotelcore.domain.errors import BookingNotFoundError, PaymentValidationError
from hotelcore.infra.db import txn
from hotelcore.infra.repositories.bookings_repository import get_booking, update_booking
from hotelcore.infra.repositories.payments_repository import (
    get_payment_by_transaction,
    insert_payment,
    update_payment_status,
)
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

logger = get_logger(__name__)

PAYMENT_STATUSES = frozenset({"completed", "failed", "pending"})


@dataclass(frozen=True)
class PaymentResult:
    booking_id: str
    transaction_id: str
    amount_cents: int
    currency: str
    status: str


def _check_against_booking(result: PaymentResult, booking: dict) -> None:
    if result.status not in PAYMENT_STATUSES:
        raise PaymentValidationError("invalid_payment_status", "Unknown payment status")
    if result.currency.upper() != booking["currency"].upper():
        raise PaymentValidationError(
            "currency_mismatch", "Payment currency does not match the booking"
        )
    if result.status == "completed" and result.amount_cents != booking["total_cents"]:
        raise PaymentValidationError(
            "amount_mismatch", "Payment amount does not match the booking total"
        )


def apply_payment_result(
    result: PaymentResult,
    *,
    service: BookingService | None = None,
) -> dict:
    """Record a gateway result and apply its effect on the booking.

    - completed: payment_status → paid; a pending booking is confirmed
      (taking ledger inventory), a confirmed one gets its commission.
    - failed: payment_status → failed unless already paid; a pending
      booking → payment_failed.
    - pending: recorded only.

    Returns:
        {"status": "applied" | "duplicate", "payment_id": str, "booking_status": str}

    Raises:
        BookingNotFoundError: If the booking does not exist.
        PaymentValidationError: If amount or currency do not match.
        InvalidTransitionError / RoomUnavailableError: From the confirmation.
    """
    service = service or BookingService()

    with txn() as cur:
        # Step 1: Lock booking
        booking = get_booking(cur, result.booking_id, lock=True)
        if booking is None:
            raise BookingNotFoundError(f"Booking {result.booking_id} not found")

        # Step 2: Validate
        _check_against_booking(result, booking)

        # Step 3: Record payment (idempotent by transaction_id)
        existing = get_payment_by_transaction(cur, result.transaction_id)
        if existing is None:
            payment = insert_payment(
                cur,
                booking_id=result.booking_id,
                transaction_id=result.transaction_id,
                amount_cents=result.amount_cents,
                currency=result.currency.upper(),
                status=result.status,
            )
            if payment is None:
                # recorded concurrently since the lookup above
                existing = get_payment_by_transaction(cur, result.transaction_id)
                return {
                    "status": "duplicate",
                    "payment_id": existing["id"] if existing else None,
                    "booking_status": booking["status"],
                }
            record_change(
                cur, table_name="payments", record_id=payment["id"], operation="INSERT", new=payment
            )
        elif existing["status"] == "pending" and result.status != "pending":
            payment = update_payment_status(cur, existing["id"], result.status)
            record_change(
                cur,
                table_name="payments",
                record_id=payment["id"],
                operation="UPDATE",
                old=existing,
                new=payment,
            )
        else:
            return {
                "status": "duplicate",
                "payment_id": existing["id"],
                "booking_status": booking["status"],
            }

        # Step 4: Apply effect on booking
        if result.status == "completed":
            booking = _set_payment_status(cur, booking, "paid")
            if booking["status"] == BookingStatus.PENDING.value:
                booking = service.apply_transition(
                    cur, booking, BookingStatus.CONFIRMED, reason="payment completed"
                )
            else:
                commissions.record_for_booking(cur, booking, settings=service.settings)
        elif result.status == "failed" and booking["payment_status"] != "paid":
            # a late failure never overrides a completed payment
            booking = _set_payment_status(cur, booking, "failed")
            if booking["status"] == BookingStatus.PENDING.value:
                booking = service.apply_transition(
                    cur, booking, BookingStatus.PAYMENT_FAILED, reason="payment failed"
                )

    logger.info(
        "payment result applied",
        extra={
            "extra_fields": safe_log_context(
                booking_id=result.booking_id,
                payment_id=payment["id"],
                payment_status=result.status,
                booking_status=booking["status"],
            )
        },
    )
    return {
        "status": "applied",
        "payment_id": payment["id"],
        "booking_status": booking["status"],
    }


def _set_payment_status(cur, booking: dict, payment_status: str) -> dict:
    if booking["payment_status"] == payment_status:
        return booking
    updated = update_booking(cur, booking["id"], {"payment_status": payment_status})
    record_change(
        cur,
        table_name="bookings",
        record_id=booking["id"],
        operation="UPDATE",
        old=booking,
        new=updated,
    )
    return updated
