"""BookingService - the only writer of bookings.

Every mutation runs in one transaction, in this order:
lock → validate → write booking → ledger → status history → audit → commission
and, for status changes, a booking_status_changed outbox event.
Any exception rolls all of it back (see txn()).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from hotelcore.config import Settings, get_settings
from hotelcore.domain import commissions
from hotelcore.domain.audit import record_change
from hotelcore.domain.availability import move_stay, release_stay, reserve_stay
from hotelcore.domain.booking_status import (
    INITIAL_STATUSES,
    MODIFIABLE_STATUSES,
    BookingStatus,
    assert_transition,
    holds_inventory,
)
from hotelcore.domain.booking_validation import (
    BookingDraft,
    default_cancellation_deadline,
    generate_confirmation_number,
    validate_booking,
)
from hotelcore.domain.errors import (
    BookingNotFoundError,
    BookingValidationError,
    CancellationDeadlinePassedError,
    ConfirmationNumberCollisionError,
)
from hotelcore.infra.db import read_only_txn, txn
from hotelcore.infra.repositories.audit_repository import (
    insert_status_history,
    list_status_history,
)
from hotelcore.infra.repositories.bookings_repository import (
    confirmation_number_exists,
    delete_booking,
    get_booking,
    get_room_context,
    insert_booking,
    update_booking,
)
from hotelcore.infra.repositories.outbox_repository import emit_booking_status_changed
from hotelcore.infra.time import utc_now
from hotelcore.observability.context import get_correlation_id, get_request_context
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

logger = get_logger(__name__)

# Fields modify() accepts
MODIFIABLE_FIELDS = frozenset(
    {
        "room_id",
        "check_in",
        "check_out",
        "adults",
        "children",
        "room_rate_cents",
        "total_cents",
        "currency",
        "guest_name",
        "guest_email",
        "guest_phone",
        "cancellation_deadline",
    }
)

_STAY_FIELDS = frozenset({"room_id", "check_in", "check_out"})

# Modifiable fields that cannot be cleared
_NON_NULLABLE_FIELDS = MODIFIABLE_FIELDS - {"guest_phone", "cancellation_deadline"}

_CONFIRMATION_CONSTRAINT = "bookings_confirmation_number_key"


def _draft_from_booking(booking: dict) -> BookingDraft:
    return BookingDraft(
        hotel_id=str(booking["hotel_id"]),
        room_id=str(booking["room_id"]),
        check_in=booking["check_in"],
        check_out=booking["check_out"],
        adults=booking["adults"],
        children=booking["children"],
        room_rate_cents=booking["room_rate_cents"],
        total_cents=booking["total_cents"],
        currency=booking["currency"],
        guest_name=booking["guest_name"],
        guest_email=booking["guest_email"],
        guest_phone=booking["guest_phone"],
        user_id=booking["user_id"],
        confirmation_number=booking["confirmation_number"],
        cancellation_deadline=booking["cancellation_deadline"],
    )


class _ConfirmationTaken(Exception):
    """A generated confirmation number is already in use; retry with another."""


def _is_confirmation_collision(exc: Exception) -> bool:
    if isinstance(exc, _ConfirmationTaken):
        return True
    diag = getattr(exc, "diag", None)
    return getattr(diag, "constraint_name", None) == _CONFIRMATION_CONSTRAINT


class BookingService:
    """Validates and applies booking mutations.

    Args:
        settings: Booking rules; defaults to get_settings().
        clock: Returns the current UTC datetime. Injected by tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings or get_settings()
        self.clock = clock

    def _today(self) -> date:
        return self.clock().date()

    # ── Reads ─────────────────────────────────────────────────────────────

    def get(self, booking_id: str) -> dict:
        """Booking with its status history.

        Raises:
            BookingNotFoundError: If the booking does not exist.
        """
        with read_only_txn() as cur:
            booking = get_booking(cur, booking_id)
            if booking is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")
            booking["status_history"] = list_status_history(cur, booking_id)
        return booking

    # ── Create ────────────────────────────────────────────────────────────

    def create(
        self,
        draft: BookingDraft,
        *,
        initial_status: BookingStatus = BookingStatus.PENDING,
    ) -> dict:
        """Validate and insert a booking.

        A confirmed initial status takes ledger inventory in the same
        transaction. Generated confirmation numbers are retried on collision.

        Raises:
            BookingValidationError: On any violated rule (nothing is written).
            RoomUnavailableError: If a night is sold out.
            ConfirmationNumberCollisionError: If no unique confirmation number
                could be allocated.
        """
        if initial_status not in INITIAL_STATUSES:
            raise BookingValidationError(
                "invalid_initial_status",
                f"Bookings cannot be created as '{initial_status.value}'",
            )

        generated = draft.confirmation_number is None
        attempts = self.settings.confirmation_max_attempts if generated else 1

        for attempt in range(1, attempts + 1):
            try:
                return self._create_once(draft, initial_status)
            except (pg_errors.UniqueViolation, _ConfirmationTaken) as exc:
                if not _is_confirmation_collision(exc):
                    raise
                logger.warning(
                    "confirmation number collision",
                    extra={"extra_fields": {"attempt": attempt}},
                )

        raise ConfirmationNumberCollisionError(
            "Could not allocate a unique confirmation number"
        )

    def _create_once(self, draft: BookingDraft, initial_status: BookingStatus) -> dict:
        now = self.clock()
        with txn() as cur:
            # Step 1: Validate
            room = get_room_context(cur, draft.room_id)
            nights = validate_booking(draft, room, today=now.date(), settings=self.settings)

            # Step 2: Derive
            confirmation_number = draft.confirmation_number
            if confirmation_number is None:
                confirmation_number = generate_confirmation_number(
                    self.settings.confirmation_prefix, now
                )
            if confirmation_number_exists(cur, confirmation_number):
                if draft.confirmation_number is not None:
                    raise ConfirmationNumberCollisionError(
                        f"Confirmation number {confirmation_number} is already in use"
                    )
                raise _ConfirmationTaken()

            cancellation_deadline = draft.cancellation_deadline or default_cancellation_deadline(
                draft.check_in, self.settings.cancellation_deadline_hours
            )

            # Step 3: Insert
            booking = insert_booking(
                cur,
                {
                    "hotel_id": draft.hotel_id,
                    "room_id": draft.room_id,
                    "user_id": draft.user_id,
                    "guest_name": draft.guest_name,
                    "guest_email": draft.guest_email,
                    "guest_phone": draft.guest_phone,
                    "check_in": draft.check_in,
                    "check_out": draft.check_out,
                    "nights": nights,
                    "adults": draft.adults,
                    "children": draft.children,
                    "room_rate_cents": draft.room_rate_cents,
                    "total_cents": draft.total_cents,
                    "currency": draft.currency,
                    "status": initial_status.value,
                    "payment_status": "unpaid",
                    "confirmation_number": confirmation_number,
                    "cancellation_deadline": cancellation_deadline,
                },
            )

            # Step 4: Ledger
            if holds_inventory(initial_status):
                reserve_stay(
                    cur,
                    room_id=booking["room_id"],
                    total_quantity=room.total_quantity,
                    check_in=booking["check_in"],
                    check_out=booking["check_out"],
                    price_cents=booking["room_rate_cents"],
                    currency=booking["currency"],
                )

            # Step 5: History + audit
            insert_status_history(
                cur,
                booking_id=booking["id"],
                previous_status=None,
                new_status=initial_status.value,
                reason="created",
                changed_by=get_request_context().actor_id,
            )
            record_change(
                cur,
                table_name="bookings",
                record_id=booking["id"],
                operation="INSERT",
                new=booking,
            )

        logger.info(
            "booking created",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking["id"],
                    status=booking["status"],
                    nights=nights,
                    guest_email=booking["guest_email"],
                )
            },
        )
        return booking

    # ── Transitions ───────────────────────────────────────────────────────

    def confirm(self, booking_id: str) -> dict:
        return self.transition(booking_id, BookingStatus.CONFIRMED)

    def cancel(self, booking_id: str, reason: str | None = None, *, force: bool = False) -> dict:
        """Cancel a pending or confirmed booking.

        Guests may cancel only until the cancellation deadline; force=True
        skips the deadline (hotel or administrative cancellations).
        """
        return self.transition(booking_id, BookingStatus.CANCELLED, reason=reason, force=force)

    def complete(self, booking_id: str) -> dict:
        return self.transition(booking_id, BookingStatus.COMPLETED)

    def mark_no_show(self, booking_id: str) -> dict:
        return self.transition(booking_id, BookingStatus.NO_SHOW)

    def mark_payment_failed(self, booking_id: str) -> dict:
        return self.transition(booking_id, BookingStatus.PAYMENT_FAILED)

    def transition(
        self,
        booking_id: str,
        target: BookingStatus,
        *,
        reason: str | None = None,
        force: bool = False,
    ) -> dict:
        """Move a booking to a new status in its own transaction.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            InvalidTransitionError: If target is not reachable.
            CancellationDeadlinePassedError: On a late, unforced cancellation.
            RoomUnavailableError: If confirming finds a night sold out.
            LedgerConsistencyError: If releasing finds nothing booked.
        """
        with txn() as cur:
            booking = get_booking(cur, booking_id, lock=True)
            if booking is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")
            return self.apply_transition(cur, booking, target, reason=reason, force=force)

    def apply_transition(
        self,
        cur: PgCursor,
        booking: dict,
        target: BookingStatus,
        *,
        reason: str | None = None,
        force: bool = False,
    ) -> dict:
        """Apply a status change on the caller's cursor.

        booking must have been read FOR UPDATE in the same transaction.
        Requesting the current status is a no-op.
        """
        current = BookingStatus(booking["status"])

        # Step 1: Idempotency
        if current is target:
            return booking

        # Step 2: Validate
        assert_transition(current, target)
        if target is BookingStatus.CANCELLED and not force:
            deadline = booking["cancellation_deadline"]
            if deadline is not None and self.clock() > deadline:
                raise CancellationDeadlinePassedError()

        # Step 3: Write booking
        changes: dict = {"status": target.value}
        if target is BookingStatus.CANCELLED:
            changes["cancellation_reason"] = reason
        updated = update_booking(cur, booking["id"], changes)

        # Step 4: Ledger, keyed on the previous status
        if not holds_inventory(current) and holds_inventory(target):
            room = get_room_context(cur, updated["room_id"])
            reserve_stay(
                cur,
                room_id=updated["room_id"],
                total_quantity=room.total_quantity,
                check_in=updated["check_in"],
                check_out=updated["check_out"],
                price_cents=updated["room_rate_cents"],
                currency=updated["currency"],
            )
        elif holds_inventory(current) and target is BookingStatus.CANCELLED:
            release_stay(
                cur,
                room_id=updated["room_id"],
                check_in=updated["check_in"],
                check_out=updated["check_out"],
            )

        # Step 5: History + audit
        insert_status_history(
            cur,
            booking_id=updated["id"],
            previous_status=current.value,
            new_status=target.value,
            reason=reason,
            changed_by=get_request_context().actor_id,
        )
        record_change(
            cur,
            table_name="bookings",
            record_id=updated["id"],
            operation="UPDATE",
            old=booking,
            new=updated,
        )

        # Step 6: Commission
        if target is BookingStatus.CONFIRMED:
            commissions.record_for_booking(cur, updated, settings=self.settings)
        elif target is BookingStatus.CANCELLED:
            commissions.reverse_for_booking(cur, updated["id"])

        # Step 7: Event
        emit_booking_status_changed(
            cur,
            booking=updated,
            old_status=current.value,
            new_status=target.value,
            occurred_at=self.clock().isoformat(),
            correlation_id=get_correlation_id() or None,
        )

        logger.info(
            "booking status changed",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=updated["id"], previous=current.value, status=target.value
                )
            },
        )
        return updated

    # ── Modify ────────────────────────────────────────────────────────────

    def modify(self, booking_id: str, changes: dict) -> dict:
        """Edit a pending or confirmed booking and re-validate it.

        For confirmed bookings a change of room or dates moves the ledger:
        the old nights are released and the new nights reserved in one
        ascending pass, in the same transaction.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            BookingValidationError: On unknown fields, a non-modifiable status
                or any violated booking rule.
            RoomUnavailableError: If a new night is sold out.
        """
        unknown = set(changes) - MODIFIABLE_FIELDS
        if unknown:
            raise BookingValidationError(
                "unknown_fields", f"Fields cannot be modified: {', '.join(sorted(unknown))}"
            )
        cleared = sorted(k for k in _NON_NULLABLE_FIELDS & set(changes) if changes[k] is None)
        if cleared:
            raise BookingValidationError(
                "invalid_field", f"Fields cannot be empty: {', '.join(cleared)}"
            )

        with txn() as cur:
            booking = get_booking(cur, booking_id, lock=True)
            if booking is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")

            status = BookingStatus(booking["status"])
            if status not in MODIFIABLE_STATUSES:
                raise BookingValidationError(
                    "not_modifiable", f"A {status.value} booking cannot be modified"
                )

            effective = {k: v for k, v in changes.items() if booking.get(k) != v}
            if not effective:
                return booking

            money_changed = bool({"total_cents", "currency"} & set(effective))
            if money_changed and booking["payment_status"] == "paid":
                raise BookingValidationError(
                    "paid_amount_locked", "The amount of a paid booking cannot be changed"
                )

            # Step 1: Re-validate the whole booking
            draft = _draft_from_booking(booking).with_changes(**effective)
            if "check_in" in effective and "cancellation_deadline" not in effective:
                draft = draft.with_changes(
                    cancellation_deadline=default_cancellation_deadline(
                        draft.check_in, self.settings.cancellation_deadline_hours
                    )
                )
            room = get_room_context(cur, draft.room_id)
            nights = validate_booking(draft, room, today=self._today(), settings=self.settings)

            # Step 2: Write booking
            row_changes = {
                "room_id": draft.room_id,
                "check_in": draft.check_in,
                "check_out": draft.check_out,
                "nights": nights,
                "adults": draft.adults,
                "children": draft.children,
                "room_rate_cents": draft.room_rate_cents,
                "total_cents": draft.total_cents,
                "currency": draft.currency,
                "guest_name": draft.guest_name,
                "guest_email": draft.guest_email,
                "guest_phone": draft.guest_phone,
                "cancellation_deadline": draft.cancellation_deadline,
            }
            updated = update_booking(cur, booking_id, row_changes)

            # Step 3: Move the ledger
            if holds_inventory(status) and _STAY_FIELDS & set(effective):
                move_stay(
                    cur,
                    old_room_id=booking["room_id"],
                    old_check_in=booking["check_in"],
                    old_check_out=booking["check_out"],
                    new_room_id=updated["room_id"],
                    total_quantity=room.total_quantity,
                    new_check_in=updated["check_in"],
                    new_check_out=updated["check_out"],
                    price_cents=updated["room_rate_cents"],
                    currency=updated["currency"],
                )

            # Step 4: Audit
            record_change(
                cur,
                table_name="bookings",
                record_id=booking_id,
                operation="UPDATE",
                old=booking,
                new=updated,
            )

        logger.info(
            "booking modified",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking_id, fields=sorted(effective)
                )
            },
        )
        return updated

    # ── Purge ─────────────────────────────────────────────────────────────

    def purge(self, booking_id: str) -> dict:
        """Administrative hard delete.

        A confirmed booking gives its nights back to the ledger and has its
        commissions reversed first. Status history goes with the booking;
        the audit log keeps a DELETE entry with the last snapshot.
        """
        with txn() as cur:
            booking = get_booking(cur, booking_id, lock=True)
            if booking is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")

            if holds_inventory(BookingStatus(booking["status"])):
                release_stay(
                    cur,
                    room_id=booking["room_id"],
                    check_in=booking["check_in"],
                    check_out=booking["check_out"],
                )
            commissions.reverse_for_booking(cur, booking_id)

            delete_booking(cur, booking_id)
            record_change(
                cur,
                table_name="bookings",
                record_id=booking_id,
                operation="DELETE",
                old=booking,
            )

        logger.warning(
            "booking purged",
            extra={"extra_fields": safe_log_context(booking_id=booking_id)},
        )
        return {"status": "purged", "booking_id": booking_id}
