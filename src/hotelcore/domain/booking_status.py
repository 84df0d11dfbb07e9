"""Booking status state machine.

    pending ──► confirmed ──► completed
       │            │  └────► no_show
       │            └───────► cancelled
       ├──────────────────────► cancelled
       └──────────────────────► payment_failed

Every change of status goes through assert_transition; anything not listed in
TRANSITIONS is rejected.
"""

from __future__ import annotations

from enum import Enum

from hotelcore.domain.errors import InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    PAYMENT_FAILED = "payment_failed"

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
            BookingStatus.PAYMENT_FAILED,
        }
    ),
    BookingStatus.CONFIRMED: frozenset(
        {
            BookingStatus.COMPLETED,
            BookingStatus.NO_SHOW,
            BookingStatus.CANCELLED,
        }
    ),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
    BookingStatus.PAYMENT_FAILED: frozenset(),
}

# Statuses a booking may be created in
INITIAL_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

# Statuses whose details (dates, guests, amount) may still be edited
MODIFIABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in TRANSITIONS[current]


def assert_transition(current: BookingStatus, target: BookingStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)


def holds_inventory(status: BookingStatus) -> bool:
    """Whether a booking in this status occupies ledger inventory."""
    return status is BookingStatus.CONFIRMED
