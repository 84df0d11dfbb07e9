"""Domain exceptions, grouped by how callers must react to them.

- Validation errors: reject the whole mutation; message is safe to show users.
- Not-found errors: the referenced record does not exist.
- Consistency errors: must be retried or rejected, never clamped away.
- Infrastructure errors: surfaced with a generic message only.
"""

from __future__ import annotations


class BookingValidationError(Exception):
    """Raised when a booking request violates a business rule."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class CancellationDeadlinePassedError(BookingValidationError):
    """Raised when a guest cancels after the cancellation deadline."""

    def __init__(self, message: str = "The cancellation deadline for this booking has passed") -> None:
        super().__init__("cancellation_deadline_passed", message)


class PaymentValidationError(BookingValidationError):
    """Raised when a payment result does not match its booking."""


class HotelValidationError(Exception):
    """Raised when hotel or review data violates a catalogue rule."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class InvalidTransitionError(Exception):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot change booking status from '{current}' to '{target}'")


class BookingNotFoundError(Exception):
    """Raised when the booking does not exist."""


class HotelNotFoundError(Exception):
    """Raised when the hotel does not exist."""


class ReviewNotFoundError(Exception):
    """Raised when the review does not exist."""


class CommissionNotFoundError(Exception):
    """Raised when the commission does not exist or is not payable."""


class RoomUnavailableError(Exception):
    """Raised when a night has no inventory left for the room."""

    def __init__(self, room_id: str, night: object) -> None:
        self.room_id = room_id
        self.night = night
        super().__init__(f"Room {room_id} is not available on {night}")


class LedgerConsistencyError(Exception):
    """Raised when a ledger release finds nothing booked to release."""


class ConfirmationNumberCollisionError(Exception):
    """Raised when no unique confirmation number could be allocated."""


class SearchUnavailableError(Exception):
    """Raised when the search backend cannot be reached."""

    def __init__(self) -> None:
        super().__init__("Search is temporarily unavailable")
