"""Tests for payment result intake."""

from __future__ import annotations

from contextlib import ExitStack
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from hotelcore.domain.booking_status import BookingStatus
from hotelcore.domain.errors import BookingNotFoundError, PaymentValidationError
from hotelcore.domain.payments import PaymentResult, apply_payment_result

MOD = "hotelcore.domain.payments"


def _booking(**overrides) -> dict:
    booking = {
        "id": "b1",
        "status": "pending",
        "payment_status": "unpaid",
        "total_cents": 30_000,
        "currency": "USD",
    }
    booking.update(overrides)
    return booking


def _result(**overrides) -> PaymentResult:
    fields = dict(
        booking_id="b1",
        transaction_id="tx-1",
        amount_cents=30_000,
        currency="usd",
        status="completed",
    )
    fields.update(overrides)
    return PaymentResult(**fields)


def _payment(status="completed") -> dict:
    return {"id": "p1", "booking_id": "b1", "transaction_id": "tx-1", "status": status}


@pytest.fixture
def deps(fake_txn):
    with ExitStack() as stack:
        stack.enter_context(patch(f"{MOD}.txn", fake_txn))
        mocks = {
            name: stack.enter_context(patch(f"{MOD}.{name}"))
            for name in (
                "get_booking",
                "get_payment_by_transaction",
                "insert_payment",
                "update_payment_status",
                "update_booking",
                "record_change",
                "commissions",
            )
        }
        mocks["get_booking"].return_value = _booking()
        mocks["get_payment_by_transaction"].return_value = None
        mocks["insert_payment"].return_value = _payment()
        mocks["update_booking"].side_effect = lambda cur, booking_id, changes: {
            **_booking(),
            **changes,
        }
        service = MagicMock()
        service.apply_transition.side_effect = lambda cur, booking, target, **kw: {
            **booking,
            "status": target.value,
        }
        mocks["service"] = service
        yield SimpleNamespace(**mocks)


def test_completed_payment_confirms_pending_booking(deps):
    result = apply_payment_result(_result(), service=deps.service)

    assert result == {"status": "applied", "payment_id": "p1", "booking_status": "confirmed"}
    assert deps.insert_payment.call_args.kwargs["currency"] == "USD"
    deps.update_booking.assert_called_once()
    assert deps.update_booking.call_args.args[2] == {"payment_status": "paid"}
    target = deps.service.apply_transition.call_args.args[2]
    assert target is BookingStatus.CONFIRMED


def test_completed_payment_on_confirmed_booking_records_commission(deps):
    deps.get_booking.return_value = _booking(status="confirmed")
    deps.update_booking.side_effect = lambda cur, booking_id, changes: {
        **_booking(status="confirmed"),
        **changes,
    }

    result = apply_payment_result(_result(), service=deps.service)

    assert result["booking_status"] == "confirmed"
    deps.service.apply_transition.assert_not_called()
    deps.commissions.record_for_booking.assert_called_once()


def test_failed_payment_marks_pending_booking(deps):
    deps.insert_payment.return_value = _payment(status="failed")

    result = apply_payment_result(_result(status="failed", amount_cents=0), service=deps.service)

    assert result["booking_status"] == "payment_failed"
    assert deps.update_booking.call_args.args[2] == {"payment_status": "failed"}


def test_late_failure_keeps_paid_booking_paid(deps):
    deps.get_booking.return_value = _booking(status="confirmed", payment_status="paid")
    deps.insert_payment.return_value = _payment(status="failed")

    result = apply_payment_result(
        _result(transaction_id="tx-late-failure", status="failed"), service=deps.service
    )

    assert result["status"] == "applied"
    assert result["booking_status"] == "confirmed"
    deps.insert_payment.assert_called_once()
    deps.update_booking.assert_not_called()
    deps.service.apply_transition.assert_not_called()


def test_pending_payment_only_recorded(deps):
    deps.insert_payment.return_value = _payment(status="pending")

    result = apply_payment_result(_result(status="pending"), service=deps.service)

    assert result["booking_status"] == "pending"
    deps.update_booking.assert_not_called()
    deps.service.apply_transition.assert_not_called()


def test_duplicate_transaction_is_noop(deps):
    deps.get_payment_by_transaction.return_value = _payment()

    result = apply_payment_result(_result(), service=deps.service)

    assert result["status"] == "duplicate"
    deps.insert_payment.assert_not_called()
    deps.update_booking.assert_not_called()


def test_pending_payment_settled_by_later_result(deps):
    deps.get_payment_by_transaction.return_value = _payment(status="pending")
    deps.update_payment_status.return_value = _payment(status="completed")

    result = apply_payment_result(_result(), service=deps.service)

    assert result["status"] == "applied"
    deps.update_payment_status.assert_called_once()
    deps.insert_payment.assert_not_called()


def test_amount_mismatch_rejected(deps):
    with pytest.raises(PaymentValidationError) as exc_info:
        apply_payment_result(_result(amount_cents=29_999), service=deps.service)
    assert exc_info.value.code == "amount_mismatch"
    deps.insert_payment.assert_not_called()


def test_currency_mismatch_rejected(deps):
    with pytest.raises(PaymentValidationError) as exc_info:
        apply_payment_result(_result(currency="EUR"), service=deps.service)
    assert exc_info.value.code == "currency_mismatch"


def test_unknown_status_rejected(deps):
    with pytest.raises(PaymentValidationError) as exc_info:
        apply_payment_result(_result(status="refunded"), service=deps.service)
    assert exc_info.value.code == "invalid_payment_status"


def test_unknown_booking(deps):
    deps.get_booking.return_value = None
    with pytest.raises(BookingNotFoundError):
        apply_payment_result(_result(), service=deps.service)
