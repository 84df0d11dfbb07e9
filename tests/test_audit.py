"""Tests for audit recording and retention."""

from unittest.mock import patch

import pytest

from hotelcore.domain.audit import purge_expired_audit_entries, record_change
from hotelcore.observability.context import (
    RequestContext,
    reset_correlation_id,
    reset_request_context,
    set_correlation_id,
    set_request_context,
)

MOD = "hotelcore.domain.audit"


class TestRecordChange:
    def test_uses_ambient_request_context(self, mock_cur):
        ctx_token = set_request_context(
            RequestContext(actor_id="admin-1", ip_address="10.1.1.1", user_agent="ua")
        )
        cid_token = set_correlation_id("cid-1")
        try:
            with patch(f"{MOD}.insert_audit_entry", return_value=41) as insert:
                entry_id = record_change(
                    mock_cur,
                    table_name="bookings",
                    record_id="b1",
                    operation="INSERT",
                    new={"id": "b1", "status": "pending"},
                )
        finally:
            reset_correlation_id(cid_token)
            reset_request_context(ctx_token)

        assert entry_id == 41
        kwargs = insert.call_args.kwargs
        assert kwargs["changed_by"] == "admin-1"
        assert kwargs["ip_address"] == "10.1.1.1"
        assert kwargs["user_agent"] == "ua"
        assert kwargs["correlation_id"] == "cid-1"
        assert kwargs["old_data"] is None

    def test_update_without_real_change_is_suppressed(self, mock_cur):
        old = {"id": "b1", "status": "pending", "updated_at": "t1"}
        new = {"id": "b1", "status": "pending", "updated_at": "t2"}
        with patch(f"{MOD}.insert_audit_entry") as insert:
            result = record_change(
                mock_cur, table_name="bookings", record_id="b1", operation="UPDATE", old=old, new=new
            )
        assert result is None
        insert.assert_not_called()

    def test_volatile_columns_stripped(self, mock_cur):
        with patch(f"{MOD}.insert_audit_entry", return_value=1) as insert:
            record_change(
                mock_cur,
                table_name="hotels",
                record_id="h1",
                operation="UPDATE",
                old={"name": "A", "updated_at": "t1"},
                new={"name": "B", "updated_at": "t2"},
            )
        assert insert.call_args.kwargs["new_data"] == {"name": "B"}

    def test_untracked_table_rejected(self, mock_cur):
        with pytest.raises(ValueError):
            record_change(mock_cur, table_name="sessions", record_id="x", operation="INSERT")


class TestPurge:
    def test_batches_until_short_batch(self, fake_txn):
        with patch(f"{MOD}.txn", fake_txn), patch(
            f"{MOD}.delete_audit_batch", side_effect=[100, 100, 7]
        ) as delete:
            total = purge_expired_audit_entries(retention_days=30, batch_size=100)
        assert total == 207
        assert delete.call_count == 3

    def test_max_batches_caps_run(self, fake_txn):
        with patch(f"{MOD}.txn", fake_txn), patch(
            f"{MOD}.delete_audit_batch", return_value=100
        ) as delete:
            total = purge_expired_audit_entries(retention_days=30, batch_size=100, max_batches=2)
        assert total == 200
        assert delete.call_count == 2

    def test_retention_must_be_positive(self):
        with pytest.raises(ValueError):
            purge_expired_audit_entries(retention_days=0)
