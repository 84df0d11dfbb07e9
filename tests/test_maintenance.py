"""Tests for the maintenance worker and view refresh."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import pytest

from hotelcore.config import Settings
from hotelcore.maintenance import (
    MaintenanceWorker,
    ScheduledJob,
    default_jobs,
    refresh_materialized_views,
)

MOD = "hotelcore.maintenance"


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestRefreshViews:
    def test_refreshes_concurrently(self, fake_txn, mock_cur):
        with patch(f"{MOD}.txn", fake_txn):
            result = refresh_materialized_views()
        statements = [c.args[0] for c in mock_cur.execute.call_args_list]
        assert statements == [
            "REFRESH MATERIALIZED VIEW CONCURRENTLY hotel_ranking_mv",
            "REFRESH MATERIALIZED VIEW CONCURRENTLY search_performance_mv",
        ]
        assert set(result) == {"hotel_ranking_mv", "search_performance_mv"}

    def test_failing_view_does_not_stop_others(self, fake_txn, mock_cur):
        mock_cur.execute.side_effect = [RuntimeError("locked"), None]
        with patch(f"{MOD}.txn", fake_txn):
            result = refresh_materialized_views()
        assert result["hotel_ranking_mv"] == "failed"
        assert isinstance(result["search_performance_mv"], int)

    def test_unknown_view_rejected(self):
        with pytest.raises(ValueError):
            refresh_materialized_views(("bookings",))


class TestMaintenanceWorker:
    def test_duplicate_job_names_rejected(self):
        job = ScheduledJob(name="a", func=lambda: None, interval_seconds=1)
        with pytest.raises(ValueError):
            MaintenanceWorker([job, job])

    def test_job_not_started_twice_while_running(self):
        release = threading.Event()
        started = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5)

        worker = MaintenanceWorker(
            [ScheduledJob(name="slow", func=slow, interval_seconds=60)], clock=FakeClock()
        )
        try:
            first = worker.submit("slow")
            assert started.wait(timeout=5)
            assert worker.is_running("slow")
            assert worker.submit("slow") is None
            release.set()
            first.result(timeout=5)
        finally:
            release.set()
            worker.stop()

    def test_run_pending_respects_interval(self):
        clock = FakeClock()
        calls = []
        job = ScheduledJob(name="tick", func=lambda: calls.append(1), interval_seconds=10)
        worker = MaintenanceWorker([job], clock=clock)
        try:
            for future in worker.run_pending():
                future.result(timeout=5)
            assert job.next_run_at == 10
            clock.now = 5
            assert worker.run_pending() == []
            clock.now = 10
            for future in worker.run_pending():
                future.result(timeout=5)
        finally:
            worker.stop()
        assert len(calls) == 2

    def test_failed_job_is_released(self):
        job = ScheduledJob(name="boom", func=MagicMock(side_effect=RuntimeError("x")), interval_seconds=1)
        worker = MaintenanceWorker([job], clock=FakeClock())
        try:
            future = worker.submit("boom")
            with pytest.raises(RuntimeError):
                future.result(timeout=5)
            assert worker.submit("boom") is not None
        finally:
            worker.stop()


def test_default_jobs_use_settings():
    jobs = {job.name: job for job in default_jobs(Settings(view_refresh_interval_seconds=120))}
    assert set(jobs) == {"purge_audit", "reindex_search", "refresh_views"}
    assert jobs["refresh_views"].interval_seconds == 120
