"""Background maintenance: audit retention, search reindex, view refresh.

MaintenanceWorker runs each job on its own interval in a bounded thread
pool. A job is never started while its previous run is still in flight.
Every job is idempotent and uses short transactions, so a run that is cut
short is simply repeated next time.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from hotelcore.config import Settings, get_settings
from hotelcore.domain.audit import purge_expired_audit_entries
from hotelcore.domain.hotels import reindex_all_hotels
from hotelcore.infra.db import txn
from hotelcore.observability.logging import get_logger

logger = get_logger(__name__)

# Each has a unique index, required by REFRESH ... CONCURRENTLY
MATERIALIZED_VIEWS = ("hotel_ranking_mv", "search_performance_mv")


def refresh_materialized_views(views: tuple[str, ...] = MATERIALIZED_VIEWS) -> dict:
    """Refresh ranking/analytics views without blocking readers.

    One transaction per view; a failing view does not stop the others.

    Returns:
        {view_name: elapsed_ms or "failed"}
    """
    result: dict[str, Any] = {}
    for view in views:
        if view not in MATERIALIZED_VIEWS:
            raise ValueError(f"Unknown materialized view: {view}")
        started = time.perf_counter()
        try:
            with txn() as cur:
                cur.execute(f"REFRESH MATERIALIZED VIEW CONCURRENTLY {view}")
        except Exception:
            logger.exception(
                "materialized view refresh failed", extra={"extra_fields": {"view": view}}
            )
            result[view] = "failed"
            continue
        result[view] = int((time.perf_counter() - started) * 1000)

    logger.info("materialized views refreshed", extra={"extra_fields": result})
    return result


@dataclass
class ScheduledJob:
    name: str
    func: Callable[[], Any]
    interval_seconds: float
    next_run_at: float = 0.0


def default_jobs(settings: Settings | None = None) -> list[ScheduledJob]:
    settings = settings or get_settings()
    return [
        ScheduledJob(
            name="purge_audit",
            func=lambda: purge_expired_audit_entries(
                retention_days=settings.audit_retention_days,
                batch_size=settings.audit_purge_batch_size,
            ),
            interval_seconds=settings.audit_purge_interval_seconds,
        ),
        ScheduledJob(
            name="reindex_search",
            func=reindex_all_hotels,
            interval_seconds=settings.reindex_interval_seconds,
        ),
        ScheduledJob(
            name="refresh_views",
            func=refresh_materialized_views,
            interval_seconds=settings.view_refresh_interval_seconds,
        ),
    ]


class MaintenanceWorker:
    """Timer-driven runner for ScheduledJobs.

    Args:
        jobs: Jobs to run; names must be unique.
        max_workers: Thread pool size.
        clock: Monotonic seconds; injected by tests.
        tick_seconds: How often start() checks for due jobs.
    """

    def __init__(
        self,
        jobs: list[ScheduledJob],
        *,
        max_workers: int = 2,
        clock: Callable[[], float] = time.monotonic,
        tick_seconds: float = 1.0,
    ) -> None:
        names = [job.name for job in jobs]
        if len(names) != len(set(names)):
            raise ValueError("Job names must be unique")
        self.jobs = {job.name: job for job in jobs}
        self.clock = clock
        self.tick_seconds = tick_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="maintenance"
        )
        self._running: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _run(self, job: ScheduledJob) -> Any:
        started = time.perf_counter()
        try:
            result = job.func()
        except Exception:
            logger.exception(
                "maintenance job failed", extra={"extra_fields": {"job": job.name}}
            )
            raise
        finally:
            # waits for submit() to finish registering this run
            with self._lock:
                self._running.pop(job.name, None)
        logger.info(
            "maintenance job finished",
            extra={
                "extra_fields": {
                    "job": job.name,
                    "elapsed_ms": int((time.perf_counter() - started) * 1000),
                }
            },
        )
        return result

    def is_running(self, name: str) -> bool:
        with self._lock:
            return name in self._running

    def submit(self, name: str) -> Future | None:
        """Start a job now unless it is already running.

        Returns:
            The job's future, or None if a previous run is still in flight.
        """
        job = self.jobs[name]
        with self._lock:
            if name in self._running:
                logger.info(
                    "maintenance job still running, skipped",
                    extra={"extra_fields": {"job": name}},
                )
                return None
            future = self._executor.submit(self._run, job)
            self._running[name] = future
            job.next_run_at = self.clock() + job.interval_seconds
        return future

    def run_pending(self) -> list[Future]:
        """Submit every job whose next run time has come."""
        now = self.clock()
        futures = []
        for name, job in self.jobs.items():
            if job.next_run_at <= now:
                future = self.submit(name)
                if future is not None:
                    futures.append(future)
        return futures

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(self.tick_seconds)

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("MaintenanceWorker already started")
        self._thread = threading.Thread(target=self._loop, name="maintenance-loop", daemon=True)
        self._thread.start()
        logger.info(
            "maintenance worker started",
            extra={"extra_fields": {"jobs": sorted(self.jobs)}},
        )

    def stop(self, *, wait: bool = True) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._executor.shutdown(wait=wait)
        logger.info("maintenance worker stopped")
