"""Background job scheduler for data synchronization.

The scheduler is the critical supervised service: it runs every sync job
on its interval and heartbeats the supervisor so the watchdog can tell a
live scheduler from a wedged one.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import Settings, get_settings
from app.core.exceptions import SyncAlreadyRunningError
from app.core.sync.collections import SyncWindow
from app.core.sync.engine import SyncEngine, SyncResult

logger = logging.getLogger(__name__)

HEARTBEAT_JOB_ID = "scheduler_heartbeat"


def sync_interval_minutes(settings: Settings, job_name: str) -> int:
    """Expected minutes between runs of a sync job."""
    intervals = {
        "employees": settings.employee_sync_interval_minutes,
        "attendance": settings.attendance_sync_interval_minutes,
    }
    return intervals.get(job_name, settings.attendance_sync_interval_minutes)


class SyncScheduler:
    """Supervised wrapper around an APScheduler ``AsyncIOScheduler``.

    A fresh scheduler is built on every start so the service can be
    stopped and restarted by the supervisor any number of times.
    """

    def __init__(
        self,
        engine: SyncEngine,
        settings: Settings | None = None,
        heartbeat: Callable[[], None] | None = None,
        on_failure: Callable[[BaseException], Any] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._engine = engine
        self._heartbeat = heartbeat
        self._on_failure = on_failure
        self._scheduler: AsyncIOScheduler | None = None
        self._paused = False
        self.last_results: dict[str, SyncResult] = {}
        self.last_beat: datetime | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def paused(self) -> bool:
        return self._paused

    def _beat(self) -> None:
        self.last_beat = datetime.utcnow()
        if self._heartbeat is not None:
            self._heartbeat()

    def _build(self) -> AsyncIOScheduler:
        scheduler = AsyncIOScheduler()

        for name in self._engine.job_names:
            scheduler.add_job(
                self.run_sync,
                trigger=IntervalTrigger(minutes=sync_interval_minutes(self._settings, name)),
                args=[name],
                id=f"sync_{name}",
                name=f"Sync {name.title()}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        scheduler.add_job(
            self._beat,
            trigger=IntervalTrigger(seconds=self._settings.heartbeat_check_interval_seconds),
            id=HEARTBEAT_JOB_ID,
            name="Scheduler Heartbeat",
            replace_existing=True,
        )
        return scheduler

    async def start(self) -> None:
        if self.running:
            return
        self._scheduler = self._build()
        self._scheduler.start()
        self._paused = False
        self._beat()
        logger.info(f"Scheduler started with {len(self._scheduler.get_jobs())} jobs")

    async def stop(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    async def pause(self) -> None:
        if self._scheduler is not None and not self._paused:
            self._scheduler.pause()
            self._paused = True
            logger.info("Scheduler paused")

    async def resume(self) -> None:
        if self._scheduler is not None and self._paused:
            self._scheduler.resume()
            self._paused = False
            logger.info("Scheduler resumed")

    def is_healthy(self) -> bool:
        return self.running

    async def run_sync(self, job_name: str) -> SyncResult | None:
        """Scheduled entry point for one sync job.

        Runs that fail with a sync error are reported through the result and
        the status tracker. Anything else is handed to ``on_failure`` so the
        supervisor can apply its restart policy.
        """
        logger.info(f"Starting scheduled {job_name} sync at {datetime.utcnow()}")
        try:
            result = await self._engine.sync_collection(job_name)
        except SyncAlreadyRunningError:
            logger.info(f"Scheduled {job_name} sync skipped: previous run still in progress")
            return None
        except Exception as e:
            logger.error(f"Fatal error during {job_name} sync: {e}", exc_info=True)
            if self._on_failure is None:
                raise
            self._on_failure(e)
            return None
        finally:
            self._beat()

        self.last_results[job_name] = result
        if result.success:
            logger.info(f"{job_name} sync completed: {result.processed}/{result.total} records")
        else:
            logger.warning(f"{job_name} sync failed: {result.error}")
        return result

    async def trigger_manual_sync(self, job_name: str, window: SyncWindow | None = None) -> SyncResult:
        """Run a sync job immediately, outside its schedule.

        Raises:
            UnknownCollectionError: No such job
            InvalidSyncWindowError: The window ends before it starts
            SyncAlreadyRunningError: The job is already running
        """
        logger.info(f"Manual {job_name} sync triggered")
        try:
            result = await self._engine.sync_collection(job_name, window)
        finally:
            self._beat()
        self.last_results[job_name] = result
        return result

    def get_jobs(self) -> list[dict[str, Any]]:
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self._scheduler.get_jobs()
        ]
