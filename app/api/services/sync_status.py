"""Status tracker for named sync jobs.

One ``sync_jobs`` row per job name records the current (or last) run.
Only the sync engine that owns a job writes its row; dashboards and the
HTTP API read snapshots.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.services.staging_store import SessionFactory
from app.core.database import get_db_context
from app.models.sync import SyncJob
from app.schemas.sync import SyncJobStatus

logger = logging.getLogger(__name__)


class SyncStatusTracker:
    """Keyed record of each sync job's current run."""

    def __init__(self, session_factory: SessionFactory = get_db_context) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _get_or_create(db: Session, name: str) -> SyncJob:
        job = db.execute(select(SyncJob).where(SyncJob.name == name)).scalar_one_or_none()
        if job is None:
            job = SyncJob(name=name, state="idle", processed_count=0, total_count=0)
            db.add(job)
        return job

    def start_run(self, name: str) -> SyncJobStatus:
        """Mark a job running and reset its counters."""
        now = datetime.utcnow()
        with self._session_factory() as db:
            job = self._get_or_create(db, name)
            job.state = "running"
            job.processed_count = 0
            job.total_count = 0
            job.last_error = None
            job.started_at = now
            job.completed_at = None
            job.updated_at = now
            db.flush()
            snapshot = SyncJobStatus.model_validate(job)
        logger.info(f"Sync job {name} marked running")
        return snapshot

    def update_progress(self, name: str, processed: int, total: int) -> None:
        with self._session_factory() as db:
            job = self._get_or_create(db, name)
            job.processed_count = processed
            job.total_count = total
            job.updated_at = datetime.utcnow()

    def complete_run(self, name: str, processed: int, total: int) -> SyncJobStatus:
        now = datetime.utcnow()
        with self._session_factory() as db:
            job = self._get_or_create(db, name)
            job.state = "completed"
            job.processed_count = processed
            job.total_count = total
            job.completed_at = now
            job.updated_at = now
            db.flush()
            snapshot = SyncJobStatus.model_validate(job)
        logger.info(f"Sync job {name} completed: {processed}/{total} records")
        return snapshot

    def fail_run(self, name: str, error: str) -> SyncJobStatus:
        now = datetime.utcnow()
        with self._session_factory() as db:
            job = self._get_or_create(db, name)
            job.state = "failed"
            job.last_error = error
            job.completed_at = now
            job.updated_at = now
            db.flush()
            snapshot = SyncJobStatus.model_validate(job)
        logger.error(f"Sync job {name} failed: {error}")
        return snapshot

    def reset(self, name: str) -> None:
        """Return a job to idle without touching its counters."""
        with self._session_factory() as db:
            job = self._get_or_create(db, name)
            job.state = "idle"
            job.updated_at = datetime.utcnow()

    def get(self, name: str) -> SyncJobStatus:
        """Snapshot of a job; unknown names report as idle."""
        with self._session_factory() as db:
            job = db.execute(select(SyncJob).where(SyncJob.name == name)).scalar_one_or_none()
            if job is None:
                return SyncJobStatus(name=name)
            return SyncJobStatus.model_validate(job)

    def list_all(self) -> list[SyncJobStatus]:
        with self._session_factory() as db:
            jobs = db.execute(select(SyncJob).order_by(SyncJob.name)).scalars().all()
            return [SyncJobStatus.model_validate(job) for job in jobs]
