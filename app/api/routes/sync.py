"""Sync job management API routes."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.api.dependencies import get_sync_engine, get_sync_scheduler
from app.core.config import get_settings
from app.core.exceptions import (
    InvalidSyncWindowError,
    SyncAlreadyRunningError,
    UnknownCollectionError,
)
from app.core.scheduler import SyncScheduler
from app.core.sync.collections import SyncWindow
from app.core.sync.engine import SyncEngine
from app.schemas.sync import SyncJobStatus, SyncRunResponse, SyncStatusList

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _require_job(engine: SyncEngine, job_name: str) -> None:
    if job_name not in engine.job_names:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown sync job: {job_name}",
        )


@router.get("/status", response_model=SyncStatusList)
async def get_all_sync_status(engine: SyncEngine = Depends(get_sync_engine)):
    """Status of every configured sync job."""
    return SyncStatusList(jobs=[engine.tracker.get(name) for name in engine.job_names])


@router.get("/metrics")
async def get_sync_metrics(
    job_name: str | None = Query(default=None, max_length=50),
    limit: int = Query(default=20, ge=1, le=1000),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Recent run metrics and aggregate throughput."""
    return {
        "summary": engine.monitor.get_performance_summary(),
        "runs": engine.monitor.get_sync_metrics(job_type=job_name, limit=limit),
    }


@router.get("/{job_name}/status", response_model=SyncJobStatus)
async def get_sync_status(
    job_name: str = Path(..., min_length=1, max_length=50, pattern=r"^[a-z_]+$"),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Current (or last) run of one sync job."""
    _require_job(engine, job_name)
    return engine.tracker.get(job_name)


@router.post("/{job_name}", response_model=SyncRunResponse)
async def trigger_sync(
    job_name: str = Path(..., min_length=1, max_length=50, pattern=r"^[a-z_]+$"),
    start: datetime | None = Query(default=None, description="Window start"),
    end: datetime | None = Query(default=None, description="Window end"),
    engine: SyncEngine = Depends(get_sync_engine),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Run a sync job now and wait for it to finish."""
    _require_job(engine, job_name)

    start, end = _naive_utc(start), _naive_utc(end)
    window = None
    if start is not None or end is not None:
        end = end or datetime.utcnow()
        start = start or end - timedelta(days=get_settings().sync_default_window_days)
        window = SyncWindow(start=start, end=end)

    try:
        result = await scheduler.trigger_manual_sync(job_name, window)
    except UnknownCollectionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except SyncAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except InvalidSyncWindowError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return SyncRunResponse(**result.to_dict())
