"""Performance monitoring for sync runs.

Provides:
- Sync run metrics (records per second, retries, outcome)
- A bounded in-memory history for the metrics endpoint
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class SyncJobMetrics:
    """Metrics for a sync job execution."""

    job_type: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    records_processed: int = 0
    records_excluded: int = 0
    pages_fetched: int = 0
    retries: int = 0
    errors: int = 0
    success: bool = False
    duration_seconds: float = 0.0

    @property
    def records_per_second(self) -> float:
        """Calculate processing rate."""
        if self.duration_seconds > 0:
            return self.records_processed / self.duration_seconds
        return 0.0

    def complete(self) -> None:
        """Mark job as complete and calculate duration."""
        self.end_time = datetime.now(UTC)
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "job_type": self.job_type,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": round(self.duration_seconds, 2),
            "records_processed": self.records_processed,
            "records_excluded": self.records_excluded,
            "pages_fetched": self.pages_fetched,
            "retries": self.retries,
            "errors": self.errors,
            "success": self.success,
            "records_per_second": round(self.records_per_second, 2),
        }


class PerformanceMonitor:
    """Centralized sync performance monitoring."""

    def __init__(self, max_history: int = 1000):
        self._sync_metrics: list[SyncJobMetrics] = []
        self._max_history = max_history

    def start_sync_job(self, job_type: str) -> SyncJobMetrics:
        """Start tracking a sync job.

        Usage:
            metrics = monitor.start_sync_job("attendance")
            try:
                # ... do work ...
                metrics.records_processed = 1000
            finally:
                monitor.record_sync_job(metrics)
        """
        return SyncJobMetrics(job_type=job_type)

    def record_sync_job(self, metrics: SyncJobMetrics) -> None:
        """Record completed sync job metrics."""
        if not metrics.end_time:
            metrics.complete()

        self._sync_metrics.append(metrics)

        if len(self._sync_metrics) > self._max_history:
            self._sync_metrics = self._sync_metrics[-self._max_history:]

        logger.info(
            f"Sync job {metrics.job_type} {'succeeded' if metrics.success else 'failed'}: "
            f"{metrics.records_processed} records in {metrics.duration_seconds:.2f}s "
            f"({metrics.records_per_second:.2f} rec/s, {metrics.retries} retries)"
        )

    def get_sync_metrics(
        self,
        job_type: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Get sync job metrics with optional filtering."""
        metrics = self._sync_metrics

        if job_type:
            metrics = [m for m in metrics if m.job_type == job_type]

        return [m.to_dict() for m in metrics[-limit:]]

    def get_performance_summary(self) -> dict[str, Any]:
        """Get aggregate sync performance."""
        if self._sync_metrics:
            avg_records_per_second = sum(
                m.records_per_second for m in self._sync_metrics
            ) / len(self._sync_metrics)
            avg_duration = sum(
                m.duration_seconds for m in self._sync_metrics
            ) / len(self._sync_metrics)
            total_records = sum(m.records_processed for m in self._sync_metrics)
            failed_runs = sum(1 for m in self._sync_metrics if not m.success)
            total_retries = sum(m.retries for m in self._sync_metrics)
        else:
            avg_records_per_second = 0.0
            avg_duration = 0.0
            total_records = 0
            failed_runs = 0
            total_retries = 0

        return {
            "sync_jobs": {
                "total_runs": len(self._sync_metrics),
                "failed_runs": failed_runs,
                "avg_records_per_second": round(avg_records_per_second, 2),
                "avg_duration_seconds": round(avg_duration, 2),
                "total_records_processed": total_records,
                "total_retries": total_retries,
            },
            "timestamp": datetime.now(UTC).isoformat(),
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._sync_metrics.clear()
        logger.info("Performance metrics reset")
