"""Alerting for failed and stale sync jobs.

A non-critical supervised service. It looks at the tracker on a fixed
interval and turns failed or overdue jobs into notifications. Under
resource pressure the supervisor pauses it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from app.api.services.sync_status import SyncStatusTracker
from app.core.config import Settings, get_settings
from app.core.notifications import (
    Notification,
    Severity,
    create_retry_url,
    record_notification_sent,
    send_notification,
    should_notify,
)
from app.core.scheduler import sync_interval_minutes
from app.schemas.sync import SyncJobStatus

logger = logging.getLogger(__name__)

Notifier = Callable[[Notification], Awaitable[dict[str, Any]]]


class SyncAlertService:
    """Periodic checker that raises sync failure and stale sync alerts."""

    def __init__(
        self,
        tracker: SyncStatusTracker,
        job_names: list[str],
        settings: Settings | None = None,
        notifier: Notifier = send_notification,
    ) -> None:
        self._settings = settings or get_settings()
        self._tracker = tracker
        self._job_names = list(job_names)
        self._notifier = notifier
        self._task: asyncio.Task | None = None
        self._paused = False
        self.last_check: datetime | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        return self._paused

    async def start(self) -> None:
        if self.running:
            return
        self._paused = False
        self._task = asyncio.create_task(self._run(), name="sync-alerts")
        logger.info(
            f"Sync alert service started (every {self._settings.alert_check_interval_minutes} minutes)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sync alert service stopped")

    async def pause(self) -> None:
        self._paused = True

    async def resume(self) -> None:
        self._paused = False

    def is_healthy(self) -> bool:
        return self.running

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._settings.alert_check_interval_minutes * 60)
            if self._paused:
                logger.debug("Sync alert check skipped while paused")
                continue
            await self.check_once()

    # ==========================================================================
    # Checks
    # ==========================================================================

    def _failure_alert(self, status: SyncJobStatus) -> Notification:
        return Notification(
            title=f"{status.name.title()} sync failed",
            message=(
                f"The last {status.name} sync failed after processing "
                f"{status.processed_count} of {status.total_count} records."
            ),
            severity=Severity.ERROR,
            job_type=status.name,
            error_message=status.last_error,
            retry_url=create_retry_url(status.name),
        )

    def _stale_alert(self, status: SyncJobStatus, now: datetime) -> Notification | None:
        expected = sync_interval_minutes(self._settings, status.name)
        threshold = timedelta(minutes=expected * self._settings.stale_sync_multiplier)

        if status.updated_at is None:
            return Notification(
                title=f"{status.name.title()} sync has never run",
                message=f"Expected interval: {expected} minutes, but no runs found",
                severity=Severity.WARNING,
                job_type=status.name,
            )

        since_update = now - status.updated_at
        if since_update <= threshold:
            return None

        minutes_overdue = since_update.total_seconds() / 60
        activity = "made progress" if status.state == "running" else "run"
        return Notification(
            title=f"{status.name.title()} sync is stale",
            message=(
                f"Last {activity} {minutes_overdue:.0f} minutes ago "
                f"(expected every {expected} minutes)"
            ),
            severity=Severity.ERROR if minutes_overdue > expected * 3 else Severity.WARNING,
            job_type=status.name,
            metadata={"state": status.state, "last_update": status.updated_at.isoformat()},
        )

    def collect_alerts(self, now: datetime | None = None) -> list[tuple[str, Notification]]:
        """Alerts warranted by the current tracker state, as (alert_type, notification)."""
        now = now or datetime.utcnow()
        alerts: list[tuple[str, Notification]] = []
        for name in self._job_names:
            status = self._tracker.get(name)
            if status.state == "failed":
                alerts.append(("sync_failure", self._failure_alert(status)))
                continue
            stale = self._stale_alert(status, now)
            if stale is not None:
                alerts.append(("stale_sync", stale))
        return alerts

    async def check_once(self, now: datetime | None = None) -> list[Notification]:
        """Run one check and deliver the alerts that are out of cooldown."""
        self.last_check = now or datetime.utcnow()
        sent: list[Notification] = []

        for alert_type, notification in self.collect_alerts(self.last_check):
            logger.warning(f"Sync alert: {notification.title}")
            if not should_notify(alert_type, notification.job_type):
                continue
            result = await self._notifier(notification)
            if result.get("success"):
                record_notification_sent(alert_type, notification.job_type)
                sent.append(notification)

        return sent
