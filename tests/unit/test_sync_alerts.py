"""Tests for sync failure and staleness alerts."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.api.services.sync_alerts import SyncAlertService
from app.core.notifications import Severity

JOBS = ["employees", "attendance"]


@pytest.fixture
def notification_settings():
    settings = MagicMock()
    settings.notification_enabled = True
    settings.notification_cooldown_minutes = 30
    settings.host = "localhost"
    settings.port = 8000
    with patch("app.core.notifications.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def notifier():
    return AsyncMock(return_value={"success": True})


@pytest.fixture
def alerts(tracker, settings, notifier):
    return SyncAlertService(tracker, JOBS, settings, notifier=notifier)


class TestCollectAlerts:
    """Tests for deciding which jobs need attention."""

    def test_never_run(self, alerts, notification_settings):
        found = alerts.collect_alerts()

        assert [alert_type for alert_type, _ in found] == ["stale_sync", "stale_sync"]
        assert all("never run" in n.title for _, n in found)
        assert all(n.severity is Severity.WARNING for _, n in found)

    def test_failed_run(self, alerts, tracker, notification_settings):
        """Test a failed job raises a failure alert with a retry link."""
        tracker.complete_run("employees", 10, 10)
        tracker.start_run("attendance")
        tracker.fail_run("attendance", "page 4 timed out after 3 attempts")

        found = alerts.collect_alerts()

        assert len(found) == 1
        alert_type, notification = found[0]
        assert alert_type == "sync_failure"
        assert notification.severity is Severity.ERROR
        assert notification.error_message == "page 4 timed out after 3 attempts"
        assert notification.retry_url == "http://localhost:8000/api/v1/sync/attendance"

    def test_recent_runs_quiet(self, alerts, tracker, notification_settings):
        tracker.complete_run("employees", 10, 10)
        tracker.complete_run("attendance", 5, 5)

        assert alerts.collect_alerts() == []

    def test_stale_severity(self, alerts, tracker, settings, notification_settings):
        """Test overdue jobs warn, and badly overdue jobs are errors."""
        tracker.complete_run("employees", 10, 10)
        tracker.complete_run("attendance", 5, 5)
        interval = settings.attendance_sync_interval_minutes
        threshold = interval * settings.stale_sync_multiplier
        now = datetime.utcnow()

        warning = alerts.collect_alerts(now + timedelta(minutes=threshold + 1))
        error = alerts.collect_alerts(now + timedelta(minutes=interval * 3 + 5))

        assert [(t, n.job_type, n.severity) for t, n in warning] == [
            ("stale_sync", "attendance", Severity.WARNING)
        ]
        assert [(t, n.job_type, n.severity) for t, n in error] == [
            ("stale_sync", "attendance", Severity.ERROR)
        ]


class TestCheckOnce:
    """Tests for delivery and cooldown."""

    @pytest.mark.asyncio
    async def test_delivers_and_respects_cooldown(self, alerts, tracker, notifier, notification_settings):
        tracker.complete_run("employees", 10, 10)
        tracker.fail_run("attendance", "boom")

        first = await alerts.check_once()
        second = await alerts.check_once()

        assert [n.job_type for n in first] == ["attendance"]
        assert second == []
        notifier.assert_awaited_once()
        assert alerts.last_check is not None

    @pytest.mark.asyncio
    async def test_failed_delivery_retried_next_check(self, alerts, tracker, notifier, notification_settings):
        """Test an undelivered alert does not start a cooldown."""
        tracker.complete_run("employees", 10, 10)
        tracker.fail_run("attendance", "boom")
        notifier.return_value = {"success": False, "error": "Teams webhook request failed"}

        assert await alerts.check_once() == []
        assert await alerts.check_once() == []

        assert notifier.await_count == 2

    @pytest.mark.asyncio
    async def test_notifications_disabled(self, alerts, notifier, notification_settings):
        notification_settings.notification_enabled = False

        assert await alerts.check_once() == []
        notifier.assert_not_called()


class TestAlertServiceLifecycle:
    """Tests for the supervised service surface."""

    @pytest.mark.asyncio
    async def test_start_pause_stop(self, alerts):
        await alerts.start()
        assert alerts.is_healthy() is True

        await alerts.pause()
        assert alerts.paused is True
        await alerts.resume()
        assert alerts.paused is False

        await alerts.stop()
        assert alerts.is_healthy() is False
