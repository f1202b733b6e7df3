"""Tests for the supervised sync scheduler."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import SyncAlreadyRunningError
from app.core.scheduler import HEARTBEAT_JOB_ID, SyncScheduler, sync_interval_minutes
from app.core.sync.collections import SyncWindow
from app.core.sync.engine import SyncResult


@pytest.fixture
def mock_engine():
    engine = MagicMock()
    engine.job_names = ["employees", "attendance"]
    engine.sync_collection = AsyncMock(
        side_effect=lambda name, window=None: SyncResult(name=name, processed=4, total=4)
    )
    return engine


@pytest.fixture
def heartbeat():
    return MagicMock()


class TestSyncIntervals:
    """Tests for per-job intervals."""

    def test_intervals_from_settings(self, settings):
        assert sync_interval_minutes(settings, "employees") == settings.employee_sync_interval_minutes
        assert sync_interval_minutes(settings, "attendance") == settings.attendance_sync_interval_minutes


class TestRunSync:
    """Tests for the scheduled job entry point."""

    @pytest.mark.asyncio
    async def test_success_records_result_and_beats(self, mock_engine, heartbeat, settings):
        scheduler = SyncScheduler(mock_engine, settings, heartbeat=heartbeat)

        result = await scheduler.run_sync("attendance")

        assert result.processed == 4
        assert scheduler.last_results["attendance"] is result
        heartbeat.assert_called_once()
        assert scheduler.last_beat is not None

    @pytest.mark.asyncio
    async def test_failed_run_is_not_a_crash(self, mock_engine, settings):
        """Test a run that failed cleanly does not reach on_failure."""
        mock_engine.sync_collection = AsyncMock(
            return_value=SyncResult(name="employees", processed=0, total=0, error="503")
        )
        on_failure = MagicMock()
        scheduler = SyncScheduler(mock_engine, settings, on_failure=on_failure)

        result = await scheduler.run_sync("employees")

        assert result.success is False
        on_failure.assert_not_called()

    @pytest.mark.asyncio
    async def test_overlapping_run_skipped(self, mock_engine, heartbeat, settings):
        mock_engine.sync_collection = AsyncMock(side_effect=SyncAlreadyRunningError("attendance"))
        on_failure = MagicMock()
        scheduler = SyncScheduler(mock_engine, settings, heartbeat=heartbeat, on_failure=on_failure)

        assert await scheduler.run_sync("attendance") is None
        on_failure.assert_not_called()
        heartbeat.assert_called_once()

    @pytest.mark.asyncio
    async def test_crash_reported(self, mock_engine, settings):
        """Test unexpected errors are handed to the failure callback."""
        error = RuntimeError("engine bug")
        mock_engine.sync_collection = AsyncMock(side_effect=error)
        on_failure = MagicMock()
        scheduler = SyncScheduler(mock_engine, settings, on_failure=on_failure)

        assert await scheduler.run_sync("employees") is None
        on_failure.assert_called_once_with(error)

    @pytest.mark.asyncio
    async def test_crash_raised_without_callback(self, mock_engine, settings):
        mock_engine.sync_collection = AsyncMock(side_effect=RuntimeError("engine bug"))
        scheduler = SyncScheduler(mock_engine, settings)

        with pytest.raises(RuntimeError):
            await scheduler.run_sync("employees")

    @pytest.mark.asyncio
    async def test_manual_trigger_passes_window(self, mock_engine, settings):
        scheduler = SyncScheduler(mock_engine, settings)
        window = SyncWindow(start=datetime(2024, 3, 1), end=datetime(2024, 3, 2))

        result = await scheduler.trigger_manual_sync("attendance", window)

        mock_engine.sync_collection.assert_awaited_once_with("attendance", window)
        assert scheduler.last_results["attendance"] is result

    @pytest.mark.asyncio
    async def test_manual_trigger_propagates_conflict(self, mock_engine, settings):
        mock_engine.sync_collection = AsyncMock(side_effect=SyncAlreadyRunningError("attendance"))
        scheduler = SyncScheduler(mock_engine, settings)

        with pytest.raises(SyncAlreadyRunningError):
            await scheduler.trigger_manual_sync("attendance")


class TestSchedulerLifecycle:
    """Tests for start/stop/pause with a real APScheduler."""

    @pytest.mark.asyncio
    async def test_start_registers_jobs(self, mock_engine, heartbeat, settings):
        scheduler = SyncScheduler(mock_engine, settings, heartbeat=heartbeat)

        await scheduler.start()
        try:
            assert scheduler.running is True
            assert scheduler.is_healthy() is True
            ids = [job["id"] for job in scheduler.get_jobs()]
            assert sorted(ids) == sorted(["sync_employees", "sync_attendance", HEARTBEAT_JOB_ID])
            heartbeat.assert_called_once()
        finally:
            await scheduler.stop()

        assert scheduler.running is False
        assert scheduler.get_jobs() == []

    @pytest.mark.asyncio
    async def test_restartable(self, mock_engine, settings):
        """Test the service can be stopped and started again."""
        scheduler = SyncScheduler(mock_engine, settings)

        await scheduler.start()
        await scheduler.stop()
        await scheduler.start()

        assert scheduler.running is True
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_pause_resume(self, mock_engine, settings):
        scheduler = SyncScheduler(mock_engine, settings)
        await scheduler.start()

        await scheduler.pause()
        assert scheduler.paused is True

        await scheduler.resume()
        assert scheduler.paused is False
        await scheduler.stop()
