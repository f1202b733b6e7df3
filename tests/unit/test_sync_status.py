"""Tests for the sync job status tracker."""


class TestSyncStatusTracker:
    """Tests for job state transitions."""

    def test_unknown_job_is_idle(self, tracker):
        status = tracker.get("employees")
        assert status.state == "idle"
        assert status.processed_count == 0
        assert status.updated_at is None

    def test_start_run_resets_counters(self, tracker):
        """Test a new run clears the previous run's progress and error."""
        tracker.start_run("attendance")
        tracker.update_progress("attendance", 40, 100)
        tracker.fail_run("attendance", "boom")

        status = tracker.start_run("attendance")

        assert status.state == "running"
        assert status.processed_count == 0
        assert status.total_count == 0
        assert status.last_error is None

    def test_progress_then_complete(self, tracker):
        tracker.start_run("attendance")
        tracker.update_progress("attendance", 2, 6)
        assert tracker.get("attendance").processed_count == 2

        status = tracker.complete_run("attendance", 6, 6)

        assert status.state == "completed"
        assert (status.processed_count, status.total_count) == (6, 6)

    def test_fail_keeps_progress(self, tracker):
        """Test a failed run reports how far it got."""
        tracker.start_run("employees")
        tracker.update_progress("employees", 4, 10)

        status = tracker.fail_run("employees", "page 3 timed out")

        assert status.state == "failed"
        assert status.last_error == "page 3 timed out"
        assert status.processed_count == 4

    def test_reset(self, tracker):
        tracker.start_run("employees")
        tracker.reset("employees")
        assert tracker.get("employees").state == "idle"

    def test_list_all_sorted(self, tracker):
        tracker.start_run("employees")
        tracker.start_run("attendance")
        assert [s.name for s in tracker.list_all()] == ["attendance", "employees"]
