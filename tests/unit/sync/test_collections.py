"""Tests for collection definitions and record rules."""

from datetime import datetime, timedelta

from app.core.sync.collections import (
    SyncWindow,
    attendance_key,
    build_collections,
    employee_key,
    is_lock_device_record,
)


class TestRecordRules:
    """Tests for natural keys and exclusion."""

    def test_employee_key_prefers_code(self):
        assert employee_key({"emp_code": "E042", "id": 7}) == "E042"
        assert employee_key({"emp_code": 42}) == "42"

    def test_employee_key_falls_back_to_id(self):
        assert employee_key({"emp_code": "", "id": 7}) == "id:7"
        assert employee_key({"first_name": "Ana"}) is None

    def test_attendance_key(self):
        """Test transactions key on id, else on employee and punch time."""
        assert attendance_key({"id": 991}) == "991"
        assert attendance_key({
            "emp_code": "E1",
            "punch_time": "2024-03-01 08:00:00",
            "punch_state": "0",
        }) == "E1|2024-03-01 08:00:00|0"
        assert attendance_key({"emp_code": "E1"}) is None

    def test_lock_devices_excluded(self):
        assert is_lock_device_record({"terminal_alias": "Main Door LOCK"}) is True
        assert is_lock_device_record({"terminal_sn": "lock-0021"}) is True
        assert is_lock_device_record({"terminal_alias": "Front Desk"}) is False
        assert is_lock_device_record({}) is False


class TestSyncWindow:
    """Tests for sync windows."""

    def test_trailing(self):
        now = datetime(2024, 3, 8)
        window = SyncWindow.trailing(7, now=now)
        assert window.start == now - timedelta(days=7)
        assert window.end == now
        assert window.is_valid is True

    def test_inverted_window_invalid(self):
        now = datetime(2024, 3, 8)
        assert SyncWindow(start=now, end=now - timedelta(seconds=1)).is_valid is False


class TestBuildCollections:
    """Tests for per-collection settings."""

    def test_collections_follow_settings(self, settings):
        collections = build_collections(settings)

        assert list(collections) == ["employees", "attendance"]
        employees = collections["employees"]
        attendance = collections["attendance"]
        assert employees.page_size == settings.employee_page_size
        assert employees.windowed is False
        assert attendance.windowed is True
        assert attendance.retry_policy.backoff_factor == settings.attendance_backoff_base_seconds
        assert attendance.retry_policy.max_wait == settings.attendance_backoff_cap_seconds
        assert attendance.retry_policy.max_retries == settings.sync_max_retries

    def test_page_params(self, settings):
        attendance = build_collections(settings)["attendance"]
        window = SyncWindow(start=datetime(2024, 1, 1), end=datetime(2024, 1, 2))

        params = attendance.page_params(3, window)

        assert params["page"] == 3
        assert params["page_size"] == settings.attendance_page_size
        assert params["start_time"] == "2024-01-01 00:00:00"
