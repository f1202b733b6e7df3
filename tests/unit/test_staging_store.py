"""Tests for the idempotent staging store."""

import pytest
from sqlalchemy.exc import SQLAlchemyError


class TestStagingStore:
    """Tests for upsert-on-natural-key behavior."""

    def test_put_and_get(self, store):
        """Test a single record round trip."""
        store.put("employees", "E001", {"emp_code": "E001", "first_name": "Ana"})

        assert store.get("employees", "E001") == {"emp_code": "E001", "first_name": "Ana"}
        assert store.count("employees") == 1

    def test_put_same_key_replaces(self, store):
        """Test a repeated key updates the payload instead of adding a row."""
        store.put("employees", "E001", {"emp_code": "E001", "dept": "Ops"})
        store.put("employees", "E001", {"emp_code": "E001", "dept": "Finance"})

        assert store.count("employees") == 1
        assert store.get("employees", "E001")["dept"] == "Finance"

    def test_put_page_twice_is_idempotent(self, store):
        """Test re-sending a whole page leaves one row per key."""
        page = [("1", {"id": 1}), ("2", {"id": 2}), ("3", {"id": 3})]

        assert store.put_page("attendance", page) == 3
        assert store.put_page("attendance", page) == 3

        assert store.count("attendance") == 3
        assert store.keys("attendance") == ["1", "2", "3"]

    def test_put_page_collapses_duplicate_keys(self, store):
        """Test keys repeated inside one page keep the last payload."""
        written = store.put_page("attendance", [("7", {"v": 1}), ("7", {"v": 2})])

        assert written == 1
        assert store.get("attendance", "7") == {"v": 2}

    def test_empty_page_writes_nothing(self, store):
        assert store.put_page("attendance", []) == 0
        assert store.count("attendance") == 0

    def test_collections_are_separate(self, store):
        """Test the same key in two collections is two records."""
        store.put("employees", "1", {"kind": "employee"})
        store.put("attendance", "1", {"kind": "punch"})

        assert store.count("employees") == 1
        assert store.count("attendance") == 1
        assert store.get("employees", "1") == {"kind": "employee"}

    def test_get_missing_returns_none(self, store):
        assert store.get("employees", "nope") is None

    def test_failed_page_writes_nothing(self, store):
        """Test a page that cannot be written leaves no partial rows."""
        store.put_page("attendance", [("1", {"id": 1})])
        # A set is not JSON serializable, so the whole statement fails
        with pytest.raises((SQLAlchemyError, TypeError)):
            store.put_page("attendance", [("2", {"id": 2}), ("3", {"bad": {1, 2}})])

        assert store.keys("attendance") == ["1"]
