"""Tests for retry policy helpers."""

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import AuthError, PermanentRequestError, TransientNetworkError
from app.core.retry import RetryPolicy, compute_backoff, is_retryable_error, is_retryable_status


class TestComputeBackoff:
    """Tests for exponential backoff without jitter."""

    def test_doubles_per_attempt(self):
        assert compute_backoff(1, 2.0, 30.0) == 2.0
        assert compute_backoff(2, 2.0, 30.0) == 4.0
        assert compute_backoff(3, 2.0, 30.0) == 8.0

    def test_capped(self):
        """Test delay never exceeds the cap."""
        assert compute_backoff(10, 3.0, 45.0) == 45.0

    def test_attempt_is_one_based(self):
        with pytest.raises(ValueError):
            compute_backoff(0, 1.0, 10.0)

    def test_policy_delay_for(self):
        policy = RetryPolicy(max_retries=3, backoff_factor=3.0, max_wait=10.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [3.0, 6.0, 10.0]


class TestRetryableErrors:
    """Tests for error classification."""

    def test_status_codes(self):
        assert is_retryable_status(429) is True
        assert is_retryable_status(503) is True
        assert is_retryable_status(599) is True
        assert is_retryable_status(400) is False
        assert is_retryable_status(404) is False

    def test_sync_errors(self):
        assert is_retryable_error(TransientNetworkError("reset")) is True
        assert is_retryable_error(PermanentRequestError("bad")) is False
        assert is_retryable_error(AuthError("denied")) is False

    def test_transport_errors(self):
        """Test timeouts and connection failures are retryable."""
        assert is_retryable_error(httpx.ConnectTimeout("slow")) is True
        assert is_retryable_error(httpx.ConnectError("refused")) is True
        assert is_retryable_error(ConnectionResetError()) is True

    def test_staging_errors_retryable(self):
        error = OperationalError("INSERT INTO staging_records", {}, Exception("database is locked"))
        assert is_retryable_error(error) is True

    def test_programming_errors_not_retryable(self):
        assert is_retryable_error(KeyError("x")) is False
        assert is_retryable_error(RuntimeError("x")) is False
