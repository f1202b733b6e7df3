"""Core module initialization."""

from app.core.config import Settings, get_settings
from app.core.database import (
    Base,
    check_database,
    get_db_context,
    init_db,
)
from app.core.exceptions import (
    AttendanceSyncError,
    SupervisorError,
    SyncError,
)
from app.core.retry import RetryPolicy, compute_backoff, is_retryable_error

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "check_database",
    "get_db_context",
    "init_db",
    # Errors
    "AttendanceSyncError",
    "SyncError",
    "SupervisorError",
    # Retry
    "RetryPolicy",
    "compute_backoff",
    "is_retryable_error",
]
