"""Database models module."""

from app.models.staging import StagingRecord
from app.models.sync import SyncJob

__all__ = [
    "StagingRecord",
    "SyncJob",
]
