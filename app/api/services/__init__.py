"""API services module."""

from app.api.services.biotime_client import BioTimeClient
from app.api.services.staging_store import StagingStore
from app.api.services.sync_status import SyncStatusTracker

__all__ = [
    "BioTimeClient",
    "StagingStore",
    "SyncStatusTracker",
]
