"""Pydantic schemas for API request/response validation."""

from app.schemas.service import (
    ManagerStatus,
    ServiceActionResponse,
    ServicesHealthResponse,
    ServiceStatusResponse,
    SystemHealth,
)
from app.schemas.sync import (
    SyncJobStatus,
    SyncRunResponse,
    SyncState,
    SyncStatusList,
)

__all__ = [
    # Sync
    "SyncState",
    "SyncJobStatus",
    "SyncRunResponse",
    "SyncStatusList",
    # Services
    "ServiceStatusResponse",
    "ManagerStatus",
    "SystemHealth",
    "ServicesHealthResponse",
    "ServiceActionResponse",
]
