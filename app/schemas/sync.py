"""Sync-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SyncState = Literal["idle", "running", "completed", "failed"]


class SyncJobStatus(BaseModel):
    """Current status of a named sync job."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    state: SyncState = "idle"
    processed_count: int = 0
    total_count: int = 0
    last_error: str | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None


class SyncRunResponse(BaseModel):
    """Outcome of a synchronous sync trigger."""

    name: str
    processed: int
    total: int
    error: str | None = None
    success: bool


class SyncStatusList(BaseModel):
    """Status of every known sync job."""

    jobs: list[SyncJobStatus] = Field(default_factory=list)
