"""Sync job tracking model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped

from app.core.database import Base


class SyncJob(Base):
    """Current run of a named sync job (one row per job name)."""

    __tablename__ = "sync_jobs"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = Column(String(50), nullable=False, unique=True)  # employees, attendance
    state: Mapped[str] = Column(
        String(20), nullable=False, default="idle", index=True
    )  # idle, running, completed, failed
    processed_count: Mapped[int] = Column(Integer, default=0, nullable=False)
    total_count: Mapped[int] = Column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = Column(Text)
    started_at: Mapped[datetime | None] = Column(DateTime)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = Column(DateTime)

    def __repr__(self) -> str:
        return f"<SyncJob {self.name}: {self.state}>"

    @property
    def duration_seconds(self) -> float | None:
        """Calculate run duration in seconds."""
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None
