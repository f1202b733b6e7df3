"""Staging model for raw records pulled from the external system."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped

from app.core.database import Base


class StagingRecord(Base):
    """Raw external record, unique per (collection, external_id).

    The payload is stored exactly as the counterparty returned it; any
    normalization happens downstream of staging.
    """

    __tablename__ = "staging_records"
    __table_args__ = (
        UniqueConstraint("collection", "external_id", name="uq_staging_collection_external_id"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = Column(String(50), nullable=False)  # employees, attendance
    external_id: Mapped[str] = Column(String(255), nullable=False)
    payload: Mapped[dict] = Column(JSON, nullable=False)
    fetched_at: Mapped[datetime] = Column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<StagingRecord {self.collection}:{self.external_id}>"
