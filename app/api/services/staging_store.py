"""Durable, idempotent staging area for raw external records.

Every write goes through :meth:`StagingStore.put_page` (``put`` is a
one-record page), which upserts on ``(collection, external_id)``. Re-sending
a page, or re-scanning a whole window, therefore never creates duplicates.
"""

import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.database import get_db_context
from app.models.staging import StagingRecord

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


class StagingStore:
    """Append/upsert-only store keyed on the external natural key."""

    def __init__(self, session_factory: SessionFactory = get_db_context) -> None:
        self._session_factory = session_factory

    def put(self, collection: str, natural_key: str, payload: dict[str, Any]) -> None:
        """Insert or replace a single record."""
        self.put_page(collection, [(natural_key, payload)])

    def put_page(
        self,
        collection: str,
        records: Iterable[tuple[str, dict[str, Any]]],
    ) -> int:
        """Upsert one page of records in a single transaction.

        Either every row of the page is written or none is. Keys repeated
        within the page collapse to their last occurrence.

        Returns:
            Number of distinct keys written
        """
        now = datetime.utcnow()
        rows: dict[str, dict[str, Any]] = {}
        for natural_key, payload in records:
            key = str(natural_key)
            rows[key] = {
                "collection": collection,
                "external_id": key,
                "payload": payload,
                "fetched_at": now,
                "updated_at": now,
            }

        if not rows:
            return 0

        with self._session_factory() as db:
            stmt = self._upsert_statement(db, list(rows.values()))
            db.execute(stmt)

        logger.debug(f"Staged {len(rows)} {collection} records")
        return len(rows)

    @staticmethod
    def _upsert_statement(db: Session, values: list[dict[str, Any]]):
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            raise NotImplementedError(f"Upsert not supported for dialect {dialect}")

        stmt = insert(StagingRecord).values(values)
        return stmt.on_conflict_do_update(
            index_elements=["collection", "external_id"],
            set_={
                "payload": stmt.excluded.payload,
                "updated_at": stmt.excluded.updated_at,
            },
        )

    def get(self, collection: str, natural_key: str) -> dict[str, Any] | None:
        """Return the stored payload for a key, if any."""
        with self._session_factory() as db:
            record = db.execute(
                select(StagingRecord.payload).where(
                    StagingRecord.collection == collection,
                    StagingRecord.external_id == str(natural_key),
                )
            ).scalar_one_or_none()
        return record

    def count(self, collection: str) -> int:
        with self._session_factory() as db:
            return db.execute(
                select(func.count(StagingRecord.id)).where(
                    StagingRecord.collection == collection
                )
            ).scalar_one()

    def keys(self, collection: str) -> list[str]:
        with self._session_factory() as db:
            return list(
                db.execute(
                    select(StagingRecord.external_id)
                    .where(StagingRecord.collection == collection)
                    .order_by(StagingRecord.external_id)
                ).scalars()
            )
