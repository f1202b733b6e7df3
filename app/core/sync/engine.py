"""Paginated, retrying synchronization of external collections into staging.

A run walks the counterparty's pages strictly in cursor order. Transient
failures (timeouts, resets, 5xx) re-fetch the same page after an
exponential backoff; permanent failures and rejected credentials abort
immediately. Every page is upserted into the staging store as one
transaction, so a failed run can always be repeated from page 1 without
duplicating records. The cursor itself is never persisted.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from app.api.services.biotime_client import BioTimeClient
from app.api.services.staging_store import StagingStore
from app.api.services.sync_status import SyncStatusTracker
from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AuthError,
    InvalidSyncWindowError,
    PermanentRequestError,
    SyncAlreadyRunningError,
    TransientNetworkError,
    UnknownCollectionError,
)
from app.core.monitoring import PerformanceMonitor, SyncJobMetrics
from app.core.retry import is_retryable_error
from app.core.sync.collections import CollectionSpec, Record, SyncWindow, build_collections

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one ``sync_collection`` run."""

    name: str
    processed: int
    total: int
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "processed": self.processed,
            "total": self.total,
            "error": self.error,
            "success": self.success,
        }


def extract_records(envelope: dict[str, Any]) -> list[Record]:
    """Pull the record list out of a page envelope.

    The vendor answers with ``data`` on some endpoints and ``results`` on
    others. An empty envelope means there is nothing more to read.
    """
    if not envelope:
        return []

    if "data" in envelope:
        records = envelope["data"]
    elif "results" in envelope:
        records = envelope["results"]
    else:
        raise PermanentRequestError(
            f"Page envelope has no record list (keys: {sorted(envelope)})"
        )

    if records is None:
        return []
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise PermanentRequestError("Page envelope record list is malformed")
    return records


def has_more_pages(envelope: dict[str, Any], record_count: int, page_size: int) -> bool:
    """Follow the ``next`` link when present, else treat a short page as last."""
    if "next" in envelope:
        return bool(envelope["next"])
    return record_count >= page_size


class SyncEngine:
    """Runs sync jobs for the configured collections.

    At most one run per job name is in flight; a second concurrent request
    for the same job is rejected with :class:`SyncAlreadyRunningError`.
    """

    def __init__(
        self,
        client: BioTimeClient,
        store: StagingStore,
        tracker: SyncStatusTracker,
        settings: Settings | None = None,
        collections: dict[str, CollectionSpec] | None = None,
        monitor: PerformanceMonitor | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._store = store
        self._tracker = tracker
        self._collections = collections or build_collections(self._settings)
        self._monitor = monitor or PerformanceMonitor()
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {name: asyncio.Lock() for name in self._collections}

    @property
    def job_names(self) -> list[str]:
        return list(self._collections)

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    @property
    def tracker(self) -> SyncStatusTracker:
        return self._tracker

    def is_running(self, job_name: str) -> bool:
        lock = self._locks.get(job_name)
        return bool(lock and lock.locked())

    def _resolve_window(self, spec: CollectionSpec, window: SyncWindow | None) -> SyncWindow | None:
        if window is not None and not window.is_valid:
            raise InvalidSyncWindowError(
                f"Window end {window.end.isoformat()} is before start {window.start.isoformat()}"
            )
        if window is None and spec.windowed:
            return SyncWindow.trailing(self._settings.sync_default_window_days)
        return window

    async def sync_collection(self, job_name: str, window: SyncWindow | None = None) -> SyncResult:
        """Fetch every page of a collection for a window into staging.

        Raises:
            UnknownCollectionError: No collection is registered as ``job_name``
            InvalidSyncWindowError: ``window.end`` precedes ``window.start``
            SyncAlreadyRunningError: A run for ``job_name`` is in flight
        """
        spec = self._collections.get(job_name)
        if spec is None:
            raise UnknownCollectionError(job_name)

        window = self._resolve_window(spec, window)

        lock = self._locks[job_name]
        if lock.locked():
            logger.warning(f"Rejected sync of {job_name}: a run is already in progress")
            raise SyncAlreadyRunningError(job_name)

        async with lock:
            return await self._run(spec, window)

    async def sync_all(self) -> dict[str, SyncResult]:
        """Run every collection once, in registration order."""
        results: dict[str, SyncResult] = {}
        for name in self._collections:
            try:
                results[name] = await self.sync_collection(name)
            except SyncAlreadyRunningError:
                logger.info(f"Skipping {name}: already running")
        return results

    async def _run(self, spec: CollectionSpec, window: SyncWindow | None) -> SyncResult:
        metrics = self._monitor.start_sync_job(spec.name)
        self._tracker.start_run(spec.name)

        if window is not None:
            logger.info(
                f"Syncing {spec.name} from {window.start.isoformat()} to {window.end.isoformat()} "
                f"(page size {spec.page_size})"
            )
        else:
            logger.info(f"Syncing {spec.name} (page size {spec.page_size})")

        result = SyncResult(name=spec.name, processed=0, total=0)
        try:
            await self._client.authenticate()
            await self._fetch_all_pages(spec, window, metrics, result)
        except (AuthError, PermanentRequestError, TransientNetworkError) as e:
            self._fail(spec, metrics, result, str(e))
        except Exception as e:
            self._fail(spec, metrics, result, f"Unexpected error: {e}")
            raise
        else:
            metrics.success = True
            self._tracker.complete_run(spec.name, result.processed, result.total)
        finally:
            metrics.records_processed = result.processed
            self._monitor.record_sync_job(metrics)

        return result

    def _fail(
        self,
        spec: CollectionSpec,
        metrics: SyncJobMetrics,
        result: SyncResult,
        message: str,
    ) -> SyncResult:
        metrics.success = False
        result.error = message
        self._tracker.fail_run(spec.name, message)
        return result

    async def _fetch_all_pages(
        self,
        spec: CollectionSpec,
        window: SyncWindow | None,
        metrics: SyncJobMetrics,
        result: SyncResult,
    ) -> None:
        """Walk pages in order, accumulating counts onto ``result``."""
        policy = spec.retry_policy
        page = 1
        consecutive_errors = 0

        while True:
            try:
                envelope = await self._client.get_page(
                    spec.endpoint,
                    params=spec.page_params(page, window),
                    timeout=spec.page_timeout,
                )
                records = extract_records(envelope)
                staged, excluded = self._stage_page(spec, records)
            except Exception as e:
                if not is_retryable_error(e):
                    raise
                consecutive_errors += 1
                metrics.errors += 1
                if consecutive_errors >= policy.max_retries:
                    raise TransientNetworkError(
                        f"Failed to fetch {spec.name} page {page} after "
                        f"{consecutive_errors} attempts: {e}"
                    ) from e

                delay = policy.delay_for(consecutive_errors)
                metrics.retries += 1
                logger.warning(
                    f"Error on {spec.name} page {page} "
                    f"(attempt {consecutive_errors}/{policy.max_retries}): {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await self._sleep(delay)
                continue

            consecutive_errors = 0
            metrics.pages_fetched += 1

            if not records:
                logger.info(f"{spec.name} page {page} is empty; sync complete")
                break

            result.processed += staged
            metrics.records_excluded += excluded
            count = envelope.get("count")
            result.total = count if isinstance(count, int) else max(result.total, result.processed)
            self._tracker.update_progress(spec.name, result.processed, result.total)

            logger.info(
                f"Fetched {spec.name} page {page}: {len(records)} records, "
                f"{staged} staged, {excluded} excluded (total: {result.processed}/{result.total})"
            )

            if not has_more_pages(envelope, len(records), spec.page_size):
                break

            page += 1
            if spec.page_delay > 0:
                await self._sleep(spec.page_delay)

    def _stage_page(self, spec: CollectionSpec, records: list[Record]) -> tuple[int, int]:
        """Filter a page and upsert the remainder. Returns (staged, excluded)."""
        keyed: list[tuple[str, Record]] = []
        excluded = 0
        for record in records:
            if spec.exclude(record):
                excluded += 1
                continue
            key = spec.natural_key(record)
            if key is None:
                logger.debug(f"Dropping {spec.name} record without a natural key")
                excluded += 1
                continue
            keyed.append((key, record))

        if keyed:
            self._store.put_page(spec.name, keyed)
        return len(keyed), excluded
