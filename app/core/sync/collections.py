"""External collections that can be synchronized into staging.

Each collection declares its endpoint, how large a page to ask for, how
long to wait for one, how to back off when the counterparty struggles,
which records to drop and how to derive the natural key used for upserts.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from app.core.config import Settings
from app.core.retry import RetryPolicy

Record = dict[str, Any]


@dataclass(frozen=True)
class SyncWindow:
    """Closed time range a windowed collection is fetched for."""

    start: datetime
    end: datetime

    @classmethod
    def trailing(cls, days: int, now: datetime | None = None) -> "SyncWindow":
        end = now or datetime.utcnow()
        return cls(start=end - timedelta(days=days), end=end)

    @property
    def is_valid(self) -> bool:
        return self.end >= self.start


@dataclass(frozen=True)
class CollectionSpec:
    """Paging, retry and filtering rules for one external collection."""

    name: str
    endpoint: str
    page_size: int
    page_timeout: float
    retry_policy: RetryPolicy
    natural_key: Callable[[Record], str | None]
    exclude: Callable[[Record], bool] = lambda record: False
    page_delay: float = 0.0
    windowed: bool = False
    extra_params: dict[str, Any] = field(default_factory=dict)

    def page_params(self, page: int, window: SyncWindow | None) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "page_size": self.page_size}
        params.update(self.extra_params)
        if self.windowed and window is not None:
            params["start_time"] = window.start.strftime("%Y-%m-%d %H:%M:%S")
            params["end_time"] = window.end.strftime("%Y-%m-%d %H:%M:%S")
        return params


# =============================================================================
# Record rules
# =============================================================================


def employee_key(record: Record) -> str | None:
    """Employees are keyed by employee code, falling back to the vendor id."""
    emp_code = record.get("emp_code")
    if emp_code not in (None, ""):
        return str(emp_code)
    if record.get("id") is not None:
        return f"id:{record['id']}"
    return None


def attendance_key(record: Record) -> str | None:
    """Transactions are keyed by vendor id, else by who/when/what."""
    if record.get("id") is not None:
        return str(record["id"])
    parts = (record.get("emp_code"), record.get("punch_time"), record.get("punch_state"))
    if any(part in (None, "") for part in parts[:2]):
        return None
    return "|".join(str(part) for part in parts)


def is_lock_device_record(record: Record) -> bool:
    """Access-control door locks report through the same terminals API."""
    for field_name in ("terminal_alias", "terminal", "terminal_sn"):
        value = record.get(field_name)
        if isinstance(value, str) and "lock" in value.lower():
            return True
    return False


def build_collections(settings: Settings) -> dict[str, CollectionSpec]:
    """Collections known to the sync engine, keyed by job name."""
    employees = CollectionSpec(
        name="employees",
        endpoint="personnel/api/employees/",
        page_size=settings.employee_page_size,
        page_timeout=settings.employee_page_timeout_seconds,
        retry_policy=RetryPolicy(
            max_retries=settings.sync_max_retries,
            backoff_factor=settings.employee_backoff_base_seconds,
            max_wait=settings.employee_backoff_cap_seconds,
        ),
        natural_key=employee_key,
        page_delay=settings.employee_page_delay_seconds,
    )
    attendance = CollectionSpec(
        name="attendance",
        endpoint="iclock/api/transactions/",
        page_size=settings.attendance_page_size,
        page_timeout=settings.attendance_page_timeout_seconds,
        retry_policy=RetryPolicy(
            max_retries=settings.sync_max_retries,
            backoff_factor=settings.attendance_backoff_base_seconds,
            max_wait=settings.attendance_backoff_cap_seconds,
        ),
        natural_key=attendance_key,
        exclude=is_lock_device_record,
        page_delay=settings.attendance_page_delay_seconds,
        windowed=True,
        # Stable ordering keeps page boundaries consistent across retries
        extra_params={"ordering": "punch_time,id"},
    )
    return {spec.name: spec for spec in (employees, attendance)}
