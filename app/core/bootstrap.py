"""Object graph shared by the HTTP app and the headless worker.

Everything is constructed here and handed to its collaborators; nothing in
the platform reaches for a module-level supervisor or engine.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.api.services.biotime_client import BioTimeClient
from app.api.services.staging_store import SessionFactory, StagingStore
from app.api.services.sync_alerts import SyncAlertService
from app.api.services.sync_status import SyncStatusTracker
from app.core.config import Settings
from app.core.database import get_db_context
from app.core.monitoring import PerformanceMonitor
from app.core.notifications import notify_supervisor_event
from app.core.scheduler import SyncScheduler
from app.core.supervisor import (
    HeartbeatMonitor,
    RequestRestart,
    ResourceMonitor,
    Supervisor,
)
from app.core.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

RESOURCE_MONITOR_SERVICE = "resource_monitor"
WATCHDOG_SERVICE = "watchdog"
SCHEDULER_SERVICE = "sync_scheduler"
ALERTS_SERVICE = "sync_alerts"


@dataclass
class Platform:
    """Constructed services, wired but not started."""

    settings: Settings
    supervisor: Supervisor
    client: BioTimeClient
    store: StagingStore
    tracker: SyncStatusTracker
    engine: SyncEngine
    scheduler: SyncScheduler
    watchdog: HeartbeatMonitor
    resource_monitor: ResourceMonitor
    alerts: SyncAlertService

    async def aclose(self) -> None:
        await self.client.aclose()


def build_platform(
    settings: Settings,
    session_factory: SessionFactory = get_db_context,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Platform:
    supervisor = Supervisor(settings, sinks=[notify_supervisor_event])

    client = BioTimeClient(settings, transport=transport)
    store = StagingStore(session_factory)
    tracker = SyncStatusTracker(session_factory)
    engine = SyncEngine(client, store, tracker, settings=settings, monitor=PerformanceMonitor())

    def report_scheduler_failure(error: BaseException) -> None:
        supervisor.submit(RequestRestart(SCHEDULER_SERVICE, f"sync job crashed: {error}"))

    scheduler = SyncScheduler(
        engine,
        settings,
        heartbeat=lambda: supervisor.heartbeat(SCHEDULER_SERVICE),
        on_failure=report_scheduler_failure,
    )
    resource_monitor = ResourceMonitor(supervisor, settings)
    watchdog = HeartbeatMonitor(supervisor, settings)
    alerts = SyncAlertService(tracker, engine.job_names, settings)

    supervisor.register_service(
        RESOURCE_MONITOR_SERVICE, resource_monitor, monitor=True, watchdog_enabled=False
    )
    supervisor.register_service(WATCHDOG_SERVICE, watchdog, monitor=True, watchdog_enabled=False)
    supervisor.register_service(SCHEDULER_SERVICE, scheduler, critical=True)
    # Timer-driven; it never heartbeats
    supervisor.register_service(ALERTS_SERVICE, alerts, watchdog_enabled=False)

    return Platform(
        settings=settings,
        supervisor=supervisor,
        client=client,
        store=store,
        tracker=tracker,
        engine=engine,
        scheduler=scheduler,
        watchdog=watchdog,
        resource_monitor=resource_monitor,
        alerts=alerts,
    )


def install_fault_handler(loop: asyncio.AbstractEventLoop, supervisor: Supervisor) -> None:
    """Route uncaught task exceptions to an emergency shutdown."""

    def handle_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception")
        message = context.get("message", "unhandled error")
        logger.critical(f"Uncaught fault: {message}", exc_info=error)
        if supervisor.shutdown_in_progress:
            return
        loop.create_task(supervisor.emergency_shutdown(error or RuntimeError(message)))

    loop.set_exception_handler(handle_exception)
