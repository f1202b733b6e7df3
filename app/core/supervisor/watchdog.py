"""Heartbeat monitor.

Periodically inspects supervised services and asks the supervisor to
restart the ones that look dead. It reads the registry but never changes
it; every remediation goes through a :class:`RequestRestart` command.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from app.core.config import Settings, get_settings
from app.core.supervisor.manager import Supervisor
from app.core.supervisor.types import HealthCheckable, RequestRestart, ServiceEntry

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Watchdog service that turns stale heartbeats into restart requests."""

    def __init__(self, supervisor: Supervisor, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._supervisor = supervisor
        self._task: asyncio.Task | None = None
        # name -> heartbeat value a restart was already requested for
        self._requested: dict[str, datetime | None] = {}
        self.last_check: datetime | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="heartbeat-monitor")
        logger.info(
            f"Heartbeat monitor started (interval {self._settings.heartbeat_check_interval_seconds}s, "
            f"timeout {self._settings.heartbeat_timeout_seconds}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Heartbeat monitor stopped")

    def is_healthy(self) -> bool:
        return self.running

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._settings.heartbeat_check_interval_seconds)
            self.check_services()

    def _failure_reason(self, entry: ServiceEntry, now: datetime) -> str | None:
        status = entry.status
        if isinstance(entry.handle, HealthCheckable) and not entry.handle.is_healthy():
            return "health check failed"

        timeout = timedelta(seconds=self._settings.heartbeat_timeout_seconds)
        if status.last_heartbeat is None or now - status.last_heartbeat > timeout:
            return f"no heartbeat for more than {self._settings.heartbeat_timeout_seconds:.0f}s"
        return None

    def check_services(self, now: datetime | None = None) -> list[RequestRestart]:
        """Run one inspection pass and submit restart requests.

        Returns:
            The commands that were submitted
        """
        now = now or datetime.utcnow()
        self.last_check = now
        submitted: list[RequestRestart] = []

        for entry in self._supervisor.entries():
            status = entry.status
            if not status.is_running or not status.watchdog_enabled or status.escalated:
                continue

            reason = self._failure_reason(entry, now)
            if reason is None:
                self._requested.pop(status.name, None)
                continue

            if status.name in self._requested and self._requested[status.name] == status.last_heartbeat:
                logger.debug(f"Restart already requested for {status.name}")
                continue

            command = RequestRestart(name=status.name, reason=reason)
            if self._supervisor.submit(command):
                self._requested[status.name] = status.last_heartbeat
                submitted.append(command)
                logger.warning(f"Service {status.name} unresponsive ({reason}); restart requested")

        return submitted
