"""Service supervisor.

Owns the registry of long-running services, starts them in dependency
order, applies the restart policy and sequences shutdown. Observers never
touch the registry: they put :data:`SupervisorCommand` values on the
command queue and the supervisor reacts to them one at a time.

Restart policy:
    Every automatic restart attempt increments ``restart_count``, and a
    restart whose start fails is retried straight away (after
    ``restart_delay_seconds``). Once the count exceeds
    ``max_restart_attempts`` the service is escalated instead of restarted.
    The count only measures failures close together: a service that stayed
    up for ``restart_count_reset_seconds`` starts counting from zero again.
    Non-critical services emit ``service_failed``. Critical services get one
    final restart that ignores the ceiling; if that fails too they emit
    ``critical_service_failure`` and stay down until an operator restarts
    them with :meth:`Supervisor.force_restart_service`.
"""

import asyncio
import gc
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    DuplicateServiceError,
    RegistrationClosedError,
    ServiceNotFoundError,
    ServiceRuntimeFailure,
    ServiceStartupError,
)
from app.core.supervisor.types import (
    EventKind,
    EventSink,
    Health,
    Pausable,
    PressureDetected,
    RequestRestart,
    ServiceEntry,
    ServiceStatus,
    ShutdownReason,
    Startable,
    StartupMethod,
    SupervisorCommand,
    SupervisorEvent,
)

logger = logging.getLogger(__name__)

_RESTART_REASONS = {
    StartupMethod.WATCHDOG: ShutdownReason.WATCHDOG_RESTART,
    StartupMethod.ADMIN: ShutdownReason.ADMIN_RESTART,
}


class Supervisor:
    """Registry and lifecycle manager for supervised services."""

    def __init__(
        self,
        settings: Settings | None = None,
        sinks: Iterable[EventSink] = (),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        max_event_history: int = 200,
    ) -> None:
        self._settings = settings or get_settings()
        self._sinks = list(sinks)
        self._sleep = sleep
        self._services: dict[str, ServiceEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._events: deque[SupervisorEvent] = deque(maxlen=max_event_history)
        self._commands: asyncio.Queue[SupervisorCommand] = asyncio.Queue(
            maxsize=self._settings.command_queue_size
        )

        self._started = False
        self._is_running = False
        self._start_time = datetime.utcnow()
        self._maintenance_mode = False
        self._shutdown_in_progress = False
        self._emergency_in_progress = False
        self._exit_code: int | None = None
        self._exit_event = asyncio.Event()

        self._command_task: asyncio.Task | None = None
        self._resume_task: asyncio.Task | None = None
        self._sink_tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Registration
    # =========================================================================

    def register_service(
        self,
        name: str,
        handle: Startable,
        critical: bool = False,
        autostart: bool = True,
        watchdog_enabled: bool = True,
        monitor: bool = False,
    ) -> ServiceStatus:
        """Add a service to the registry.

        Monitors start before everything else and are never paused or
        restarted by pressure handling.

        Raises:
            RegistrationClosedError: The supervisor has already started
            DuplicateServiceError: ``name`` is already registered
            TypeError: ``handle`` does not implement start/stop
        """
        if self._started:
            raise RegistrationClosedError(f"Cannot register {name}: supervisor already started")
        if name in self._services:
            raise DuplicateServiceError(name)
        if not isinstance(handle, Startable):
            raise TypeError(f"Service {name} must implement async start() and stop()")

        status = ServiceStatus(
            name=name,
            critical=critical,
            monitor=monitor,
            autostart=autostart,
            watchdog_enabled=watchdog_enabled,
        )
        self._services[name] = ServiceEntry(handle=handle, status=status)
        self._locks[name] = asyncio.Lock()
        logger.info(
            f"Registered service {name} (critical={critical}, autostart={autostart}, "
            f"watchdog={watchdog_enabled}, monitor={monitor})"
        )
        return status

    def _get(self, name: str) -> ServiceEntry:
        entry = self._services.get(name)
        if entry is None:
            raise ServiceNotFoundError(name)
        return entry

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def maintenance_mode(self) -> bool:
        return self._maintenance_mode

    @property
    def shutdown_in_progress(self) -> bool:
        return self._shutdown_in_progress

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def service_names(self) -> list[str]:
        return list(self._services)

    def entries(self) -> list[ServiceEntry]:
        """Registered entries in registration order, for read-only observers."""
        return list(self._services.values())

    def is_critical(self, name: str) -> bool:
        return self._get(name).status.critical

    # =========================================================================
    # Events
    # =========================================================================

    def _emit(self, kind: EventKind, service: str | None = None, detail: str | None = None) -> None:
        """Record an event and hand it to every sink in the background.

        Sinks may do network I/O, so lifecycle operations never wait on them.
        """
        event = SupervisorEvent(kind=kind, service=service, detail=detail)
        self._events.append(event)
        for sink in self._sinks:
            task = asyncio.create_task(self._deliver(sink, event), name=f"supervisor-event-{kind.value}")
            self._sink_tasks.add(task)
            task.add_done_callback(self._sink_tasks.discard)

    @staticmethod
    async def _deliver(sink: EventSink, event: SupervisorEvent) -> None:
        try:
            await sink(event)
        except Exception as e:
            logger.error(f"Event sink failed for {event.kind.value}: {e}", exc_info=True)

    @property
    def pending_events(self) -> int:
        return len(self._sink_tasks)

    async def flush_events(self, timeout: float | None = None) -> bool:
        """Wait for in-flight sink deliveries.

        Returns:
            False if deliveries were still pending when ``timeout`` expired
        """
        if not self._sink_tasks:
            return True
        timeout = self._settings.event_sink_timeout_seconds if timeout is None else timeout
        _, pending = await asyncio.wait(set(self._sink_tasks), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} event deliveries still pending after {timeout:.1f}s")
        return not pending

    def get_recent_events(self, limit: int = 50) -> list[dict[str, Any]]:
        return [event.to_dict() for event in list(self._events)[-limit:]]

    def events_of(self, kind: EventKind) -> list[SupervisorEvent]:
        return [event for event in self._events if event.kind is kind]

    # =========================================================================
    # Health bookkeeping
    # =========================================================================

    @staticmethod
    def _mark_healthy(status: ServiceStatus) -> None:
        previous = status.health
        status.health = Health.HEALTHY
        status.is_running = True
        status.error_count = 0
        status.last_error = None
        if previous is not Health.HEALTHY:
            logger.info(f"Service {status.name}: {previous.value} -> healthy")

    @staticmethod
    def _mark_error(status: ServiceStatus, message: str) -> None:
        previous = status.health
        status.health = Health.ERROR
        status.is_running = False
        status.error_count += 1
        status.last_error = message
        logger.error(
            f"Service {status.name}: {previous.value} -> error "
            f"(error_count={status.error_count}): {message}"
        )

    @staticmethod
    def _mark_stopped(status: ServiceStatus, reason: ShutdownReason, actor: str) -> None:
        status.health = Health.STOPPED
        status.is_running = False
        status.paused = False
        status.started_at = None
        status.last_shutdown_reason = reason
        status.stopped_by = actor

    def heartbeat(self, name: str) -> None:
        """Record a liveness signal from a running service."""
        self._get(name).status.last_heartbeat = datetime.utcnow()

    # =========================================================================
    # Lifecycle primitives
    # =========================================================================

    async def _start(self, entry: ServiceEntry, method: StartupMethod, actor: str) -> None:
        status = entry.status
        try:
            await entry.handle.start()
        except Exception as e:
            self._mark_error(status, f"start failed: {e}")
            raise ServiceStartupError(status.name, e) from e

        now = datetime.utcnow()
        status.startup_method = method
        status.started_by = actor
        status.started_at = now
        status.last_heartbeat = now
        status.paused = False
        self._mark_healthy(status)
        logger.info(f"Service {status.name} started by {method.value} ({actor})")
        self._emit(EventKind.SERVICE_STARTED, status.name, f"{method.value} ({actor})")

    async def _stop(self, entry: ServiceEntry, reason: ShutdownReason, actor: str) -> None:
        status = entry.status
        try:
            await entry.handle.stop()
        finally:
            self._mark_stopped(status, reason, actor)
        logger.info(f"Service {status.name} stopped: {reason.value} ({actor})")
        self._emit(EventKind.SERVICE_STOPPED, status.name, f"{reason.value} ({actor})")

    async def start_service(
        self,
        name: str,
        method: StartupMethod = StartupMethod.MANUAL,
        actor: str = "system",
    ) -> None:
        """Start one service. Starting a healthy service is a no-op.

        Raises:
            ServiceNotFoundError: Unknown service
            ServiceStartupError: The service's start routine raised
        """
        entry = self._get(name)
        async with self._locks[name]:
            if entry.status.health is Health.HEALTHY:
                logger.info(f"Service {name} is already running")
                return
            await self._start(entry, method, actor)

    async def stop_service(
        self,
        name: str,
        reason: ShutdownReason = ShutdownReason.UNKNOWN,
        actor: str = "system",
    ) -> None:
        """Stop one service. Stopping a stopped service is a no-op."""
        entry = self._get(name)
        async with self._locks[name]:
            if entry.status.health is Health.STOPPED:
                logger.info(f"Service {name} is already stopped")
                return
            await self._stop(entry, reason, actor)

    async def restart_service(
        self,
        name: str,
        method: StartupMethod = StartupMethod.WATCHDOG,
        actor: str = "watchdog",
    ) -> bool:
        """Restart a service under the restart ceiling.

        Returns:
            True if the service came back healthy
        """
        entry = self._get(name)
        async with self._locks[name]:
            return await self._restart(entry, method, actor)

    async def force_restart_service(self, name: str, actor: str = "admin") -> None:
        """Operator restart. Clears escalation and the restart counter.

        Raises:
            ServiceStartupError: The service failed to start again
        """
        entry = self._get(name)
        async with self._locks[name]:
            status = entry.status
            status.escalated = False
            status.restart_count = 0
            if status.health is not Health.STOPPED:
                try:
                    await self._stop(entry, ShutdownReason.ADMIN_RESTART, actor)
                except Exception as e:
                    logger.warning(f"Error stopping {name} before operator restart: {e}")
            await self._start(entry, StartupMethod.ADMIN, actor)
            self._emit(EventKind.SERVICE_RESTARTED, name, f"operator restart ({actor})")

    async def _restart(self, entry: ServiceEntry, method: StartupMethod, actor: str) -> bool:
        status = entry.status
        if status.escalated:
            logger.warning(f"Service {status.name} is escalated; automatic restart suppressed")
            return False

        if status.restart_count and status.started_at is not None:
            uptime = (datetime.utcnow() - status.started_at).total_seconds()
            if uptime >= self._settings.restart_count_reset_seconds:
                logger.info(
                    f"Service {status.name} ran for {uptime:.0f}s since its last start; "
                    f"resetting restart count ({status.restart_count})"
                )
                status.restart_count = 0

        # A failed start is itself a failure: keep going until one succeeds
        # or the ceiling escalates.
        while True:
            status.restart_count += 1
            if status.restart_count > self._settings.max_restart_attempts:
                logger.error(
                    f"Service {status.name} exceeded max restart attempts "
                    f"({self._settings.max_restart_attempts})"
                )
                await self._escalate(entry)
                return status.health is Health.HEALTHY

            logger.info(
                f"Restarting service {status.name} "
                f"(attempt {status.restart_count}/{self._settings.max_restart_attempts})"
            )
            if await self._attempt_restart(entry, method, actor):
                return True
            if self._shutdown_in_progress:
                return False

    async def _attempt_restart(self, entry: ServiceEntry, method: StartupMethod, actor: str) -> bool:
        status = entry.status
        reason = _RESTART_REASONS.get(method, ShutdownReason.ERROR)

        if status.health is not Health.STOPPED:
            try:
                await self._stop(entry, reason, actor)
            except Exception as e:
                logger.warning(f"Error stopping {status.name} before restart: {e}")

        await self._sleep(self._settings.restart_delay_seconds)

        try:
            await self._start(entry, method, actor)
        except ServiceStartupError as e:
            logger.error(f"Failed to restart service {status.name}: {e}")
            return False

        logger.info(f"Service {status.name} restarted successfully")
        self._emit(EventKind.SERVICE_RESTARTED, status.name, f"{method.value} ({actor})")
        return True

    async def _escalate(self, entry: ServiceEntry) -> None:
        status = entry.status
        status.escalated = True
        if status.health is not Health.ERROR:
            self._mark_error(status, "exceeded max restart attempts")

        if status.critical:
            await self._handle_critical_service_failure(entry)
        else:
            self._emit(
                EventKind.SERVICE_FAILED,
                status.name,
                f"exceeded {self._settings.max_restart_attempts} restart attempts: {status.last_error}",
            )

    async def _handle_critical_service_failure(self, entry: ServiceEntry) -> None:
        status = entry.status
        logger.critical(f"Critical service {status.name} failed; attempting final restart")

        if await self._attempt_restart(entry, StartupMethod.WATCHDOG, "watchdog"):
            status.escalated = False
            return

        logger.critical(f"Critical service {status.name} still failing after restart")
        self._emit(
            EventKind.CRITICAL_SERVICE_FAILURE,
            status.name,
            status.last_error,
        )

    async def report_failure(self, name: str, error: BaseException | str) -> bool:
        """Entry point for services that fail while running.

        Marks the service as errored and applies the restart policy.

        Returns:
            True if the service was restarted successfully
        """
        entry = self._get(name)
        failure = ServiceRuntimeFailure(name, str(error))
        async with self._locks[name]:
            self._mark_error(entry.status, failure.reason)
            if self._shutdown_in_progress:
                return False
            return await self._restart(entry, StartupMethod.WATCHDOG, "watchdog")

    # =========================================================================
    # Boot
    # =========================================================================

    async def start(self) -> None:
        """Start monitors, then critical services, then autostart services.

        Raises:
            ServiceStartupError: A monitor or critical service failed to start.
                Services already started are stopped again and nothing else
                is started.
        """
        if self._started:
            logger.info("Supervisor already started")
            return

        self._started = True
        self._is_running = True
        self._start_time = datetime.utcnow()
        logger.info(f"Starting supervisor with {len(self._services)} services")
        self._command_task = asyncio.create_task(self._process_commands(), name="supervisor-commands")

        monitors = [e for e in self._services.values() if e.status.monitor]
        critical = [e for e in self._services.values() if e.status.critical and not e.status.monitor]
        remaining = [
            e for e in self._services.values() if not e.status.critical and not e.status.monitor
        ]

        started: list[ServiceEntry] = []
        try:
            for entry in monitors + critical:
                await self.start_service(entry.status.name, StartupMethod.SYSTEM, "system")
                started.append(entry)
                logger.info(f"Service {entry.status.name} started")
        except ServiceStartupError as e:
            logger.critical(f"Startup aborted: {e}")
            self._emit(EventKind.STARTUP_ERROR, e.service_name, str(e))
            await self._abort_startup(started)
            raise

        for entry in remaining:
            name = entry.status.name
            if not entry.status.autostart:
                logger.info(f"Skipping service {name} (autostart disabled)")
                continue
            try:
                await self.start_service(name, StartupMethod.AUTO, "system")
            except ServiceStartupError as e:
                logger.error(f"Non-critical service failed to start, continuing: {e}")

        logger.info("Supervisor started")

    async def _abort_startup(self, started: list[ServiceEntry]) -> None:
        await self._cancel_background_tasks()
        for entry in reversed(started):
            try:
                await self._stop(entry, ShutdownReason.ERROR, "system")
            except Exception as e:
                logger.error(f"Error stopping {entry.status.name} after failed startup: {e}")
        self._is_running = False

    # =========================================================================
    # Commands
    # =========================================================================

    def submit(self, command: SupervisorCommand) -> bool:
        """Queue a command without blocking. Returns False if the queue is full."""
        try:
            self._commands.put_nowait(command)
        except asyncio.QueueFull:
            logger.warning(f"Supervisor command queue full; dropping {command}")
            return False
        return True

    @property
    def pending_commands(self) -> int:
        return self._commands.qsize()

    async def _process_commands(self) -> None:
        while True:
            command = await self._commands.get()
            try:
                await self.handle_command(command)
            except Exception as e:
                logger.error(f"Error handling supervisor command {command}: {e}", exc_info=True)
            finally:
                self._commands.task_done()

    async def handle_command(self, command: SupervisorCommand) -> None:
        """Single dispatch point for observer commands."""
        if self._shutdown_in_progress:
            logger.info(f"Ignoring {command} during shutdown")
            return

        if isinstance(command, RequestRestart):
            await self._handle_restart_request(command)
        elif isinstance(command, PressureDetected):
            await self._handle_pressure(command)
        else:
            raise TypeError(f"Unknown supervisor command: {command!r}")

    async def _handle_restart_request(self, command: RequestRestart) -> None:
        entry = self._services.get(command.name)
        if entry is None:
            logger.warning(f"Restart requested for unknown service {command.name}")
            return

        status = entry.status
        if not status.watchdog_enabled or status.escalated or status.health is Health.STOPPED:
            logger.info(f"Ignoring restart request for {command.name}")
            return

        logger.warning(f"Restart requested for {command.name}: {command.reason}")
        async with self._locks[command.name]:
            self._mark_error(status, command.reason)
            await self._restart(entry, StartupMethod.WATCHDOG, "watchdog")

    async def _handle_pressure(self, command: PressureDetected) -> None:
        if command.level != "critical":
            logger.warning(f"High {command.kind} usage detected: {command.usage:.1f}%")
            return

        logger.critical(f"Critical {command.kind} usage: {command.usage:.1f}%; shedding load")
        collected = gc.collect()
        logger.info(f"Garbage collection freed {collected} objects")
        await self.pause_non_critical_services()

        if self._resume_task is not None and not self._resume_task.done():
            self._resume_task.cancel()
        self._resume_task = asyncio.create_task(self._resume_after_cooldown(), name="supervisor-resume")

    async def _resume_after_cooldown(self) -> None:
        await asyncio.sleep(self._settings.pressure_cooldown_seconds)
        await self.resume_non_critical_services()

    # =========================================================================
    # Pressure handling
    # =========================================================================

    def _pausable_entries(self) -> list[ServiceEntry]:
        return [
            entry
            for entry in self._services.values()
            if not entry.status.critical
            and not entry.status.monitor
            and isinstance(entry.handle, Pausable)
        ]

    async def pause_non_critical_services(self) -> list[str]:
        """Pause running non-critical services that support it."""
        paused = []
        for entry in self._pausable_entries():
            status = entry.status
            if not status.is_running or status.paused:
                continue
            try:
                await entry.handle.pause()
            except Exception as e:
                logger.error(f"Error pausing service {status.name}: {e}")
                continue
            status.paused = True
            paused.append(status.name)
            logger.info(f"Service {status.name} paused")
        return paused

    async def resume_non_critical_services(self) -> list[str]:
        resumed = []
        for entry in self._pausable_entries():
            status = entry.status
            if not status.paused:
                continue
            try:
                await entry.handle.resume()
            except Exception as e:
                logger.error(f"Error resuming service {status.name}: {e}")
                continue
            status.paused = False
            resumed.append(status.name)
            logger.info(f"Service {status.name} resumed")
        return resumed

    # =========================================================================
    # Toggles
    # =========================================================================

    def set_autostart(self, name: str, enabled: bool) -> None:
        self._get(name).status.autostart = enabled
        logger.info(f"Autostart {'enabled' if enabled else 'disabled'} for service {name}")

    def set_watchdog_enabled(self, name: str, enabled: bool) -> None:
        self._get(name).status.watchdog_enabled = enabled
        logger.info(f"Watchdog {'enabled' if enabled else 'disabled'} for service {name}")

    async def enable_maintenance_mode(self) -> None:
        self._maintenance_mode = True
        logger.info("Maintenance mode enabled")
        self._emit(EventKind.MAINTENANCE_MODE_CHANGED, detail="enabled")

    async def disable_maintenance_mode(self) -> None:
        self._maintenance_mode = False
        logger.info("Maintenance mode disabled")
        self._emit(EventKind.MAINTENANCE_MODE_CHANGED, detail="disabled")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def _cancel_background_tasks(self) -> None:
        current = asyncio.current_task()
        for task in (self._command_task, self._resume_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _finish(self, code: int) -> None:
        self._exit_code = code
        self._is_running = False
        self._exit_event.set()

    async def graceful_shutdown(self, signal: str = "SIGTERM") -> int | None:
        """Stop every service in reverse registration order.

        A second request while a shutdown is in progress is ignored.

        Returns:
            The exit code (0), or None if the request was ignored
        """
        if self._shutdown_in_progress:
            logger.info(f"Shutdown already in progress, ignoring {signal}")
            return None

        self._shutdown_in_progress = True
        logger.info(f"Graceful shutdown initiated by {signal}")
        await self._cancel_background_tasks()

        for entry in reversed(list(self._services.values())):
            name = entry.status.name
            async with self._locks[name]:
                if entry.status.health is Health.STOPPED:
                    continue
                try:
                    await self._stop(entry, ShutdownReason.SYSTEM_SHUTDOWN, "system")
                except Exception as e:
                    logger.error(f"Error stopping service {name}: {e}")

        await self.flush_events()
        logger.info("Graceful shutdown completed")
        self._finish(0)
        return 0

    async def _force_stop(self, entry: ServiceEntry) -> None:
        try:
            await entry.handle.stop()
        finally:
            self._mark_stopped(entry.status, ShutdownReason.CRASH, "system")

    async def emergency_shutdown(self, error: BaseException | None = None) -> int:
        """Force-stop everything concurrently and exit non-zero.

        Per-service stops are not serialized and are abandoned after
        ``emergency_stop_timeout_seconds``.
        """
        if self._emergency_in_progress:
            logger.info("Emergency shutdown already in progress")
            return 1

        self._emergency_in_progress = True
        self._shutdown_in_progress = True
        logger.critical(f"Emergency shutdown initiated: {error}")
        await self._cancel_background_tasks()

        running = [e for e in self._services.values() if e.status.health is not Health.STOPPED]
        try:
            results = await asyncio.wait_for(
                asyncio.gather(*(self._force_stop(e) for e in running), return_exceptions=True),
                timeout=self._settings.emergency_stop_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("Timed out force-stopping services")
            for entry in running:
                self._mark_stopped(entry.status, ShutdownReason.CRASH, "system")
        else:
            for entry, result in zip(running, results):
                if isinstance(result, BaseException):
                    logger.error(f"Error force stopping service {entry.status.name}: {result}")

        # Sinks are delivered in the background; nothing here waits on them.
        self._emit(EventKind.EMERGENCY_SHUTDOWN, detail=str(error) if error else None)
        self._finish(1)
        return 1

    async def wait_for_exit(self) -> int:
        """Block until a shutdown completes and return its exit code."""
        await self._exit_event.wait()
        return self._exit_code if self._exit_code is not None else 0

    # =========================================================================
    # Status queries
    # =========================================================================

    def get_service_status(self, name: str) -> dict[str, Any]:
        return self._get(name).status.to_dict()

    def get_all_statuses(self) -> list[dict[str, Any]]:
        return [entry.status.to_dict() for entry in self._services.values()]

    def _uptime_seconds(self) -> int:
        if not self._started:
            return 0
        return int((datetime.utcnow() - self._start_time).total_seconds())

    def get_manager_status(self) -> dict[str, Any]:
        statuses = [entry.status for entry in self._services.values()]
        return {
            "is_running": self._is_running,
            "uptime": self._uptime_seconds(),
            "total_services": len(statuses),
            "healthy_services": sum(1 for s in statuses if s.health is Health.HEALTHY),
            "unhealthy_services": sum(
                1 for s in statuses if s.health in (Health.UNHEALTHY, Health.ERROR)
            ),
            "critical_services": [s.name for s in statuses if s.critical],
            "maintenance_mode": self._maintenance_mode,
            "shutdown_in_progress": self._shutdown_in_progress,
            "pending_commands": self.pending_commands,
        }

    def get_system_health(self) -> dict[str, Any]:
        statuses = [entry.status for entry in self._services.values()]
        healthy = sum(1 for s in statuses if s.health is Health.HEALTHY)
        overall = (healthy / len(statuses)) * 100 if statuses else 0
        return {
            "overall_health": round(overall),
            "total_services": len(statuses),
            "healthy_services": healthy,
            "warning_services": sum(1 for s in statuses if s.health is Health.UNHEALTHY),
            "critical_services": sum(1 for s in statuses if s.health is Health.ERROR),
            "stopped_services": sum(1 for s in statuses if s.health is Health.STOPPED),
            "maintenance_mode": self._maintenance_mode,
            "uptime": self._uptime_seconds(),
        }
