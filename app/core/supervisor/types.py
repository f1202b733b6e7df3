"""Shared types for the service supervisor.

Services are plain objects that implement the capability protocols they
actually support. Observers (heartbeat and resource monitors) talk to the
supervisor only through the typed commands defined here.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class Health(str, Enum):
    """Health of a supervised service."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    STOPPED = "stopped"
    ERROR = "error"


class StartupMethod(str, Enum):
    """Who or what started a service."""

    SYSTEM = "system"
    ADMIN = "admin"
    WATCHDOG = "watchdog"
    AUTO = "auto"
    MANUAL = "manual"


class ShutdownReason(str, Enum):
    """Why a service was last stopped."""

    ADMIN_STOP = "admin_stop"
    ADMIN_RESTART = "admin_restart"
    WATCHDOG_RESTART = "watchdog_restart"
    SYSTEM_SHUTDOWN = "system_shutdown"
    ERROR = "error"
    CRASH = "crash"
    MAINTENANCE = "maintenance"
    UNKNOWN = "unknown"


# =============================================================================
# Capability protocols
# =============================================================================


@runtime_checkable
class Startable(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...


@runtime_checkable
class Pausable(Protocol):
    async def pause(self) -> None: ...

    async def resume(self) -> None: ...


@runtime_checkable
class HealthCheckable(Protocol):
    def is_healthy(self) -> bool: ...


# =============================================================================
# Registry entries
# =============================================================================


@dataclass
class ServiceStatus:
    """Live status of one supervised service.

    Owned by the supervisor. Everything else receives copies via
    :meth:`to_dict`.
    """

    name: str
    critical: bool = False
    monitor: bool = False
    health: Health = Health.STOPPED
    is_running: bool = False
    paused: bool = False
    escalated: bool = False
    last_heartbeat: datetime | None = None
    error_count: int = 0
    restart_count: int = 0
    started_at: datetime | None = None
    last_error: str | None = None
    autostart: bool = True
    watchdog_enabled: bool = True
    startup_method: StartupMethod = StartupMethod.SYSTEM
    last_shutdown_reason: ShutdownReason = ShutdownReason.UNKNOWN
    started_by: str = "system"
    stopped_by: str = "system"

    def uptime(self, now: datetime | None = None) -> float:
        """Seconds since the last successful start, 0 when not running."""
        if not self.is_running or self.started_at is None:
            return 0.0
        return max(((now or datetime.utcnow()) - self.started_at).total_seconds(), 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "critical": self.critical,
            "health": self.health.value,
            "is_running": self.is_running,
            "paused": self.paused,
            "escalated": self.escalated,
            "last_heartbeat": self.last_heartbeat.isoformat() if self.last_heartbeat else None,
            "error_count": self.error_count,
            "restart_count": self.restart_count,
            "uptime": round(self.uptime(), 1),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "last_error": self.last_error,
            "autostart": self.autostart,
            "watchdog_enabled": self.watchdog_enabled,
            "startup_method": self.startup_method.value,
            "last_shutdown_reason": self.last_shutdown_reason.value,
            "started_by": self.started_by,
            "stopped_by": self.stopped_by,
        }


@dataclass
class ServiceEntry:
    """Registered handle plus its status."""

    handle: Startable
    status: ServiceStatus


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class RequestRestart:
    """Ask the supervisor to restart a service that looks dead."""

    name: str
    reason: str = "heartbeat timeout"


@dataclass(frozen=True)
class PressureDetected:
    """Process-wide memory or CPU usage crossed a threshold."""

    kind: str  # "memory" | "cpu"
    level: str  # "high" | "critical"
    usage: float = 0.0


SupervisorCommand = RequestRestart | PressureDetected


# =============================================================================
# Events
# =============================================================================


class EventKind(str, Enum):
    SERVICE_STARTED = "service_started"
    SERVICE_STOPPED = "service_stopped"
    SERVICE_RESTARTED = "service_restarted"
    SERVICE_FAILED = "service_failed"
    CRITICAL_SERVICE_FAILURE = "critical_service_failure"
    STARTUP_ERROR = "startup_error"
    MAINTENANCE_MODE_CHANGED = "maintenance_mode_changed"
    EMERGENCY_SHUTDOWN = "emergency_shutdown"


@dataclass(frozen=True)
class SupervisorEvent:
    kind: EventKind
    service: str | None = None
    detail: str | None = None
    at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "service": self.service,
            "detail": self.detail,
            "at": self.at.isoformat(),
        }


EventSink = Callable[[SupervisorEvent], Awaitable[None]]
