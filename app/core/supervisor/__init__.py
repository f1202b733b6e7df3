"""Service supervision: registry, restart policy and observers."""

from app.core.supervisor.manager import Supervisor
from app.core.supervisor.resources import ResourceMonitor, ResourceSample, sample_process
from app.core.supervisor.types import (
    EventKind,
    Health,
    HealthCheckable,
    Pausable,
    PressureDetected,
    RequestRestart,
    ServiceStatus,
    ShutdownReason,
    Startable,
    StartupMethod,
    SupervisorCommand,
    SupervisorEvent,
)
from app.core.supervisor.watchdog import HeartbeatMonitor

__all__ = [
    "EventKind",
    "Health",
    "HealthCheckable",
    "HeartbeatMonitor",
    "Pausable",
    "PressureDetected",
    "RequestRestart",
    "ResourceMonitor",
    "ResourceSample",
    "ServiceStatus",
    "ShutdownReason",
    "Startable",
    "StartupMethod",
    "Supervisor",
    "SupervisorCommand",
    "SupervisorEvent",
    "sample_process",
]
