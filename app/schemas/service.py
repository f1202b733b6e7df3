"""Supervised service Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

HealthState = Literal["healthy", "unhealthy", "stopped", "error"]


class ServiceStatusResponse(BaseModel):
    """Status of one supervised service."""

    name: str
    critical: bool
    health: HealthState
    is_running: bool
    paused: bool
    escalated: bool
    last_heartbeat: datetime | None = None
    error_count: int
    restart_count: int
    uptime: float
    started_at: datetime | None = None
    last_error: str | None = None
    autostart: bool
    watchdog_enabled: bool
    startup_method: Literal["system", "admin", "watchdog", "auto", "manual"]
    last_shutdown_reason: Literal[
        "admin_stop",
        "admin_restart",
        "watchdog_restart",
        "system_shutdown",
        "error",
        "crash",
        "maintenance",
        "unknown",
    ]
    started_by: str
    stopped_by: str


class ManagerStatus(BaseModel):
    is_running: bool
    uptime: int
    total_services: int
    healthy_services: int
    unhealthy_services: int
    critical_services: list[str]
    maintenance_mode: bool
    shutdown_in_progress: bool
    pending_commands: int


class SystemHealth(BaseModel):
    overall_health: int
    total_services: int
    healthy_services: int
    warning_services: int
    critical_services: int
    stopped_services: int
    maintenance_mode: bool
    uptime: int


class ServicesHealthResponse(BaseModel):
    manager: ManagerStatus
    system: SystemHealth


class ServiceActionResponse(BaseModel):
    """Result of an operator action on a service."""

    name: str
    action: str
    actor: str
    status: ServiceStatusResponse
