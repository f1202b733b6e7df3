"""Supervised service management API routes.

Lifecycle actions record the operator from the ``X-Operator`` header in
``started_by``/``stopped_by``.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.api.dependencies import get_operator, get_supervisor
from app.core.exceptions import ServiceNotFoundError, ServiceStartupError
from app.core.supervisor import ShutdownReason, StartupMethod, Supervisor
from app.schemas.service import (
    ServiceActionResponse,
    ServicesHealthResponse,
    ServiceStatusResponse,
)

router = APIRouter(prefix="/api/v1/services", tags=["services"])

SERVICE_NAME_PATTERN = r"^[A-Za-z0-9_\-]+$"


def _not_found(e: ServiceNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _action_response(supervisor: Supervisor, name: str, action: str, actor: str) -> ServiceActionResponse:
    return ServiceActionResponse(
        name=name,
        action=action,
        actor=actor,
        status=ServiceStatusResponse(**supervisor.get_service_status(name)),
    )


@router.get("", response_model=list[ServiceStatusResponse])
async def list_services(supervisor: Supervisor = Depends(get_supervisor)):
    """Status of every supervised service, in registration order."""
    return [ServiceStatusResponse(**s) for s in supervisor.get_all_statuses()]


@router.get("/health", response_model=ServicesHealthResponse)
async def get_services_health(supervisor: Supervisor = Depends(get_supervisor)):
    """Supervisor status and aggregate service health."""
    return ServicesHealthResponse(
        manager=supervisor.get_manager_status(),
        system=supervisor.get_system_health(),
    )


@router.get("/events")
async def get_service_events(
    limit: int = Query(default=50, ge=1, le=200),
    supervisor: Supervisor = Depends(get_supervisor),
):
    """Recent supervisor lifecycle and escalation events."""
    return {"events": supervisor.get_recent_events(limit)}


@router.post("/maintenance")
async def set_maintenance_mode(
    enabled: bool = Query(...),
    supervisor: Supervisor = Depends(get_supervisor),
):
    if enabled:
        await supervisor.enable_maintenance_mode()
    else:
        await supervisor.disable_maintenance_mode()
    return {"maintenance_mode": supervisor.maintenance_mode}


@router.get("/{name}", response_model=ServiceStatusResponse)
async def get_service(
    name: str = Path(..., max_length=100, pattern=SERVICE_NAME_PATTERN),
    supervisor: Supervisor = Depends(get_supervisor),
):
    try:
        return ServiceStatusResponse(**supervisor.get_service_status(name))
    except ServiceNotFoundError as e:
        raise _not_found(e) from e


@router.post("/{name}/start", response_model=ServiceActionResponse)
async def start_service(
    name: str = Path(..., max_length=100, pattern=SERVICE_NAME_PATTERN),
    operator: str = Depends(get_operator),
    supervisor: Supervisor = Depends(get_supervisor),
):
    try:
        await supervisor.start_service(name, StartupMethod.ADMIN, operator)
    except ServiceNotFoundError as e:
        raise _not_found(e) from e
    except ServiceStartupError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e
    return _action_response(supervisor, name, "start", operator)


@router.post("/{name}/stop", response_model=ServiceActionResponse)
async def stop_service(
    name: str = Path(..., max_length=100, pattern=SERVICE_NAME_PATTERN),
    operator: str = Depends(get_operator),
    supervisor: Supervisor = Depends(get_supervisor),
):
    try:
        await supervisor.stop_service(name, ShutdownReason.ADMIN_STOP, operator)
    except ServiceNotFoundError as e:
        raise _not_found(e) from e
    return _action_response(supervisor, name, "stop", operator)


@router.post("/{name}/restart", response_model=ServiceActionResponse)
async def restart_service(
    name: str = Path(..., max_length=100, pattern=SERVICE_NAME_PATTERN),
    operator: str = Depends(get_operator),
    supervisor: Supervisor = Depends(get_supervisor),
):
    try:
        await supervisor.force_restart_service(name, operator)
    except ServiceNotFoundError as e:
        raise _not_found(e) from e
    except ServiceStartupError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e
    return _action_response(supervisor, name, "restart", operator)


@router.post("/{name}/autostart", response_model=ServiceStatusResponse)
async def set_autostart(
    name: str = Path(..., max_length=100, pattern=SERVICE_NAME_PATTERN),
    enabled: bool = Query(...),
    supervisor: Supervisor = Depends(get_supervisor),
):
    try:
        supervisor.set_autostart(name, enabled)
        return ServiceStatusResponse(**supervisor.get_service_status(name))
    except ServiceNotFoundError as e:
        raise _not_found(e) from e


@router.post("/{name}/watchdog", response_model=ServiceStatusResponse)
async def set_watchdog(
    name: str = Path(..., max_length=100, pattern=SERVICE_NAME_PATTERN),
    enabled: bool = Query(...),
    supervisor: Supervisor = Depends(get_supervisor),
):
    try:
        supervisor.set_watchdog_enabled(name, enabled)
        return ServiceStatusResponse(**supervisor.get_service_status(name))
    except ServiceNotFoundError as e:
        raise _not_found(e) from e
