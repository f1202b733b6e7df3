"""FastAPI dependencies for objects built by the application lifespan."""

from fastapi import Header, HTTPException, Request, status

from app.core.scheduler import SyncScheduler
from app.core.supervisor import Supervisor
from app.core.sync.engine import SyncEngine


def _from_state(request: Request, attribute: str):
    value = getattr(request.app.state, attribute, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{attribute.replace('_', ' ').title()} not initialized",
        )
    return value


def get_supervisor(request: Request) -> Supervisor:
    return _from_state(request, "supervisor")


def get_sync_engine(request: Request) -> SyncEngine:
    return _from_state(request, "sync_engine")


def get_sync_scheduler(request: Request) -> SyncScheduler:
    return _from_state(request, "sync_scheduler")


def get_operator(x_operator: str | None = Header(default=None)) -> str:
    """Operator identity recorded on lifecycle actions."""
    operator = (x_operator or "").strip()
    return operator[:100] if operator else "admin"
