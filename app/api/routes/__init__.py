"""API routes module."""

from app.api.routes.services import router as services_router
from app.api.routes.sync import router as sync_router

__all__ = [
    "services_router",
    "sync_router",
]
