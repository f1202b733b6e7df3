"""Attendance Sync Platform - Main Application."""

import asyncio
import logging
import os
import signal
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import services_router, sync_router
from app.core.bootstrap import build_platform, install_fault_handler
from app.core.config import get_settings
from app.core.database import check_database, init_db
from app.core.supervisor import Supervisor

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _request_server_stop() -> None:
    """Ask uvicorn to drain and stop, as Ctrl+C would."""
    os.kill(os.getpid(), signal.SIGTERM)


def _exit_process(code: int) -> None:
    logging.shutdown()
    os._exit(code)


async def watch_for_fault_exit(supervisor: Supervisor, request_stop=_request_server_stop) -> int:
    """Stop serving once the supervisor has exited abnormally."""
    code = await supervisor.wait_for_exit()
    if code != 0:
        logger.critical(f"Supervisor exited with status {code}; stopping the server")
        request_stop()
    return code


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    init_db()
    logger.info("Database initialized")

    platform = build_platform(settings)
    install_fault_handler(asyncio.get_running_loop(), platform.supervisor)

    app.state.supervisor = platform.supervisor
    app.state.sync_engine = platform.engine
    app.state.sync_scheduler = platform.scheduler
    app.state.resource_monitor = platform.resource_monitor

    await platform.supervisor.start()
    logger.info("Supervisor started")

    app.state.exit_watcher = asyncio.create_task(
        watch_for_fault_exit(platform.supervisor, _request_server_stop), name="supervisor-exit-watch"
    )

    yield

    # Shutdown
    logger.info("Shutting down...")
    if not app.state.exit_watcher.done():
        app.state.exit_watcher.cancel()
    exit_code = platform.supervisor.exit_code
    await platform.supervisor.graceful_shutdown("lifespan")
    await platform.supervisor.flush_events()
    await platform.aclose()

    # uvicorn exits 0 after a signal-driven stop
    if exit_code:
        logger.critical(f"Exiting with status {exit_code} after emergency shutdown")
        _exit_process(exit_code)


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Resilient time-and-attendance synchronization with in-process service supervision.",
    lifespan=lifespan,
)

# Include routers
app.include_router(sync_router)
app.include_router(services_router)


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


@app.get("/health/detailed")
async def detailed_health_check(request: Request):
    """Detailed health check with component status."""
    components = {
        "database": "healthy" if check_database() else "unhealthy",
        "supervisor": "not_initialized",
        "biotime_configured": settings.is_configured,
    }

    supervisor = getattr(request.app.state, "supervisor", None)
    services = {}
    if supervisor is not None:
        manager = supervisor.get_manager_status()
        components["supervisor"] = "running" if manager["is_running"] else "stopped"
        services = supervisor.get_system_health()

    resource_monitor = getattr(request.app.state, "resource_monitor", None)
    resources = resource_monitor.get_status() if resource_monitor is not None else None

    degraded = (
        components["database"] != "healthy"
        or components["supervisor"] != "running"
        or services.get("critical_services", 0) > 0
    )
    return {
        "status": "degraded" if degraded else "healthy",
        "version": settings.app_version,
        "components": components,
        "services": services,
        "resources": resources,
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
