"""Shared pytest fixtures."""

import os

# Keep the module-level engine off the developer's real database file
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.services.staging_store import StagingStore
from app.api.services.sync_status import SyncStatusTracker
from app.core.config import Settings
from app.core.database import Base
from app.core.notifications import clear_notification_history


@pytest.fixture
def settings():
    """Settings with every delay removed and small pages."""
    return Settings(
        restart_delay_seconds=0,
        max_restart_attempts=3,
        employee_page_size=2,
        employee_page_delay_seconds=0,
        employee_backoff_base_seconds=1.0,
        employee_backoff_cap_seconds=4.0,
        attendance_page_size=2,
        attendance_page_delay_seconds=0,
        attendance_backoff_base_seconds=2.0,
        attendance_backoff_cap_seconds=5.0,
        sync_max_retries=3,
        heartbeat_timeout_seconds=60,
        pressure_cooldown_seconds=0.01,
        emergency_stop_timeout_seconds=0.5,
        notification_enabled=False,
        biotime_base_url="http://biotime.test",
        biotime_username="admin",
        biotime_password="secret",
    )


@pytest.fixture
def db_engine():
    """Isolated in-memory database shared across connections."""
    from app import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Transactional session context manager bound to the test database."""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    @contextmanager
    def factory():
        db = Session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    return factory


@pytest.fixture
def store(session_factory):
    return StagingStore(session_factory)


@pytest.fixture
def tracker(session_factory):
    return SyncStatusTracker(session_factory)


@pytest.fixture(autouse=True)
def reset_notification_history():
    """Cooldown history is module state; start every test clean."""
    clear_notification_history()
    yield
    clear_notification_history()
