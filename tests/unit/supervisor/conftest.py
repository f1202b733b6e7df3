"""Shared fixtures for supervisor tests."""

import pytest

from app.core.supervisor import Supervisor


class FakeService:
    """Startable service that records its lifecycle calls.

    ``fail_starts`` is the number of upcoming start() calls that raise.
    """

    def __init__(self, name, journal=None, fail_starts=0, fail_stop=False):
        self.name = name
        self.journal = journal if journal is not None else []
        self.fail_starts = fail_starts
        self.fail_stop = fail_stop
        self.healthy = True
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self):
        self.start_calls += 1
        self.journal.append(("start", self.name))
        if self.fail_starts:
            self.fail_starts -= 1
            raise RuntimeError(f"{self.name} cannot start")

    async def stop(self):
        self.stop_calls += 1
        self.journal.append(("stop", self.name))
        if self.fail_stop:
            raise RuntimeError(f"{self.name} cannot stop")

    def is_healthy(self):
        return self.healthy


class PausableService(FakeService):
    def __init__(self, name, journal=None, **kwargs):
        super().__init__(name, journal, **kwargs)
        self.paused = False

    async def pause(self):
        self.paused = True

    async def resume(self):
        self.paused = False


class EventRecorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)


@pytest.fixture
def journal():
    return []


@pytest.fixture
def service(journal):
    """Factory for FakeService instances sharing one journal."""

    def factory(name, **kwargs):
        return FakeService(name, journal, **kwargs)

    return factory


@pytest.fixture
def pausable_service(journal):
    def factory(name, **kwargs):
        return PausableService(name, journal, **kwargs)

    return factory


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
async def supervisor(settings, recorder):
    """Supervisor with no restart delay; shut down after the test."""
    supervisor = Supervisor(settings, sinks=[recorder])
    yield supervisor
    if not supervisor.shutdown_in_progress:
        await supervisor.graceful_shutdown("teardown")
