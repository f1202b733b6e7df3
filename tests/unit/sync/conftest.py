"""Shared fixtures for sync tests."""

import asyncio

import pytest

from app.core.sync.engine import SyncEngine


class ScriptedClient:
    """Stands in for BioTimeClient, answering pages from a script.

    Each script item is either an envelope dict or an exception to raise.
    """

    def __init__(self, script, gate: asyncio.Event | None = None):
        self.script = list(script)
        self.gate = gate
        self.auth_calls = 0
        self.calls: list[dict] = []

    async def authenticate(self) -> str:
        self.auth_calls += 1
        return "token"

    async def get_page(self, endpoint, params=None, timeout=30.0):
        self.calls.append({"endpoint": endpoint, "timeout": timeout, **(params or {})})
        if self.gate is not None:
            await self.gate.wait()
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def make_punch():
    """Attendance transaction factory."""

    def factory(record_id, emp_code="E001", terminal="Front Door"):
        return {
            "id": record_id,
            "emp_code": emp_code,
            "punch_time": f"2024-03-01 08:{record_id:02d}:00",
            "punch_state": "0",
            "terminal_alias": terminal,
        }

    return factory


@pytest.fixture
def make_engine(settings, store, tracker):
    """Build a SyncEngine around a scripted client and a recording sleep."""

    def factory(script, gate=None):
        client = ScriptedClient(script, gate=gate)
        sleep = RecordingSleep()
        engine = SyncEngine(client, store, tracker, settings=settings, sleep=sleep)
        return engine, client, sleep

    return factory
