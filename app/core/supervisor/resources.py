"""Process resource monitor.

Samples this process's memory and CPU usage with psutil and reports
threshold crossings to the supervisor as :class:`PressureDetected`
commands. What to do about the pressure is the supervisor's decision.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import psutil

from app.core.config import Settings, get_settings
from app.core.supervisor.manager import Supervisor
from app.core.supervisor.types import PressureDetected

logger = logging.getLogger(__name__)


@dataclass
class ResourceSample:
    memory_percent: float
    cpu_percent: float
    memory_mb: float = 0.0
    sampled_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "memory_percent": round(self.memory_percent, 1),
            "cpu_percent": round(self.cpu_percent, 1),
            "memory_mb": round(self.memory_mb, 1),
            "sampled_at": self.sampled_at.isoformat(),
        }


def sample_process() -> ResourceSample:
    """Current usage of this process."""
    proc = psutil.Process()
    return ResourceSample(
        memory_percent=proc.memory_percent(),
        cpu_percent=proc.cpu_percent(interval=None),
        memory_mb=proc.memory_info().rss / (1024 * 1024),
    )


class ResourceMonitor:
    """Periodic memory/CPU sampler."""

    def __init__(
        self,
        supervisor: Supervisor,
        settings: Settings | None = None,
        sampler: Callable[[], ResourceSample] = sample_process,
    ) -> None:
        self._settings = settings or get_settings()
        self._supervisor = supervisor
        self._sampler = sampler
        self._task: asyncio.Task | None = None
        self.last_sample: ResourceSample | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="resource-monitor")
        logger.info(f"Resource monitor started (interval {self._settings.resource_check_interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Resource monitor stopped")

    def is_healthy(self) -> bool:
        return self.running

    async def _run(self) -> None:
        while True:
            self.check()
            await asyncio.sleep(self._settings.resource_check_interval_seconds)

    def _level(self, usage: float, high: float, critical: float) -> str | None:
        if usage > critical:
            return "critical"
        if usage > high:
            return "high"
        return None

    def check(self) -> list[PressureDetected]:
        """Take one sample and submit a command for each crossed threshold."""
        sample = self._sampler()
        self.last_sample = sample

        readings = (
            ("memory", sample.memory_percent, self._settings.memory_high_percent,
             self._settings.memory_critical_percent),
            ("cpu", sample.cpu_percent, self._settings.cpu_high_percent,
             self._settings.cpu_critical_percent),
        )

        submitted: list[PressureDetected] = []
        for kind, usage, high, critical in readings:
            level = self._level(usage, high, critical)
            if level is None:
                continue
            command = PressureDetected(kind=kind, level=level, usage=usage)
            logger.warning(f"{level.capitalize()} {kind} usage detected: {usage:.1f}%")
            if self._supervisor.submit(command):
                submitted.append(command)
        return submitted

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "last_sample": self.last_sample.to_dict() if self.last_sample else None,
            "thresholds": {
                "memory_high_percent": self._settings.memory_high_percent,
                "memory_critical_percent": self._settings.memory_critical_percent,
                "cpu_high_percent": self._settings.cpu_high_percent,
                "cpu_critical_percent": self._settings.cpu_critical_percent,
            },
        }
