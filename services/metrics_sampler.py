"""Process metric sampling for heartbeat, health and reflection checks."""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

import psutil

from config.autonomy_config import MIB
from core.errors import SamplingFailure


class MetricSampler(Protocol):
    """Boundary contract for metric providers."""

    def memory_used_bytes(self) -> int: ...

    def memory_percent(self) -> float: ...

    async def cpu_percent(self) -> float: ...


class SystemMetricSampler:
    """Sample the current process through psutil.

    CPU load is estimated with a short timing probe: a fixed sleep is timed
    and any overshoot relative to the requested duration is read as event
    loop pressure. It never blocks the loop the way ``psutil.cpu_percent``
    with an interval would.
    """

    def __init__(self, probe_s: float = 0.01, process: psutil.Process | None = None) -> None:
        self._probe_s = max(probe_s, 0.001)
        self._process = process if process is not None else psutil.Process()

    def memory_used_bytes(self) -> int:
        try:
            return int(self._process.memory_info().rss)
        except psutil.Error as exc:
            raise SamplingFailure(f"memory sample failed: {exc}") from exc

    def memory_percent(self) -> float:
        try:
            return float(self._process.memory_percent())
        except psutil.Error as exc:
            raise SamplingFailure(f"memory percent sample failed: {exc}") from exc

    async def cpu_percent(self) -> float:
        start = time.perf_counter()
        await asyncio.sleep(self._probe_s)
        elapsed = time.perf_counter() - start
        overshoot = (elapsed - self._probe_s) / self._probe_s * 100.0
        return float(round(min(100.0, max(0.0, overshoot))))


def bytes_to_mb(value: float) -> int:
    return round(value / MIB)
