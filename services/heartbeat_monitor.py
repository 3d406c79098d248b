"""Heartbeat monitor sampling process health on an adaptive period."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import time
from typing import Deque

from config.autonomy_config import MIB, AutonomyConfig
from core.event_bus import EventBus, EventKind, register_payload
from core.logging import logger as LOGGER
from core.scheduler import PeriodicTask
from services.heartbeat_regulator import HeartbeatRegulator, LoadMetrics, RegulatorStatus
from services.metrics_sampler import MetricSampler, bytes_to_mb


RESPONSE_WINDOW = 10


@dataclass(frozen=True)
class HeartbeatData:
    """One heartbeat sample. Memory in MB, CPU in percent, response in ms."""

    timestamp: float
    memory_usage: float = 0.0
    cpu_usage: float = 0.0
    response_time: float = 0.0
    is_healthy: bool = True
    violations: tuple[str, ...] = field(default_factory=tuple)


register_payload(EventKind.HEARTBEAT, HeartbeatData)


@dataclass(frozen=True)
class HeartbeatStatus:
    is_running: bool
    is_healthy: bool
    last_heartbeat: float | None
    total_heartbeats: int
    average_response_time: float
    error_count: int
    current_interval: float
    schedule_policy: str
    regulator: RegulatorStatus


class HeartbeatMonitor:
    """Sample memory, CPU and response time on every tick.

    With the ``adaptive`` schedule policy the timer is re-armed from the
    regulator's current interval after every tick. With ``fixed`` the period
    captured at start is kept and the regulator is only observed.
    """

    def __init__(
        self,
        config: AutonomyConfig,
        sampler: MetricSampler,
        event_bus: EventBus | None = None,
        regulator: HeartbeatRegulator | None = None,
    ) -> None:
        self._config = config
        self._sampler = sampler
        self._event_bus = event_bus
        self._regulator = regulator if regulator is not None else HeartbeatRegulator(config, event_bus)
        self._task: PeriodicTask | None = None
        self._schedule_policy = str(config.get("heartbeat_schedule_policy"))
        self._fixed_interval_ms = float(config.get("heartbeat_interval"))
        self._response_times: Deque[float] = deque(maxlen=RESPONSE_WINDOW)
        self._is_running = False
        self._is_healthy = True
        self._last_heartbeat: float | None = None
        self._total_heartbeats = 0
        self._error_count = 0
        self._failed_checks = 0

    @property
    def regulator(self) -> HeartbeatRegulator:
        return self._regulator

    async def initialize(self) -> None:
        LOGGER.info("[Heartbeat] Initializing heartbeat monitor")
        self._config.require_valid(prefix="Invalid heartbeat configuration")
        await self._regulator.initialize()

    async def start(self) -> None:
        if self._is_running:
            return
        self._schedule_policy = str(self._config.get("heartbeat_schedule_policy"))
        self._fixed_interval_ms = float(self._config.get("heartbeat_interval"))
        await self._regulator.start()
        self._task = PeriodicTask(
            "heartbeat", self.perform_heartbeat, self.next_interval_s, await_body=True
        )
        self._task.start()
        self._is_running = True
        LOGGER.info(
            "[Heartbeat] Started (policy=%s, interval=%.0fms)",
            self._schedule_policy,
            self.next_interval_s() * 1000.0,
        )

    async def stop(self) -> None:
        if not self._is_running:
            return
        if self._task is not None:
            self._task.stop()
            self._task = None
        await self._regulator.stop()
        self._is_running = False
        LOGGER.info("[Heartbeat] Stopped")

    def next_interval_s(self) -> float:
        """Seconds until the next tick under the active schedule policy."""

        if self._schedule_policy == "adaptive":
            return self._regulator.current_interval / 1000.0
        return self._fixed_interval_ms / 1000.0

    def get_status(self) -> HeartbeatStatus:
        return HeartbeatStatus(
            is_running=self._is_running,
            is_healthy=self._is_healthy,
            last_heartbeat=self._last_heartbeat,
            total_heartbeats=self._total_heartbeats,
            average_response_time=self._average_response_time(),
            error_count=self._error_count,
            current_interval=self.next_interval_s() * 1000.0,
            schedule_policy=self._schedule_policy,
            regulator=self._regulator.get_status(),
        )

    async def perform_heartbeat(self) -> HeartbeatData:
        timestamp = time.time()
        start = time.perf_counter()
        try:
            memory_mb = bytes_to_mb(self._sampler.memory_used_bytes())
            cpu_usage = float(await self._sampler.cpu_percent())
        except Exception as exc:
            LOGGER.exception("[Heartbeat] Heartbeat check failed: %s", exc)
            self._error_count += 1
            self._failed_checks += 1
            self._is_healthy = False
            data = HeartbeatData(
                timestamp=timestamp,
                is_healthy=False,
                violations=(f"Heartbeat check failed: {exc}",),
            )
            self._publish(data)
            return data

        response_time = (time.perf_counter() - start) * 1000.0
        violations = self._check_limits(memory_mb, cpu_usage, response_time)
        data = HeartbeatData(
            timestamp=timestamp,
            memory_usage=memory_mb,
            cpu_usage=cpu_usage,
            response_time=response_time,
            is_healthy=not violations,
            violations=tuple(violations),
        )

        self._last_heartbeat = timestamp
        self._total_heartbeats += 1
        self._is_healthy = data.is_healthy
        self._response_times.append(response_time)

        if data.is_healthy:
            LOGGER.debug(
                "[Heartbeat] memory=%sMB cpu=%s%% response=%.1fms",
                memory_mb,
                cpu_usage,
                response_time,
            )
        else:
            self._error_count += 1
            LOGGER.warning("[Heartbeat] Unhealthy heartbeat: %s", ", ".join(violations))

        self._publish(data)
        self._regulator.adjust_interval(
            LoadMetrics(cpu_usage=cpu_usage, memory_usage=memory_mb, response_time=response_time)
        )
        return data

    def get_performance_metrics(self) -> dict[str, float]:
        try:
            memory_mb = float(bytes_to_mb(self._sampler.memory_used_bytes()))
        except Exception as exc:  # noqa: BLE001 - metrics read is best effort
            LOGGER.warning("[Heartbeat] Memory sample unavailable: %s", exc)
            memory_mb = 0.0
        average = self._average_response_time()
        # Failed checks are not part of total_heartbeats.
        checks = self._total_heartbeats + self._failed_checks
        error_rate = self._error_count / checks * 100.0 if checks else 0.0
        return {
            "memory_usage": memory_mb,
            "cpu_usage": 80.0 if average > 100.0 else 20.0,
            "response_time": average,
            "error_rate": error_rate,
        }

    def reset(self) -> None:
        self._total_heartbeats = 0
        self._error_count = 0
        self._failed_checks = 0
        self._response_times.clear()
        LOGGER.info("[Heartbeat] Statistics reset")

    def _check_limits(self, memory_mb: float, cpu_usage: float, response_time: float) -> list[str]:
        max_memory = float(self._config.get("max_memory_usage"))
        max_cpu = float(self._config.get("max_cpu_usage"))
        max_response = float(self._config.get("max_response_time"))
        violations: list[str] = []
        if memory_mb * MIB > max_memory:
            violations.append(
                f"Memory usage ({memory_mb}MB) exceeds limit ({max_memory / MIB:.0f}MB)"
            )
        if cpu_usage > max_cpu:
            violations.append(f"CPU usage ({cpu_usage}%) exceeds limit ({max_cpu}%)")
        if response_time > max_response:
            violations.append(
                f"Response time ({response_time:.0f}ms) exceeds limit ({max_response:.0f}ms)"
            )
        return violations

    def _average_response_time(self) -> float:
        if not self._response_times:
            return 0.0
        return sum(self._response_times) / len(self._response_times)

    def _publish(self, data: HeartbeatData) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(EventKind.HEARTBEAT, data, source="heartbeat")
