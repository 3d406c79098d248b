"""Coordinator owning the autonomy lifecycle and its two cycle schedulers."""

from __future__ import annotations

from dataclasses import replace
import time
from typing import Any

from config.autonomy_config import AutonomyConfig
from core.errors import CycleFailure, InitializationFailure
from core.event_bus import Event, EventBus, EventKind
from core.logging import log_bus_event, logger as LOGGER
from core.ops_models import AutonomyState, HealthLevel, LifecycleState, PerformanceSnapshot
from core.scheduler import PeriodicTask
from services.analysis import AnalysisResult, AnalyzerSuite
from services.health_monitor import HealthMonitor
from services.heartbeat_monitor import HeartbeatMonitor
from services.metrics_collector import MetricsCollector
from services.metrics_sampler import MetricSampler, SystemMetricSampler
from services.optimization import OptimizationEngine, OptimizationResult
from services.reflection import ReflectionEngine, ReflectionResult, ResultStatus


class AutonomyCoordinator:
    """Runs the control loop: ``uninitialized -> initialized -> running -> stopped``.

    Components are built from ``config`` unless injected. All of them share
    one event bus, which the coordinator listens on to keep ``AutonomyState``
    current. Reflection and optimization cycles are driven by two schedulers
    whose periods are read from the config once, at ``start()``; the manual
    triggers run the same bodies and are not serialized against them.
    """

    def __init__(
        self,
        config: AutonomyConfig,
        *,
        event_bus: EventBus | None = None,
        sampler: MetricSampler | None = None,
        heartbeat: HeartbeatMonitor | None = None,
        reflection: ReflectionEngine | None = None,
        monitor: HealthMonitor | None = None,
        optimizer: OptimizationEngine | None = None,
        analyzer: AnalyzerSuite | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config
        self._event_bus = event_bus if event_bus is not None else EventBus()
        if sampler is None:
            sampler = SystemMetricSampler()
        self._sampler = sampler
        self._heartbeat = heartbeat or HeartbeatMonitor(config, sampler, self._event_bus)
        self._reflection = reflection or ReflectionEngine(config, sampler, self._event_bus)
        self._monitor = monitor or HealthMonitor(config, sampler, self._event_bus)
        self._optimizer = optimizer or OptimizationEngine(config)
        self._analyzer = analyzer or AnalyzerSuite(config)
        self._metrics = metrics or MetricsCollector(config)

        self._state = AutonomyState()
        self._lifecycle = LifecycleState.UNINITIALIZED
        self._reflection_task: PeriodicTask | None = None
        self._optimization_task: PeriodicTask | None = None
        self._subscribed = False

    @property
    def lifecycle(self) -> LifecycleState:
        return self._lifecycle

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        return self._heartbeat

    @property
    def reflection(self) -> ReflectionEngine:
        return self._reflection

    @property
    def monitor(self) -> HealthMonitor:
        return self._monitor

    @property
    def optimizer(self) -> OptimizationEngine:
        return self._optimizer

    @property
    def analyzer(self) -> AnalyzerSuite:
        return self._analyzer

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    async def initialize(self) -> None:
        if self._lifecycle is not LifecycleState.UNINITIALIZED:
            LOGGER.debug("[Coordinator] Already initialized")
            return
        LOGGER.info("[Coordinator] Initializing autonomy coordinator")
        components = (
            ("heartbeat", self._heartbeat),
            ("reflection", self._reflection),
            ("monitor", self._monitor),
            ("optimizer", self._optimizer),
            ("analyzer", self._analyzer),
            ("metrics", self._metrics),
        )
        for name, component in components:
            try:
                await component.initialize()
            except Exception as exc:
                LOGGER.error("[Coordinator] Failed to initialize %s: %s", name, exc)
                raise InitializationFailure(name, exc) from exc

        self._subscribe()
        self._state.is_initialized = True
        self._lifecycle = LifecycleState.INITIALIZED
        LOGGER.info("[Coordinator] Initialized")

    async def start(self) -> None:
        if self._lifecycle is LifecycleState.RUNNING:
            return
        if not self._state.is_initialized:
            raise RuntimeError("Coordinator must be initialized before starting")
        self._config.require_valid()

        LOGGER.info("[Coordinator] Starting autonomy coordinator")
        await self._heartbeat.start()
        await self._reflection.start()
        if self._config.get("monitoring_enabled"):
            await self._monitor.start()
        else:
            LOGGER.info("[Coordinator] Health monitoring disabled")
        await self._optimizer.start()
        await self._metrics.start()

        if self._config.get("enable_meta_cognition"):
            reflection_s = float(self._config.get("reflection_cycle_interval")) / 1000.0
            self._reflection_task = PeriodicTask(
                "reflection-cycle", self._perform_reflection_cycle, reflection_s
            )
            self._reflection_task.start()
        if self._config.get("optimization_enabled"):
            optimization_s = float(self._config.get("optimization_interval")) / 1000.0
            self._optimization_task = PeriodicTask(
                "optimization-cycle", self._perform_optimization_cycle, optimization_s
            )
            self._optimization_task.start()

        self._state.is_running = True
        self._lifecycle = LifecycleState.RUNNING
        LOGGER.info("[Coordinator] Started")

    async def stop(self) -> None:
        if self._lifecycle is not LifecycleState.RUNNING:
            return
        LOGGER.info("[Coordinator] Stopping autonomy coordinator")
        for task in (self._reflection_task, self._optimization_task):
            if task is not None:
                task.stop()

        await self._metrics.stop()
        await self._optimizer.stop()
        await self._monitor.stop()
        await self._reflection.stop()
        await self._heartbeat.stop()

        self._state.is_running = False
        self._lifecycle = LifecycleState.STOPPED
        LOGGER.info("[Coordinator] Stopped")

    async def wait_for_cycles(self) -> None:
        """Wait for scheduled cycle bodies still running after ``stop()``."""

        for task in (self._reflection_task, self._optimization_task):
            if task is not None:
                await task.wait_in_flight()

    async def trigger_reflection_cycle(self) -> ReflectionResult | None:
        LOGGER.info("[Coordinator] Manual reflection cycle")
        return await self._perform_reflection_cycle()

    async def trigger_optimization_cycle(self) -> OptimizationResult | None:
        LOGGER.info("[Coordinator] Manual optimization cycle")
        return await self._perform_optimization_cycle()

    async def trigger_analysis(self) -> AnalysisResult:
        return await self._analyzer.analyze()

    def get_state(self) -> AutonomyState:
        return replace(self._state)

    def get_status(self) -> dict[str, Any]:
        return {
            "coordinator": {
                "is_running": self._state.is_running,
                "is_initialized": self._state.is_initialized,
                "lifecycle": self._lifecycle.value,
                "system_health": self._state.system_health.value,
                "total_reflection_cycles": self._state.total_reflection_cycles,
                "total_optimization_cycles": self._state.total_optimization_cycles,
            },
            "heartbeat": self._heartbeat.get_status(),
            "reflection": self._reflection.get_status(),
            "monitor": self._monitor.get_status(),
            "optimizer": self._optimizer.get_status(),
            "analyzer": self._analyzer.get_status(),
            "metrics": self._metrics.get_status(),
        }

    async def _perform_reflection_cycle(self) -> ReflectionResult | None:
        start = time.perf_counter()
        try:
            result = await self._reflection.perform_cycle()
            if result.status is ResultStatus.FAILED:
                raise CycleFailure(result.error or "reflection cycle failed")
            self._metrics.record_reflection_cycle(result)
            self._state.last_reflection_cycle = time.time()
            self._state.total_reflection_cycles += 1
        except Exception as exc:
            LOGGER.error("[Coordinator] Reflection cycle failed: %s", exc)
            self._degrade_health()
            return None
        LOGGER.info(
            "[Coordinator] Reflection cycle completed in %.1fms",
            (time.perf_counter() - start) * 1000.0,
        )
        return result

    async def _perform_optimization_cycle(self) -> OptimizationResult | None:
        start = time.perf_counter()
        try:
            result = await self._optimizer.perform_cycle()
            self._metrics.record_optimization_cycle(result)
            self._state.last_optimization_cycle = time.time()
            self._state.total_optimization_cycles += 1
        except Exception as exc:
            LOGGER.error("[Coordinator] Optimization cycle failed: %s", exc)
            self._degrade_health()
            return None
        LOGGER.info(
            "[Coordinator] Optimization cycle completed in %.1fms",
            (time.perf_counter() - start) * 1000.0,
        )
        return result

    def _degrade_health(self) -> None:
        self._state.system_health = self._state.system_health.escalate(HealthLevel.WARNING)

    def _subscribe(self) -> None:
        if self._subscribed:
            return
        bus = self._event_bus
        bus.subscribe(EventKind.HEARTBEAT, self._on_heartbeat)
        bus.subscribe(EventKind.HEALTH_CHANGE, self._on_health_change)
        bus.subscribe(EventKind.CRITICAL, self._on_critical)
        bus.subscribe(EventKind.CYCLE_FAILED, self._on_cycle_failed)
        bus.subscribe_all(log_bus_event)
        self._subscribed = True

    def _on_heartbeat(self, event: Event) -> None:
        data = event.payload
        self._state.performance_metrics = PerformanceSnapshot(
            memory_usage=data.memory_usage,
            cpu_usage=data.cpu_usage,
            response_time=data.response_time,
        )

    def _on_health_change(self, event: Event) -> None:
        self._state.system_health = event.payload

    def _on_critical(self, event: Event) -> None:
        LOGGER.warning("[Coordinator] Critical autonomy event: %s", event.payload.message)
        self._state.system_health = HealthLevel.CRITICAL

    def _on_cycle_failed(self, event: Event) -> None:
        self._degrade_health()
