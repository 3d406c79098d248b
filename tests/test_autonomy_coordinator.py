"""Tests for the autonomy coordinator lifecycle and state wiring."""

from __future__ import annotations

import asyncio

import pytest

from config.autonomy_config import GIB, MIB, AutonomyConfig
from core.errors import InitializationFailure, ValidationError
from core.ops_models import HealthLevel, LifecycleState
from services.autonomy_coordinator import AutonomyCoordinator
from services.optimization import (
    BaseOptimizer,
    MemoryOptimizer,
    OptimizationEngine,
    OptimizationResult,
    OptimizationStatus,
)


class _FakeSampler:
    def __init__(self, memory_bytes: int = 100 * MIB, cpu: float = 10.0) -> None:
        self.memory_bytes = memory_bytes
        self.cpu = cpu
        self.memory_percent_value = 20.0
        self.error: Exception | None = None

    def memory_used_bytes(self) -> int:
        return self.memory_bytes

    def memory_percent(self) -> float:
        if self.error is not None:
            raise self.error
        return self.memory_percent_value

    async def cpu_percent(self) -> float:
        await asyncio.sleep(0)
        return self.cpu


class _BrokenInitOptimizer(BaseOptimizer):
    name = "broken"

    async def initialize(self) -> None:
        raise RuntimeError("optimizer hardware missing")

    async def perform_cycle(self) -> OptimizationResult:
        return OptimizationResult()


def _coordinator(sampler: _FakeSampler | None = None, **options) -> AutonomyCoordinator:
    return AutonomyCoordinator(AutonomyConfig(options), sampler=sampler or _FakeSampler())


def test_lifecycle_and_status_contract() -> None:
    coordinator = _coordinator()

    async def _run() -> None:
        assert coordinator.lifecycle is LifecycleState.UNINITIALIZED
        await coordinator.initialize()
        assert coordinator.lifecycle is LifecycleState.INITIALIZED
        await coordinator.start()
        assert coordinator.lifecycle is LifecycleState.RUNNING
        assert coordinator.get_state().is_running
        await coordinator.stop()
        await coordinator.stop()

    asyncio.run(_run())

    assert coordinator.lifecycle is LifecycleState.STOPPED
    state = coordinator.get_state()
    assert state.is_initialized
    assert not state.is_running
    status = coordinator.get_status()
    assert set(status) == {
        "coordinator",
        "heartbeat",
        "reflection",
        "monitor",
        "optimizer",
        "analyzer",
        "metrics",
    }
    assert not status["heartbeat"].is_running
    assert not status["monitor"].is_running


def test_stop_before_start_is_a_no_op() -> None:
    coordinator = _coordinator()

    asyncio.run(coordinator.stop())

    assert coordinator.lifecycle is LifecycleState.UNINITIALIZED


def test_start_requires_initialize() -> None:
    coordinator = _coordinator()

    with pytest.raises(RuntimeError, match="initialized before starting"):
        asyncio.run(coordinator.start())


def test_initialize_failure_aborts_and_names_component() -> None:
    config = AutonomyConfig()
    optimizer = OptimizationEngine(config, [MemoryOptimizer(config), _BrokenInitOptimizer(config)])
    coordinator = AutonomyCoordinator(config, sampler=_FakeSampler(), optimizer=optimizer)

    with pytest.raises(InitializationFailure) as excinfo:
        asyncio.run(coordinator.initialize())

    assert excinfo.value.component == "optimizer"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert coordinator.lifecycle is LifecycleState.UNINITIALIZED
    assert not coordinator.get_state().is_initialized


def test_invalid_config_fails_initialize_at_heartbeat() -> None:
    coordinator = _coordinator(heartbeat_interval=1_000)

    with pytest.raises(InitializationFailure) as excinfo:
        asyncio.run(coordinator.initialize())

    assert excinfo.value.component == "heartbeat"
    assert isinstance(excinfo.value.__cause__, ValidationError)


def test_manual_cycles_update_state_and_metrics() -> None:
    coordinator = _coordinator()

    async def _run() -> None:
        await coordinator.initialize()
        reflection = await coordinator.trigger_reflection_cycle()
        optimization = await coordinator.trigger_optimization_cycle()
        assert reflection is not None
        assert optimization is not None
        assert optimization.status is OptimizationStatus.SUCCESS

    asyncio.run(_run())

    state = coordinator.get_state()
    assert state.total_reflection_cycles == 1
    assert state.total_optimization_cycles == 1
    assert state.last_reflection_cycle is not None
    assert state.last_optimization_cycle is not None
    assert coordinator.get_status()["metrics"]["collections"] == 2
    assert state.system_health is HealthLevel.HEALTHY


def test_concurrent_manual_reflection_cycles_double_count() -> None:
    coordinator = _coordinator()

    async def _run() -> None:
        await coordinator.initialize()
        await asyncio.gather(
            coordinator.trigger_reflection_cycle(),
            coordinator.trigger_reflection_cycle(),
        )

    asyncio.run(_run())

    assert coordinator.get_state().total_reflection_cycles == 2
    assert len(coordinator.reflection.get_recent_cycles()) == 2


def test_failed_reflection_cycle_degrades_health() -> None:
    sampler = _FakeSampler()
    sampler.error = RuntimeError("sampler offline")
    coordinator = _coordinator(sampler)

    async def _run() -> None:
        await coordinator.initialize()
        return await coordinator.trigger_reflection_cycle()

    result = asyncio.run(_run())

    assert result is None
    state = coordinator.get_state()
    assert state.system_health is HealthLevel.WARNING
    assert state.total_reflection_cycles == 0


def test_heartbeat_event_updates_performance_snapshot() -> None:
    coordinator = _coordinator(_FakeSampler(memory_bytes=256 * MIB, cpu=42.0))

    async def _run() -> None:
        await coordinator.initialize()
        await coordinator.heartbeat.perform_heartbeat()

    asyncio.run(_run())

    snapshot = coordinator.get_state().performance_metrics
    assert snapshot.memory_usage == 256
    assert snapshot.cpu_usage == 42.0


def test_critical_memory_sets_system_health_critical() -> None:
    coordinator = _coordinator(_FakeSampler(memory_bytes=int(0.95 * GIB)))

    async def _run() -> None:
        await coordinator.initialize()
        await coordinator.monitor.perform_health_check()

    asyncio.run(_run())

    assert coordinator.get_state().system_health is HealthLevel.CRITICAL


def test_heartbeat_and_monitor_disagree_on_cpu_near_cap() -> None:
    coordinator = _coordinator(_FakeSampler(cpu=75.0))

    async def _run() -> None:
        await coordinator.initialize()
        heartbeat = await coordinator.heartbeat.perform_heartbeat()
        health = await coordinator.monitor.perform_health_check()
        return heartbeat, health

    heartbeat, health = asyncio.run(_run())

    assert heartbeat.is_healthy
    assert health is HealthLevel.CRITICAL
    assert coordinator.get_state().system_health is HealthLevel.CRITICAL


def test_disabled_loops_are_not_armed() -> None:
    coordinator = _coordinator(
        optimization_enabled=False,
        monitoring_enabled=False,
        enable_meta_cognition=False,
    )

    async def _run() -> None:
        await coordinator.initialize()
        await coordinator.start()
        status = coordinator.get_status()
        await coordinator.stop()
        return status

    status = asyncio.run(_run())

    assert status["coordinator"]["is_running"]
    assert not status["monitor"].is_running
    assert status["heartbeat"].is_running


def test_analysis_runs_through_suite() -> None:
    coordinator = _coordinator()

    result = asyncio.run(coordinator.trigger_analysis())

    assert result.metrics.stability > 0.0
    assert coordinator.analyzer.last_result is result
