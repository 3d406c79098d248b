"""Tests for optimization fan-out and aggregation."""

from __future__ import annotations

import asyncio

import pytest

from config.autonomy_config import AutonomyConfig
from services.optimization import (
    BaseOptimizer,
    MemoryOptimizer,
    Optimization,
    OptimizationEngine,
    OptimizationResult,
    OptimizationStatus,
    aggregate_results,
)


class _StaticOptimizer(BaseOptimizer):
    def __init__(self, name: str, result: OptimizationResult) -> None:
        super().__init__(AutonomyConfig())
        self.name = name
        self._result = result

    async def perform_cycle(self) -> OptimizationResult:
        await asyncio.sleep(0)
        return self._result


class _RaisingOptimizer(BaseOptimizer):
    name = "raising"

    async def perform_cycle(self) -> OptimizationResult:
        raise RuntimeError("optimizer crashed")


class _BrokenInitOptimizer(BaseOptimizer):
    name = "broken"

    async def initialize(self) -> None:
        raise RuntimeError("cannot initialize")

    async def perform_cycle(self) -> OptimizationResult:
        return OptimizationResult()


def _optimization(name: str) -> Optimization:
    return Optimization(id=name, type="performance", description=name, impact=0.1, applied=True)


def test_default_engine_aggregates_three_optimizers() -> None:
    engine = OptimizationEngine(AutonomyConfig())

    result = asyncio.run(engine.perform_cycle())

    assert result.status is OptimizationStatus.SUCCESS
    assert result.performance_gain == pytest.approx(0.33)
    assert result.memory_reduction == pytest.approx(0.10)
    assert result.duration == pytest.approx(450.0)
    assert [o.type for o in result.optimizations] == ["memory"]
    assert result.optimizations[0].data["collected"] >= 0


def test_one_partial_sub_result_makes_aggregate_partial() -> None:
    optimizers = [
        _StaticOptimizer(
            "a",
            OptimizationResult(
                optimizations=(_optimization("a1"),),
                performance_gain=0.1,
                memory_reduction=0.01,
                duration=10.0,
            ),
        ),
        _StaticOptimizer(
            "b",
            OptimizationResult(
                optimizations=(_optimization("b1"), _optimization("b2")),
                performance_gain=0.2,
                memory_reduction=0.02,
                duration=20.0,
            ),
        ),
        _StaticOptimizer(
            "c",
            OptimizationResult(
                performance_gain=0.3,
                memory_reduction=0.03,
                duration=30.0,
                status=OptimizationStatus.PARTIAL,
            ),
        ),
    ]
    engine = OptimizationEngine(AutonomyConfig(), optimizers)

    result = asyncio.run(engine.perform_cycle())

    assert result.status is OptimizationStatus.PARTIAL
    assert [o.id for o in result.optimizations] == ["a1", "b1", "b2"]
    assert result.performance_gain == pytest.approx(0.6)
    assert result.memory_reduction == pytest.approx(0.06)
    assert result.duration == pytest.approx(60.0)
    assert result.optimizations_applied == 3


def test_raising_optimizer_becomes_failed_sub_result() -> None:
    config = AutonomyConfig()
    engine = OptimizationEngine(config, [MemoryOptimizer(config), _RaisingOptimizer(config)])

    result = asyncio.run(engine.perform_cycle())

    assert result.status is OptimizationStatus.PARTIAL
    assert result.performance_gain == pytest.approx(0.10)
    assert result.error == "raising: optimizer crashed"
    assert engine.get_status()["last_status"] == "partial"


def test_initialize_failure_propagates() -> None:
    config = AutonomyConfig()
    engine = OptimizationEngine(config, [MemoryOptimizer(config), _BrokenInitOptimizer(config)])

    with pytest.raises(RuntimeError, match="cannot initialize"):
        asyncio.run(engine.initialize())


def test_aggregate_of_nothing_is_success() -> None:
    result = aggregate_results([])

    assert result.status is OptimizationStatus.SUCCESS
    assert result.optimizations == ()
    assert result.duration == 0.0


def test_status_reports_each_optimizer() -> None:
    engine = OptimizationEngine(AutonomyConfig())

    async def _run() -> None:
        await engine.initialize()
        await engine.start()
        await engine.perform_cycle()

    asyncio.run(_run())

    status = engine.get_status()
    assert status["is_running"]
    assert set(status["optimizers"]) == {"memory", "performance", "pattern"}
    assert status["optimizers"]["memory"]["cycles"] == 1
