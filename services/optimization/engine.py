"""Fan-out optimization engine aggregating its sub-optimizers."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Iterable, Sequence

from config.autonomy_config import AutonomyConfig
from core.logging import logger as LOGGER
from services.optimization.base import BaseOptimizer
from services.optimization.memory import MemoryOptimizer
from services.optimization.models import OptimizationResult, OptimizationStatus
from services.optimization.pattern import PatternOptimizer
from services.optimization.performance import PerformanceOptimizer


def aggregate_results(results: Iterable[OptimizationResult]) -> OptimizationResult:
    """Concatenate optimizations and sum the numeric fields.

    The aggregate is ``success`` only when every input succeeded.
    """

    results = list(results)
    optimizations = tuple(
        optimization for result in results for optimization in result.optimizations
    )
    all_success = all(result.status is OptimizationStatus.SUCCESS for result in results)
    errors = [result.error for result in results if result.error]
    return OptimizationResult(
        optimizations=optimizations,
        performance_gain=sum(result.performance_gain for result in results),
        memory_reduction=sum(result.memory_reduction for result in results),
        duration=sum(result.duration for result in results),
        status=OptimizationStatus.SUCCESS if all_success else OptimizationStatus.PARTIAL,
        error="; ".join(errors) if errors else None,
    )


class OptimizationEngine:
    """Runs the memory, performance and pattern optimizers concurrently."""

    def __init__(
        self,
        config: AutonomyConfig,
        optimizers: Sequence[BaseOptimizer] | None = None,
    ) -> None:
        self._config = config
        if optimizers is None:
            optimizers = (
                MemoryOptimizer(config),
                PerformanceOptimizer(config),
                PatternOptimizer(config),
            )
        self._optimizers = tuple(optimizers)
        self._is_running = False
        self._total_cycles = 0
        self._last_result: OptimizationResult | None = None

    @property
    def optimizers(self) -> tuple[BaseOptimizer, ...]:
        return self._optimizers

    async def initialize(self) -> None:
        LOGGER.info("[Optimizer] Initializing optimization engine")
        for optimizer in self._optimizers:
            await optimizer.initialize()

    async def start(self) -> None:
        if self._is_running:
            return
        for optimizer in self._optimizers:
            await optimizer.start()
        self._is_running = True
        LOGGER.info("[Optimizer] Started %s optimizers", len(self._optimizers))

    async def stop(self) -> None:
        if not self._is_running:
            return
        for optimizer in reversed(self._optimizers):
            await optimizer.stop()
        self._is_running = False
        LOGGER.info("[Optimizer] Stopped")

    async def perform_cycle(self) -> OptimizationResult:
        start = time.perf_counter()
        outcomes = await asyncio.gather(
            *(optimizer.run_cycle() for optimizer in self._optimizers),
            return_exceptions=True,
        )
        results: list[OptimizationResult] = []
        for optimizer, outcome in zip(self._optimizers, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                LOGGER.error("[Optimizer] %s optimizer failed: %s", optimizer.name, outcome)
                results.append(
                    OptimizationResult(
                        status=OptimizationStatus.FAILED,
                        error=f"{optimizer.name}: {outcome}",
                    )
                )
            else:
                results.append(outcome)

        aggregate = aggregate_results(results)
        self._total_cycles += 1
        self._last_result = aggregate
        LOGGER.info(
            "[Optimizer] Cycle %s in %.1fms: gain=%.2f reduction=%.2f applied=%s",
            aggregate.status.value,
            (time.perf_counter() - start) * 1000.0,
            aggregate.performance_gain,
            aggregate.memory_reduction,
            aggregate.optimizations_applied,
        )
        return aggregate

    def get_status(self) -> dict[str, Any]:
        last = self._last_result
        return {
            "is_running": self._is_running,
            "total_cycles": self._total_cycles,
            "last_status": last.status.value if last is not None else None,
            "optimizers": {
                optimizer.name: optimizer.get_status() for optimizer in self._optimizers
            },
        }
