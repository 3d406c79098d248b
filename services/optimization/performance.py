"""Performance optimizer baseline."""

from __future__ import annotations

from services.optimization.base import BaseOptimizer
from services.optimization.models import OptimizationResult


class PerformanceOptimizer(BaseOptimizer):
    name = "performance"

    async def perform_cycle(self) -> OptimizationResult:
        return OptimizationResult(performance_gain=0.15, memory_reduction=0.02, duration=150.0)
