"""Pattern optimizer baseline."""

from __future__ import annotations

from services.optimization.base import BaseOptimizer
from services.optimization.models import OptimizationResult


class PatternOptimizer(BaseOptimizer):
    name = "pattern"

    async def perform_cycle(self) -> OptimizationResult:
        return OptimizationResult(performance_gain=0.08, memory_reduction=0.03, duration=200.0)
