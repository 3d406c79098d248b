"""Result types shared by the optimization engine and its sub-optimizers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OptimizationStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class Optimization:
    """One optimization a sub-optimizer applied (or proposed)."""

    id: str
    type: str
    description: str
    impact: float
    applied: bool
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OptimizationResult:
    """Outcome of one optimizer cycle. Gains and reductions are fractions, duration in ms."""

    optimizations: tuple[Optimization, ...] = ()
    performance_gain: float = 0.0
    memory_reduction: float = 0.0
    duration: float = 0.0
    status: OptimizationStatus = OptimizationStatus.SUCCESS
    error: str | None = None

    @property
    def optimizations_applied(self) -> int:
        return sum(1 for optimization in self.optimizations if optimization.applied)
