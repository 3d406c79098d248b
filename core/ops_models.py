"""Models for autonomy lifecycle and health tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class HealthLevel(str, Enum):
    """Coarse system health classification."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _HEALTH_RANK[self]

    def escalate(self, other: "HealthLevel") -> "HealthLevel":
        """Return the more severe of the two levels."""

        return other if other.rank > self.rank else self


_HEALTH_RANK = {
    HealthLevel.HEALTHY: 0,
    HealthLevel.WARNING: 1,
    HealthLevel.CRITICAL: 2,
}


class LifecycleState(str, Enum):
    """Lifecycle of the autonomy coordinator."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Last sampled performance figures (MB, percent, ms)."""

    memory_usage: float = 0.0
    cpu_usage: float = 0.0
    response_time: float = 0.0


@dataclass
class AutonomyState:
    """Coordinator-owned aggregate state."""

    is_running: bool = False
    is_initialized: bool = False
    last_reflection_cycle: float | None = None
    last_optimization_cycle: float | None = None
    total_reflection_cycles: int = 0
    total_optimization_cycles: int = 0
    system_health: HealthLevel = HealthLevel.HEALTHY
    performance_metrics: PerformanceSnapshot = field(default_factory=PerformanceSnapshot)
