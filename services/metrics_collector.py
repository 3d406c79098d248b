"""Append-only recorder of per-cycle metrics."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any
import uuid

from config.autonomy_config import AutonomyConfig
from core.logging import logger as LOGGER
from services.optimization.models import OptimizationResult
from services.reflection.models import ReflectionResult


@dataclass(frozen=True)
class MetricsData:
    timestamp: float
    type: str
    value: float
    unit: str


@dataclass(frozen=True)
class MetricsCollection:
    id: str
    timestamp: float
    metrics: tuple[MetricsData, ...]

    def value_of(self, metric_type: str) -> float | None:
        for metric in self.metrics:
            if metric.type == metric_type:
                return metric.value
        return None


class MetricsCollector:
    """Records one collection per finished cycle. No aggregation, no retention cap."""

    def __init__(self, config: AutonomyConfig) -> None:
        self._config = config
        self._collections: list[MetricsCollection] = []
        self._is_running = False

    async def initialize(self) -> None:
        LOGGER.info("[Metrics] Initializing metrics collector")

    async def start(self) -> None:
        self._is_running = True
        LOGGER.info("[Metrics] Started")

    async def stop(self) -> None:
        self._is_running = False
        LOGGER.info("[Metrics] Stopped")

    @property
    def collections(self) -> list[MetricsCollection]:
        return list(self._collections)

    def record_reflection_cycle(self, result: ReflectionResult) -> MetricsCollection:
        return self._record(
            "reflection",
            [
                ("reflection_duration", result.duration, "ms"),
                ("reflection_depth", result.depth, "levels"),
                ("insights_generated", len(result.insights), "count"),
                ("improvements_identified", len(result.improvements), "count"),
            ],
        )

    def record_optimization_cycle(self, result: OptimizationResult) -> MetricsCollection:
        return self._record(
            "optimization",
            [
                ("optimization_duration", result.duration, "ms"),
                ("performance_gain", result.performance_gain, "%"),
                ("memory_reduction", result.memory_reduction, "%"),
                ("optimizations_applied", len(result.optimizations), "count"),
            ],
        )

    def get_status(self) -> dict[str, Any]:
        return {
            "is_running": self._is_running,
            "collections": len(self._collections),
            "type": "metrics",
        }

    def _record(self, prefix: str, values: list[tuple[str, float, str]]) -> MetricsCollection:
        now = time.time()
        collection = MetricsCollection(
            id=f"{prefix}_{uuid.uuid4().hex[:12]}",
            timestamp=now,
            metrics=tuple(
                MetricsData(timestamp=now, type=name, value=float(value), unit=unit)
                for name, value, unit in values
            ),
        )
        self._collections.append(collection)
        return collection
