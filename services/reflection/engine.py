"""Reflection engine: bounded analysis cycles producing insights and improvements."""

from __future__ import annotations

from collections import deque
import time
from typing import Any, Deque, Iterable
import uuid

from config.autonomy_config import AutonomyConfig
from core.errors import ValidationError
from core.event_bus import EventBus, EventKind
from core.logging import logger as LOGGER
from core.ops_models import HealthLevel
from services.metrics_sampler import MetricSampler
from services.reflection.models import (
    CycleStatus,
    Impact,
    ImpactVector,
    Improvement,
    Insight,
    InsightType,
    LearningOutcome,
    MetaCognitiveState,
    PatternRecognition,
    Priority,
    ReflectionContext,
    ReflectionCycle,
    ReflectionResult,
    ResultStatus,
)


IMPROVEMENT_CONFIDENCE = 0.7
LEARNING_CONFIDENCE = 0.8
MEMORY_PERCENT_LIMIT = 80.0
CPU_PERCENT_LIMIT = 70.0
ERROR_RATE_LIMIT = 0.05

# Placeholder performance figures until a real metrics source is wired in.
STATIC_PERFORMANCE_METRICS = {
    "response_time": 100.0,
    "throughput": 50.0,
    "error_rate": 0.01,
}
REFLECTION_GOALS = (
    "optimize performance",
    "reduce memory usage",
    "improve stability",
)
# Reflection stays flat; max_reflection_depth is validated but not recursed into.
FLAT_DEPTH = 1


def _new_id(prefix: str = "reflection") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def create_improvement(insight: Insight) -> Improvement:
    """Build the improvement proposal for one insight."""

    return Improvement(
        id=_new_id("improvement"),
        timestamp=time.time(),
        type="performance" if insight.type is InsightType.PERFORMANCE else "behavior",
        description=f"Improvement based on: {insight.description}",
        priority=Priority.HIGH if insight.impact is Impact.HIGH else Priority.MEDIUM,
        impact=ImpactVector(
            performance=0.8 if insight.type is InsightType.PERFORMANCE else 0.3,
            memory=0.9 if insight.category == "memory" else 0.2,
            stability=0.7 if insight.type is InsightType.BEHAVIOR else 0.4,
        ),
        insight_id=insight.id,
        data=dict(insight.data),
    )


def derive_improvements(insights: Iterable[Insight]) -> list[Improvement]:
    """One improvement per actionable insight with confidence strictly above 0.7."""

    return [
        create_improvement(insight)
        for insight in insights
        if insight.actionable and insight.confidence > IMPROVEMENT_CONFIDENCE
    ]


class ReflectionEngine:
    """Runs reflection cycles over a snapshot of process state.

    A cycle never raises to its caller: errors are recorded as a ``failed``
    cycle and move the engine health to warning.
    """

    def __init__(
        self,
        config: AutonomyConfig,
        sampler: MetricSampler,
        event_bus: EventBus | None = None,
    ) -> None:
        self._config = config
        self._sampler = sampler
        self._event_bus = event_bus
        history_limit = max(1, int(config.get("reflection_history_limit")))
        self._cycles: Deque[ReflectionCycle] = deque(maxlen=history_limit)
        self._insights: Deque[Insight] = deque(maxlen=history_limit * 5)
        self._improvements: Deque[Improvement] = deque(maxlen=history_limit * 5)
        self._patterns: dict[str, PatternRecognition] = {}
        self._learning_outcomes: list[LearningOutcome] = []
        self._current_depth = FLAT_DEPTH
        self._max_depth = int(config.get("max_reflection_depth"))
        self._total_cycles = 0
        self._total_insights = 0
        self._total_improvements = 0
        self._last_cycle: float | None = None
        self._is_active = False
        self._health = HealthLevel.HEALTHY

    async def initialize(self) -> None:
        LOGGER.info("[Reflection] Initializing reflection engine")
        self._max_depth = int(self._config.get("max_reflection_depth"))
        if self._max_depth < 1 or self._max_depth > 10:
            raise ValidationError("max_reflection_depth must be between 1 and 10")

    async def start(self) -> None:
        if self._is_active:
            return
        self._is_active = True
        LOGGER.info("[Reflection] Active")

    async def stop(self) -> None:
        if not self._is_active:
            return
        self._is_active = False
        LOGGER.info("[Reflection] Idle")

    def get_status(self) -> MetaCognitiveState:
        return MetaCognitiveState(
            current_depth=self._current_depth,
            max_depth=self._max_depth,
            total_cycles=self._total_cycles,
            total_insights=self._total_insights,
            total_improvements=self._total_improvements,
            last_cycle=self._last_cycle,
            is_active=self._is_active,
            health=self._health,
        )

    async def perform_cycle(self) -> ReflectionResult:
        start = time.perf_counter()
        cycle_id = _new_id()
        depth = self._current_depth
        LOGGER.info("[Reflection] Starting cycle %s", cycle_id)
        try:
            context = await self._gather_context()
            insights = (
                self._analyze_performance(context)
                + self._analyze_behavior(context)
                + self._recognize_patterns(context)
            )
            improvements = derive_improvements(insights)
            self._apply_learning_outcomes()
        except Exception as exc:
            duration = (time.perf_counter() - start) * 1000.0
            LOGGER.exception("[Reflection] Cycle %s failed: %s", cycle_id, exc)
            failed = ReflectionCycle(
                id=cycle_id,
                timestamp=time.time(),
                depth=depth,
                duration=duration,
                insights=(),
                improvements=(),
                status=CycleStatus.FAILED,
                error=str(exc),
            )
            self._cycles.append(failed)
            self._health = HealthLevel.WARNING
            self._publish(EventKind.CYCLE_FAILED, failed)
            return ReflectionResult(
                depth=depth,
                insights=[],
                improvements=[],
                duration=duration,
                status=ResultStatus.FAILED,
                error=str(exc),
            )

        status = ResultStatus.SUCCESS if insights else ResultStatus.PARTIAL
        duration = (time.perf_counter() - start) * 1000.0
        cycle = ReflectionCycle(
            id=cycle_id,
            timestamp=time.time(),
            depth=depth,
            duration=duration,
            insights=tuple(insights),
            improvements=tuple(improvements),
            status=CycleStatus.COMPLETED if status is ResultStatus.SUCCESS else CycleStatus.PARTIAL,
        )

        self._total_cycles += 1
        self._last_cycle = cycle.timestamp
        self._total_insights += len(insights)
        self._total_improvements += len(improvements)
        self._cycles.append(cycle)
        self._insights.extend(insights)
        self._improvements.extend(improvements)

        self._publish(EventKind.CYCLE_COMPLETED, cycle)
        self._publish(EventKind.INSIGHTS_GENERATED, list(insights))
        self._publish(EventKind.IMPROVEMENTS_IDENTIFIED, list(improvements))
        LOGGER.info(
            "[Reflection] Cycle completed in %.1fms with %s insights and %s improvements",
            duration,
            len(insights),
            len(improvements),
        )
        return ReflectionResult(
            depth=depth,
            insights=insights,
            improvements=improvements,
            duration=duration,
            status=status,
        )

    def record_learning_outcome(
        self,
        description: str,
        *,
        confidence: float,
        impact: float = 0.5,
        type: InsightType = InsightType.LEARNING,
    ) -> LearningOutcome:
        outcome = LearningOutcome(
            id=_new_id("learning"),
            timestamp=time.time(),
            type=type,
            description=description,
            confidence=confidence,
            impact=impact,
        )
        self._learning_outcomes.append(outcome)
        return outcome

    def mark_improvement_implemented(self, improvement_id: str) -> bool:
        for improvement in self._improvements:
            if improvement.id == improvement_id:
                improvement.implemented = True
                return True
        return False

    def get_recent_cycles(self, limit: int = 10) -> list[ReflectionCycle]:
        return list(self._cycles)[-limit:] if limit > 0 else []

    def get_recent_insights(self, limit: int = 20) -> list[Insight]:
        return list(self._insights)[-limit:] if limit > 0 else []

    def get_recent_improvements(self, limit: int = 10) -> list[Improvement]:
        return list(self._improvements)[-limit:] if limit > 0 else []

    def get_patterns(self) -> list[PatternRecognition]:
        return list(self._patterns.values())

    def get_statistics(self) -> dict[str, Any]:
        cycles = self._total_cycles
        return {
            "total_cycles": cycles,
            "total_insights": self._total_insights,
            "total_improvements": self._total_improvements,
            "average_insights_per_cycle": self._total_insights / cycles if cycles else 0.0,
            "average_improvements_per_cycle": self._total_improvements / cycles if cycles else 0.0,
            "health": self._health.value,
        }

    async def _gather_context(self) -> ReflectionContext:
        return ReflectionContext(
            system_state={
                "memory_usage": float(self._sampler.memory_percent()),
                "cpu_usage": float(await self._sampler.cpu_percent()),
                "uptime": time.time(),
            },
            performance_metrics=dict(STATIC_PERFORMANCE_METRICS),
            patterns=list(self._patterns.values()),
            goals=list(REFLECTION_GOALS),
        )

    def _analyze_performance(self, context: ReflectionContext) -> list[Insight]:
        insights: list[Insight] = []
        memory_usage = context.system_state["memory_usage"]
        if memory_usage > MEMORY_PERCENT_LIMIT:
            insights.append(
                Insight(
                    id=_new_id("insight"),
                    timestamp=time.time(),
                    type=InsightType.PERFORMANCE,
                    category="memory",
                    description="High memory usage detected, optimization recommended",
                    confidence=0.8,
                    impact=Impact.HIGH,
                    actionable=True,
                    data={"memory_usage": memory_usage},
                )
            )
        cpu_usage = context.system_state["cpu_usage"]
        if cpu_usage > CPU_PERCENT_LIMIT:
            insights.append(
                Insight(
                    id=_new_id("insight"),
                    timestamp=time.time(),
                    type=InsightType.PERFORMANCE,
                    category="cpu",
                    description="High CPU usage detected, consider load balancing",
                    confidence=0.7,
                    impact=Impact.MEDIUM,
                    actionable=True,
                    data={"cpu_usage": cpu_usage},
                )
            )
        return insights

    def _analyze_behavior(self, context: ReflectionContext) -> list[Insight]:
        error_rate = context.performance_metrics["error_rate"]
        if error_rate <= ERROR_RATE_LIMIT:
            return []
        return [
            Insight(
                id=_new_id("insight"),
                timestamp=time.time(),
                type=InsightType.BEHAVIOR,
                category="errors",
                description="Elevated error rate detected, investigation needed",
                confidence=0.9,
                impact=Impact.HIGH,
                actionable=True,
                data={"error_rate": error_rate},
            )
        ]

    def _recognize_patterns(self, context: ReflectionContext) -> list[Insight]:
        pattern = self._patterns.get("periodic_fluctuation")
        if pattern is None:
            pattern = PatternRecognition(
                id=_new_id("pattern"),
                pattern="periodic_fluctuation",
                frequency=0,
                confidence=0.6,
                category="system",
                description="System shows periodic performance fluctuations",
                actionable=True,
            )
            self._patterns[pattern.pattern] = pattern
        pattern.frequency += 1
        return [
            Insight(
                id=_new_id("insight"),
                timestamp=time.time(),
                type=InsightType.PATTERN,
                category=pattern.category,
                description=pattern.description,
                confidence=pattern.confidence,
                impact=Impact.MEDIUM,
                actionable=pattern.actionable,
                data={"pattern": pattern.pattern, "frequency": pattern.frequency},
            )
        ]

    def _apply_learning_outcomes(self) -> None:
        for outcome in self._learning_outcomes:
            if not outcome.applied and outcome.confidence > LEARNING_CONFIDENCE:
                outcome.applied = True
                LOGGER.info("[Reflection] Applied learning outcome: %s", outcome.description)

    def _publish(self, kind: EventKind, payload: object) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(kind, payload, source="reflection")
