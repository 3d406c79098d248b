"""Tests for reflection cycles, improvement derivation and history."""

from __future__ import annotations

import asyncio
import time

import pytest

from config.autonomy_config import AutonomyConfig
from core.errors import ValidationError
from core.event_bus import Event, EventBus, EventKind
from core.ops_models import HealthLevel
from services.reflection import (
    Insight,
    InsightType,
    ReflectionEngine,
    ResultStatus,
    create_improvement,
    derive_improvements,
)
from services.reflection.models import CycleStatus, Impact, Priority


class _FakeSampler:
    def __init__(self, memory_percent: float = 20.0, cpu: float = 10.0) -> None:
        self.memory = memory_percent
        self.cpu = cpu
        self.error: Exception | None = None

    def memory_used_bytes(self) -> int:
        return 0

    def memory_percent(self) -> float:
        if self.error is not None:
            raise self.error
        return self.memory

    async def cpu_percent(self) -> float:
        await asyncio.sleep(0)
        return self.cpu


def _insight(
    confidence: float,
    *,
    actionable: bool = True,
    type: InsightType = InsightType.PERFORMANCE,
    category: str = "memory",
    impact: Impact = Impact.HIGH,
) -> Insight:
    return Insight(
        id=f"insight-{confidence}",
        timestamp=time.time(),
        type=type,
        category=category,
        description="observation",
        confidence=confidence,
        impact=impact,
        actionable=actionable,
    )


def _engine(sampler: _FakeSampler, **options) -> tuple[ReflectionEngine, list[Event]]:
    bus = EventBus()
    events: list[Event] = []
    bus.subscribe_all(events.append)
    return ReflectionEngine(AutonomyConfig(options), sampler, bus), events


def test_improvement_confidence_boundary() -> None:
    improvements = derive_improvements(
        [_insight(0.71), _insight(0.70), _insight(0.95, actionable=False)]
    )

    assert [imp.insight_id for imp in improvements] == ["insight-0.71"]


def test_improvement_impact_vector_and_priority() -> None:
    memory = create_improvement(_insight(0.8))
    behavior = create_improvement(
        _insight(0.9, type=InsightType.BEHAVIOR, category="errors", impact=Impact.MEDIUM)
    )

    assert memory.type == "performance"
    assert memory.priority is Priority.HIGH
    assert (memory.impact.performance, memory.impact.memory, memory.impact.stability) == (
        0.8,
        0.9,
        0.4,
    )
    assert memory.description == "Improvement based on: observation"
    assert behavior.type == "behavior"
    assert behavior.priority is Priority.MEDIUM
    assert (behavior.impact.performance, behavior.impact.memory, behavior.impact.stability) == (
        0.3,
        0.2,
        0.7,
    )
    assert not memory.implemented


def test_quiet_cycle_only_reports_pattern() -> None:
    engine, events = _engine(_FakeSampler())

    result = asyncio.run(engine.perform_cycle())

    assert result.status is ResultStatus.SUCCESS
    assert result.depth == 1
    assert [i.type for i in result.insights] == [InsightType.PATTERN]
    assert result.insights[0].confidence == 0.6
    assert result.improvements == []
    kinds = [e.kind for e in events]
    assert kinds == [
        EventKind.CYCLE_COMPLETED,
        EventKind.INSIGHTS_GENERATED,
        EventKind.IMPROVEMENTS_IDENTIFIED,
    ]
    assert events[0].payload.status is CycleStatus.COMPLETED


def test_loaded_cycle_derives_memory_improvement_only() -> None:
    engine, _ = _engine(_FakeSampler(memory_percent=85.0, cpu=75.0))

    result = asyncio.run(engine.perform_cycle())

    categories = [i.category for i in result.insights]
    assert categories == ["memory", "cpu", "system"]
    assert len(result.improvements) == 1
    assert result.improvements[0].impact.memory == 0.9
    assert engine.get_status().total_improvements == 1


def test_failed_cycle_is_recorded_not_raised() -> None:
    sampler = _FakeSampler()
    sampler.error = RuntimeError("sampler offline")
    engine, events = _engine(sampler)

    result = asyncio.run(engine.perform_cycle())

    assert result.status is ResultStatus.FAILED
    assert result.error == "sampler offline"
    assert engine.get_status().health is HealthLevel.WARNING
    assert engine.get_status().total_cycles == 0
    cycles = engine.get_recent_cycles()
    assert len(cycles) == 1
    assert cycles[0].status is CycleStatus.FAILED
    assert [e.kind for e in events] == [EventKind.CYCLE_FAILED]


def test_concurrent_cycles_both_count() -> None:
    engine, _ = _engine(_FakeSampler())

    async def _run() -> None:
        await asyncio.gather(engine.perform_cycle(), engine.perform_cycle())

    asyncio.run(_run())

    assert engine.get_status().total_cycles == 2
    assert len(engine.get_recent_cycles()) == 2


def test_history_is_bounded() -> None:
    engine, _ = _engine(_FakeSampler(), reflection_history_limit=2)

    async def _run() -> None:
        for _ in range(3):
            await engine.perform_cycle()

    asyncio.run(_run())

    assert engine.get_status().total_cycles == 3
    assert len(engine.get_recent_cycles()) == 2
    assert engine.get_statistics()["average_insights_per_cycle"] == 1.0


def test_pattern_frequency_accumulates() -> None:
    engine, _ = _engine(_FakeSampler())

    async def _run() -> None:
        await engine.perform_cycle()
        await engine.perform_cycle()

    asyncio.run(_run())

    patterns = engine.get_patterns()
    assert len(patterns) == 1
    assert patterns[0].frequency == 2
    assert engine.get_recent_insights(1)[0].data["frequency"] == 2


def test_learning_outcomes_apply_above_threshold() -> None:
    engine, _ = _engine(_FakeSampler())
    confident = engine.record_learning_outcome("cache warmup helps", confidence=0.85)
    borderline = engine.record_learning_outcome("maybe", confidence=0.8)

    asyncio.run(engine.perform_cycle())

    assert confident.applied
    assert not borderline.applied


def test_mark_improvement_implemented() -> None:
    engine, _ = _engine(_FakeSampler(memory_percent=90.0))
    result = asyncio.run(engine.perform_cycle())
    improvement_id = result.improvements[0].id

    assert engine.mark_improvement_implemented(improvement_id)
    assert engine.get_recent_improvements()[0].implemented
    assert not engine.mark_improvement_implemented("missing")


def test_initialize_rejects_depth_out_of_range() -> None:
    engine, _ = _engine(_FakeSampler(), max_reflection_depth=11)

    with pytest.raises(ValidationError, match="max_reflection_depth"):
        asyncio.run(engine.initialize())


def test_start_stop_toggle_activity() -> None:
    engine, _ = _engine(_FakeSampler())

    async def _run() -> None:
        await engine.start()
        assert engine.get_status().is_active
        await engine.stop()

    asyncio.run(_run())

    assert not engine.get_status().is_active
