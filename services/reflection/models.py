"""Data models for reflection cycles, insights and improvements."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.event_bus import EventKind, register_payload
from core.ops_models import HealthLevel


class InsightType(str, Enum):
    PERFORMANCE = "performance"
    BEHAVIOR = "behavior"
    PATTERN = "pattern"
    OPTIMIZATION = "optimization"
    LEARNING = "learning"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CycleStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class Insight:
    """A single observation produced by an analysis pass."""

    id: str
    timestamp: float
    type: InsightType
    category: str
    description: str
    confidence: float
    impact: Impact
    actionable: bool
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImpactVector:
    performance: float
    memory: float
    stability: float


@dataclass
class Improvement:
    """Actionable proposal derived from one qualifying insight.

    ``implemented`` is the only field meant to change after creation.
    """

    id: str
    timestamp: float
    type: str
    description: str
    priority: Priority
    impact: ImpactVector
    insight_id: str
    implemented: bool = False
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReflectionCycle:
    id: str
    timestamp: float
    depth: int
    duration: float
    insights: tuple[Insight, ...]
    improvements: tuple[Improvement, ...]
    status: CycleStatus
    error: str | None = None


register_payload(EventKind.CYCLE_COMPLETED, ReflectionCycle)
register_payload(EventKind.CYCLE_FAILED, ReflectionCycle)


@dataclass(frozen=True)
class ReflectionResult:
    depth: int
    insights: list[Insight]
    improvements: list[Improvement]
    duration: float
    status: ResultStatus
    error: str | None = None


@dataclass(frozen=True)
class ReflectionContext:
    """Snapshot gathered at the start of a reflection cycle."""

    system_state: dict[str, float]
    performance_metrics: dict[str, float]
    patterns: list["PatternRecognition"]
    goals: list[str]
    recent_events: list[str] = field(default_factory=list)


@dataclass
class PatternRecognition:
    id: str
    pattern: str
    frequency: int
    confidence: float
    category: str
    description: str
    actionable: bool


@dataclass
class LearningOutcome:
    id: str
    timestamp: float
    type: InsightType
    description: str
    confidence: float
    impact: float
    applied: bool = False


@dataclass(frozen=True)
class MetaCognitiveState:
    """Reflection engine status snapshot."""

    current_depth: int
    max_depth: int
    total_cycles: int
    total_insights: int
    total_improvements: int
    last_cycle: float | None
    is_active: bool
    health: HealthLevel
