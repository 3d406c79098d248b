"""Analysis result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from services.reflection.models import Priority


@dataclass(frozen=True)
class Pattern:
    id: str
    type: str
    confidence: float
    description: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Metrics:
    """Normalized quality scores in [0, 1]; higher is better."""

    complexity: float
    performance: float
    memory: float
    stability: float


@dataclass(frozen=True)
class Recommendation:
    id: str
    type: str
    priority: Priority
    description: str
    impact: float


@dataclass(frozen=True)
class AnalysisResult:
    patterns: tuple[Pattern, ...]
    metrics: Metrics
    recommendations: tuple[Recommendation, ...] = ()
