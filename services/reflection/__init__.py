"""Reflection cycles over process state."""

from services.reflection.engine import ReflectionEngine, create_improvement, derive_improvements
from services.reflection.models import (
    Improvement,
    Insight,
    InsightType,
    ReflectionCycle,
    ReflectionResult,
    ResultStatus,
)

__all__ = [
    "Improvement",
    "Insight",
    "InsightType",
    "ReflectionCycle",
    "ReflectionEngine",
    "ReflectionResult",
    "ResultStatus",
    "create_improvement",
    "derive_improvements",
]
