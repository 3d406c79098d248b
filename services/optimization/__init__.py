"""Optimization engine and its sub-optimizers."""

from services.optimization.base import BaseOptimizer
from services.optimization.engine import OptimizationEngine, aggregate_results
from services.optimization.memory import MemoryOptimizer
from services.optimization.models import Optimization, OptimizationResult, OptimizationStatus
from services.optimization.pattern import PatternOptimizer
from services.optimization.performance import PerformanceOptimizer

__all__ = [
    "BaseOptimizer",
    "MemoryOptimizer",
    "Optimization",
    "OptimizationEngine",
    "OptimizationResult",
    "OptimizationStatus",
    "PatternOptimizer",
    "PerformanceOptimizer",
    "aggregate_results",
]
