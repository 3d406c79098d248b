"""Analyzers feeding the autonomy coordinator."""

from services.analysis.analyzers import (
    Analyzer,
    AnalyzerSuite,
    CodeAnalyzer,
    MemoryPatternAnalyzer,
    PatternAnalyzer,
    merge_results,
)
from services.analysis.models import AnalysisResult, Metrics, Pattern, Recommendation

__all__ = [
    "AnalysisResult",
    "Analyzer",
    "AnalyzerSuite",
    "CodeAnalyzer",
    "MemoryPatternAnalyzer",
    "Metrics",
    "Pattern",
    "PatternAnalyzer",
    "Recommendation",
    "merge_results",
]
