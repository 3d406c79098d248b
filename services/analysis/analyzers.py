"""Baseline analyzers and the suite that runs the enabled ones."""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Protocol, Sequence
import uuid

from config.autonomy_config import AutonomyConfig
from core.logging import logger as LOGGER
from services.analysis.models import AnalysisResult, Metrics, Pattern, Recommendation
from services.reflection.models import Priority


# Merged scores below this produce a recommendation.
RECOMMENDATION_THRESHOLD = 0.5


class Analyzer(Protocol):
    name: str

    async def initialize(self) -> None:
        ...

    async def analyze(self) -> AnalysisResult:
        ...

    def get_status(self) -> dict[str, Any]:
        ...


class _BaselineAnalyzer:
    """Analyzer reporting a fixed metric baseline."""

    name = "baseline"
    baseline = Metrics(complexity=0.5, performance=0.5, memory=0.5, stability=0.5)

    def __init__(self, config: AutonomyConfig) -> None:
        self._config = config
        self._runs = 0

    async def initialize(self) -> None:
        LOGGER.info("[Analyzer] Initializing %s analyzer", self.name)

    async def analyze(self) -> AnalysisResult:
        self._runs += 1
        return AnalysisResult(patterns=(), metrics=self.baseline)

    def get_status(self) -> dict[str, Any]:
        return {"is_running": True, "type": self.name, "runs": self._runs}


class CodeAnalyzer(_BaselineAnalyzer):
    name = "code"
    baseline = Metrics(complexity=0.5, performance=0.7, memory=0.6, stability=0.8)


class PatternAnalyzer(_BaselineAnalyzer):
    name = "pattern"
    baseline = Metrics(complexity=0.4, performance=0.6, memory=0.5, stability=0.7)


class MemoryPatternAnalyzer(_BaselineAnalyzer):
    name = "memory-pattern"
    baseline = Metrics(complexity=0.3, performance=0.8, memory=0.9, stability=0.6)


def merge_results(results: Sequence[AnalysisResult]) -> AnalysisResult:
    """Concatenate patterns and recommendations; average the metric scores."""

    if not results:
        return AnalysisResult(
            patterns=(),
            metrics=Metrics(complexity=0.0, performance=0.0, memory=0.0, stability=0.0),
        )
    averaged = Metrics(
        **{
            axis.name: sum(getattr(result.metrics, axis.name) for result in results) / len(results)
            for axis in fields(Metrics)
        }
    )
    recommendations = [rec for result in results for rec in result.recommendations]
    for axis in ("performance", "memory", "stability"):
        score = getattr(averaged, axis)
        if score < RECOMMENDATION_THRESHOLD:
            recommendations.append(
                Recommendation(
                    id=f"recommendation_{uuid.uuid4().hex[:12]}",
                    type=axis,
                    priority=Priority.HIGH if score < RECOMMENDATION_THRESHOLD / 2 else Priority.MEDIUM,
                    description=f"Improve {axis} (score {score:.2f})",
                    impact=round(1.0 - score, 2),
                )
            )
    return AnalysisResult(
        patterns=tuple(pattern for result in results for pattern in result.patterns),
        metrics=averaged,
        recommendations=tuple(recommendations),
    )


class AnalyzerSuite:
    """The coordinator's ``analyzer`` component.

    Code analysis runs when ``code_analysis_enabled`` is set; the pattern and
    memory-pattern analyzers run when ``pattern_detection_enabled`` is set.
    """

    def __init__(
        self,
        config: AutonomyConfig,
        analyzers: Sequence[Analyzer] | None = None,
    ) -> None:
        self._config = config
        if analyzers is None:
            analyzers = (
                CodeAnalyzer(config),
                PatternAnalyzer(config),
                MemoryPatternAnalyzer(config),
            )
        self._analyzers = tuple(analyzers)
        self._last_result: AnalysisResult | None = None

    def enabled_analyzers(self) -> list[Analyzer]:
        code_enabled = bool(self._config.get("code_analysis_enabled"))
        pattern_enabled = bool(self._config.get("pattern_detection_enabled"))
        enabled: list[Analyzer] = []
        for analyzer in self._analyzers:
            if analyzer.name == "code" and not code_enabled:
                continue
            if analyzer.name in ("pattern", "memory-pattern") and not pattern_enabled:
                continue
            enabled.append(analyzer)
        return enabled

    async def initialize(self) -> None:
        for analyzer in self._analyzers:
            await analyzer.initialize()

    async def analyze(self) -> AnalysisResult:
        results = [await analyzer.analyze() for analyzer in self.enabled_analyzers()]
        merged = merge_results(results)
        self._last_result = merged
        LOGGER.debug(
            "[Analyzer] %s analyzers, %s patterns, %s recommendations",
            len(results),
            len(merged.patterns),
            len(merged.recommendations),
        )
        return merged

    @property
    def last_result(self) -> AnalysisResult | None:
        return self._last_result

    def get_status(self) -> dict[str, Any]:
        enabled = {analyzer.name for analyzer in self.enabled_analyzers()}
        return {
            "analyzers": {
                analyzer.name: {**analyzer.get_status(), "enabled": analyzer.name in enabled}
                for analyzer in self._analyzers
            },
        }
