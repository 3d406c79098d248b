"""Adaptive regulation of the heartbeat polling interval."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any

from config.autonomy_config import MIB, AutonomyConfig
from core.errors import ValidationError
from core.event_bus import EventBus, EventKind, register_payload
from core.logging import logger as LOGGER


MIN_INTERVAL_MS = 5_000.0
MAX_INTERVAL_MS = 120_000.0
# Adjustments at or below this size are not committed.
ADJUSTMENT_HYSTERESIS_MS = 1_000.0

LOW_LOAD_SCORE = 0.3
HIGH_LOAD_SCORE = 0.7
LOW_LOAD_FACTOR = 1.2
HIGH_LOAD_FACTOR = 0.8


class LoadLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class LoadMetrics:
    """Load sample: CPU percent, memory in MB, response time in ms."""

    cpu_usage: float
    memory_usage: float
    response_time: float


@dataclass(frozen=True)
class RegulatorSettings:
    base_interval: float
    min_interval: float = MIN_INTERVAL_MS
    max_interval: float = MAX_INTERVAL_MS
    load_threshold: float = 70.0
    adaptive_mode: bool = True


@dataclass(frozen=True)
class RegulatorStatus:
    is_active: bool
    current_interval: float
    adaptive_mode: bool
    load_level: LoadLevel
    adjustments: int


@dataclass(frozen=True)
class IntervalAdjustment:
    old_interval: float
    new_interval: float
    load_level: LoadLevel
    metrics: LoadMetrics


@dataclass(frozen=True)
class IntervalReset:
    old_interval: float
    new_interval: float


@dataclass(frozen=True)
class SettingsUpdate:
    old_settings: RegulatorSettings
    new_settings: RegulatorSettings


register_payload(EventKind.INTERVAL_ADJUSTED, IntervalAdjustment)
register_payload(EventKind.INTERVAL_RESET, IntervalReset)
register_payload(EventKind.SETTINGS_UPDATED, SettingsUpdate)

SETTING_NAMES = frozenset(f.name for f in fields(RegulatorSettings))


def load_score(metrics: LoadMetrics, max_memory_bytes: float, max_response_time: float) -> float:
    """Composite load in [0, 1] averaged over CPU, memory and response time."""

    cpu_score = metrics.cpu_usage / 100.0
    max_memory_mb = max_memory_bytes / MIB
    memory_score = min(metrics.memory_usage / max_memory_mb, 1.0) if max_memory_mb > 0 else 1.0
    response_score = (
        min(metrics.response_time / max_response_time, 1.0) if max_response_time > 0 else 1.0
    )
    return (cpu_score + memory_score + response_score) / 3.0


def classify_load(score: float) -> LoadLevel:
    if score < LOW_LOAD_SCORE:
        return LoadLevel.LOW
    if score < HIGH_LOAD_SCORE:
        return LoadLevel.MEDIUM
    return LoadLevel.HIGH


def _check_settings(settings: RegulatorSettings) -> None:
    if settings.min_interval >= settings.max_interval:
        raise ValidationError(
            "min_interval must be less than max_interval",
            prefix="Invalid regulator settings",
        )


class HeartbeatRegulator:
    """Owns the heartbeat interval and moves it with observed load.

    ``current_interval`` is the only source for the next heartbeat wait and
    always stays inside ``[min_interval, max_interval]``.
    """

    def __init__(self, config: AutonomyConfig, event_bus: EventBus | None = None) -> None:
        self._config = config
        self._event_bus = event_bus
        base = float(config.get("heartbeat_interval"))
        self._settings = RegulatorSettings(
            base_interval=base,
            max_interval=max(MAX_INTERVAL_MS, base),
        )
        self._current_interval = base
        self._is_active = False
        self._adjustments = 0
        self._load_level = LoadLevel.LOW

    async def initialize(self) -> None:
        LOGGER.info("[Regulator] Initializing heartbeat regulator")
        _check_settings(self._settings)

    async def start(self) -> None:
        if self._is_active:
            return
        self._is_active = True
        LOGGER.info("[Regulator] Started (interval=%.0fms)", self._current_interval)

    async def stop(self) -> None:
        if not self._is_active:
            return
        self._is_active = False
        LOGGER.info("[Regulator] Stopped")

    @property
    def current_interval(self) -> float:
        return self._current_interval

    def get_status(self) -> RegulatorStatus:
        return RegulatorStatus(
            is_active=self._is_active,
            current_interval=self._current_interval,
            adaptive_mode=self._settings.adaptive_mode,
            load_level=self._load_level,
            adjustments=self._adjustments,
        )

    def get_settings(self) -> RegulatorSettings:
        return self._settings

    def adjust_interval(self, metrics: LoadMetrics) -> float:
        """Fold a load sample into the interval and return the current value."""

        if not self._settings.adaptive_mode:
            return self._current_interval

        score = load_score(
            metrics,
            float(self._config.get("max_memory_usage")),
            float(self._config.get("max_response_time")),
        )
        level = classify_load(score)
        self._load_level = level

        old_interval = self._current_interval
        if level is LoadLevel.LOW:
            candidate = old_interval * LOW_LOAD_FACTOR
        elif level is LoadLevel.HIGH:
            candidate = old_interval * HIGH_LOAD_FACTOR
        else:
            candidate = old_interval
        new_interval = min(self._settings.max_interval, max(self._settings.min_interval, candidate))

        if abs(new_interval - old_interval) > ADJUSTMENT_HYSTERESIS_MS:
            self._current_interval = new_interval
            self._adjustments += 1
            LOGGER.info(
                "[Regulator] Interval adjusted: %.0fms -> %.0fms (%s load, score=%.2f)",
                old_interval,
                new_interval,
                level.value,
                score,
            )
            self._publish(
                EventKind.INTERVAL_ADJUSTED,
                IntervalAdjustment(
                    old_interval=old_interval,
                    new_interval=new_interval,
                    load_level=level,
                    metrics=metrics,
                ),
            )
        return self._current_interval

    def reset_interval(self) -> None:
        old_interval = self._current_interval
        self._current_interval = self._settings.base_interval
        LOGGER.info(
            "[Regulator] Interval reset: %.0fms -> %.0fms", old_interval, self._current_interval
        )
        self._publish(
            EventKind.INTERVAL_RESET,
            IntervalReset(old_interval=old_interval, new_interval=self._current_interval),
        )

    def update_settings(self, **changes: Any) -> RegulatorSettings:
        """Replace settings fields, clamping the current interval into the new bounds."""

        unknown = sorted(set(changes) - SETTING_NAMES)
        if unknown:
            raise ValidationError(
                [f"unknown setting {key}" for key in unknown],
                prefix="Invalid regulator settings",
            )
        old_settings = self._settings
        new_settings = replace(old_settings, **changes)
        _check_settings(new_settings)
        if not new_settings.min_interval <= new_settings.base_interval <= new_settings.max_interval:
            raise ValidationError(
                "base_interval must lie between min_interval and max_interval",
                prefix="Invalid regulator settings",
            )
        self._settings = new_settings
        if new_settings.adaptive_mode:
            self._current_interval = min(
                new_settings.max_interval, max(new_settings.min_interval, self._current_interval)
            )
        else:
            self._current_interval = new_settings.base_interval
        LOGGER.info("[Regulator] Settings updated: %s", asdict(new_settings))
        self._publish(
            EventKind.SETTINGS_UPDATED,
            SettingsUpdate(old_settings=old_settings, new_settings=new_settings),
        )
        return new_settings

    def enable_adaptive_mode(self) -> None:
        self._settings = replace(self._settings, adaptive_mode=True)
        LOGGER.info("[Regulator] Adaptive mode enabled")

    def disable_adaptive_mode(self) -> None:
        """Freeze the interval at the base value until adaptive mode returns."""

        self._settings = replace(self._settings, adaptive_mode=False)
        self._current_interval = self._settings.base_interval
        LOGGER.info(
            "[Regulator] Adaptive mode disabled (interval frozen at %.0fms)",
            self._current_interval,
        )

    def get_statistics(self) -> dict[str, Any]:
        return {
            "total_adjustments": self._adjustments,
            "current_interval": self._current_interval,
            "base_interval": self._settings.base_interval,
            "adaptive_mode": self._settings.adaptive_mode,
            "load_level": self._load_level.value,
        }

    def _publish(self, kind: EventKind, payload: object) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(kind, payload, source="regulator")
