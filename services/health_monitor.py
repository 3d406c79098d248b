"""Periodic health checks with two-tier threshold alerts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any, Mapping
import uuid

from config.autonomy_config import MIB, AutonomyConfig
from core.event_bus import EventBus, EventKind, register_payload
from core.logging import logger as LOGGER
from core.ops_models import HealthLevel
from core.scheduler import PeriodicTask
from services.metrics_sampler import MetricSampler, bytes_to_mb


CRITICAL_FRACTION = 0.9
WARNING_FRACTION = 0.7


class AlertLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


_ALERT_HEALTH = {
    AlertLevel.INFO: HealthLevel.HEALTHY,
    AlertLevel.WARNING: HealthLevel.WARNING,
    AlertLevel.CRITICAL: HealthLevel.CRITICAL,
}


@dataclass(frozen=True)
class MonitorAlert:
    """Alert raised when a sampled metric crosses a threshold."""

    id: str
    timestamp: float
    level: AlertLevel
    category: str
    message: str
    data: Mapping[str, Any] = field(default_factory=dict)


register_payload(EventKind.ALERT, MonitorAlert)
register_payload(EventKind.CRITICAL, MonitorAlert)


@dataclass(frozen=True)
class MonitorStatus:
    is_running: bool
    is_healthy: bool
    last_check: float | None
    total_checks: int
    error_count: int
    alert_count: int
    health: HealthLevel


class HealthMonitor:
    """Compare samples against the configured caps on its own timer.

    A metric above 90% of its cap raises a critical alert and one above 70%
    raises a warning. Health is re-derived on every check, with critical
    winning over warning, and ``health_change`` is published each time even
    when the level did not move.
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
        self._task: PeriodicTask | None = None
        self._alerts: list[MonitorAlert] = []
        self._is_running = False
        self._health = HealthLevel.HEALTHY
        self._last_check: float | None = None
        self._total_checks = 0
        self._error_count = 0
        self._alert_count = 0

    async def initialize(self) -> None:
        LOGGER.info("[Monitor] Initializing health monitor")
        self._config.require_valid(prefix="Invalid monitor configuration")

    async def start(self) -> None:
        if self._is_running:
            return
        interval_s = float(self._config.get("metrics_collection_interval")) / 1000.0
        self._task = PeriodicTask("health-check", self.perform_health_check, interval_s)
        self._task.start()
        self._is_running = True
        LOGGER.info("[Monitor] Started (interval=%.1fs)", interval_s)

    async def stop(self) -> None:
        if not self._is_running:
            return
        if self._task is not None:
            self._task.stop()
            self._task = None
        self._is_running = False
        LOGGER.info("[Monitor] Stopped")

    @property
    def health(self) -> HealthLevel:
        return self._health

    def get_status(self) -> MonitorStatus:
        return MonitorStatus(
            is_running=self._is_running,
            is_healthy=self._health is HealthLevel.HEALTHY,
            last_check=self._last_check,
            total_checks=self._total_checks,
            error_count=self._error_count,
            alert_count=self._alert_count,
            health=self._health,
        )

    async def perform_health_check(self) -> HealthLevel:
        start = time.perf_counter()
        try:
            level = HealthLevel.HEALTHY

            memory_mb = bytes_to_mb(self._sampler.memory_used_bytes())
            max_memory_mb = float(self._config.get("max_memory_usage")) / MIB
            level = self._evaluate("memory", "Memory usage", memory_mb, max_memory_mb, "MB", level)

            cpu_usage = float(await self._sampler.cpu_percent())
            max_cpu = float(self._config.get("max_cpu_usage"))
            level = self._evaluate("cpu", "CPU usage", cpu_usage, max_cpu, "%", level)

            response_time = (time.perf_counter() - start) * 1000.0
            max_response = float(self._config.get("max_response_time"))
            level = self._evaluate(
                "performance", "Response time", response_time, max_response, "ms", level
            )

            self._health = level
            self._last_check = time.time()
            self._total_checks += 1
            if level is HealthLevel.HEALTHY:
                LOGGER.debug(
                    "[Monitor] Health check: memory=%sMB cpu=%s%% response=%.1fms",
                    memory_mb,
                    cpu_usage,
                    response_time,
                )
            else:
                LOGGER.warning("[Monitor] Unhealthy system: %s status", level.value)
        except Exception as exc:
            LOGGER.exception("[Monitor] Health check failed: %s", exc)
            self._error_count += 1
            self._create_alert(AlertLevel.CRITICAL, "system", f"Health check failed: {exc}")
            self._health = HealthLevel.CRITICAL

        if self._event_bus is not None:
            self._event_bus.publish(EventKind.HEALTH_CHANGE, self._health, source="monitor")
        return self._health

    def get_recent_alerts(self, limit: int = 20) -> list[MonitorAlert]:
        return self._alerts[-limit:] if limit > 0 else []

    def get_alerts_by_level(self, level: AlertLevel) -> list[MonitorAlert]:
        return [alert for alert in self._alerts if alert.level is level]

    def get_alerts_by_category(self, category: str) -> list[MonitorAlert]:
        return [alert for alert in self._alerts if alert.category == category]

    def clear_old_alerts(self, older_than: float) -> int:
        """Drop alerts raised at or before ``older_than`` (epoch seconds)."""

        old_count = len(self._alerts)
        self._alerts = [alert for alert in self._alerts if alert.timestamp > older_than]
        removed = old_count - len(self._alerts)
        if removed:
            LOGGER.info("[Monitor] Cleared %s old alerts", removed)
        return removed

    def get_performance_metrics(self) -> dict[str, float]:
        checks = self._total_checks
        return {
            "error_rate": self._error_count / checks * 100.0 if checks else 0.0,
            "alert_rate": self._alert_count / checks * 100.0 if checks else 0.0,
            "seconds_since_check": time.time() - self._last_check if self._last_check else 0.0,
        }

    def reset(self) -> None:
        self._total_checks = 0
        self._error_count = 0
        self._alert_count = 0
        self._alerts = []
        LOGGER.info("[Monitor] Statistics reset")

    def _evaluate(
        self,
        category: str,
        label: str,
        value: float,
        cap: float,
        unit: str,
        level: HealthLevel,
    ) -> HealthLevel:
        if value > cap * CRITICAL_FRACTION:
            alert_level = AlertLevel.CRITICAL
            message = f"{label} critical: {value:.0f}{unit} / {cap:.0f}{unit}"
        elif value > cap * WARNING_FRACTION:
            alert_level = AlertLevel.WARNING
            message = f"{label} high: {value:.0f}{unit} / {cap:.0f}{unit}"
        else:
            return level
        self._create_alert(alert_level, category, message, {"value": value, "cap": cap})
        return level.escalate(_ALERT_HEALTH[alert_level])

    def _create_alert(
        self,
        level: AlertLevel,
        category: str,
        message: str,
        data: Mapping[str, Any] | None = None,
    ) -> MonitorAlert:
        alert = MonitorAlert(
            id=f"monitor_{uuid.uuid4().hex[:12]}",
            timestamp=time.time(),
            level=level,
            category=category,
            message=message,
            data=dict(data or {}),
        )
        self._alerts.append(alert)
        self._alert_count += 1
        if level is AlertLevel.CRITICAL:
            LOGGER.error("[Monitor] Alert [%s]: %s", level.value.upper(), message)
        else:
            LOGGER.warning("[Monitor] Alert [%s]: %s", level.value.upper(), message)
        if self._event_bus is not None:
            self._event_bus.publish(EventKind.ALERT, alert, source="monitor")
            if level is AlertLevel.CRITICAL:
                self._event_bus.publish(EventKind.CRITICAL, alert, source="monitor")
        return alert
