"""Autonomy control loop services."""

from services.autonomy_coordinator import AutonomyCoordinator
from services.health_monitor import HealthMonitor
from services.heartbeat_monitor import HeartbeatMonitor
from services.heartbeat_regulator import HeartbeatRegulator
from services.metrics_collector import MetricsCollector

__all__ = [
    "AutonomyCoordinator",
    "HealthMonitor",
    "HeartbeatMonitor",
    "HeartbeatRegulator",
    "MetricsCollector",
]
