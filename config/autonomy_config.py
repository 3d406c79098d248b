"""Validated tunables for the autonomy subsystem."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
import json
from typing import TYPE_CHECKING, Any, Callable, Mapping

from core.errors import ValidationError
from core.logging import logger as LOGGER

if TYPE_CHECKING:
    from config.controller import ConfigController


MIB = 1024 * 1024
GIB = 1024 * MIB

SCHEDULE_POLICIES = ("adaptive", "fixed")


@dataclass(frozen=True)
class AutonomyOptions:
    """Option values. Intervals are milliseconds, memory is bytes, CPU is percent."""

    reflection_cycle_interval: int = 60_000
    max_reflection_depth: int = 5
    enable_meta_cognition: bool = True
    reflection_history_limit: int = 100

    optimization_enabled: bool = True
    optimization_interval: int = 300_000
    max_optimization_iterations: int = 10

    heartbeat_interval: int = 30_000
    heartbeat_timeout: int = 10_000
    heartbeat_schedule_policy: str = "adaptive"

    monitoring_enabled: bool = True
    metrics_collection_interval: int = 60_000

    code_analysis_enabled: bool = True
    pattern_detection_enabled: bool = True

    validation_enabled: bool = True
    safety_checks_enabled: bool = True

    max_memory_usage: int = GIB
    max_cpu_usage: float = 80
    max_response_time: float = 5_000


OPTION_NAMES = frozenset(f.name for f in fields(AutonomyOptions))

Listener = Callable[["AutonomyConfig"], None]


@dataclass(frozen=True)
class ConfigValidation:
    is_valid: bool
    errors: list[str]


def _type_errors(options: AutonomyOptions) -> list[str]:
    errors: list[str] = []
    for f in fields(options):
        value = getattr(options, f.name)
        # Annotations are strings under postponed evaluation.
        if f.type == "bool":
            valid = isinstance(value, bool)
            expected = "a boolean"
        elif f.type == "str":
            valid = isinstance(value, str)
            expected = "a string"
        else:
            valid = isinstance(value, (int, float)) and not isinstance(value, bool)
            expected = "a number"
        if not valid:
            errors.append(f"{f.name} must be {expected}, got {type(value).__name__}")
    return errors


def validate_options(options: AutonomyOptions) -> list[str]:
    errors = _type_errors(options)
    if errors:
        return errors
    if options.reflection_cycle_interval < 1000:
        errors.append("reflection_cycle_interval must be at least 1000ms")
    if options.max_reflection_depth < 1 or options.max_reflection_depth > 10:
        errors.append("max_reflection_depth must be between 1 and 10")
    if options.optimization_interval < 10_000:
        errors.append("optimization_interval must be at least 10000ms")
    if options.heartbeat_interval < 5000:
        errors.append("heartbeat_interval must be at least 5000ms")
    if options.max_cpu_usage < 1 or options.max_cpu_usage > 100:
        errors.append("max_cpu_usage must be between 1 and 100")
    if options.max_memory_usage < MIB:
        errors.append("max_memory_usage must be at least 1MB")
    if options.heartbeat_schedule_policy not in SCHEDULE_POLICIES:
        errors.append(
            f"heartbeat_schedule_policy must be one of {', '.join(SCHEDULE_POLICIES)}"
        )
    return errors


class AutonomyConfig:
    """Holds validated options and notifies listeners on change.

    Construction accepts any values so that ``validate()`` can report every
    problem at once; ``update()`` refuses candidates that do not validate.
    """

    def __init__(self, options: Mapping[str, Any] | None = None) -> None:
        overrides = dict(options or {})
        unknown = sorted(set(overrides) - OPTION_NAMES)
        if unknown:
            LOGGER.warning("[Config] Ignoring unknown autonomy options: %s", ", ".join(unknown))
            for key in unknown:
                overrides.pop(key)
        self._options = replace(AutonomyOptions(), **overrides)
        self._listeners: dict[str, list[Listener]] = {}

    @classmethod
    def from_controller(cls, controller: "ConfigController") -> "AutonomyConfig":
        section = controller.get_config().get("autonomy")
        return cls(section if isinstance(section, Mapping) else None)

    @property
    def options(self) -> AutonomyOptions:
        return self._options

    def get(self, key: str) -> Any:
        if key not in OPTION_NAMES:
            raise KeyError(key)
        return getattr(self._options, key)

    def get_all(self) -> dict[str, Any]:
        return asdict(self._options)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, updates: Mapping[str, Any]) -> None:
        """Validate and apply changes, then notify listeners for each key."""

        unknown = sorted(set(updates) - OPTION_NAMES)
        if unknown:
            raise ValidationError([f"unknown option {key}" for key in unknown])
        candidate = replace(self._options, **dict(updates))
        errors = validate_options(candidate)
        if errors:
            raise ValidationError(errors)
        self._options = candidate
        for key in updates:
            self._notify(key)

    def reset(self) -> None:
        self._options = AutonomyOptions()
        self._notify("*")

    def validate(self) -> ConfigValidation:
        errors = validate_options(self._options)
        return ConfigValidation(is_valid=not errors, errors=errors)

    def require_valid(self, prefix: str = "Invalid configuration") -> None:
        errors = validate_options(self._options)
        if errors:
            raise ValidationError(errors, prefix=prefix)

    def add_listener(self, key: str, listener: Listener) -> None:
        """Listen for changes to ``key``; ``"*"`` receives every change."""

        listeners = self._listeners.setdefault(key, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, key: str, listener: Listener) -> None:
        listeners = self._listeners.get(key)
        if not listeners or listener not in listeners:
            return
        listeners.remove(listener)
        if not listeners:
            del self._listeners[key]

    def to_json(self) -> str:
        return json.dumps(self.get_all(), indent=2)

    def from_json(self, payload: str) -> None:
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"invalid JSON ({exc.msg})") from exc
        if not isinstance(parsed, dict):
            raise ValidationError("JSON payload must be an object")
        self.update(parsed)

    def summary(self) -> dict[str, dict[str, Any]]:
        o = self._options
        return {
            "reflection": {
                "cycle_interval": o.reflection_cycle_interval,
                "max_depth": o.max_reflection_depth,
                "meta_cognition_enabled": o.enable_meta_cognition,
            },
            "optimization": {
                "enabled": o.optimization_enabled,
                "interval": o.optimization_interval,
                "max_iterations": o.max_optimization_iterations,
            },
            "monitoring": {
                "enabled": o.monitoring_enabled,
                "heartbeat_interval": o.heartbeat_interval,
                "heartbeat_schedule_policy": o.heartbeat_schedule_policy,
                "metrics_interval": o.metrics_collection_interval,
            },
            "analysis": {
                "code_analysis_enabled": o.code_analysis_enabled,
                "pattern_detection_enabled": o.pattern_detection_enabled,
            },
            "validation": {
                "enabled": o.validation_enabled,
                "safety_checks_enabled": o.safety_checks_enabled,
            },
            "performance": {
                "max_memory_usage": o.max_memory_usage,
                "max_cpu_usage": o.max_cpu_usage,
                "max_response_time": o.max_response_time,
            },
        }

    def _notify(self, key: str) -> None:
        targets = list(self._listeners.get(key, ()))
        if key != "*":
            targets += self._listeners.get("*", [])
        for listener in targets:
            try:
                listener(self)
            except Exception:  # noqa: BLE001 - listeners must not break updates
                LOGGER.exception("[Config] Error in configuration listener for %s", key)
