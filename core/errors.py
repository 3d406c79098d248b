"""Error taxonomy for the autonomy control loop."""

from __future__ import annotations

from typing import Iterable


class AutonomyError(Exception):
    """Base class for autonomy failures."""


class ValidationError(AutonomyError, ValueError):
    """Configuration or settings rejected by validation."""

    def __init__(self, errors: Iterable[str] | str, *, prefix: str = "Invalid configuration") -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"{prefix}: {', '.join(self.errors)}")


class InitializationFailure(AutonomyError):
    """A component failed to initialize; the owning sequence is aborted."""

    def __init__(self, component: str, reason: BaseException | str) -> None:
        self.component = component
        super().__init__(f"Failed to initialize {component}: {reason}")


class CycleFailure(AutonomyError):
    """A reflection or optimization cycle body failed."""


class SamplingFailure(AutonomyError):
    """A metric probe could not produce a sample."""
