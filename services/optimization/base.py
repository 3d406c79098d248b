"""Abstract base for sub-optimizers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from config.autonomy_config import AutonomyConfig
from core.logging import logger as LOGGER
from services.optimization.models import OptimizationResult


class BaseOptimizer(ABC):
    """Lifecycle shared by every sub-optimizer.

    Subclasses implement ``perform_cycle``; ``initialize``, ``start`` and
    ``stop`` only track state unless overridden.
    """

    name = "base"

    def __init__(self, config: AutonomyConfig) -> None:
        self._config = config
        self._is_running = False
        self._cycles = 0

    async def initialize(self) -> None:
        LOGGER.info("[Optimizer] Initializing %s optimizer", self.name)

    async def start(self) -> None:
        self._is_running = True
        LOGGER.debug("[Optimizer] %s optimizer started", self.name)

    async def stop(self) -> None:
        self._is_running = False
        LOGGER.debug("[Optimizer] %s optimizer stopped", self.name)

    async def run_cycle(self) -> OptimizationResult:
        result = await self.perform_cycle()
        self._cycles += 1
        return result

    @abstractmethod
    async def perform_cycle(self) -> OptimizationResult:
        """Run one optimization pass."""

    def get_status(self) -> dict[str, Any]:
        return {"is_running": self._is_running, "type": self.name, "cycles": self._cycles}
