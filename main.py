"""Command-line entry point for the autonomy control loop."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict, is_dataclass
from enum import Enum
import json
from pathlib import Path
import signal
import sys
from typing import Any

from config import AutonomyConfig, ConfigController
from core.errors import AutonomyError
from core.logging import enable_file_logging, logger, set_level
from services.autonomy_coordinator import AutonomyCoordinator


DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "config"


def configure_logging(level_name: str) -> None:
    """Apply the configured level to the autonomy logger."""

    set_level(level_name)


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(description="Run the autonomy control loop.")
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=DEFAULT_CONFIG_DIR,
        help="Directory holding default.yaml and override.yaml.",
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one reflection and one optimization cycle, print the status and exit.",
    )
    return parser.parse_args(argv)


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def format_status(status: dict[str, Any]) -> str:
    return json.dumps(status, indent=2, default=_jsonable)


async def run_once(coordinator: AutonomyCoordinator) -> None:
    await coordinator.initialize()
    await coordinator.trigger_reflection_cycle()
    await coordinator.trigger_optimization_cycle()
    print(format_status(coordinator.get_status()))


async def run_forever(coordinator: AutonomyCoordinator) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.debug("Signal handlers unavailable for %s", sig.name)

    await coordinator.initialize()
    await coordinator.start()
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down autonomy coordinator...")
        await coordinator.stop()
        await coordinator.wait_for_cycles()


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]
    args = parse_args(argv)

    config_controller = ConfigController(config_dir=args.config_dir)
    configure_logging(config_controller.get("logging_level", "INFO"))
    if args.log_file:
        enable_file_logging(args.log_file)
        logger.info("Writing logs to %s", args.log_file)

    config = AutonomyConfig.from_controller(config_controller)
    validation = config.validate()
    if not validation.is_valid:
        logger.error("Invalid autonomy configuration: %s", ", ".join(validation.errors))
        return 2

    coordinator = AutonomyCoordinator(config)
    try:
        if args.once:
            asyncio.run(run_once(coordinator))
        else:
            asyncio.run(run_forever(coordinator))
    except KeyboardInterrupt:
        logger.info("Program terminated by user")
    except AutonomyError as exc:
        logger.error("Autonomy startup failed: %s", exc)
        return 1
    except Exception as exc:
        logger.exception("An unexpected error occurred: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
