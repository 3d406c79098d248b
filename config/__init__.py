"""Configuration package utilities."""

__all__ = ["AutonomyConfig", "ConfigController"]


def __getattr__(name: str):
    if name == "ConfigController":
        from config.controller import ConfigController

        return ConfigController
    if name == "AutonomyConfig":
        from config.autonomy_config import AutonomyConfig

        return AutonomyConfig
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
