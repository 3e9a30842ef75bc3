"""Tracker settings: default strategy choice and timing knobs.

Settings are persisted as a simple JSON file. The default strategy directly
shapes how responsive flings and scrolls feel, so it is chosen here rather
than hardcoded in the tracker, and can be overridden per device with the
``VELOCITY_TRACKER_STRATEGY`` environment variable.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from velocity_tracker.tracking.strategy import Strategy

DEFAULT_STRATEGY = Strategy.LSQ2

DEFAULT_SETTINGS = {
    "default_strategy": DEFAULT_STRATEGY.name.lower(),
    "assume_stopped_time_ms": 40.0,  # no movement for this long means pointers stopped
}

SETTINGS_ENV = "VELOCITY_TRACKER_SETTINGS"
STRATEGY_ENV = "VELOCITY_TRACKER_STRATEGY"

logger = logging.getLogger(__name__)


def settings_path() -> Path:
    """Get the path to the settings file."""
    override = os.environ.get(SETTINGS_ENV)
    if override:
        return Path(override)
    return Path.cwd() / "velocity_tracker.json"


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Load the settings from the file."""
    path = settings_path() if path is None else Path(path)

    data = DEFAULT_SETTINGS.copy()
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            data.update(json.load(f))
            logger.info("Loaded tracker settings from %s", path)

    strategy = os.environ.get(STRATEGY_ENV)
    if strategy:
        logger.info("Default strategy overridden by %s=%s", STRATEGY_ENV, strategy)
        data["default_strategy"] = strategy
    return data


def save_settings(data: dict[str, Any], path: Path | None = None) -> None:
    """Save the settings to the file."""
    path = settings_path() if path is None else Path(path)

    logger.info("Saving tracker settings to %s", path)

    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


@dataclass(frozen=True)
class TrackerSettings:
    """Typed tracker settings."""

    default_strategy: Strategy = DEFAULT_STRATEGY
    assume_stopped_time_ms: float = 40.0

    @property
    def assume_stopped_time(self) -> int:
        """Stopped-pointer threshold in nanoseconds."""
        return int(self.assume_stopped_time_ms * 1_000_000)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerSettings:
        """Build settings from a loaded dict, falling back on bad values."""
        default = DEFAULT_STRATEGY
        name = data.get("default_strategy", DEFAULT_SETTINGS["default_strategy"])
        try:
            default = Strategy.from_name(str(name))
        except ValueError:
            logger.warning("Unknown default strategy %r in settings, using %s", name, DEFAULT_STRATEGY.name)
        if default is Strategy.DEFAULT:
            logger.warning("Default strategy cannot be DEFAULT, using %s", DEFAULT_STRATEGY.name)
            default = DEFAULT_STRATEGY
        stopped = float(data.get("assume_stopped_time_ms", DEFAULT_SETTINGS["assume_stopped_time_ms"]))
        return cls(default_strategy=default, assume_stopped_time_ms=stopped)

    @classmethod
    def load(cls, path: Path | None = None) -> TrackerSettings:
        """Load settings from the JSON file and environment."""
        return cls.from_dict(load_settings(path))


def resolve_strategy(strategy: Strategy, settings: TrackerSettings | None = None) -> Strategy:
    """Map DEFAULT to the configured concrete strategy."""
    if strategy is not Strategy.DEFAULT:
        return strategy
    return (settings or TrackerSettings()).default_strategy
