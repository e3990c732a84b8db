"""Typed view over a config entry's options, with all clamping applied."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .const import (
    CONF_CONSUMABLES_ENABLED,
    CONF_FAN_SPEED_SUFFIX,
    CONF_MAP_CACHE_REFRESH_HOURS,
    CONF_MAX_LIFETIME_DUST_FILTER,
    CONF_MAX_LIFETIME_MAIN_BRUSH,
    CONF_MAX_LIFETIME_SENSOR,
    CONF_MAX_LIFETIME_SIDE_BRUSH,
    CONF_MODE_MOP,
    CONF_MODE_VACUUM,
    CONF_MODE_VACUUM_AND_MOP,
    CONF_POLL_INTERVAL,
    CONF_POSITION_TRACKING,
    CONF_WARNING_THRESHOLD,
    CONF_WATER_USAGE_SUFFIX,
    DEFAULT_MAP_CACHE_REFRESH_HOURS,
    DEFAULT_MAX_LIFETIMES,
    DEFAULT_MODE_MOP,
    DEFAULT_MODE_VACUUM,
    DEFAULT_MODE_VACUUM_AND_MOP,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_WARNING_THRESHOLD,
    INTENSITY_KEYS,
    MAX_MAP_CACHE_REFRESH_HOURS,
    MAX_POLL_INTERVAL_MS,
    MIN_MAP_CACHE_REFRESH_HOURS,
    MIN_POLL_INTERVAL_MS,
)
from .helpers import clamp, to_float

_LIFETIME_KEYS = {
    "mainBrush": CONF_MAX_LIFETIME_MAIN_BRUSH,
    "sideBrush": CONF_MAX_LIFETIME_SIDE_BRUSH,
    "dustFilter": CONF_MAX_LIFETIME_DUST_FILTER,
    "sensor": CONF_MAX_LIFETIME_SENSOR,
}


@dataclass(frozen=True)
class ModeNames:
    """Valetudo operation-mode names backing the three clean-mode categories."""

    vacuum: str = DEFAULT_MODE_VACUUM
    mop: str = DEFAULT_MODE_MOP
    vacuum_and_mop: str = DEFAULT_MODE_VACUUM_AND_MOP


@dataclass(frozen=True)
class IntensityOverride:
    fan_speed: str | None = None
    water_usage: str | None = None


def _text(options: Mapping[str, Any], key: str, default: str | None) -> str | None:
    val = options.get(key)
    if isinstance(val, str) and val.strip():
        return val.strip()
    return default


@dataclass(frozen=True)
class BridgeOptions:
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    map_cache_refresh_hours: float = DEFAULT_MAP_CACHE_REFRESH_HOURS
    position_tracking: bool = True
    consumables_enabled: bool = False
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD
    max_lifetimes: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_MAX_LIFETIMES))
    mode_names: ModeNames = field(default_factory=ModeNames)
    intensity_overrides: dict[str, IntensityOverride] = field(default_factory=dict)

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> BridgeOptions:
        options = options or {}

        poll = to_float(options.get(CONF_POLL_INTERVAL))
        poll_ms = int(clamp(poll, MIN_POLL_INTERVAL_MS, MAX_POLL_INTERVAL_MS)) if poll is not None else DEFAULT_POLL_INTERVAL_MS

        hours = to_float(options.get(CONF_MAP_CACHE_REFRESH_HOURS))
        refresh_hours = (
            clamp(hours, MIN_MAP_CACHE_REFRESH_HOURS, MAX_MAP_CACHE_REFRESH_HOURS)
            if hours is not None
            else DEFAULT_MAP_CACHE_REFRESH_HOURS
        )

        threshold = to_float(options.get(CONF_WARNING_THRESHOLD))

        lifetimes = dict(DEFAULT_MAX_LIFETIMES)
        for category, key in _LIFETIME_KEYS.items():
            val = to_float(options.get(key))
            if val is not None and val > 0:
                lifetimes[category] = int(val)

        overrides: dict[str, IntensityOverride] = {}
        for intensity in INTENSITY_KEYS:
            fan = _text(options, f"{intensity}_{CONF_FAN_SPEED_SUFFIX}", None)
            water = _text(options, f"{intensity}_{CONF_WATER_USAGE_SUFFIX}", None)
            if fan or water:
                overrides[intensity] = IntensityOverride(fan_speed=fan, water_usage=water)

        return cls(
            poll_interval_ms=poll_ms,
            map_cache_refresh_hours=refresh_hours,
            position_tracking=bool(options.get(CONF_POSITION_TRACKING, True)),
            consumables_enabled=bool(options.get(CONF_CONSUMABLES_ENABLED, False)),
            warning_threshold=int(threshold) if threshold is not None else DEFAULT_WARNING_THRESHOLD,
            max_lifetimes=lifetimes,
            mode_names=ModeNames(
                vacuum=_text(options, CONF_MODE_VACUUM, DEFAULT_MODE_VACUUM),
                mop=_text(options, CONF_MODE_MOP, DEFAULT_MODE_MOP),
                vacuum_and_mop=_text(options, CONF_MODE_VACUUM_AND_MOP, DEFAULT_MODE_VACUUM_AND_MOP),
            ),
            intensity_overrides=overrides,
        )

    @property
    def poll_interval(self) -> timedelta:
        return timedelta(milliseconds=self.poll_interval_ms)

    @property
    def map_cache_refresh(self) -> timedelta:
        return timedelta(hours=self.map_cache_refresh_hours)
