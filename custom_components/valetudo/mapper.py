"""Pure translation of Valetudo enumerations into the normalized model.

Nothing in here performs I/O. Every function is total: an unrecognized vendor
value resolves to a documented default instead of raising.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from .const import (
    MOP_BASE,
    MOP_MAX,
    VACUUM_AND_MOP_BASE,
    VACUUM_AND_MOP_MAX,
    VACUUM_BASE,
    VACUUM_MAX,
    BatteryChargeState,
    CleanModeTag,
    OperationalState,
    RunMode,
)
from .helpers import clamp, round_half_up
from .models import CleanModeEntry, RunModeOption
from .options import IntensityOverride, ModeNames

_LOGGER = logging.getLogger(__name__)

# --- Status -----------------------------------------------------------------

_STATUS_TO_OPERATIONAL_STATE: dict[str, OperationalState] = {
    "idle": OperationalState.DOCKED,
    "docked": OperationalState.DOCKED,
    "cleaning": OperationalState.RUNNING,
    "returning": OperationalState.SEEKING_CHARGER,
    "manual_control": OperationalState.RUNNING,
    "moving": OperationalState.DOCKED,
    "paused": OperationalState.PAUSED,
    "error": OperationalState.ERROR,
    "charging": OperationalState.CHARGING,
}

# Dock activity reported while the robot is parked
_DOCK_ACTIVITY = frozenset({"emptying", "drying", "cleaning"})
_PARKED_STATUSES = frozenset({"docked", "idle", "charging"})

_BATTERY_FLAGS: dict[str, BatteryChargeState] = {
    "charging": BatteryChargeState.CHARGING,
    "charged": BatteryChargeState.CHARGED,
    "discharging": BatteryChargeState.NOT_CHARGING,
    "none": BatteryChargeState.NOT_CHARGING,
}


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def map_status_to_operational_state(status: str | None, dock_status: str | None = None) -> OperationalState:
    status_key = _norm(status)
    if status_key in _PARKED_STATUSES and _norm(dock_status) in _DOCK_ACTIVITY:
        return OperationalState.DOCKED
    return _STATUS_TO_OPERATIONAL_STATE.get(status_key, OperationalState.STOPPED)


def map_status_to_run_mode(status: str | None) -> RunMode:
    return RunMode.CLEANING if _norm(status) == "cleaning" else RunMode.IDLE


def map_battery_charge_state(flag: str | None) -> BatteryChargeState:
    return _BATTERY_FLAGS.get(_norm(flag), BatteryChargeState.UNKNOWN)


def battery_percent_remaining(level: float) -> int:
    """Valetudo level (0-100) to half-percent units (0-200)."""
    return int(clamp(round_half_up(level * 2), 0, 200))


# --- Run modes --------------------------------------------------------------


def build_run_mode_catalog(supports_mapping: bool) -> list[RunModeOption]:
    modes = [
        RunModeOption("Idle", RunMode.IDLE, (RunMode.IDLE,)),
        RunModeOption("Cleaning", RunMode.CLEANING, (RunMode.CLEANING,)),
    ]
    if supports_mapping:
        modes.append(RunModeOption("Mapping", RunMode.MAPPING, (RunMode.MAPPING,)))
    return modes


def is_run_mode_code(code: int) -> bool:
    return RunMode.IDLE <= code <= RunMode.MAPPING


# --- Clean modes ------------------------------------------------------------


class CleanModeCategory(str, Enum):
    VACUUM = "vacuum"
    MOP = "mop"
    VACUUM_AND_MOP = "vacuum_and_mop"


@dataclass(frozen=True)
class _Intensity:
    label: str
    tag: CleanModeTag
    offset: int
    key: str  # auto / quiet / quick / max, selects the user override
    water: str


_INTENSITIES: dict[str, _Intensity] = {
    "off": _Intensity("Off", CleanModeTag.MIN, 4, "quiet", "low"),
    "min": _Intensity("Min", CleanModeTag.MIN, 4, "quiet", "low"),
    "low": _Intensity("Quiet", CleanModeTag.QUIET, 2, "quiet", "low"),
    "medium": _Intensity("Auto", CleanModeTag.AUTO, 0, "auto", "medium"),
    "high": _Intensity("Quick", CleanModeTag.QUICK, 1, "quick", "high"),
    "max": _Intensity("Max", CleanModeTag.MAX, 3, "max", "high"),
    "turbo": _Intensity("Turbo", CleanModeTag.MAX, 3, "max", "high"),
}

# (label, fan preset, water preset, tag, code offset, override key)
_MOP_ARCHETYPES = (
    ("Auto", "medium", "medium", CleanModeTag.AUTO, 0, "auto"),
    ("Quiet", "low", "low", CleanModeTag.QUIET, 1, "quiet"),
    ("Quick", "high", "high", CleanModeTag.QUICK, 2, "quick"),
    ("Max", "max", "high", CleanModeTag.MAX, 3, "max"),
)

_BANDS: dict[CleanModeCategory, tuple[int, int]] = {
    CleanModeCategory.VACUUM_AND_MOP: (VACUUM_AND_MOP_BASE, VACUUM_AND_MOP_MAX),
    CleanModeCategory.MOP: (MOP_BASE, MOP_MAX),
    CleanModeCategory.VACUUM: (VACUUM_BASE, VACUUM_MAX),
}

FALLBACK_CLEAN_MODE = CleanModeEntry(
    label="Vacuum",
    code=VACUUM_BASE,
    tags=(CleanModeTag.VACUUM, CleanModeTag.AUTO),
    operation_mode="vacuum",
    intensity="auto",
)


def mode_label(mode_name: str) -> str:
    if mode_name == "vacuum_and_mop":
        return "Vacuum & Mop"
    return mode_name[:1].upper() + mode_name[1:]


def build_intensity_variants(
    mode_name: str,
    operation_mode: str,
    base_code: int,
    base_tags: tuple[CleanModeTag, ...],
    fan_presets: list[str] | None,
    water_presets: list[str] | None = None,
) -> list[CleanModeEntry]:
    """Expand one operation mode into a variant per recognized fan preset.

    The first preset claiming an offset wins; later presets that map to an
    already used offset are dropped.
    """
    label = mode_label(mode_name)
    base_entry = CleanModeEntry(
        label=label,
        code=base_code,
        tags=base_tags + (CleanModeTag.AUTO,),
        operation_mode=operation_mode,
        intensity="auto",
    )
    if not fan_presets:
        return [base_entry]

    entries: list[CleanModeEntry] = []
    used_offsets: set[int] = set()
    for preset in fan_presets:
        intensity = _INTENSITIES.get(_norm(preset))
        if intensity is None:
            continue
        if intensity.offset in used_offsets:
            _LOGGER.debug("Dropping preset %r for %s: offset %d already used", preset, label, intensity.offset)
            continue
        used_offsets.add(intensity.offset)
        water = intensity.water if water_presets and intensity.water in water_presets else None
        entries.append(
            CleanModeEntry(
                label=f"{label} ({intensity.label})",
                code=base_code + intensity.offset,
                tags=base_tags + (intensity.tag,),
                operation_mode=operation_mode,
                intensity=intensity.key,
                fan_speed=preset,
                water_usage=water,
            )
        )
    return entries or [base_entry]


def build_mop_variants(
    operation_mode: str,
    fan_presets: list[str] | None,
    water_presets: list[str] | None,
) -> list[CleanModeEntry]:
    if fan_presets and water_presets:
        entries = [
            CleanModeEntry(
                label=f"Mop ({label})",
                code=MOP_BASE + offset,
                tags=(CleanModeTag.MOP, tag),
                operation_mode=operation_mode,
                intensity=key,
                fan_speed=fan,
                water_usage=water,
            )
            for label, fan, water, tag, offset, key in _MOP_ARCHETYPES
            if fan in fan_presets and water in water_presets
        ]
        if entries:
            return entries
    return build_intensity_variants("mop", operation_mode, MOP_BASE, (CleanModeTag.MOP,), fan_presets, water_presets)


def dedupe_labels(entries: Iterable[CleanModeEntry]) -> list[CleanModeEntry]:
    seen: set[str] = set()
    out: list[CleanModeEntry] = []
    for entry in entries:
        if entry.label in seen:
            _LOGGER.debug("Skipping duplicate clean mode label %r", entry.label)
            continue
        seen.add(entry.label)
        out.append(entry)
    return out


def build_clean_mode_catalog(
    operation_modes: list[str] | None,
    fan_presets: list[str] | None,
    water_presets: list[str] | None,
    mode_names: ModeNames | None = None,
    device_name: str = "",
) -> list[CleanModeEntry]:
    """Build the ordered clean-mode catalog for one robot.

    Never returns an empty list.
    """
    names = mode_names or ModeNames()
    offered = operation_modes or []
    entries: list[CleanModeEntry] = []

    vacuum_mode = None
    if names.vacuum in offered:
        vacuum_mode = names.vacuum
    elif names.vacuum == "vacuum" and "vaccum" in offered:
        vacuum_mode = "vaccum"
    if vacuum_mode is not None:
        entries.extend(
            build_intensity_variants(names.vacuum, vacuum_mode, VACUUM_BASE, (CleanModeTag.VACUUM,), fan_presets)
        )
    elif offered and names.vacuum != "vacuum":
        _LOGGER.warning("[%s] Configured vacuum mode %r is not offered by the robot", device_name, names.vacuum)

    if names.mop in offered:
        entries.extend(build_mop_variants(names.mop, fan_presets, water_presets))
    elif offered and names.mop != "mop":
        _LOGGER.warning("[%s] Configured mop mode %r is not offered by the robot", device_name, names.mop)

    if names.vacuum_and_mop in offered:
        entries.extend(
            build_intensity_variants(
                names.vacuum_and_mop,
                names.vacuum_and_mop,
                VACUUM_AND_MOP_BASE,
                (CleanModeTag.MOP, CleanModeTag.VACUUM),
                fan_presets,
                water_presets,
            )
        )
    elif offered and names.vacuum_and_mop != "vacuum_and_mop":
        _LOGGER.warning(
            "[%s] Configured vacuum & mop mode %r is not offered by the robot", device_name, names.vacuum_and_mop
        )

    catalog = dedupe_labels(entries)
    return catalog or [FALLBACK_CLEAN_MODE]


def category_for_code(code: int) -> CleanModeCategory | None:
    for category, (low, high) in _BANDS.items():
        if low <= code <= high:
            return category
    return None


def resolve_clean_mode_settings(
    entry: CleanModeEntry,
    overrides: Mapping[str, IntensityOverride] | None = None,
) -> tuple[str, str | None, str | None]:
    """Return (operation mode, fan preset, water preset) to apply for entry."""
    override = (overrides or {}).get(entry.intensity)
    fan = entry.fan_speed
    water = entry.water_usage
    if override is not None:
        fan = override.fan_speed or fan
        water = override.water_usage or water
    return entry.operation_mode, fan, water


def match_clean_mode(
    catalog: Iterable[CleanModeEntry],
    operation_mode: str | None,
    fan_speed: str | None,
    water_usage: str | None,
) -> CleanModeEntry | None:
    """Find the catalog entry describing the robot's current presets.

    Entry fields that are unset act as wildcards. The first candidate wins.
    """
    if not operation_mode:
        return None
    for entry in catalog:
        if entry.operation_mode != operation_mode:
            continue
        if entry.fan_speed is not None and _norm(entry.fan_speed) != _norm(fan_speed):
            continue
        if entry.water_usage is not None and _norm(entry.water_usage) != _norm(water_usage):
            continue
        return entry
    return None
