from __future__ import annotations

from datetime import timedelta

from custom_components.valetudo.options import BridgeOptions, IntensityOverride, ModeNames


def test_defaults() -> None:
    options = BridgeOptions.from_options({})

    assert options.poll_interval == timedelta(seconds=30)
    assert options.map_cache_refresh == timedelta(hours=1)
    assert options.position_tracking is True
    assert options.consumables_enabled is False
    assert options.warning_threshold == 10
    assert options.max_lifetimes["mainBrush"] == 18000
    assert options.mode_names == ModeNames()
    assert options.intensity_overrides == {}


def test_values_are_clamped() -> None:
    low = BridgeOptions.from_options({"poll_interval": 100, "map_cache_refresh_hours": 0})
    high = BridgeOptions.from_options({"poll_interval": "600000", "map_cache_refresh_hours": 48})

    assert low.poll_interval_ms == 5000
    assert low.map_cache_refresh_hours == 0.1
    assert high.poll_interval_ms == 60000
    assert high.map_cache_refresh_hours == 24


def test_blank_strings_fall_back_to_defaults() -> None:
    options = BridgeOptions.from_options(
        {
            "mode_vacuum": "  ",
            "mode_mop": "mop_only",
            "quiet_fan_speed": "",
            "max_fan_speed": "turbo",
            "max_water_usage": " high ",
        }
    )

    assert options.mode_names == ModeNames(vacuum="vacuum", mop="mop_only", vacuum_and_mop="vacuum_and_mop")
    assert options.intensity_overrides == {"max": IntensityOverride(fan_speed="turbo", water_usage="high")}


def test_lifetimes_and_threshold() -> None:
    options = BridgeOptions.from_options(
        {"max_lifetime_side_brush": 6000, "max_lifetime_sensor": 0, "warning_threshold": 0}
    )

    assert options.max_lifetimes["sideBrush"] == 6000
    assert options.max_lifetimes["sensor"] == 1800
    assert options.warning_threshold == 0
