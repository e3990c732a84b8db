from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from custom_components.valetudo.exceptions import ValetudoConnectionError
from custom_components.valetudo.models import (
    Consumable,
    MapSegment,
    PositionPayload,
    parse_position_payload,
    parse_state_attributes,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def state_payload(
    level: float = 80,
    flag: str = "discharging",
    status: str = "docked",
    dock: str | None = None,
    presets: dict[str, str] | None = None,
) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = [
        {"__class": "BatteryStateAttribute", "level": level, "flag": flag},
        {"__class": "StatusStateAttribute", "value": status, "flag": "none"},
    ]
    if dock is not None:
        payload.append({"__class": "DockStatusStateAttribute", "value": dock})
    for preset_type, value in (presets or {}).items():
        payload.append({"__class": "PresetSelectionStateAttribute", "type": preset_type, "value": value})
    return payload


def map_payload(version: int = 1, pixel_size: float = 5, robot: tuple[float, float] | None = None) -> dict[str, Any]:
    """Two overlapping segments: 1 spans x 0..150, 2 spans x 50..200."""
    entities = []
    if robot is not None:
        entities.append({"type": "robot_position", "points": list(robot)})
    return {
        "pixelSize": pixel_size,
        "size": {"x": 1000, "y": 1000},
        "metaData": {"version": version},
        "layers": [
            {"type": "floor", "metaData": {}, "dimensions": {}},
            {
                "type": "segment",
                "metaData": {"segmentId": "1", "name": "Kitchen"},
                "dimensions": {"x": {"min": 0, "max": 150, "mid": 75}, "y": {"min": 0, "max": 100, "mid": 50}},
            },
            {
                "type": "segment",
                "metaData": {"segmentId": "2", "name": "Hall"},
                "dimensions": {"x": {"min": 50, "max": 200, "mid": 125}, "y": {"min": 0, "max": 100, "mid": 50}},
            },
        ],
        "entities": entities,
    }


class FakeApi:
    """Stands in for ValetudoApi; records every call by method name."""

    def __init__(self, host: str = "192.0.2.5") -> None:
        self.host = host
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.info: dict[str, Any] = {"systemId": "robot-1"}
        self.robot_info: dict[str, Any] = {"manufacturer": "Dreame", "modelName": "L10S"}
        self.capabilities: list[str] = []
        self.state: list[dict[str, Any]] = state_payload()
        self.map: dict[str, Any] = map_payload()
        self.fan_presets: list[str] = []
        self.water_presets: list[str] = []
        self.operation_modes: list[str] = []
        self.segments: list[MapSegment] = []
        self.segmentation_properties: dict[str, Any] = {}
        self.consumables: list[Consumable] = []
        self.fail: set[str] = set()

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise ValetudoConnectionError(f"{name} failed")

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def close(self) -> None:
        self._record("close")

    def test_connection(self) -> bool:
        self._record("test_connection")
        return True

    def get_info(self) -> dict[str, Any]:
        self._record("get_info")
        return self.info

    def get_robot_info(self) -> dict[str, Any]:
        self._record("get_robot_info")
        return self.robot_info

    def get_capabilities(self) -> list[str]:
        self._record("get_capabilities")
        return self.capabilities

    def get_state_attributes(self):
        self._record("get_state_attributes")
        return parse_state_attributes(self.state)

    def get_map(self, timeout: float = 60) -> dict[str, Any]:
        self._record("get_map", timeout)
        return self.map

    def get_position_payload(self) -> PositionPayload:
        self._record("get_position_payload")
        return parse_position_payload(self.map)

    def get_fan_speed_presets(self) -> list[str]:
        self._record("get_fan_speed_presets")
        return self.fan_presets

    def get_water_usage_presets(self) -> list[str]:
        self._record("get_water_usage_presets")
        return self.water_presets

    def get_operation_mode_presets(self) -> list[str]:
        self._record("get_operation_mode_presets")
        return self.operation_modes

    def set_fan_speed(self, preset: str) -> None:
        self._record("set_fan_speed", preset)

    def set_water_usage(self, preset: str) -> None:
        self._record("set_water_usage", preset)

    def set_operation_mode(self, preset: str) -> None:
        self._record("set_operation_mode", preset)

    def get_map_segments(self) -> list[MapSegment]:
        self._record("get_map_segments")
        return self.segments

    def get_map_segmentation_properties(self) -> dict[str, Any]:
        self._record("get_map_segmentation_properties")
        return self.segmentation_properties

    def clean_segments(self, segment_ids: list[str], iterations: int = 1, custom_order: bool = False) -> None:
        self._record("clean_segments", list(segment_ids), iterations, custom_order)

    def start(self) -> None:
        self._record("start")

    def stop(self) -> None:
        self._record("stop")

    def pause(self) -> None:
        self._record("pause")

    def home(self) -> None:
        self._record("home")

    def start_mapping(self) -> None:
        self._record("start_mapping")

    def locate(self) -> None:
        self._record("locate")

    def get_consumables(self) -> list[Consumable]:
        self._record("get_consumables")
        return self.consumables


class RecordingSink:
    """AttributeSink that keeps every write in order."""

    def __init__(self) -> None:
        self.writes: list[tuple[str, str, str, Any]] = []
        self.regions: dict[str, list[Any]] = {}
        self.reject: set[tuple[str, str]] = set()

    async def async_publish_attribute(self, device_id: str, cluster: str, attribute: str, value: Any) -> bool:
        self.writes.append((device_id, cluster, attribute, value))
        return (cluster, attribute) not in self.reject

    async def async_register_region_catalog(self, device_id: str, regions: list[Any]) -> None:
        self.regions[device_id] = list(regions)


async def run_job(fn: Any, *args: Any) -> Any:
    return fn(*args)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class CallLaterRecorder:
    """Replaces async_call_later; keeps (delay, action) and cancellations."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[float, Any]] = []
        self.cancelled = 0

    def __call__(self, hass: Any, delay: float, action: Any):
        self.scheduled.append((delay, action))

        def cancel() -> None:
            self.cancelled += 1

        return cancel

    @property
    def delays(self) -> list[float]:
        return [delay for delay, _ in self.scheduled]
