"""Data model for Valetudo payloads and per-robot bridge state.

Valetudo reports robot state as a mixed list of records distinguished by their
``__class`` field. We parse them into a closed set of dataclasses, with an
explicit ``UnknownStateAttribute`` for classes we do not interpret, rather
than passing raw dicts around.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Union

from .const import BatteryChargeState, CleanModeTag, OperationalState, RunMode
from .exceptions import ValetudoResponseError
from .helpers import to_float

if TYPE_CHECKING:
    from .spatial import SpatialIndexCache


# --- State attributes -------------------------------------------------------


@dataclass(frozen=True)
class BatteryStateAttribute:
    level: float
    flag: str


@dataclass(frozen=True)
class StatusStateAttribute:
    value: str
    flag: str | None = None


@dataclass(frozen=True)
class DockStatusStateAttribute:
    value: str


@dataclass(frozen=True)
class AttachmentStateAttribute:
    type: str
    attached: bool


@dataclass(frozen=True)
class PresetSelectionStateAttribute:
    type: str
    value: str
    custom_value: float | None = None


@dataclass(frozen=True)
class UnknownStateAttribute:
    kind: str
    raw: dict[str, Any]


StateAttribute = Union[
    BatteryStateAttribute,
    StatusStateAttribute,
    DockStatusStateAttribute,
    AttachmentStateAttribute,
    PresetSelectionStateAttribute,
    UnknownStateAttribute,
]


def _parse_battery(raw: dict[str, Any]) -> StateAttribute:
    level = to_float(raw.get("level"))
    if level is None:
        return UnknownStateAttribute("BatteryStateAttribute", raw)
    return BatteryStateAttribute(level=level, flag=str(raw.get("flag") or "none"))


def _parse_status(raw: dict[str, Any]) -> StateAttribute:
    value = raw.get("value")
    if not isinstance(value, str):
        return UnknownStateAttribute("StatusStateAttribute", raw)
    flag = raw.get("flag")
    return StatusStateAttribute(value=value, flag=flag if isinstance(flag, str) else None)


def _parse_dock_status(raw: dict[str, Any]) -> StateAttribute:
    value = raw.get("value")
    if not isinstance(value, str):
        return UnknownStateAttribute("DockStatusStateAttribute", raw)
    return DockStatusStateAttribute(value=value)


def _parse_attachment(raw: dict[str, Any]) -> StateAttribute:
    return AttachmentStateAttribute(type=str(raw.get("type")), attached=bool(raw.get("attached")))


def _parse_preset(raw: dict[str, Any]) -> StateAttribute:
    return PresetSelectionStateAttribute(
        type=str(raw.get("type")),
        value=str(raw.get("value")),
        custom_value=to_float(raw.get("customValue")),
    )


_ATTRIBUTE_PARSERS = {
    "BatteryStateAttribute": _parse_battery,
    "StatusStateAttribute": _parse_status,
    "DockStatusStateAttribute": _parse_dock_status,
    "AttachmentStateAttribute": _parse_attachment,
    "PresetSelectionStateAttribute": _parse_preset,
}


def parse_state_attributes(raw: Any) -> list[StateAttribute]:
    """Parse the body of ``/api/v2/robot/state/attributes``."""
    if not isinstance(raw, list):
        raise ValetudoResponseError(f"Expected a list of state attributes, got {type(raw).__name__}")

    out: list[StateAttribute] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        kind = str(item.get("__class") or "")
        parser = _ATTRIBUTE_PARSERS.get(kind)
        out.append(parser(item) if parser else UnknownStateAttribute(kind, item))
    return out


@dataclass(frozen=True)
class StateSnapshot:
    """The sub-records of one state-attribute payload the bridge cares about."""

    battery: BatteryStateAttribute | None = None
    status: StatusStateAttribute | None = None
    dock_status: DockStatusStateAttribute | None = None
    presets: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_attributes(cls, attributes: list[StateAttribute]) -> StateSnapshot:
        battery = None
        status = None
        dock_status = None
        presets: dict[str, str] = {}
        for attr in attributes:
            if isinstance(attr, BatteryStateAttribute) and battery is None:
                battery = attr
            elif isinstance(attr, StatusStateAttribute) and status is None:
                status = attr
            elif isinstance(attr, DockStatusStateAttribute) and dock_status is None:
                dock_status = attr
            elif isinstance(attr, PresetSelectionStateAttribute):
                presets.setdefault(attr.type, attr.value)
        return cls(battery=battery, status=status, dock_status=dock_status, presets=presets)


# --- Map payloads ----------------------------------------------------------


@dataclass(frozen=True)
class LayerBounds:
    x_min: float
    x_max: float
    x_mid: float
    y_min: float
    y_max: float
    y_mid: float


@dataclass(frozen=True)
class MapLayer:
    segment_id: str | None
    layer_type: str
    name: str | None
    bounds: LayerBounds | None


@dataclass(frozen=True)
class MapEntity:
    type: str
    points: tuple[float, ...]


@dataclass(frozen=True)
class PositionPayload:
    entities: tuple[MapEntity, ...]
    version: int | None


def _axis(dims: dict[str, Any], axis: str) -> tuple[float, float, float] | None:
    values = dims.get(axis)
    if not isinstance(values, dict):
        return None
    lo = to_float(values.get("min"))
    hi = to_float(values.get("max"))
    mid = to_float(values.get("mid"))
    if lo is None or hi is None:
        return None
    if mid is None:
        mid = (lo + hi) / 2
    return lo, hi, mid


def parse_map_layer(raw: dict[str, Any]) -> MapLayer:
    meta = raw.get("metaData") or {}
    dims = raw.get("dimensions") or {}
    bounds = None
    x = _axis(dims, "x")
    y = _axis(dims, "y")
    if x is not None and y is not None:
        bounds = LayerBounds(x_min=x[0], x_max=x[1], x_mid=x[2], y_min=y[0], y_max=y[1], y_mid=y[2])
    segment_id = meta.get("segmentId")
    return MapLayer(
        segment_id=str(segment_id) if segment_id is not None else None,
        layer_type=str(raw.get("type") or ""),
        name=meta.get("name"),
        bounds=bounds,
    )


def parse_map_entities(raw: Any) -> tuple[MapEntity, ...]:
    if not isinstance(raw, list):
        return ()
    out = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        points = tuple(p for p in (to_float(v) for v in item.get("points") or []) if p is not None)
        out.append(MapEntity(type=str(item.get("type") or ""), points=points))
    return tuple(out)


def map_version(raw: dict[str, Any]) -> int | None:
    meta = raw.get("metaData")
    if not isinstance(meta, dict):
        return None
    version = meta.get("version")
    if isinstance(version, bool) or not isinstance(version, (int, float)):
        return None
    return int(version)


def parse_position_payload(raw: Any) -> PositionPayload:
    if not isinstance(raw, dict):
        raise ValetudoResponseError("Map payload is not an object")
    return PositionPayload(entities=parse_map_entities(raw.get("entities")), version=map_version(raw))


# --- Capabilities payloads ---------------------------------------------------


@dataclass(frozen=True)
class MapSegment:
    id: str
    name: str


def parse_map_segments(raw: Any) -> list[MapSegment]:
    if not isinstance(raw, list):
        raise ValetudoResponseError("Map segment list is not a list")
    out = []
    for item in raw:
        if not isinstance(item, dict) or item.get("id") is None:
            continue
        out.append(MapSegment(id=str(item["id"]), name=str(item.get("name") or "")))
    return out


@dataclass(frozen=True)
class Consumable:
    type: str
    sub_type: str
    remaining_value: float
    remaining_unit: str


def parse_consumables(raw: Any) -> list[Consumable]:
    if not isinstance(raw, list):
        raise ValetudoResponseError("Consumable list is not a list")
    out = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        remaining = item.get("remaining") or {}
        value = to_float(remaining.get("value")) if isinstance(remaining, dict) else None
        if value is None:
            continue
        out.append(
            Consumable(
                type=str(item.get("type") or ""),
                sub_type=str(item.get("subType") or ""),
                remaining_value=value,
                remaining_unit=str(remaining.get("unit") or ""),
            )
        )
    return out


# --- Bridge-side state -------------------------------------------------------


@dataclass(frozen=True)
class CleanModeEntry:
    """One selectable clean mode, with the presets it was derived from."""

    label: str
    code: int
    tags: tuple[CleanModeTag, ...]
    operation_mode: str
    intensity: str
    fan_speed: str | None = None
    water_usage: str | None = None


@dataclass(frozen=True)
class RunModeOption:
    label: str
    mode: RunMode
    tags: tuple[RunMode, ...]


@dataclass(frozen=True)
class RegionInfo:
    area_id: int
    segment_id: str
    name: str


@dataclass
class ConsumableEntry:
    name: str
    endpoint_id: str
    consumable: Consumable
    life_percent: int | None = None
    needs_replacement: bool | None = None


@dataclass
class DeviceRecord:
    """Everything the bridge knows about one robot.

    Mutated only by the synchronizer, the consumable tracker and the command
    controller of the same robot.
    """

    system_id: str
    host: str
    name: str
    manufacturer: str = ""
    model: str = ""
    capabilities: frozenset[str] = frozenset()

    # Last-published values
    battery_percent: int | None = None
    battery_charge_state: BatteryChargeState | None = None
    operational_state: OperationalState | None = None
    run_mode: RunMode | None = None
    current_area: int | None = None
    initial_state_pending: bool = True

    regions: dict[int, RegionInfo] = field(default_factory=dict)
    selected_areas: list[int] = field(default_factory=list)
    consumables: dict[str, ConsumableEntry] = field(default_factory=dict)
    spatial_cache: SpatialIndexCache | None = None

    operation_modes: list[str] = field(default_factory=list)
    run_modes: list[RunModeOption] = field(default_factory=list)
    clean_modes: list[CleanModeEntry] = field(default_factory=list)
    current_clean_mode: int | None = None

    online: bool = True
    last_seen: datetime | None = None
    last_consumables_check: datetime | None = None

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    @property
    def region_ids(self) -> dict[str, int]:
        """Region name -> area id."""
        return {info.name: area_id for area_id, info in self.regions.items()}

    def area_for_segment(self, segment_id: str) -> int | None:
        for area_id, info in self.regions.items():
            if info.segment_id == segment_id:
                return area_id
        return None

    def clean_mode(self, code: int) -> CleanModeEntry | None:
        for entry in self.clean_modes:
            if entry.code == code:
                return entry
        return None
