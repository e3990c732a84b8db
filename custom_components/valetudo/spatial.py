"""Time and version bounded index of map segments for point lookups."""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .exceptions import ValetudoResponseError
from .helpers import round_half_up, to_float
from .models import LayerBounds, MapEntity, MapLayer, map_version, parse_map_layer

_LOGGER = logging.getLogger(__name__)

REGION_LAYER_TYPE = "segment"
ROBOT_POSITION_ENTITY = "robot_position"


def _contains(bounds: LayerBounds, x: float, y: float) -> bool:
    return bounds.x_min <= x <= bounds.x_max and bounds.y_min <= y <= bounds.y_max


def _distance_to_mid(bounds: LayerBounds, x: float, y: float) -> float:
    return math.hypot(x - bounds.x_mid, y - bounds.y_mid)


@dataclass(frozen=True)
class SpatialIndexCache:
    """Region layers of one full map, valid until expiry or a version change.

    Never patched: an expired or outdated cache is replaced by a new one.
    """

    layers: tuple[MapLayer, ...]
    size: dict[str, Any] | None
    pixel_size: float
    created_at: datetime
    valid_until: datetime
    version: int | None

    @classmethod
    def from_map_payload(cls, payload: Any, refresh: timedelta, now: datetime) -> SpatialIndexCache:
        if not isinstance(payload, dict):
            raise ValetudoResponseError("Map payload is not an object")
        raw_layers = payload.get("layers")
        if not isinstance(raw_layers, list):
            raise ValetudoResponseError("Map payload has no layer list")
        pixel_size = to_float(payload.get("pixelSize"))
        if not pixel_size or pixel_size <= 0:
            raise ValetudoResponseError(f"Invalid map pixel size: {payload.get('pixelSize')!r}")

        layers = tuple(parse_map_layer(raw) for raw in raw_layers if isinstance(raw, dict))
        size = payload.get("size")
        return cls(
            layers=layers,
            size=size if isinstance(size, dict) else None,
            pixel_size=pixel_size,
            created_at=now,
            valid_until=now + refresh,
            version=map_version(payload),
        )

    @property
    def regions(self) -> list[MapLayer]:
        return [
            layer
            for layer in self.layers
            if layer.layer_type == REGION_LAYER_TYPE and layer.bounds is not None and layer.segment_id is not None
        ]

    def is_valid(self, now: datetime) -> bool:
        return now <= self.valid_until

    def matches_version(self, version: int | None) -> bool:
        # A payload without a version cannot contradict the cache
        return version is None or version == self.version

    def to_index_units(self, raw_x: float, raw_y: float) -> tuple[int, int]:
        return round_half_up(raw_x / self.pixel_size), round_half_up(raw_y / self.pixel_size)

    def locate(self, x: float, y: float) -> str | None:
        """Return the segment id of the region containing (x, y).

        Bounds are inclusive. When regions overlap, the one whose midpoint is
        closest wins; equal distances keep layer order.
        """
        best: MapLayer | None = None
        best_distance = math.inf
        matches = 0
        for layer in self.regions:
            bounds = layer.bounds
            if bounds is None or not _contains(bounds, x, y):
                continue
            matches += 1
            distance = _distance_to_mid(bounds, x, y)
            if distance < best_distance:
                best, best_distance = layer, distance

        if best is None:
            return None
        if matches > 1:
            _LOGGER.debug(
                "Multiple regions at (%s, %s), picked %s (distance to midpoint %.1f)",
                x,
                y,
                best.segment_id,
                best_distance,
            )
        return best.segment_id


def find_robot_position(entities: Iterable[MapEntity]) -> tuple[float, float] | None:
    for entity in entities:
        if entity.type == ROBOT_POSITION_ENTITY and len(entity.points) >= 2:
            return entity.points[0], entity.points[1]
    return None
