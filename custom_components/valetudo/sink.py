"""Downstream attribute sink.

The synchronizer only knows the ``AttributeSink`` protocol. Inside Home
Assistant the sink is an ``AttributeStore`` whose contents back the entities.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from .models import RegionInfo

_LOGGER = logging.getLogger(__name__)


class AttributeSink(Protocol):
    async def async_publish_attribute(self, device_id: str, cluster: str, attribute: str, value: Any) -> bool:
        """Write one attribute value. Returns False if the write failed."""

    async def async_register_region_catalog(self, device_id: str, regions: list[RegionInfo]) -> None:
        """Announce the selectable regions of a device once at setup."""


class AttributeStore:
    """In-memory cluster/attribute table per device id."""

    def __init__(self) -> None:
        self._attributes: dict[str, dict[str, dict[str, Any]]] = {}
        self._regions: dict[str, list[RegionInfo]] = {}

    async def async_publish_attribute(self, device_id: str, cluster: str, attribute: str, value: Any) -> bool:
        self._attributes.setdefault(device_id, {}).setdefault(cluster, {})[attribute] = value
        _LOGGER.debug("%s %s.%s = %r", device_id, cluster, attribute, value)
        return True

    async def async_register_region_catalog(self, device_id: str, regions: list[RegionInfo]) -> None:
        self._regions[device_id] = list(regions)

    def get(self, device_id: str, cluster: str, attribute: str, default: Any = None) -> Any:
        return self._attributes.get(device_id, {}).get(cluster, {}).get(attribute, default)

    def snapshot(self, device_id: str) -> dict[str, dict[str, Any]]:
        return {cluster: dict(attrs) for cluster, attrs in self._attributes.get(device_id, {}).items()}

    def regions(self, device_id: str) -> list[RegionInfo]:
        return list(self._regions.get(device_id, []))

    def forget(self, device_id: str) -> None:
        """Drop everything stored for a device id and the ids derived from it."""
        prefix = f"{device_id}-"
        for table in (self._attributes, self._regions):
            for key in [k for k in table if k == device_id or k.startswith(prefix)]:
                del table[key]
