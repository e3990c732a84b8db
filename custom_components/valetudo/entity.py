"""Base entity for Valetudo robots."""
from __future__ import annotations

from typing import Any

from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import ValetudoDeviceCoordinator


class ValetudoEntity(CoordinatorEntity[ValetudoDeviceCoordinator]):
    """Entity bound to one robot; unavailable while the robot is degraded."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: ValetudoDeviceCoordinator, key: str) -> None:
        super().__init__(coordinator)
        record = coordinator.record
        self._system_id = record.system_id
        self._attr_unique_id = f"{record.system_id}_{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, record.system_id)},
            name=record.name,
            manufacturer=record.manufacturer or "Valetudo",
            model=record.model or None,
            configuration_url=coordinator.synchronizer.api.base_url,
        )

    @property
    def device_data(self) -> dict[str, Any]:
        return self.coordinator.data or {}

    @property
    def available(self) -> bool:
        """Return True if entity is available."""
        if not super().available:
            return False
        return bool(self.device_data.get("online"))
