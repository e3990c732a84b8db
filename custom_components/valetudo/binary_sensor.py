"""Binary sensor platform for Valetudo integration."""
from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import ValetudoDeviceCoordinator
from .entity import ValetudoEntity


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Valetudo binary sensors based on a config entry."""
    coordinator: ValetudoDeviceCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    async_add_entities(
        ValetudoConsumableProblemSensor(coordinator, name, item["endpoint_id"])
        for name, item in (coordinator.data or {}).get("consumables", {}).items()
    )


class ValetudoConsumableProblemSensor(ValetudoEntity, BinarySensorEntity):
    """On when a consumable is at or below the warning threshold.

    Mirrors the published BooleanState.stateValue, which is True while the
    consumable is fine.
    """

    _attr_device_class = BinarySensorDeviceClass.PROBLEM
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, coordinator: ValetudoDeviceCoordinator, consumable: str, endpoint_id: str) -> None:
        super().__init__(coordinator, f"{endpoint_id}_replace")
        self._consumable = consumable
        self._attr_name = f"{consumable} needs replacement"

    @property
    def is_on(self) -> bool | None:
        """Return true if the consumable needs replacement."""
        item = self.device_data.get("consumables", {}).get(self._consumable) or {}
        state_value = item.get("state_value")
        if state_value is None:
            return None
        return not state_value
