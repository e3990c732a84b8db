"""Sensor platform for Valetudo integration."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    ATTR_BAT_CHARGE_STATE,
    ATTR_BAT_PERCENT_REMAINING,
    ATTR_CURRENT_AREA,
    ATTR_CURRENT_MODE,
    ATTR_OPERATIONAL_STATE,
    BATTERY_CHARGE_STATE_LABELS,
    CLUSTER_OPERATIONAL_STATE,
    CLUSTER_POWER_SOURCE,
    CLUSTER_RUN_MODE,
    CLUSTER_SERVICE_AREA,
    DOMAIN,
    OPERATIONAL_STATE_LABELS,
    RUN_MODE_LABELS,
    BatteryChargeState,
    OperationalState,
    RunMode,
)
from .coordinator import ValetudoDeviceCoordinator
from .entity import ValetudoEntity


@dataclass(frozen=True, kw_only=True)
class ValetudoSensorEntityDescription(SensorEntityDescription):
    """Describes Valetudo sensor entity."""

    value_fn: Callable[[dict], Any]


def _attr(data: dict, cluster: str, attribute: str) -> Any:
    return (data.get("clusters") or {}).get(cluster, {}).get(attribute)


def _battery(data: dict) -> float | None:
    raw = _attr(data, CLUSTER_POWER_SOURCE, ATTR_BAT_PERCENT_REMAINING)
    return raw / 2 if raw is not None else None


def _label(labels: dict, enum: type, raw: Any) -> str | None:
    if raw is None:
        return None
    try:
        return labels[enum(raw)]
    except ValueError:
        return None


def _current_area(data: dict) -> str | None:
    area_id = _attr(data, CLUSTER_SERVICE_AREA, ATTR_CURRENT_AREA)
    if area_id is None:
        return None
    return (data.get("regions") or {}).get(area_id)


SENSOR_DESCRIPTIONS: tuple[ValetudoSensorEntityDescription, ...] = (
    ValetudoSensorEntityDescription(
        key="battery",
        name="Battery",
        device_class=SensorDeviceClass.BATTERY,
        native_unit_of_measurement=PERCENTAGE,
        state_class=SensorStateClass.MEASUREMENT,
        value_fn=_battery,
    ),
    ValetudoSensorEntityDescription(
        key="battery_charge_state",
        name="Battery charge state",
        device_class=SensorDeviceClass.ENUM,
        options=list(BATTERY_CHARGE_STATE_LABELS.values()),
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda data: _label(
            BATTERY_CHARGE_STATE_LABELS, BatteryChargeState, _attr(data, CLUSTER_POWER_SOURCE, ATTR_BAT_CHARGE_STATE)
        ),
    ),
    ValetudoSensorEntityDescription(
        key="operational_state",
        name="Status",
        icon="mdi:robot-vacuum",
        device_class=SensorDeviceClass.ENUM,
        options=list(OPERATIONAL_STATE_LABELS.values()),
        value_fn=lambda data: _label(
            OPERATIONAL_STATE_LABELS,
            OperationalState,
            _attr(data, CLUSTER_OPERATIONAL_STATE, ATTR_OPERATIONAL_STATE),
        ),
    ),
    ValetudoSensorEntityDescription(
        key="run_mode",
        name="Run mode",
        device_class=SensorDeviceClass.ENUM,
        options=list(RUN_MODE_LABELS.values()),
        value_fn=lambda data: _label(RUN_MODE_LABELS, RunMode, _attr(data, CLUSTER_RUN_MODE, ATTR_CURRENT_MODE)),
    ),
    ValetudoSensorEntityDescription(
        key="current_area",
        name="Current room",
        icon="mdi:floor-plan",
        value_fn=_current_area,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Valetudo sensors based on a config entry."""
    coordinator: ValetudoDeviceCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    entities: list[SensorEntity] = [
        ValetudoSensor(coordinator, description) for description in SENSOR_DESCRIPTIONS
    ]
    for name, item in (coordinator.data or {}).get("consumables", {}).items():
        entities.append(ValetudoConsumableSensor(coordinator, name, item["endpoint_id"]))

    async_add_entities(entities)


class ValetudoSensor(ValetudoEntity, SensorEntity):
    """Representation of a Valetudo sensor."""

    entity_description: ValetudoSensorEntityDescription

    def __init__(
        self,
        coordinator: ValetudoDeviceCoordinator,
        description: ValetudoSensorEntityDescription,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, description.key)
        self.entity_description = description

    @property
    def native_value(self) -> Any:
        """Return the state of the sensor."""
        return self.entity_description.value_fn(self.device_data)


class ValetudoConsumableSensor(ValetudoEntity, SensorEntity):
    """Remaining life of one consumable, in percent."""

    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_icon = "mdi:progress-wrench"

    def __init__(self, coordinator: ValetudoDeviceCoordinator, consumable: str, endpoint_id: str) -> None:
        super().__init__(coordinator, f"{endpoint_id}_life")
        self._consumable = consumable
        self._attr_name = f"{consumable} life"

    @property
    def _item(self) -> dict[str, Any]:
        return self.device_data.get("consumables", {}).get(self._consumable) or {}

    @property
    def native_value(self) -> int | None:
        return self._item.get("life_percent")

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        item = self._item
        return {"remaining": item.get("remaining"), "unit": item.get("unit")}
