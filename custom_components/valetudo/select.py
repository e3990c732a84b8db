"""Select platform for Valetudo integration.

Selections are not applied optimistically: the run mode reflects the
published RvcRunMode.currentMode and the clean mode reflects the presets the
robot reports.
"""

from __future__ import annotations

import logging

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import ATTR_CURRENT_MODE, CLUSTER_RUN_MODE, DOMAIN
from .controller import DeviceController, UnsupportedModeError
from .coordinator import ValetudoDeviceCoordinator
from .entity import ValetudoEntity
from .exceptions import ValetudoApiError

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Valetudo selects based on a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]
    coordinator: ValetudoDeviceCoordinator = data["coordinator"]
    controller: DeviceController = data["controller"]

    async_add_entities(
        [
            ValetudoRunModeSelect(coordinator, controller),
            ValetudoCleanModeSelect(coordinator, controller),
        ]
    )


class ValetudoModeSelectBase(ValetudoEntity, SelectEntity):
    """Select backed by a label -> mode code table."""

    def __init__(
        self,
        coordinator: ValetudoDeviceCoordinator,
        controller: DeviceController,
        key: str,
        modes: dict[str, int],
    ) -> None:
        super().__init__(coordinator, key)
        self._controller = controller
        self._codes = modes
        self._labels = {code: label for label, code in modes.items()}
        self._attr_options = list(modes)

    def _current_code(self) -> int | None:
        raise NotImplementedError

    @property
    def current_option(self) -> str | None:
        code = self._current_code()
        if code is None:
            return None
        return self._labels.get(code)

    async def async_select_option(self, option: str) -> None:
        code = self._codes.get(option)
        if code is None:
            raise HomeAssistantError(f"Invalid option: {option}")

        try:
            await self._controller.async_change_to_mode(code)
        except UnsupportedModeError as err:
            raise HomeAssistantError(str(err)) from err
        except ValetudoApiError as err:
            _LOGGER.warning("[%s] Changing to %s failed: %s", self.coordinator.record.name, option, err)
            raise HomeAssistantError(f"{self.coordinator.record.name}: could not select {option}: {err}") from err

        await self.coordinator.async_request_refresh()


class ValetudoRunModeSelect(ValetudoModeSelectBase):
    _attr_name = "Run mode"
    _attr_icon = "mdi:play-pause"

    def __init__(self, coordinator: ValetudoDeviceCoordinator, controller: DeviceController) -> None:
        modes = {mode.label: int(mode.mode) for mode in coordinator.record.run_modes}
        super().__init__(coordinator, controller, "run_mode_select", modes)

    def _current_code(self) -> int | None:
        return (self.device_data.get("clusters") or {}).get(CLUSTER_RUN_MODE, {}).get(ATTR_CURRENT_MODE)


class ValetudoCleanModeSelect(ValetudoModeSelectBase):
    _attr_name = "Clean mode"
    _attr_icon = "mdi:robot-vacuum"

    def __init__(self, coordinator: ValetudoDeviceCoordinator, controller: DeviceController) -> None:
        modes = {entry.label: entry.code for entry in coordinator.record.clean_modes}
        super().__init__(coordinator, controller, "clean_mode", modes)

    def _current_code(self) -> int | None:
        return self.device_data.get("current_clean_mode")
