"""The bridge: owner of all robots, their sink and their coordinators."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .api import ValetudoApi
from .controller import DeviceController
from .coordinator import ValetudoDeviceCoordinator
from .device import async_identify_device, async_prepare_device
from .exceptions import DuplicateDeviceError
from .models import DeviceRecord
from .options import BridgeOptions
from .registry import DeviceRegistry
from .sink import AttributeStore
from .synchronizer import DeviceSynchronizer

_LOGGER = logging.getLogger(__name__)


@dataclass
class ManagedDevice:
    record: DeviceRecord
    api: ValetudoApi
    controller: DeviceController
    coordinator: ValetudoDeviceCoordinator


class ValetudoBridge:
    """Registry, attribute store and per-robot runtime objects.

    Devices are only added or removed from config entry setup and unload,
    never from inside a poll cycle.
    """

    def __init__(self, hass: HomeAssistant) -> None:
        self.hass = hass
        self.registry = DeviceRegistry()
        self.store = AttributeStore()
        self._devices: dict[str, ManagedDevice] = {}

    async def async_add_device(
        self,
        host: str,
        name: str | None,
        options: BridgeOptions,
        config_entry: ConfigEntry | None = None,
    ) -> ManagedDevice:
        """Identify, prepare and schedule polling for the robot at host.

        Raises ValetudoApiError if the robot cannot be identified and
        DuplicateDeviceError if it is already managed under another entry.
        A new address for a known robot reaches the bridge as an entry reload,
        which removes the device before adding it again.
        """
        run_job = self.hass.async_add_executor_job
        api = ValetudoApi(host)
        try:
            candidate = await async_identify_device(api, run_job, name)
        except Exception:
            await run_job(api.close)
            raise

        existing = self.registry.get(candidate.system_id)
        if existing is not None:
            await run_job(api.close)
            raise DuplicateDeviceError(
                f"Robot {candidate.system_id} at {host} is already managed at {existing.host}"
            )

        record, _ = self.registry.add(candidate)
        try:
            await async_prepare_device(record, api, run_job, self.store, options)
        except Exception:
            self.registry.remove(record.system_id)
            await run_job(api.close)
            raise

        synchronizer = DeviceSynchronizer(record, api, self.store, options, run_job)
        coordinator = ValetudoDeviceCoordinator(self.hass, synchronizer, self.store, config_entry)
        managed = ManagedDevice(
            record=record,
            api=api,
            controller=DeviceController(record, api, run_job, options),
            coordinator=coordinator,
        )
        self._devices[record.system_id] = managed
        coordinator.async_schedule_start(self.registry.index_of(record.system_id))
        _LOGGER.info("[%s] Robot %s ready (%s)", record.name, record.system_id, record.host)
        return managed

    async def async_remove_device(self, system_id: str) -> None:
        managed = self._devices.pop(system_id, None)
        self.registry.remove(system_id)
        self.store.forget(system_id)
        if managed is None:
            return
        await managed.coordinator.async_shutdown()
        await self.hass.async_add_executor_job(managed.api.close)
        _LOGGER.info("[%s] Robot removed", managed.record.name)

    def get(self, system_id: str) -> ManagedDevice | None:
        return self._devices.get(system_id)

    @property
    def devices(self) -> list[ManagedDevice]:
        return list(self._devices.values())
