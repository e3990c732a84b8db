"""Data update coordinator for one Valetudo robot."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.event import async_call_later
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import (
    ATTR_STATE_VALUE,
    CLUSTER_BOOLEAN_STATE,
    DOMAIN,
    INITIAL_POLL_DELAY,
    POLL_STAGGER_PER_DEVICE,
)
from .exceptions import ValetudoApiError
from .sink import AttributeStore
from .synchronizer import DeviceSynchronizer, SyncState

_LOGGER = logging.getLogger(__name__)


def first_poll_delay(index: int) -> float:
    """Seconds between registration and the first poll of the index-th robot."""
    return INITIAL_POLL_DELAY + POLL_STAGGER_PER_DEVICE * index


class ValetudoDeviceCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Runs the poll cycles of one robot.

    Polling is disabled (update_interval None) until the startup delay has
    passed, so attached entities cannot trigger an early refresh.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        synchronizer: DeviceSynchronizer,
        store: AttributeStore,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialize the coordinator."""
        self.synchronizer = synchronizer
        self.store = store
        self.record = synchronizer.record
        self._poll_interval = synchronizer.options.poll_interval
        self._unsub_start: Callable[[], None] | None = None

        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_{self.record.system_id}",
            update_interval=None,
        )
        self.data = self._build_data()

    @property
    def poll_interval(self) -> timedelta:
        return self._poll_interval

    @callback
    def async_schedule_start(self, index: int) -> None:
        delay = first_poll_delay(index)
        _LOGGER.info("[%s] First poll in %.0f s", self.record.name, delay)
        self._unsub_start = async_call_later(self.hass, delay, self._async_start_polling)

    async def _async_start_polling(self, _now: Any = None) -> None:
        self._unsub_start = None
        if self.synchronizer.state is SyncState.STOPPED:
            return
        self.synchronizer.start()
        self.update_interval = self._poll_interval
        await self.async_refresh()

    async def _async_update_data(self) -> dict[str, Any]:
        """Run one synchronizer cycle."""
        try:
            await self.synchronizer.async_poll_cycle()
        except ValetudoApiError as err:
            raise UpdateFailed(f"Error communicating with {self.record.name}: {err}") from err
        return self._build_data()

    def _build_data(self) -> dict[str, Any]:
        record = self.record
        consumables: dict[str, dict[str, Any]] = {}
        for name, entry in record.consumables.items():
            state_value = self.store.get(entry.endpoint_id, CLUSTER_BOOLEAN_STATE, ATTR_STATE_VALUE)
            consumables[name] = {
                "endpoint_id": entry.endpoint_id,
                "remaining": entry.consumable.remaining_value,
                "unit": entry.consumable.remaining_unit,
                "life_percent": entry.life_percent,
                "needs_replacement": entry.needs_replacement,
                "state_value": state_value,
            }

        return {
            "system_id": record.system_id,
            "name": record.name,
            "online": record.online,
            "sync_state": self.synchronizer.state.value,
            "clusters": self.store.snapshot(record.system_id),
            "regions": {area_id: region.name for area_id, region in record.regions.items()},
            "selected_areas": list(record.selected_areas),
            "current_clean_mode": record.current_clean_mode,
            "consumables": consumables,
            "last_seen": record.last_seen,
        }

    @callback
    def async_update_from_record(self) -> None:
        """Push record changes made outside a poll cycle (e.g. commands)."""
        self.data = self._build_data()
        self.async_update_listeners()

    async def async_shutdown(self) -> None:
        """Cancel the pending start and stop polling."""
        if self._unsub_start is not None:
            self._unsub_start()
            self._unsub_start = None
        self.synchronizer.stop()
        await super().async_shutdown()
