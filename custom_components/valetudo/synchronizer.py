"""Per-robot poll cycle that publishes only changed attributes."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Any

from homeassistant.util import dt as dt_util

from .api import ValetudoApi
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
    FULL_MAP_TIMEOUT,
    OPERATIONAL_STATE_LABELS,
    POSITION_SETTLE_DELAY,
    PUBLISH_PACING_DELAY,
    RUN_MODE_LABELS,
)
from .consumables import async_check_consumables
from .exceptions import ValetudoApiError
from .mapper import (
    battery_percent_remaining,
    map_battery_charge_state,
    map_status_to_operational_state,
    map_status_to_run_mode,
    match_clean_mode,
)
from .models import DeviceRecord, StateSnapshot
from .options import BridgeOptions
from .sink import AttributeSink
from .spatial import SpatialIndexCache, find_robot_position

_LOGGER = logging.getLogger(__name__)

RunJob = Callable[..., Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], datetime]


class SyncState(str, Enum):
    """Lifecycle of one synchronizer.

    Degraded means the last state fetch failed; the next successful cycle
    returns to Polling. Stopped is final.
    """

    UNINITIALIZED = "uninitialized"
    POLLING = "polling"
    DEGRADED = "degraded"
    STOPPED = "stopped"


class DeviceSynchronizer:
    """Polls one robot and pushes attribute changes to the sink.

    Cycles of one synchronizer must never overlap; the caller schedules them
    one after the other.
    """

    def __init__(
        self,
        record: DeviceRecord,
        api: ValetudoApi,
        sink: AttributeSink,
        options: BridgeOptions,
        run_job: RunJob,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = dt_util.utcnow,
    ) -> None:
        self.record = record
        self.api = api
        self.sink = sink
        self.options = options
        self._run_job = run_job
        self._sleep = sleep
        self._clock = clock
        self.state = SyncState.UNINITIALIZED

    def start(self) -> None:
        """Move from Uninitialized to Polling; no-op in any other state."""
        if self.state is SyncState.UNINITIALIZED:
            self.state = SyncState.POLLING
            _LOGGER.debug("[%s] Polling started", self.record.name)

    def stop(self) -> None:
        """Stop for good. Later cycles return without touching the robot."""
        if self.state is not SyncState.STOPPED:
            self.state = SyncState.STOPPED
            _LOGGER.debug("[%s] Polling stopped", self.record.name)

    @property
    def available(self) -> bool:
        """Return True while the robot answers its state fetch."""
        return self.state is SyncState.POLLING

    async def async_poll_cycle(self) -> int:
        """Run one cycle and return the number of attribute writes issued.

        Raises ValetudoApiError if the state attributes could not be fetched;
        the device is Degraded until the next successful cycle.
        """
        if self.state is SyncState.STOPPED:
            return 0
        self.start()

        record = self.record
        try:
            attributes = await self._run_job(self.api.get_state_attributes)
        except ValetudoApiError as err:
            if self.state is not SyncState.DEGRADED:
                _LOGGER.warning("[%s] Robot unreachable: %s", record.name, err)
            self.state = SyncState.DEGRADED
            record.online = False
            raise

        if self.state is SyncState.DEGRADED:
            _LOGGER.info("[%s] Robot is back online", record.name)
            self.state = SyncState.POLLING
        record.online = True
        record.last_seen = self._clock()

        snapshot = StateSnapshot.from_attributes(attributes)
        writes = await self._async_sync_battery(snapshot)
        await self._sleep(PUBLISH_PACING_DELAY)
        writes += await self._async_sync_status(snapshot)
        self._track_clean_mode(snapshot)

        if record.initial_state_pending:
            record.initial_state_pending = False
            _LOGGER.debug("[%s] Initial state published", record.name)

        await self._sleep(POSITION_SETTLE_DELAY)

        if self.options.position_tracking and record.regions:
            try:
                writes += await self._async_sync_region()
            except Exception as err:
                _LOGGER.debug("[%s] Position tracking failed: %s", record.name, err)

        if record.consumables:
            try:
                flipped = await async_check_consumables(
                    record, self.api, self._run_job, self.sink, self.options, self._clock(), self._sleep
                )
                writes += len(flipped)
            except Exception as err:
                _LOGGER.debug("[%s] Consumable check failed: %s", record.name, err)

        return writes

    async def _async_publish(self, cluster: str, attribute: str, value: Any) -> bool:
        try:
            ok = await self.sink.async_publish_attribute(self.record.system_id, cluster, attribute, value)
        except Exception as err:
            _LOGGER.warning("[%s] Failed to publish %s.%s: %s", self.record.name, cluster, attribute, err)
            ok = False
        else:
            if not ok:
                _LOGGER.warning("[%s] Sink rejected %s.%s", self.record.name, cluster, attribute)
        await self._sleep(PUBLISH_PACING_DELAY)
        return ok

    def _should_publish(self, last: Any, value: Any) -> bool:
        return self.record.initial_state_pending or last != value

    async def _async_sync_battery(self, snapshot: StateSnapshot) -> int:
        battery = snapshot.battery
        if battery is None:
            return 0
        record = self.record
        writes = 0

        percent = battery_percent_remaining(battery.level)
        if self._should_publish(record.battery_percent, percent):
            writes += 1
            if await self._async_publish(CLUSTER_POWER_SOURCE, ATTR_BAT_PERCENT_REMAINING, percent):
                _LOGGER.info("[%s] Battery: %s%% (%s/200)", record.name, battery.level, percent)
                record.battery_percent = percent

        charge_state = map_battery_charge_state(battery.flag)
        if self._should_publish(record.battery_charge_state, charge_state):
            writes += 1
            if await self._async_publish(CLUSTER_POWER_SOURCE, ATTR_BAT_CHARGE_STATE, int(charge_state)):
                _LOGGER.info("[%s] Battery charge state: %s", record.name, BATTERY_CHARGE_STATE_LABELS[charge_state])
                record.battery_charge_state = charge_state
        return writes

    async def _async_sync_status(self, snapshot: StateSnapshot) -> int:
        status = snapshot.status
        if status is None:
            return 0
        record = self.record
        dock = snapshot.dock_status.value if snapshot.dock_status else None
        writes = 0

        operational_state = map_status_to_operational_state(status.value, dock)
        if self._should_publish(record.operational_state, operational_state):
            writes += 1
            if await self._async_publish(CLUSTER_OPERATIONAL_STATE, ATTR_OPERATIONAL_STATE, int(operational_state)):
                _LOGGER.info(
                    "[%s] Operational state: %r -> %s",
                    record.name,
                    status.value,
                    OPERATIONAL_STATE_LABELS[operational_state],
                )
                record.operational_state = operational_state

        run_mode = map_status_to_run_mode(status.value)
        if self._should_publish(record.run_mode, run_mode):
            writes += 1
            if await self._async_publish(CLUSTER_RUN_MODE, ATTR_CURRENT_MODE, int(run_mode)):
                _LOGGER.info("[%s] Run mode: %r -> %s", record.name, status.value, RUN_MODE_LABELS[run_mode])
                record.run_mode = run_mode
        return writes

    def _track_clean_mode(self, snapshot: StateSnapshot) -> None:
        entry = match_clean_mode(
            self.record.clean_modes,
            snapshot.presets.get("operation_mode"),
            snapshot.presets.get("fan_speed"),
            snapshot.presets.get("water_grade"),
        )
        if entry is not None:
            self.record.current_clean_mode = entry.code

    async def _async_rebuild_cache(self, now: datetime) -> SpatialIndexCache:
        payload = await self._run_job(self.api.get_map, FULL_MAP_TIMEOUT)
        cache = SpatialIndexCache.from_map_payload(payload, self.options.map_cache_refresh, now)
        self.record.spatial_cache = cache
        _LOGGER.debug(
            "[%s] Map cache rebuilt (version %s, %d regions)", self.record.name, cache.version, len(cache.regions)
        )
        return cache

    async def _async_sync_region(self) -> int:
        record = self.record
        now = self._clock()

        cache = record.spatial_cache
        if cache is None or not cache.is_valid(now):
            cache = await self._async_rebuild_cache(now)

        position = await self._run_job(self.api.get_position_payload)
        if not cache.matches_version(position.version):
            _LOGGER.info("[%s] Map version changed (%s -> %s), rebuilding cache", record.name, cache.version, position.version)
            cache = await self._async_rebuild_cache(now)

        point = find_robot_position(position.entities)
        if point is None:
            return 0

        segment_id = cache.locate(*cache.to_index_units(*point))
        if segment_id is None:
            return 0
        area_id = record.area_for_segment(segment_id)
        if area_id is None or area_id == record.current_area:
            return 0

        if await self._async_publish(CLUSTER_SERVICE_AREA, ATTR_CURRENT_AREA, area_id):
            _LOGGER.info("[%s] Location: %s (area %d)", record.name, record.regions[area_id].name, area_id)
            record.current_area = area_id
        return 1
