"""Commands sent from the consumer side to one robot."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .api import ValetudoApi
from .const import (
    CAP_FAN_SPEED,
    CAP_MAP_SEGMENTATION,
    CAP_MAPPING_PASS,
    CAP_WATER_USAGE,
    RunMode,
)
from .exceptions import ValetudoApiError
from .mapper import is_run_mode_code, resolve_clean_mode_settings
from .models import DeviceRecord
from .options import BridgeOptions

_LOGGER = logging.getLogger(__name__)

RunJob = Callable[..., Awaitable[Any]]


class UnsupportedModeError(ValueError):
    """Requested mode code is not in the device's catalogs."""


class DeviceController:
    def __init__(self, record: DeviceRecord, api: ValetudoApi, run_job: RunJob, options: BridgeOptions) -> None:
        self.record = record
        self.api = api
        self._run_job = run_job
        self.options = options

    async def async_change_to_mode(self, code: int) -> None:
        if is_run_mode_code(code):
            await self._async_change_run_mode(RunMode(code))
        else:
            await self._async_change_clean_mode(code)

    async def _async_change_run_mode(self, mode: RunMode) -> None:
        record = self.record
        if mode == RunMode.CLEANING:
            segment_ids = self.selected_segment_ids
            if segment_ids and record.supports(CAP_MAP_SEGMENTATION):
                _LOGGER.info("[%s] Starting room cleaning: %s", record.name, ", ".join(self.selected_area_names))
                try:
                    properties = await self._run_job(self.api.get_map_segmentation_properties)
                except ValetudoApiError as err:
                    _LOGGER.debug("[%s] Segmentation properties unavailable: %s", record.name, err)
                    properties = {}
                await self._run_job(
                    self.api.clean_segments,
                    segment_ids,
                    1,
                    bool(properties.get("customOrderSupported", False)),
                )
            else:
                _LOGGER.info("[%s] Starting full cleaning", record.name)
                await self._run_job(self.api.start)
        elif mode == RunMode.IDLE:
            _LOGGER.info("[%s] Stopping cleaning", record.name)
            await self._run_job(self.api.stop)
            record.selected_areas = []
        elif mode == RunMode.MAPPING:
            if not record.supports(CAP_MAPPING_PASS):
                raise UnsupportedModeError(f"{record.name} does not support mapping passes")
            _LOGGER.info("[%s] Starting mapping pass", record.name)
            await self._run_job(self.api.start_mapping)

    async def _async_change_clean_mode(self, code: int) -> None:
        record = self.record
        entry = record.clean_mode(code)
        if entry is None:
            raise UnsupportedModeError(f"Clean mode {code} is not offered by {record.name}")

        operation_mode, fan, water = resolve_clean_mode_settings(entry, self.options.intensity_overrides)
        _LOGGER.info(
            "[%s] Setting mode %r with fan %r, water %r", record.name, operation_mode, fan, water
        )
        # The fallback entry exists even when the robot has no operation modes
        if operation_mode in record.operation_modes:
            await self._run_job(self.api.set_operation_mode, operation_mode)
        if fan and record.supports(CAP_FAN_SPEED):
            await self._run_job(self.api.set_fan_speed, fan)
        if water and record.supports(CAP_WATER_USAGE):
            await self._run_job(self.api.set_water_usage, water)
        record.current_clean_mode = entry.code

    def select_areas(self, area_ids: Iterable[int]) -> list[str]:
        """Replace the area selection; unknown ids are ignored. Returns segment ids."""
        selected = [area_id for area_id in area_ids if area_id in self.record.regions]
        self.record.selected_areas = selected
        if selected:
            _LOGGER.info("[%s] Selected areas: %s", self.record.name, ", ".join(self.selected_area_names))
        else:
            _LOGGER.info("[%s] Area selection cleared", self.record.name)
        return self.selected_segment_ids

    @property
    def selected_segment_ids(self) -> list[str]:
        return [self.record.regions[a].segment_id for a in self.record.selected_areas if a in self.record.regions]

    @property
    def selected_area_names(self) -> list[str]:
        return [self.record.regions[a].name for a in self.record.selected_areas if a in self.record.regions]

    async def async_pause(self) -> None:
        _LOGGER.info("[%s] Pause", self.record.name)
        await self._run_job(self.api.pause)

    async def async_resume(self) -> None:
        _LOGGER.info("[%s] Resume", self.record.name)
        await self._run_job(self.api.start)

    async def async_go_home(self) -> None:
        _LOGGER.info("[%s] Return to dock", self.record.name)
        await self._run_job(self.api.home)

    async def async_identify(self) -> None:
        _LOGGER.info("[%s] Locate", self.record.name)
        await self._run_job(self.api.locate)
