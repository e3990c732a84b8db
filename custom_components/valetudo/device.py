"""Identify a robot and build its per-device catalogs."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .api import ValetudoApi
from .const import (
    CAP_CONSUMABLES,
    CAP_FAN_SPEED,
    CAP_MAP_SEGMENTATION,
    CAP_MAPPING_PASS,
    CAP_OPERATION_MODE,
    CAP_WATER_USAGE,
    IDENTIFY_CALL_SPACING,
)
from .consumables import create_consumable_entries
from .exceptions import ValetudoApiError, ValetudoResponseError
from .mapper import build_clean_mode_catalog, build_run_mode_catalog
from .models import DeviceRecord, MapSegment, RegionInfo
from .options import BridgeOptions
from .sink import AttributeSink

_LOGGER = logging.getLogger(__name__)

RunJob = Callable[..., Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


async def async_identify_device(
    api: ValetudoApi,
    run_job: RunJob,
    name: str | None = None,
    sleep: Sleep = asyncio.sleep,
) -> DeviceRecord:
    """Contact the robot and return a fresh record for it.

    Raises ValetudoApiError if the robot cannot be reached or does not report
    a system id.
    """
    await run_job(api.test_connection)
    await sleep(IDENTIFY_CALL_SPACING)

    info = await run_job(api.get_info)
    system_id = info.get("systemId")
    if not system_id:
        raise ValetudoResponseError(f"Robot at {api.host} did not report a systemId")
    await sleep(IDENTIFY_CALL_SPACING)

    robot = await run_job(api.get_robot_info)
    manufacturer = str(robot.get("manufacturer") or "")
    model = str(robot.get("modelName") or "")

    display_name = (name or "").strip() or f"{manufacturer} {model}".strip() or str(system_id)
    return DeviceRecord(
        system_id=str(system_id),
        host=api.host,
        name=display_name,
        manufacturer=manufacturer,
        model=model,
    )


def build_regions(segments: list[MapSegment]) -> list[RegionInfo]:
    """Number named segments 1..n and make their names unique."""
    used: dict[str, int] = {}
    regions: list[RegionInfo] = []
    for segment in segments:
        name = segment.name.strip()
        if not name:
            continue
        if name in used:
            used[name] += 1
            name = f"{name} {used[name]}"
        else:
            used[name] = 1
        regions.append(RegionInfo(area_id=len(regions) + 1, segment_id=segment.id, name=name))
    return regions


async def _async_optional_list(record: DeviceRecord, run_job: RunJob, fetch: Callable[[], list[str]]) -> list[str] | None:
    try:
        return await run_job(fetch)
    except ValetudoApiError as err:
        _LOGGER.debug("[%s] Could not fetch presets: %s", record.name, err)
        return None


async def async_prepare_device(
    record: DeviceRecord,
    api: ValetudoApi,
    run_job: RunJob,
    sink: AttributeSink,
    options: BridgeOptions,
) -> None:
    """Fetch capabilities and build regions, modes and consumable entries."""
    record.capabilities = frozenset(await run_job(api.get_capabilities))
    _LOGGER.debug("[%s] Capabilities: %s", record.name, ", ".join(sorted(record.capabilities)))

    if record.supports(CAP_MAP_SEGMENTATION):
        try:
            segments = await run_job(api.get_map_segments)
        except ValetudoApiError as err:
            _LOGGER.warning("[%s] Could not fetch map segments: %s", record.name, err)
            segments = []
        regions = build_regions(segments)
        record.regions = {region.area_id: region for region in regions}
        if regions:
            _LOGGER.info("[%s] Found %d areas: %s", record.name, len(regions), ", ".join(r.name for r in regions))
        await sink.async_register_region_catalog(record.system_id, regions)

    record.run_modes = build_run_mode_catalog(record.supports(CAP_MAPPING_PASS))

    fan_presets = None
    water_presets = None
    if record.supports(CAP_FAN_SPEED):
        fan_presets = await _async_optional_list(record, run_job, api.get_fan_speed_presets)
    if record.supports(CAP_WATER_USAGE):
        water_presets = await _async_optional_list(record, run_job, api.get_water_usage_presets)
    if record.supports(CAP_OPERATION_MODE):
        record.operation_modes = await _async_optional_list(record, run_job, api.get_operation_mode_presets) or []

    record.clean_modes = build_clean_mode_catalog(
        record.operation_modes,
        fan_presets,
        water_presets,
        options.mode_names,
        device_name=record.name,
    )
    _LOGGER.debug("[%s] Clean modes: %s", record.name, ", ".join(m.label for m in record.clean_modes))

    if options.consumables_enabled and record.supports(CAP_CONSUMABLES):
        try:
            consumables = await run_job(api.get_consumables)
        except ValetudoApiError as err:
            _LOGGER.warning("[%s] Could not fetch consumables: %s", record.name, err)
            consumables = []
        create_consumable_entries(record, consumables)
        _LOGGER.info("[%s] Tracking %d consumables", record.name, len(record.consumables))
