"""Consumable lifetime tracking with edge-triggered replacement alerts."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from .api import ValetudoApi
from .const import (
    ATTR_STATE_VALUE,
    CLUSTER_BOOLEAN_STATE,
    CONSUMABLES_CHECK_INTERVAL,
    FALLBACK_MAX_LIFETIME,
    PUBLISH_PACING_DELAY,
)
from .helpers import round_half_up, safe_endpoint_id
from .models import Consumable, ConsumableEntry, DeviceRecord
from .options import BridgeOptions
from .sink import AttributeSink

_LOGGER = logging.getLogger(__name__)

RunJob = Callable[..., Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]

_NAMES = {
    "brush-main": "Main Brush",
    "brush-side_right": "Side Brush",
    "brush-side_left": "Side Brush Left",
    "filter-main": "Dust Filter",
    "cleaning-sensor": "Sensor",
    "cleaning-wheel": "Wheel",
    "consumable-detergent": "Detergent",
}

_CATEGORIES = {
    ("brush", "main"): "mainBrush",
    ("brush", "side_right"): "sideBrush",
    ("brush", "side_left"): "sideBrush",
    ("filter", "main"): "dustFilter",
    ("cleaning", "sensor"): "sensor",
}

PERCENT_MAX_LIFETIME = 100


def consumable_name(consumable: Consumable) -> str:
    if "dock" in consumable.sub_type:
        return "Detergent"
    return _NAMES.get(
        f"{consumable.type}-{consumable.sub_type}",
        f"{consumable.type} {consumable.sub_type}",
    )


def consumable_endpoint_id(system_id: str, consumable: Consumable) -> str:
    return safe_endpoint_id(system_id, "consumable", consumable.type, consumable.sub_type)


def _is_percentage(consumable: Consumable) -> bool:
    if consumable.remaining_unit == "percent":
        return True
    if not 0 <= consumable.remaining_value <= 100:
        return False
    return (
        consumable.type == "consumable"
        or "detergent" in consumable.sub_type
        or "dock" in consumable.sub_type
    )


def max_lifetime(consumable: Consumable, max_lifetimes: Mapping[str, int]) -> int:
    """Full lifetime for the consumable's scale (minutes, or 100 for percent)."""
    if _is_percentage(consumable):
        return PERCENT_MAX_LIFETIME
    category = _CATEGORIES.get((consumable.type, consumable.sub_type))
    if category is None:
        return FALLBACK_MAX_LIFETIME
    return max_lifetimes.get(category) or FALLBACK_MAX_LIFETIME


def life_percent(consumable: Consumable, max_lifetimes: Mapping[str, int]) -> int:
    return round_half_up(consumable.remaining_value / max_lifetime(consumable, max_lifetimes) * 100)


def create_consumable_entries(record: DeviceRecord, consumables: Iterable[Consumable]) -> None:
    """Register one tracking entry per reported consumable.

    Entries start without a computed state so the first check always counts
    as a transition.
    """
    for consumable in consumables:
        name = consumable_name(consumable)
        if name in record.consumables:
            continue
        record.consumables[name] = ConsumableEntry(
            name=name,
            endpoint_id=consumable_endpoint_id(record.system_id, consumable),
            consumable=consumable,
        )


def evaluate_consumable(entry: ConsumableEntry, consumable: Consumable, options: BridgeOptions) -> bool:
    """Update entry from a fresh reading. Returns True if needs_replacement flipped."""
    percent = life_percent(consumable, options.max_lifetimes)
    needs_replacement = percent <= options.warning_threshold
    entry.consumable = consumable
    entry.life_percent = percent
    changed = entry.needs_replacement is None or entry.needs_replacement != needs_replacement
    entry.needs_replacement = needs_replacement
    return changed


def consumables_due(record: DeviceRecord, now: datetime) -> bool:
    if record.last_consumables_check is None:
        return True
    return now - record.last_consumables_check >= timedelta(seconds=CONSUMABLES_CHECK_INTERVAL)


async def async_check_consumables(
    record: DeviceRecord,
    api: ValetudoApi,
    run_job: RunJob,
    sink: AttributeSink,
    options: BridgeOptions,
    now: datetime,
    sleep: Sleep = asyncio.sleep,
) -> list[ConsumableEntry]:
    """Run one low-frequency check; returns the entries whose state flipped.

    Does nothing until the check interval has elapsed since the last attempt.
    Only entries created at setup are updated. Every write is followed by the
    publish pacing delay.
    """
    if not record.consumables or not consumables_due(record, now):
        return []
    record.last_consumables_check = now

    consumables = await run_job(api.get_consumables)
    flipped: list[ConsumableEntry] = []
    for consumable in consumables:
        entry = record.consumables.get(consumable_name(consumable))
        if entry is None:
            continue
        previous = entry.needs_replacement
        if not evaluate_consumable(entry, consumable, options):
            continue

        try:
            ok = await sink.async_publish_attribute(
                entry.endpoint_id, CLUSTER_BOOLEAN_STATE, ATTR_STATE_VALUE, not entry.needs_replacement
            )
        except Exception as err:
            _LOGGER.debug("[%s] Publishing %s raised: %s", record.name, entry.name, err)
            ok = False
        await sleep(PUBLISH_PACING_DELAY)
        if not ok:
            # Keep the old state so the next check sees the transition again
            entry.needs_replacement = previous
            _LOGGER.warning("[%s] Failed to publish replacement state for %s", record.name, entry.name)
            continue

        flipped.append(entry)
        _LOGGER.info(
            "[%s] %s: %s%s (%s%%) - %s",
            record.name,
            entry.name,
            consumable.remaining_value,
            consumable.remaining_unit,
            entry.life_percent,
            "NEEDS REPLACEMENT" if entry.needs_replacement else "OK",
        )
    return flipped
