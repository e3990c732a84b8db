"""Diagnostics support for the Valetudo integration.

Valetudo runs on the local network without credentials; the only values
worth hiding are the robot's address and its system id.
"""

from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_HOST, DOMAIN

TO_REDACT = {CONF_HOST, "host", "system_id", "systemId", "configuration_url", "base_url"}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    data = hass.data.get(DOMAIN, {}).get(entry.entry_id) or {}
    coordinator = data.get("coordinator")

    diag: dict[str, Any] = {
        "entry": {
            "title": entry.title,
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
    }

    if coordinator is not None:
        record = coordinator.record
        cache = record.spatial_cache
        diag["coordinator"] = {
            "last_update_success": coordinator.last_update_success,
            "poll_interval_seconds": coordinator.poll_interval.total_seconds(),
            "sync_state": coordinator.synchronizer.state.value,
        }
        diag["record"] = {
            "system_id": record.system_id,
            "host": record.host,
            "manufacturer": record.manufacturer,
            "model": record.model,
            "capabilities": sorted(record.capabilities),
            "online": record.online,
            "initial_state_pending": record.initial_state_pending,
            "regions": {area_id: region.name for area_id, region in record.regions.items()},
            "selected_areas": list(record.selected_areas),
            "operation_modes": list(record.operation_modes),
            "run_modes": [mode.label for mode in record.run_modes],
            "clean_modes": [
                {
                    "label": mode.label,
                    "code": mode.code,
                    "operation_mode": mode.operation_mode,
                    "fan_speed": mode.fan_speed,
                    "water_usage": mode.water_usage,
                }
                for mode in record.clean_modes
            ],
            "current_clean_mode": record.current_clean_mode,
            "map_cache": None
            if cache is None
            else {
                "version": cache.version,
                "regions": len(cache.regions),
                "pixel_size": cache.pixel_size,
                "valid_until": cache.valid_until.isoformat(),
            },
        }
        diag["published"] = coordinator.data

    return async_redact_data(diag, TO_REDACT)
