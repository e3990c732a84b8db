"""Valetudo robot vacuum integration for Home Assistant."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import ConfigEntryNotReady, HomeAssistantError
from homeassistant.helpers import config_validation as cv

from .bridge import ManagedDevice, ValetudoBridge
from .const import CONF_HOST, CONF_NAME, DOMAIN
from .exceptions import DuplicateDeviceError, ValetudoApiError
from .options import BridgeOptions

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.SENSOR,
    Platform.BINARY_SENSOR,
    Platform.SELECT,
]

DATA_BRIDGE = "bridge"

ATTR_SYSTEM_ID = "system_id"
ATTR_AREAS = "areas"

SERVICE_SELECT_AREAS = "select_areas"
SERVICE_PAUSE = "pause"
SERVICE_RESUME = "resume"
SERVICE_GO_HOME = "go_home"
SERVICE_LOCATE = "locate"

SERVICE_SCHEMA = vol.Schema({vol.Optional(ATTR_SYSTEM_ID): cv.string})
SELECT_AREAS_SCHEMA = SERVICE_SCHEMA.extend(
    {vol.Required(ATTR_AREAS, default=[]): vol.All(cv.ensure_list, [vol.Coerce(int)])}
)


def get_bridge(hass: HomeAssistant) -> ValetudoBridge:
    domain_data = hass.data.setdefault(DOMAIN, {})
    if DATA_BRIDGE not in domain_data:
        domain_data[DATA_BRIDGE] = ValetudoBridge(hass)
    return domain_data[DATA_BRIDGE]


async def _options_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so new intervals, catalogs and thresholds apply."""
    await hass.config_entries.async_reload(entry.entry_id)


def _resolve_device(hass: HomeAssistant, call: ServiceCall) -> ManagedDevice:
    bridge = get_bridge(hass)
    system_id = call.data.get(ATTR_SYSTEM_ID)
    if system_id:
        managed = bridge.get(system_id)
        if managed is None:
            raise HomeAssistantError(f"Unknown Valetudo robot: {system_id}")
        return managed
    devices = bridge.devices
    if len(devices) != 1:
        raise HomeAssistantError("Several Valetudo robots are configured; specify system_id")
    return devices[0]


def _register_services(hass: HomeAssistant) -> None:
    if hass.services.has_service(DOMAIN, SERVICE_SELECT_AREAS):
        return

    async def _svc_select_areas(call: ServiceCall) -> None:
        managed = _resolve_device(hass, call)
        managed.controller.select_areas(call.data.get(ATTR_AREAS, []))
        managed.coordinator.async_update_from_record()

    def _command(name: str) -> Callable[[ServiceCall], Awaitable[None]]:
        async def _svc(call: ServiceCall) -> None:
            managed = _resolve_device(hass, call)
            try:
                await getattr(managed.controller, name)()
            except ValetudoApiError as err:
                raise HomeAssistantError(f"{managed.record.name}: command failed: {err}") from err
            await managed.coordinator.async_request_refresh()

        return _svc

    hass.services.async_register(DOMAIN, SERVICE_SELECT_AREAS, _svc_select_areas, schema=SELECT_AREAS_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_PAUSE, _command("async_pause"), schema=SERVICE_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_RESUME, _command("async_resume"), schema=SERVICE_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_GO_HOME, _command("async_go_home"), schema=SERVICE_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_LOCATE, _command("async_identify"), schema=SERVICE_SCHEMA)


def _remove_services(hass: HomeAssistant) -> None:
    for service in (SERVICE_SELECT_AREAS, SERVICE_PAUSE, SERVICE_RESUME, SERVICE_GO_HOME, SERVICE_LOCATE):
        if hass.services.has_service(DOMAIN, service):
            hass.services.async_remove(DOMAIN, service)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up a Valetudo robot from a config entry."""
    bridge = get_bridge(hass)
    options = BridgeOptions.from_options(entry.options)

    try:
        managed = await bridge.async_add_device(entry.data[CONF_HOST], entry.data.get(CONF_NAME), options, entry)
    except DuplicateDeviceError as err:
        _LOGGER.error("Not setting up %s: %s", entry.title, err)
        return False
    except ValetudoApiError as err:
        _LOGGER.error("Failed to set up Valetudo robot at %s: %s", entry.data[CONF_HOST], err)
        raise ConfigEntryNotReady from err

    record = managed.record
    if entry.unique_id and entry.unique_id != record.system_id:
        _LOGGER.warning(
            "[%s] Robot at %s reports system id %s, expected %s",
            record.name,
            record.host,
            record.system_id,
            entry.unique_id,
        )

    coordinator = managed.coordinator

    # Without at least one listener the coordinator does not schedule timed
    # refreshes.
    def _keepalive_listener() -> None:
        return

    unsub_keepalive = coordinator.async_add_listener(_keepalive_listener)

    hass.data[DOMAIN][entry.entry_id] = {
        "system_id": record.system_id,
        "coordinator": coordinator,
        "controller": managed.controller,
        "_unsub_keepalive": unsub_keepalive,
    }

    entry.async_on_unload(entry.add_update_listener(_options_update_listener))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _register_services(hass)

    _LOGGER.info("[%s] Valetudo integration setup complete", record.name)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        data = hass.data[DOMAIN].pop(entry.entry_id)
        data["_unsub_keepalive"]()

        bridge = get_bridge(hass)
        await bridge.async_remove_device(data["system_id"])

        if not bridge.devices:
            _remove_services(hass)
            hass.data[DOMAIN].pop(DATA_BRIDGE, None)

    return unload_ok
