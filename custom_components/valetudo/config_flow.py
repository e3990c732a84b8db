"""Config flow for the Valetudo integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResult
from homeassistant.exceptions import HomeAssistantError

from .api import ValetudoApi
from .const import (
    CONF_CONSUMABLES_ENABLED,
    CONF_FAN_SPEED_SUFFIX,
    CONF_HOST,
    CONF_MAP_CACHE_REFRESH_HOURS,
    CONF_MAX_LIFETIME_DUST_FILTER,
    CONF_MAX_LIFETIME_MAIN_BRUSH,
    CONF_MAX_LIFETIME_SENSOR,
    CONF_MAX_LIFETIME_SIDE_BRUSH,
    CONF_MODE_MOP,
    CONF_MODE_VACUUM,
    CONF_MODE_VACUUM_AND_MOP,
    CONF_NAME,
    CONF_POLL_INTERVAL,
    CONF_POSITION_TRACKING,
    CONF_WARNING_THRESHOLD,
    CONF_WATER_USAGE_SUFFIX,
    DEFAULT_MAP_CACHE_REFRESH_HOURS,
    DEFAULT_MAX_LIFETIMES,
    DEFAULT_MODE_MOP,
    DEFAULT_MODE_VACUUM,
    DEFAULT_MODE_VACUUM_AND_MOP,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_WARNING_THRESHOLD,
    DOMAIN,
    INTENSITY_KEYS,
    MAX_MAP_CACHE_REFRESH_HOURS,
    MAX_POLL_INTERVAL_MS,
    MIN_MAP_CACHE_REFRESH_HOURS,
    MIN_POLL_INTERVAL_MS,
)
from .device import async_identify_device
from .exceptions import ValetudoApiError

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): str,
        vol.Optional(CONF_NAME): str,
    }
)


async def validate_input(hass: HomeAssistant, data: dict[str, Any]) -> dict[str, Any]:
    """Validate the user input allows us to connect."""
    api = ValetudoApi(data[CONF_HOST])
    try:
        record = await async_identify_device(api, hass.async_add_executor_job, data.get(CONF_NAME))
    except ValetudoApiError as err:
        _LOGGER.error("Cannot reach Valetudo at %s: %s", data[CONF_HOST], err)
        raise CannotConnect from err
    finally:
        await hass.async_add_executor_job(api.close)

    return {"title": record.name, "system_id": record.system_id}


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Valetudo."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                info = await validate_input(self.hass, user_input)
            except CannotConnect:
                errors["base"] = "cannot_connect"
            except Exception:
                _LOGGER.exception("Unexpected exception")
                errors["base"] = "unknown"
            else:
                # A known robot at a new address only gets its host updated
                await self.async_set_unique_id(info["system_id"])
                self._abort_if_unique_id_configured(updates={CONF_HOST: user_input[CONF_HOST]})

                return self.async_create_entry(
                    title=info["title"],
                    data=user_input,
                )

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )

    @staticmethod
    @config_entries.callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options for the integration."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        # OptionsFlow.config_entry is a read-only property backed by _config_entry
        self._config_entry = config_entry

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Manage the options."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        current = self._config_entry.options
        fields: dict[Any, Any] = {
            vol.Optional(CONF_POLL_INTERVAL, default=current.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL_MS)): vol.All(
                vol.Coerce(int),
                vol.Clamp(min=MIN_POLL_INTERVAL_MS, max=MAX_POLL_INTERVAL_MS),
            ),
            vol.Optional(
                CONF_MAP_CACHE_REFRESH_HOURS,
                default=current.get(CONF_MAP_CACHE_REFRESH_HOURS, DEFAULT_MAP_CACHE_REFRESH_HOURS),
            ): vol.All(
                vol.Coerce(float),
                vol.Clamp(min=MIN_MAP_CACHE_REFRESH_HOURS, max=MAX_MAP_CACHE_REFRESH_HOURS),
            ),
            vol.Optional(CONF_POSITION_TRACKING, default=current.get(CONF_POSITION_TRACKING, True)): bool,
            vol.Optional(CONF_CONSUMABLES_ENABLED, default=current.get(CONF_CONSUMABLES_ENABLED, False)): bool,
            vol.Optional(
                CONF_WARNING_THRESHOLD, default=current.get(CONF_WARNING_THRESHOLD, DEFAULT_WARNING_THRESHOLD)
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=100)),
        }

        for key, category in (
            (CONF_MAX_LIFETIME_MAIN_BRUSH, "mainBrush"),
            (CONF_MAX_LIFETIME_SIDE_BRUSH, "sideBrush"),
            (CONF_MAX_LIFETIME_DUST_FILTER, "dustFilter"),
            (CONF_MAX_LIFETIME_SENSOR, "sensor"),
        ):
            fields[vol.Optional(key, default=current.get(key, DEFAULT_MAX_LIFETIMES[category]))] = vol.All(
                vol.Coerce(int), vol.Range(min=1)
            )

        fields[vol.Optional(CONF_MODE_VACUUM, default=current.get(CONF_MODE_VACUUM, DEFAULT_MODE_VACUUM))] = str
        fields[vol.Optional(CONF_MODE_MOP, default=current.get(CONF_MODE_MOP, DEFAULT_MODE_MOP))] = str
        fields[
            vol.Optional(
                CONF_MODE_VACUUM_AND_MOP, default=current.get(CONF_MODE_VACUUM_AND_MOP, DEFAULT_MODE_VACUUM_AND_MOP)
            )
        ] = str

        # Blank means "use the preset the clean mode was built from"
        for intensity in INTENSITY_KEYS:
            for suffix in (CONF_FAN_SPEED_SUFFIX, CONF_WATER_USAGE_SUFFIX):
                key = f"{intensity}_{suffix}"
                fields[vol.Optional(key, default=current.get(key, ""))] = str

        return self.async_show_form(step_id="init", data_schema=vol.Schema(fields))


class CannotConnect(HomeAssistantError):
    """Error to indicate we cannot connect."""
