"""Valetudo REST client.

Plain synchronous ``requests`` calls; Home Assistant runs them in the
executor. Every method raises a ``ValetudoApiError`` subclass on failure.
"""
from __future__ import annotations

import logging
from typing import Any

import requests

from .const import (
    CAP_BASIC_CONTROL,
    CAP_CONSUMABLES,
    CAP_FAN_SPEED,
    CAP_LOCATE,
    CAP_MAP_SEGMENTATION,
    CAP_MAPPING_PASS,
    CAP_OPERATION_MODE,
    CAP_WATER_USAGE,
    DEFAULT_REQUEST_TIMEOUT,
    FULL_MAP_TIMEOUT,
)
from .exceptions import ValetudoConnectionError, ValetudoResponseError
from .models import (
    Consumable,
    MapSegment,
    PositionPayload,
    StateAttribute,
    parse_consumables,
    parse_map_segments,
    parse_position_payload,
    parse_state_attributes,
)

_LOGGER = logging.getLogger(__name__)

API_ROOT = "/api/v2"


def normalize_base_url(host: str) -> str:
    host = host.strip().rstrip("/")
    if not host.startswith(("http://", "https://")):
        host = f"http://{host}"
    return host


class ValetudoApi:
    """Client for the REST API of one Valetudo robot."""

    def __init__(self, host: str, session: requests.Session | None = None) -> None:
        self.host = host
        self.base_url = normalize_base_url(host)
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def close(self) -> None:
        self._session.close()

    # --- transport ----------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{API_ROOT}{path}"

    def _get(self, path: str, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> Any:
        url = self._url(path)
        try:
            resp = self._session.get(url, timeout=timeout)
        except requests.Timeout as err:
            raise ValetudoConnectionError(f"GET {url} timed out after {timeout}s") from err
        except requests.RequestException as err:
            raise ValetudoConnectionError(f"GET {url} failed: {err}") from err

        if resp.status_code != 200:
            raise ValetudoConnectionError(f"GET {url} failed with HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as err:
            raise ValetudoResponseError(f"GET {url} returned invalid JSON: {resp.text[:200]}") from err

    def _put(self, path: str, body: dict[str, Any], timeout: float = DEFAULT_REQUEST_TIMEOUT) -> Any:
        url = self._url(path)
        _LOGGER.debug("PUT %s %s", url, body)
        try:
            resp = self._session.put(url, json=body, timeout=timeout)
        except requests.Timeout as err:
            raise ValetudoConnectionError(f"PUT {url} timed out after {timeout}s") from err
        except requests.RequestException as err:
            raise ValetudoConnectionError(f"PUT {url} failed: {err}") from err

        if resp.status_code != 200:
            raise ValetudoConnectionError(f"PUT {url} failed with HTTP {resp.status_code}")

        text = (resp.text or "").strip()
        # Valetudo acknowledges most commands with an empty body or a bare "OK"
        if not text or text.lower() == "ok":
            return {}
        try:
            return resp.json()
        except ValueError:
            return {"raw": text}

    def _capability(self, capability: str, suffix: str = "") -> str:
        return f"/robot/capabilities/{capability}{suffix}"

    def _string_list(self, path: str) -> list[str]:
        data = self._get(path)
        if not isinstance(data, list):
            raise ValetudoResponseError(f"Expected a list from {path}, got {type(data).__name__}")
        return [str(item) for item in data]

    # --- identity -----------------------------------------------------------

    def get_info(self) -> dict[str, Any]:
        data = self._get("/valetudo")
        if not isinstance(data, dict):
            raise ValetudoResponseError("Valetudo info is not an object")
        return data

    def get_robot_info(self) -> dict[str, Any]:
        data = self._get("/robot")
        if not isinstance(data, dict):
            raise ValetudoResponseError("Robot info is not an object")
        return data

    def test_connection(self) -> bool:
        self.get_info()
        return True

    def get_capabilities(self) -> list[str]:
        return self._string_list("/robot/capabilities")

    # --- state --------------------------------------------------------------

    def get_state_attributes(self) -> list[StateAttribute]:
        return parse_state_attributes(self._get("/robot/state/attributes"))

    def get_map(self, timeout: float = FULL_MAP_TIMEOUT) -> dict[str, Any]:
        data = self._get("/robot/state/map", timeout=timeout)
        if not isinstance(data, dict):
            raise ValetudoResponseError("Map payload is not an object")
        return data

    def get_position_payload(self) -> PositionPayload:
        # Valetudo has no position-only endpoint, so the map is fetched with the
        # ordinary timeout and reduced to its entities.
        return parse_position_payload(self._get("/robot/state/map"))

    # --- presets ------------------------------------------------------------

    def get_fan_speed_presets(self) -> list[str]:
        return self._string_list(self._capability(CAP_FAN_SPEED, "/presets"))

    def set_fan_speed(self, preset: str) -> None:
        self._put(self._capability(CAP_FAN_SPEED, "/preset"), {"name": preset})

    def get_water_usage_presets(self) -> list[str]:
        return self._string_list(self._capability(CAP_WATER_USAGE, "/presets"))

    def set_water_usage(self, preset: str) -> None:
        self._put(self._capability(CAP_WATER_USAGE, "/preset"), {"name": preset})

    def get_operation_mode_presets(self) -> list[str]:
        return self._string_list(self._capability(CAP_OPERATION_MODE, "/presets"))

    def set_operation_mode(self, preset: str) -> None:
        self._put(self._capability(CAP_OPERATION_MODE, "/preset"), {"name": preset})

    # --- segments -----------------------------------------------------------

    def get_map_segments(self) -> list[MapSegment]:
        return parse_map_segments(self._get(self._capability(CAP_MAP_SEGMENTATION)))

    def get_map_segmentation_properties(self) -> dict[str, Any]:
        data = self._get(self._capability(CAP_MAP_SEGMENTATION, "/properties"))
        return data if isinstance(data, dict) else {}

    def clean_segments(self, segment_ids: list[str], iterations: int = 1, custom_order: bool = False) -> None:
        self._put(
            self._capability(CAP_MAP_SEGMENTATION),
            {
                "action": "start_segment_action",
                "segment_ids": list(segment_ids),
                "iterations": iterations,
                "customOrder": custom_order,
            },
        )

    # --- control ------------------------------------------------------------

    def basic_control(self, action: str) -> None:
        self._put(self._capability(CAP_BASIC_CONTROL), {"action": action})

    def start(self) -> None:
        self.basic_control("start")

    def stop(self) -> None:
        self.basic_control("stop")

    def pause(self) -> None:
        self.basic_control("pause")

    def home(self) -> None:
        self.basic_control("home")

    def start_mapping(self) -> None:
        self._put(self._capability(CAP_MAPPING_PASS), {"action": "start_mapping"})

    def locate(self) -> None:
        self._put(self._capability(CAP_LOCATE), {"action": "locate"})

    # --- consumables --------------------------------------------------------

    def get_consumables(self) -> list[Consumable]:
        return parse_consumables(self._get(self._capability(CAP_CONSUMABLES)))
