from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest
import requests

from custom_components.valetudo.api import ValetudoApi, normalize_base_url
from custom_components.valetudo.exceptions import ValetudoConnectionError, ValetudoResponseError
from custom_components.valetudo.models import BatteryStateAttribute


@dataclass
class _Response:
    status_code: int = 200
    body: Any = None
    text: str = ""

    def __post_init__(self) -> None:
        if self.body is not None and not self.text:
            self.text = json.dumps(self.body)

    def json(self) -> Any:
        return json.loads(self.text)


@dataclass
class _Session:
    responses: dict[str, _Response] = field(default_factory=dict)
    error: Exception | None = None
    headers: dict[str, str] = field(default_factory=dict)
    requests: list[tuple[str, str, Any, float]] = field(default_factory=list)

    def _respond(self, url: str) -> _Response:
        if self.error is not None:
            raise self.error
        path = url.split("/api/v2", 1)[1]
        return self.responses.get(path, _Response(status_code=404, text="Not Found"))

    def get(self, url: str, timeout: float) -> _Response:
        self.requests.append(("GET", url, None, timeout))
        return self._respond(url)

    def put(self, url: str, json: Any, timeout: float) -> _Response:
        self.requests.append(("PUT", url, json, timeout))
        return self._respond(url)

    def close(self) -> None:
        pass


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("192.0.2.5", "http://192.0.2.5"),
        ("  192.0.2.5/ ", "http://192.0.2.5"),
        ("https://robot.local", "https://robot.local"),
        ("http://robot.local:8080/", "http://robot.local:8080"),
    ],
)
def test_normalize_base_url(host: str, expected: str) -> None:
    assert normalize_base_url(host) == expected


def test_get_state_attributes_parses_body() -> None:
    session = _Session(
        responses={
            "/robot/state/attributes": _Response(
                body=[{"__class": "BatteryStateAttribute", "level": 42, "flag": "charging"}]
            )
        }
    )
    api = ValetudoApi("192.0.2.5", session=session)

    assert api.get_state_attributes() == [BatteryStateAttribute(level=42.0, flag="charging")]
    assert session.requests[0] == ("GET", "http://192.0.2.5/api/v2/robot/state/attributes", None, 10)
    assert session.headers["Accept"] == "application/json"


def test_full_map_uses_long_timeout() -> None:
    session = _Session(responses={"/robot/state/map": _Response(body={"layers": []})})
    api = ValetudoApi("192.0.2.5", session=session)

    api.get_map()
    api.get_position_payload()

    assert [timeout for *_, timeout in session.requests] == [60, 10]


def test_http_error_raises_connection_error() -> None:
    api = ValetudoApi("192.0.2.5", session=_Session())
    with pytest.raises(ValetudoConnectionError, match="HTTP 404"):
        api.get_info()


@pytest.mark.parametrize(
    "error",
    [requests.Timeout("slow"), requests.ConnectionError("refused")],
)
def test_transport_errors_raise_connection_error(error: Exception) -> None:
    api = ValetudoApi("192.0.2.5", session=_Session(error=error))
    with pytest.raises(ValetudoConnectionError):
        api.get_capabilities()


def test_invalid_json_raises_response_error() -> None:
    session = _Session(responses={"/valetudo": _Response(text="<html>")})
    api = ValetudoApi("192.0.2.5", session=session)
    with pytest.raises(ValetudoResponseError):
        api.get_info()


def test_unexpected_shape_raises_response_error() -> None:
    session = _Session(responses={"/robot/capabilities": _Response(body={"not": "a list"})})
    api = ValetudoApi("192.0.2.5", session=session)
    with pytest.raises(ValetudoResponseError):
        api.get_capabilities()


def test_commands_accept_ok_body() -> None:
    path = "/robot/capabilities/BasicControlCapability"
    session = _Session(responses={path: _Response(text="OK")})
    api = ValetudoApi("192.0.2.5", session=session)

    api.pause()

    assert session.requests == [("PUT", f"http://192.0.2.5/api/v2{path}", {"action": "pause"}, 10)]


def test_preset_and_segment_bodies() -> None:
    session = _Session(
        responses={
            "/robot/capabilities/FanSpeedControlCapability/preset": _Response(text=""),
            "/robot/capabilities/MapSegmentationCapability": _Response(text="OK"),
        }
    )
    api = ValetudoApi("192.0.2.5", session=session)

    api.set_fan_speed("max")
    api.clean_segments(["16", "17"], 1, True)

    assert session.requests[0][2] == {"name": "max"}
    assert session.requests[1][2] == {
        "action": "start_segment_action",
        "segment_ids": ["16", "17"],
        "iterations": 1,
        "customOrder": True,
    }

