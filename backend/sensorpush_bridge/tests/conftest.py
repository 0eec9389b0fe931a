"""Shared fixtures and canned SensorPush responses for the bridge tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from sensorpush_bridge.config import API_BASE_URL
from sensorpush_bridge.models import Sample, Sensor


# ---------------------------------------------------------------------------
# Canned API payloads
# ---------------------------------------------------------------------------

SENSORS_PAYLOAD = {
    "111.aaa": {
        "id": "111.aaa",
        "name": "Garage",
        "deviceId": "dev-1",
        "battery_voltage": 2.95,
        "active": True,
        "alerts": {"temperature": {"enabled": True, "min": 40, "max": 90}},
    },
    "222.bbb": {
        "id": "222.bbb",
        "name": "Freezer",
        "deviceId": "dev-2",
    },
    "333.ccc": {
        "name": "Retired",
        "deviceId": "dev-3",
        "battery_voltage": 2.1,
        "active": False,
    },
}

GATEWAYS_PAYLOAD = {
    "Home": {"name": "Home", "last_seen": "2024-01-01T00:04:00.000Z", "paired": True, "version": "1.1.2"},
}

SAMPLES_PAYLOAD = {
    "last_time": "2024-01-01T00:05:00.000Z",
    "sensors": {
        "111.aaa": {
            "2024-01-01T00:00:00Z": {"temperature": 50.0, "humidity": 30.0, "observed": "2024-01-01T00:00:00Z"},
            "2024-01-01T00:05:00Z": {"temperature": 212.0, "humidity": 45.5, "observed": "2024-01-01T00:05:00Z"},
        },
    },
}


# ---------------------------------------------------------------------------
# Fake clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Fake SensorPush cloud behind httpx.MockTransport
# ---------------------------------------------------------------------------


class FakeSensorPushCloud:
    """Answers SensorPush endpoints from a table and records every request.

    Each entry in ``responses`` is one of:
        (status_code, json_body)        -> returned as an httpx.Response
        an exception instance           -> raised (simulates transport errors)
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, Any] = {
            "/oauth/authorize": (200, {"authorization": "auth-code"}),
            "/oauth/accesstoken": (200, {"accesstoken": "token-1"}),
            "/devices/sensors": (200, SENSORS_PAYLOAD),
            "/devices/gateways": (200, GATEWAYS_PAYLOAD),
            "/samples": (200, SAMPLES_PAYLOAD),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v1")
        answer = self.responses[path]
        if isinstance(answer, Exception):
            raise answer
        status, body = answer
        return httpx.Response(status, json=body)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path)]

    def body(self, request: httpx.Request) -> dict:
        return json.loads(request.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=API_BASE_URL, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def cloud() -> FakeSensorPushCloud:
    return FakeSensorPushCloud()


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


def sensor_map(payload: dict | None = None) -> dict[str, Sensor]:
    """Build the metadata map list_sensors() would return for ``payload``."""
    payload = SENSORS_PAYLOAD if payload is None else payload
    return {
        sensor_id: Sensor.model_validate({**raw, "id": sensor_id})
        for sensor_id, raw in payload.items()
    }


def sample_map(readings: dict[str, dict[str, tuple[float, float]]]) -> dict[str, dict[str, Sample]]:
    """{"id": {"ts": (temp_f, humidity)}} -> the map list_samples() returns."""
    return {
        sensor_id: {
            timestamp: Sample(temperature=temp_f, humidity=humidity, observed=timestamp)
            for timestamp, (temp_f, humidity) in per_sensor.items()
        }
        for sensor_id, per_sensor in readings.items()
    }


@pytest.fixture
def sensors() -> dict[str, Sensor]:
    return sensor_map()


# ---------------------------------------------------------------------------
# Mock API client for manager tests
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_api(sensors: dict[str, Sensor]) -> MagicMock:
    """Stand-in for SensorPushApi without any HTTP."""
    api = MagicMock()
    api.authenticate = AsyncMock()
    api.list_sensors = AsyncMock(return_value=sensors)
    api.list_gateways = AsyncMock(return_value={})
    api.list_samples = AsyncMock(return_value={})
    api.close = AsyncMock()
    return api
