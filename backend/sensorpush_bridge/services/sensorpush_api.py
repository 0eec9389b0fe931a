"""
SensorPush API Client
=====================

Talks to the SensorPush cloud at https://api.sensorpush.com/api/v1

WHAT THIS DOES:
--------------
1. Keeps one HTTP client around (connections get reused)
2. Makes sure we have a valid access token before every call
3. Lists sensors, gateways and samples
4. Turns HTTP problems into ApiError so callers only catch one thing

THE DATA FLOW:
-------------
    [SensorManager]
            |
            | list_samples(["12345.67"], limit=1)
            v
    [This Client] --ensure_valid()--> [CredentialManager]
            |
            | POST /samples  (Authorization: <access token>)
            v
    [api.sensorpush.com]

Everything is POST with a JSON body, even the "list" calls.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

import httpx
from pydantic import ValidationError

from sensorpush_bridge.config import API_BASE_URL
from sensorpush_bridge.exceptions import ApiError
from sensorpush_bridge.models import Gateway, Sample, Sensor
from sensorpush_bridge.services.credentials import CredentialManager, utc_now

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class SensorPushApi:
    """
    Client for the SensorPush cloud API.

    HOW TO USE:
    ----------
    api = SensorPushApi(email="me@example.com", password="secret")

    await api.authenticate()
    sensors = await api.list_sensors()
    samples = await api.list_samples(list(sensors), limit=1)

    await api.close()
    """

    def __init__(
        self,
        email: str,
        password: str,
        base_url: str = API_BASE_URL,
        request_timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        """
        Set up the client.

        Args:
            email: SensorPush account email
            password: SensorPush account password
            base_url: API root (override for testing)
            request_timeout: How long to wait for each response (seconds)
            http_client: Pre-configured client (for testing). It must already
                         point at the API base URL.
            now: Clock used for token expiry
        """
        self.http_client = http_client or httpx.AsyncClient(
            base_url=base_url,
            headers=DEFAULT_HEADERS,
            timeout=request_timeout,
        )
        self.credentials = CredentialManager(self.http_client, email, password, now=now)

    async def authenticate(self) -> None:
        """Log in now, even if the current token is still good."""
        await self.credentials.authenticate()

    # =========================================================================
    # DEVICES
    # =========================================================================

    async def list_sensors(self) -> dict[str, Sensor]:
        """
        Get every sensor on the account.

        Returns:
            Sensor metadata keyed by sensor ID, e.g.
            {"12345.67": Sensor(id="12345.67", name="Garage", battery_voltage=2.9, ...)}

        Raises:
            ApiError: The call failed or the answer made no sense
            AuthError: We could not get a token
        """
        data = await self._post("/devices/sensors", {}, "get sensors")
        try:
            return {
                sensor_id: Sensor.model_validate({**raw, "id": sensor_id})
                for sensor_id, raw in data.items()
            }
        except (ValidationError, TypeError) as e:
            raise ApiError("Unexpected sensor list format", detail=str(e)) from e

    async def list_gateways(self) -> dict[str, Gateway]:
        """
        Get every gateway on the account.

        Returns:
            Gateway info keyed by gateway ID
        """
        data = await self._post("/devices/gateways", {}, "get gateways")
        try:
            return {
                gateway_id: Gateway.model_validate({**raw, "id": gateway_id})
                for gateway_id, raw in data.items()
            }
        except (ValidationError, TypeError) as e:
            raise ApiError("Unexpected gateway list format", detail=str(e)) from e

    # =========================================================================
    # SAMPLES
    # =========================================================================

    async def list_samples(
        self,
        sensor_ids: Optional[Iterable[str]] = None,
        limit: int = 1,
    ) -> dict[str, dict[str, Sample]]:
        """
        Get the most recent readings.

        Args:
            sensor_ids: Only these sensors (None/empty = all sensors)
            limit: How many samples per sensor (at least 1)

        Returns:
            Samples keyed by sensor ID and then by timestamp string, e.g.
            {"12345.67": {"2024-01-01T00:05:00.000Z": Sample(temperature=71.2, humidity=40.1)}}
            Sensors without data are simply missing.
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")

        body: dict = {"limit": limit}
        ids = list(sensor_ids or [])
        if ids:
            body["sensors"] = ids

        data = await self._post("/samples", body, "get samples")
        sensors = data.get("sensors") or {}
        try:
            return {
                sensor_id: {
                    timestamp: Sample.model_validate(sample)
                    for timestamp, sample in readings.items()
                }
                for sensor_id, readings in sensors.items()
            }
        except (ValidationError, TypeError, AttributeError) as e:
            raise ApiError("Unexpected samples format", detail=str(e)) from e

    # =========================================================================
    # PLUMBING
    # =========================================================================

    async def _post(self, path: str, body: dict, action: str) -> dict:
        """
        Make one authenticated POST and return the JSON object.

        Args:
            path: Endpoint path under the base URL
            body: JSON body
            action: Short description for log messages ("get sensors")
        """
        credential = await self.credentials.ensure_valid()
        headers = {"Authorization": credential.access_token}

        try:
            response = await self.http_client.post(path, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            error_body = e.response.text[:500]
            logger.error(f"Failed to {action}: HTTP {e.response.status_code} {error_body}")
            if e.response.status_code == 401:
                self.credentials.invalidate()
            raise ApiError(
                f"Failed to {action}",
                status_code=e.response.status_code,
                detail=error_body,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to {action}: {e}")
            raise ApiError(f"Failed to {action}", detail=str(e)) from e
        except ValueError as e:
            raise ApiError(f"Failed to {action}: response was not valid JSON", detail=str(e)) from e

        if not isinstance(data, dict):
            raise ApiError(f"Failed to {action}: expected a JSON object")
        return data

    async def close(self):
        """
        Clean up when we're done.

        Called when the server shuts down.
        """
        await self.http_client.aclose()
