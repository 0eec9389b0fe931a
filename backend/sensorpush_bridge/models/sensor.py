"""
Sensor Models
=============
Pydantic models for SensorPush data validation and serialization.

This module defines all data structures used throughout the application:
- Cloud models: What the SensorPush API sends back to us
- Live state: What we keep in memory for every tracked sensor
- Response models: What the HTTP surface returns to the host

WIRE FORMAT NOTES:
-----------------
SensorPush returns sensors and gateways as JSON objects keyed by ID, and
samples keyed by sensor ID and then by timestamp string:

    {"sensors": {"12345.67": {"2024-01-01T00:05:00.000Z": {...}}}}

Temperatures always arrive in Fahrenheit.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class PollingState(str, Enum):
    """
    Lifecycle of the polling scheduler.

    State Flow:
    - IDLE: No timer registered yet (startup, or discovery never succeeded)
    - ACTIVE: Timer running, cycle counter tracked
    - STOPPED: Timer removed on purpose (shutdown or explicit stop)
    """
    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


# =============================================================================
# CLOUD MODELS - What SensorPush sends us
# =============================================================================

class AlertSetting(BaseModel):
    """One alert rule configured in the SensorPush app."""
    enabled: bool = Field(False, description="Whether the alert is switched on")
    min: Optional[float] = Field(None, description="Lower threshold")
    max: Optional[float] = Field(None, description="Upper threshold")


class SensorAlerts(BaseModel):
    """Alert configuration nested inside a sensor record."""
    humidity: Optional[AlertSetting] = None
    temperature: Optional[AlertSetting] = None


class Sensor(BaseModel):
    """
    Metadata for one physical sensor, from POST /devices/sensors.

    Fields:
        id: Sensor ID (the key of the response map)
        name: Name given in the SensorPush app
        device_id: Hardware device ID (wire name: deviceId)
        battery_voltage: Last reported battery voltage (None if never reported)
        active: False when the sensor was deactivated in the app
        alerts: Alert configuration (not used for polling)
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Sensor ID")
    name: str = Field("", description="Human-readable name")
    device_id: Optional[str] = Field(None, alias="deviceId", description="Hardware device ID")
    battery_voltage: Optional[float] = Field(None, description="Battery voltage in volts")
    active: Optional[bool] = Field(None, description="False if the sensor is deactivated")
    alerts: Optional[SensorAlerts] = Field(None, description="Alert configuration")

    @property
    def is_valid(self) -> bool:
        """A sensor is tracked unless it is explicitly inactive."""
        return self.active is not False


class Gateway(BaseModel):
    """A SensorPush gateway, from POST /devices/gateways."""
    id: str = Field(..., description="Gateway ID")
    name: str = Field("", description="Human-readable name")
    last_seen: Optional[str] = Field(None, description="When the gateway last checked in")
    message: Optional[str] = Field(None, description="Status message")
    paired: Optional[bool] = Field(None, description="Whether the gateway is paired")
    version: Optional[str] = Field(None, description="Firmware version")


class Sample(BaseModel):
    """
    A single timestamped reading, from POST /samples.

    The SensorPush API reports temperature in Fahrenheit.
    """
    temperature: float = Field(..., description="Temperature in Fahrenheit")
    humidity: float = Field(..., description="Relative humidity %")
    observed: Optional[str] = Field(None, description="ISO-8601 observation time")


# =============================================================================
# LIVE STATE - What we keep for every tracked sensor
# =============================================================================

class SensorLiveState(BaseModel):
    """
    The latest known values for one tracked sensor.

    Created with defaults when a sensor is first discovered and updated on
    every successful sample poll. last_observed stays None until a real
    sample has been applied, so the default battery values can be told apart
    from a measured one.

    Fields:
        sensor_id: Sensor ID
        name: Sensor name at discovery time
        temperature_c: Temperature in Celsius
        humidity_pct: Relative humidity %
        battery_pct: Battery level 0-100
        low_battery: True when battery_pct < 20
        has_battery: Battery voltage was reported when tracking started
        last_observed: Timestamp of the sample currently shown
    """
    sensor_id: str = Field(..., description="Sensor ID")
    name: str = Field("", description="Human-readable name")
    temperature_c: float = Field(0.0, description="Temperature in Celsius")
    humidity_pct: float = Field(0.0, description="Relative humidity %")
    battery_pct: float = Field(100.0, ge=0, le=100, description="Battery level %")
    low_battery: bool = Field(False, description="Battery below 20%")
    has_battery: bool = Field(False, description="Battery values are maintained")
    last_observed: Optional[str] = Field(None, description="Timestamp of the applied sample")


# =============================================================================
# RESPONSE MODELS - What the HTTP surface returns
# =============================================================================

class SensorStateListResponse(BaseModel):
    """Live state of every tracked sensor."""
    sensors: list[SensorLiveState] = Field(..., description="Tracked sensors")
    total: int = Field(..., description="Number of tracked sensors")


class GatewayListResponse(BaseModel):
    """Gateways registered on the account."""
    gateways: list[Gateway] = Field(..., description="Gateways")
    total: int = Field(..., description="Number of gateways")


class DiscoveryResult(BaseModel):
    """
    Outcome of one discovery run.

    Returned by SensorManager.discover_devices() and by
    POST /api/sensors/discover
    """
    status: str = Field(..., description="'success' or 'error'")
    sensors_found: int = Field(0, description="Sensors returned by the cloud")
    tracked: int = Field(0, description="Sensors tracked after discovery")
    added: list[str] = Field(default_factory=list, description="Newly tracked sensor IDs")
    removed: list[str] = Field(default_factory=list, description="Pruned sensor IDs")
    error_message: Optional[str] = Field(None, description="Error details if failed")


class PollingStatusResponse(BaseModel):
    """Snapshot of the polling scheduler."""
    state: PollingState = Field(..., description="Scheduler state")
    cycle_count: int = Field(..., description="Ticks since polling (re)started")
    interval_ms: int = Field(..., description="Effective polling period")
    metadata_refresh_cycles: int = Field(..., description="Every Nth tick refreshes metadata")
    tracked_sensors: int = Field(..., description="Number of tracked sensors")
    last_poll_at: Optional[datetime] = Field(None, description="Last successful sample poll")
    last_metadata_refresh_at: Optional[datetime] = Field(None, description="Last successful metadata refresh")
    last_error: Optional[str] = Field(None, description="Last tick error")
