"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from sensorpush_bridge.models import Sensor, SensorLiveState
"""

from .sensor import (
    # Scheduler lifecycle
    PollingState,

    # What the SensorPush cloud sends us
    AlertSetting,
    SensorAlerts,
    Sensor,
    Gateway,
    Sample,

    # What we keep per tracked sensor
    SensorLiveState,

    # What we send back to the host
    SensorStateListResponse,
    GatewayListResponse,
    DiscoveryResult,
    PollingStatusResponse,
)

__all__ = [
    "PollingState",
    "AlertSetting",
    "SensorAlerts",
    "Sensor",
    "Gateway",
    "Sample",
    "SensorLiveState",
    "SensorStateListResponse",
    "GatewayListResponse",
    "DiscoveryResult",
    "PollingStatusResponse",
]
