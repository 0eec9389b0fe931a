"""
Services Package
================

These are the "workers" that do the actual work.

- CredentialManager: Logs in and keeps the access token fresh
- SensorPushApi: Talks to the SensorPush cloud
- SensorStateTracker: Turns samples into live sensor state
- SensorManager: The boss that discovers sensors and runs the polling cycle
"""

from .credentials import Credential, CredentialManager
from .sensorpush_api import SensorPushApi
from .reconciler import SensorStateTracker
from .sensor_manager import SensorManager

__all__ = [
    "Credential",
    "CredentialManager",
    "SensorPushApi",
    "SensorStateTracker",
    "SensorManager",
]
