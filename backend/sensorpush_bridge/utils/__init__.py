"""
Utility modules for the SensorPush bridge.
"""

from sensorpush_bridge.utils.validation import (
    MIN_POLLING_INTERVAL_MS,
    DEFAULT_POLLING_INTERVAL_MS,
    DEFAULT_REQUEST_TIMEOUT,
    clamp_polling_interval,
    parse_interval,
    parse_timeout,
    require_credentials,
)

__all__ = [
    "MIN_POLLING_INTERVAL_MS",
    "DEFAULT_POLLING_INTERVAL_MS",
    "DEFAULT_REQUEST_TIMEOUT",
    "clamp_polling_interval",
    "parse_interval",
    "parse_timeout",
    "require_credentials",
]
