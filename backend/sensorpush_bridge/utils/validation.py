"""
Input Validation Utilities
===========================

Validation helpers for configuration values.
"""

import logging
from typing import Optional

from sensorpush_bridge.exceptions import ConfigError

logger = logging.getLogger(__name__)

# SensorPush allows one request per minute per account
MIN_POLLING_INTERVAL_MS = 60_000
DEFAULT_POLLING_INTERVAL_MS = 60_000

DEFAULT_REQUEST_TIMEOUT = 30.0


def clamp_polling_interval(interval_ms: Optional[int]) -> int:
    """
    Turn a user-supplied polling interval into the one we actually use.

    Args:
        interval_ms: Requested interval in milliseconds (None/0 = default)

    Returns:
        The interval in milliseconds, never below 60000
    """
    if not interval_ms:
        return DEFAULT_POLLING_INTERVAL_MS

    if interval_ms < MIN_POLLING_INTERVAL_MS:
        logger.warning(
            f"Polling interval {interval_ms}ms is less than 60 seconds. "
            f"The SensorPush API has a rate limit of 1 request per minute; using {MIN_POLLING_INTERVAL_MS}ms"
        )
        return MIN_POLLING_INTERVAL_MS

    return int(interval_ms)


def parse_interval(value: Optional[str]) -> Optional[int]:
    """
    Parse an interval from an environment string.

    Args:
        value: Raw string (e.g. "120000")

    Returns:
        The integer value, or None if empty

    Raises:
        ConfigError: If the value is not an integer
    """
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"POLLING_INTERVAL must be an integer number of milliseconds, got {value!r}")


def parse_timeout(value: Optional[str], default: float = DEFAULT_REQUEST_TIMEOUT) -> float:
    """
    Parse the HTTP request timeout from an environment string.

    Args:
        value: Raw string in seconds (e.g. "30" or "7.5")
        default: Used when the value is missing or blank

    Returns:
        Timeout in seconds

    Raises:
        ConfigError: If the value is not a positive number
    """
    if value is None or not value.strip():
        return default
    try:
        timeout = float(value.strip())
    except ValueError:
        raise ConfigError(f"REQUEST_TIMEOUT must be a number of seconds, got {value!r}")
    if timeout <= 0:
        raise ConfigError(f"REQUEST_TIMEOUT must be greater than 0, got {value!r}")
    return timeout


def require_credentials(email: Optional[str], password: Optional[str]) -> None:
    """
    Make sure both login values are present.

    Raises:
        ConfigError: If email or password is missing/blank
    """
    missing = []
    if not email or not email.strip():
        missing.append("SENSORPUSH_EMAIL")
    if not password:
        missing.append("SENSORPUSH_PASSWORD")

    if missing:
        raise ConfigError(
            f"SensorPush email and password must be configured (missing: {', '.join(missing)})"
        )
