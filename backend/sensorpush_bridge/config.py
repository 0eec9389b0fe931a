"""
Configuration
=============

Settings loaded from environment variables (and a local .env file).

Environment Variables:
    SENSORPUSH_EMAIL:    Account email (required)
    SENSORPUSH_PASSWORD: Account password (required)
    POLLING_INTERVAL:    Milliseconds between polls (default: 60000, minimum: 60000)
    SENSORPUSH_API_URL:  Base URL of the cloud API
    REQUEST_TIMEOUT:     Seconds to wait for each HTTP request (default: 30)
    LOG_LEVEL:           Logging level (default: INFO)
    FRONTEND_URL:        Extra origin allowed by CORS

Example .env:
    SENSORPUSH_EMAIL=me@example.com
    SENSORPUSH_PASSWORD=hunter2
    POLLING_INTERVAL=120000
"""

import os
from typing import Optional

from dotenv import load_dotenv

from sensorpush_bridge.utils.validation import (
    clamp_polling_interval,
    parse_interval,
    parse_timeout,
    require_credentials,
)

API_BASE_URL = "https://api.sensorpush.com/api/v1"


class Config:
    """
    Application configuration loaded from environment variables.

    Nothing is validated on construction so that a missing password can be
    reported by validate() before any network activity happens.
    """

    def __init__(self, env: Optional[dict] = None):
        """
        Read settings.

        Args:
            env: Mapping to read from instead of os.environ (for testing)
        """
        if env is None:
            load_dotenv()
            env = os.environ

        self.email = env.get("SENSORPUSH_EMAIL", "")
        self.password = env.get("SENSORPUSH_PASSWORD", "")
        self.api_base_url = env.get("SENSORPUSH_API_URL", API_BASE_URL).rstrip("/")
        self.raw_request_timeout = env.get("REQUEST_TIMEOUT")
        self.log_level = env.get("LOG_LEVEL", "INFO").upper()

        self.raw_polling_interval = env.get("POLLING_INTERVAL")

        # Frontend URL for CORS
        self.frontend_url = env.get("FRONTEND_URL", "http://localhost:5173")
        self.cors_origins = [
            self.frontend_url,
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]

    @property
    def request_timeout(self) -> float:
        """Seconds to wait for each HTTP request."""
        return parse_timeout(self.raw_request_timeout)

    @property
    def polling_interval_ms(self) -> int:
        """Effective polling interval, clamped to the API rate limit."""
        return clamp_polling_interval(parse_interval(self.raw_polling_interval))

    def validate(self) -> "Config":
        """
        Check the settings that must be present.

        Raises:
            ConfigError: Missing credentials, or a malformed polling interval or timeout
        """
        require_credentials(self.email, self.password)
        parse_interval(self.raw_polling_interval)
        parse_timeout(self.raw_request_timeout)
        return self
