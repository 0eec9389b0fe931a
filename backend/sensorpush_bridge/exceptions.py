"""Exceptions raised by the SensorPush bridge."""

from typing import Optional


class SensorPushError(Exception):
    """Base exception for everything this package raises on purpose."""


class ConfigError(SensorPushError):
    """Required configuration is missing or unusable."""


class ApiError(SensorPushError):
    """
    An authenticated call to the SensorPush cloud failed.

    Attributes:
        status_code: HTTP status returned by the server, or None when the
                     request never got a response (DNS, timeout, refused...)
        detail:      Upstream error body or transport error message
    """

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    def __str__(self) -> str:
        text = super().__str__()
        if self.status_code is not None:
            text = f"{text} (HTTP {self.status_code})"
        if self.detail:
            text = f"{text}: {self.detail}"
        return text


class AuthError(ApiError):
    """Logging in or exchanging the authorization for an access token failed."""
