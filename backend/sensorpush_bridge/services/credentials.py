"""
Credential Manager
==================

Owns the SensorPush login and the short-lived access token.

HOW SENSORPUSH LOGIN WORKS:
--------------------------
It's a two-step exchange:

    POST /oauth/authorize   {email, password}   -> {authorization}
    POST /oauth/accesstoken {authorization}     -> {accesstoken}

The access token then goes into the "Authorization" header of every other
call (just the token, no "Bearer" prefix).

We treat a token as good for 11 hours and stop using it 60 seconds before
that, so every authenticated call can just ask ensure_valid() and never
worry about expiry.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from sensorpush_bridge.exceptions import AuthError

logger = logging.getLogger(__name__)


TOKEN_LIFETIME = timedelta(hours=11)
EXPIRY_MARGIN = timedelta(seconds=60)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credential:
    """
    The authorization/access token pair and when it stops being usable.

    A new Credential is built for every successful login; the old one is
    never modified.
    """
    authorization_token: Optional[str] = None
    access_token: Optional[str] = None
    expires_at: datetime = datetime.min.replace(tzinfo=timezone.utc)

    def is_valid(self, now: datetime) -> bool:
        """True while the access token can still be used (with the 60s margin)."""
        return self.access_token is not None and now + EXPIRY_MARGIN < self.expires_at


class CredentialManager:
    """
    Logs in to SensorPush and hands out a valid access token on demand.

    HOW TO USE:
    ----------
    manager = CredentialManager(http_client, "me@example.com", "secret")
    credential = await manager.ensure_valid()
    headers = {"Authorization": credential.access_token}
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        email: Optional[str] = None,
        password: Optional[str] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        """
        Set up the manager. No network calls happen here.

        Args:
            http_client: Client with the API base URL already configured
            email: Account email
            password: Account password
            now: Clock function (swap it out in tests)
        """
        self.http_client = http_client
        self._email = email
        self._password = password
        self._now = now
        self._credential = Credential()
        # One refresh at a time; whoever waits gets the fresh token
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential:
        return self._credential

    async def authenticate(self, email: Optional[str] = None, password: Optional[str] = None) -> Credential:
        """
        Run the full two-step login and store the new token pair.

        Args:
            email: Account email (defaults to the last one used)
            password: Account password (defaults to the last one used)

        Returns:
            The new Credential

        Raises:
            AuthError: Either step failed. The previous credential is kept.
        """
        email = email if email is not None else self._email
        password = password if password is not None else self._password

        if not email or not password:
            raise AuthError("Cannot authenticate without an email and password")

        logger.debug("Authenticating with SensorPush API...")

        auth_data = await self._post("/oauth/authorize", {"email": email, "password": password})
        authorization = auth_data.get("authorization")
        if not authorization:
            raise AuthError("Authorization response did not contain an authorization token")
        logger.debug("Authorization successful")

        token_data = await self._post("/oauth/accesstoken", {"authorization": authorization})
        access_token = token_data.get("accesstoken")
        if not access_token:
            raise AuthError("Access token response did not contain an access token")

        # Only now that both steps worked do we touch our state
        self._credential = Credential(
            authorization_token=authorization,
            access_token=access_token,
            expires_at=self._now() + TOKEN_LIFETIME,
        )
        self._email = email
        self._password = password

        logger.info("Access token obtained successfully")
        return self._credential

    async def ensure_valid(self) -> Credential:
        """
        Return a usable credential, logging in again if the token ran out.

        Returns:
            The current (or freshly refreshed) Credential

        Raises:
            AuthError: The token had to be refreshed and that failed
        """
        if self._credential.is_valid(self._now()):
            return self._credential

        async with self._lock:
            # Someone else may have refreshed while we waited for the lock
            if self._credential.is_valid(self._now()):
                return self._credential

            logger.debug("Token expired or missing, re-authenticating...")
            return await self.authenticate()

    def invalidate(self) -> None:
        """Forget the access token so the next call logs in again."""
        if self._credential.access_token is not None:
            logger.info("Access token rejected by server, will re-authenticate on next call")
        self._credential = Credential()

    async def _post(self, path: str, body: dict) -> dict:
        """POST one unauthenticated login step and return its JSON body."""
        try:
            response = await self.http_client.post(path, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            error_body = e.response.text[:500]
            logger.error(f"Authentication failed at {path}: HTTP {e.response.status_code} {error_body}")
            raise AuthError(
                "Authentication failed",
                status_code=e.response.status_code,
                detail=error_body,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Authentication failed at {path}: {e}")
            raise AuthError("Authentication failed", detail=str(e)) from e
        except ValueError as e:
            raise AuthError("Authentication response was not valid JSON", detail=str(e)) from e

        if not isinstance(data, dict):
            raise AuthError(f"Unexpected authentication response from {path}")
        return data
