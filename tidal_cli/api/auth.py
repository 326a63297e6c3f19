"""
Handles the OAuth2 exchanges with TIDAL: the device authorization flow,
refresh-token exchange and session identity derivation.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from tidal_cli.exceptions import (
    AuthError,
    DeviceAuthorizationTimeout,
    UpstreamRejected,
)
from tidal_cli.models.session import Credential, DeviceAuthorization, SessionIdentity

from .http import fetch_json, raise_for_payload, request_json

if TYPE_CHECKING:
    from .session import SessionManager

log = logging.getLogger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"

# RFC 8628 error codes that end the polling loop
_TERMINAL_POLL_ERRORS = {"access_denied", "expired_token", "invalid_client"}
_SLOW_DOWN_STEP = 5
# Upstream sometimes advertises an interval of 0
_MIN_POLL_INTERVAL = 1


class DeviceAuthenticator:
    """
    Performs the individual authentication requests for a SessionManager.

    This class holds no credential state; the SessionManager decides when each
    exchange runs and what to do with its result.
    """

    def __init__(self, manager: "SessionManager"):
        """
        Initializes the authenticator.

        Args:
            manager: The owning SessionManager, which provides config and HTTP.
        """
        self._manager = manager

    @property
    def _config(self):
        return self._manager.config

    def _client_params(self) -> dict[str, str]:
        return {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "scope": self._config.scope,
        }

    async def request_device_code(self) -> DeviceAuthorization:
        """
        Starts the device flow.

        Returns:
            The device code grant, including the URL the user must visit.
        """
        session = await self._manager.http()
        payload = await request_json(
            session,
            "POST",
            f"{self._config.auth_url}/device_authorization",
            endpoint="device_authorization",
            data={"client_id": self._config.client_id, "scope": self._config.scope},
        )
        try:
            return DeviceAuthorization.model_validate(payload)
        except ValueError as e:
            raise UpstreamRejected(f"Malformed device authorization response: {e}") from e

    async def poll_for_token(self, grant: DeviceAuthorization) -> Credential:
        """
        Polls the token endpoint until the user approves the device.

        Polling stops on success, on a transport failure, on a terminal OAuth
        error, or once `expires_in` seconds have passed.

        Args:
            grant: The grant returned by `request_device_code`.

        Returns:
            The credential issued for the device.

        Raises:
            DeviceAuthorizationTimeout: If the grant expired before approval.
            AuthError: If the user denied access or the grant was revoked.
            TransientNetworkError: If the token endpoint could not be reached.
        """
        session = await self._manager.http()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + grant.expires_in
        interval = max(grant.interval, _MIN_POLL_INTERVAL)
        data = {
            **self._client_params(),
            "device_code": grant.device_code,
            "grant_type": DEVICE_CODE_GRANT,
        }

        polls = 0
        while loop.time() < deadline:
            status, payload = await fetch_json(
                session, "POST", f"{self._config.auth_url}/token", data=data
            )
            polls += 1
            if 200 <= status < 300:
                log.debug(f"Device authorized after {polls} polls.")
                return self._credential_from(payload)

            error = payload.get("error") if isinstance(payload, dict) else None
            if error in _TERMINAL_POLL_ERRORS:
                raise AuthError(f"Device authorization failed: {error}.")
            if error == "slow_down":
                interval += _SLOW_DOWN_STEP
                log.debug(f"Token endpoint asked to slow down; interval {interval}s.")

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

        raise DeviceAuthorizationTimeout(
            f"Device was not authorized within {grant.expires_in} seconds."
        )

    async def exchange_refresh_token(self, refresh_token: str) -> Credential:
        """
        Exchanges a refresh token for a new access token.

        Raises:
            AuthError: If the refresh token was rejected.
        """
        session = await self._manager.http()
        status, payload = await fetch_json(
            session,
            "POST",
            f"{self._config.auth_url}/token",
            data={
                **self._client_params(),
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )
        if status in (400, 401):
            raise AuthError(
                "The refresh token was rejected. Run 'tidal-cli login' to "
                "authorize this device again."
            )
        raise_for_payload(status, payload, "token")
        return self._credential_from(payload, fallback_refresh_token=refresh_token)

    async def fetch_identity(self, credential: Credential) -> SessionIdentity:
        """Derives the session identity for a credential."""
        session = await self._manager.http()
        payload = await request_json(
            session,
            "GET",
            f"{self._config.api_url}/sessions",
            endpoint="sessions",
            headers={"Authorization": credential.authorization_header},
        )
        try:
            return SessionIdentity.from_response(payload)
        except ValueError as e:
            raise UpstreamRejected(f"Malformed sessions response: {e}") from e

    @staticmethod
    def _credential_from(
        payload: Any, fallback_refresh_token: str | None = None
    ) -> Credential:
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise UpstreamRejected("Token response did not contain an access token.")
        refresh_token = payload.get("refresh_token") or fallback_refresh_token
        if not refresh_token:
            raise UpstreamRejected("Token response did not contain a refresh token.")
        return Credential(
            access_token=payload["access_token"],
            refresh_token=refresh_token,
            token_type=payload.get("token_type") or "Bearer",
        )
