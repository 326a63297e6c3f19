"""
Owns the authenticated TIDAL session: credential lifecycle, identity and
authenticated calls with a single refresh-and-retry.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

import aiohttp

from tidal_cli.exceptions import (
    AuthError,
    StorageIOError,
    TransientNetworkError,
    UnauthorizedError,
    UpstreamRejected,
)
from tidal_cli.models.config import TidalConfig
from tidal_cli.models.session import Credential, DeviceAuthorization, SessionIdentity
from tidal_cli.storage.credential_store import CredentialStore

from .auth import DeviceAuthenticator
from .http import request_json

log = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle states of the session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZING = "authorizing"  # Device flow in progress
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


class _CallPhase(Enum):
    ATTEMPT = "attempt"
    REFRESH_AND_RETRY = "refresh_and_retry"
    FAIL = "fail"


def _log_verification(grant: DeviceAuthorization) -> None:
    log.info(f"Please visit: [cyan]{grant.verification_url}[/cyan]")


class SessionManager:
    """
    Maintains one valid bearer credential and session identity.

    All state transitions (login, refresh, identity derivation) run under a
    single lock, so at most one is in flight. Ordinary calls run concurrently
    and share the current credential. Pass one instance explicitly to every
    component that needs the API.
    """

    def __init__(
        self,
        config: TidalConfig,
        credential_store: CredentialStore | None = None,
        on_verification: Callable[[DeviceAuthorization], None] | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ):
        """
        Initializes the session manager.

        Args:
            config: The validated application configuration.
            credential_store: Where the credential is persisted. Defaults to
                the configured credential path.
            on_verification: Called with the device grant so the verification
                URL can be shown to the operator. Defaults to logging it.
            http_session: An existing aiohttp session to use instead of
                creating one.
        """
        self.config = config
        self._store = credential_store or CredentialStore(config.credential_path)
        self._on_verification = on_verification or _log_verification

        self._session = http_session
        self._owns_session = http_session is None

        self._lock = asyncio.Lock()
        self._state = SessionState.UNAUTHENTICATED
        self._credential: Credential | None = None
        self._identity: SessionIdentity | None = None
        # Bumped whenever the credential changes; lets concurrent callers
        # that hit 401 with the same credential share one refresh.
        self._generation = 0
        self._authenticator = DeviceAuthenticator(self)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def identity(self) -> SessionIdentity | None:
        return self._identity

    @property
    def authenticator(self) -> DeviceAuthenticator:
        """Provides access to the authentication helper."""
        return self._authenticator

    async def http(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=16,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "User-Agent": self.config.user_agent,
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=aiohttp.ClientTimeout(
                    total=self.config.request_timeout, connect=15
                ),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if this manager created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def api_url(self, path: str) -> str:
        return f"{self.config.api_url}/{path.lstrip('/')}"

    def require_identity(self) -> SessionIdentity:
        """Returns the current identity or raises if the session is not started."""
        if self._identity is None or self._state is SessionState.UNAUTHENTICATED:
            raise AuthError("Session is not authenticated. Run 'tidal-cli login'.")
        return self._identity

    async def start(self) -> SessionIdentity:
        """
        Restores the stored session or runs the device flow if there is none.

        A stored credential whose identity cannot be derived is refreshed once
        and derived again.

        Raises:
            AuthError: If the stored credential cannot be revived.
        """
        async with self._lock:
            credential = await asyncio.to_thread(self._store.load)
            if credential is None:
                log.info("No stored credential found, starting device authorization.")
                return await self._login_locked()

            self._set_credential(credential)
            try:
                self._identity = await self._authenticator.fetch_identity(credential)
            except (AuthError, UpstreamRejected, TransientNetworkError) as e:
                log.info(f"Stored credential not accepted ({e}). Refreshing...")
                try:
                    await self._refresh_locked()
                except (AuthError, UpstreamRejected, TransientNetworkError) as e2:
                    self._reset()
                    raise AuthError(
                        "The stored session could not be restored. Run "
                        "'tidal-cli login' to authorize this device again."
                    ) from e2
            else:
                self._state = SessionState.AUTHENTICATED

            log.info("Session restored from stored credential.")
            return self._identity

    async def login(self) -> SessionIdentity:
        """Runs the device flow, replacing any existing credential."""
        async with self._lock:
            return await self._login_locked()

    async def refresh(self) -> SessionIdentity:
        """
        Exchanges the refresh token for a new credential and re-derives identity.

        Raises:
            AuthError: If the refresh token was rejected. The session becomes
                unauthenticated and the stored credential is left untouched.
        """
        async with self._lock:
            await self._refresh_locked()
            return self._identity

    async def authenticated_call(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Sends a request with the bearer credential and returns its JSON body.

        A 401 or transport failure triggers one refresh and one retry of the
        identical request. A second failure is raised as-is. Other non-2xx
        responses raise UpstreamRejected without a retry.
        """
        phase = _CallPhase.ATTEMPT
        last_error: Exception | None = None

        while phase is not _CallPhase.FAIL:
            credential, generation = self._current_credential()
            try:
                return await request_json(
                    await self.http(),
                    method,
                    url,
                    params=params,
                    data=data,
                    headers={"Authorization": credential.authorization_header},
                )
            except (UnauthorizedError, TransientNetworkError) as e:
                last_error = e

            if phase is _CallPhase.ATTEMPT:
                log.debug(f"{method} {url} failed ({last_error}). Refreshing and retrying.")
                await self._refresh_if_stale(generation)
                phase = _CallPhase.REFRESH_AND_RETRY
            else:
                phase = _CallPhase.FAIL

        raise last_error

    def _current_credential(self) -> tuple[Credential, int]:
        if self._credential is None or self._state in (
            SessionState.UNAUTHENTICATED,
            SessionState.AUTHORIZING,
        ):
            raise AuthError("Session is not authenticated. Run 'tidal-cli login'.")
        return self._credential, self._generation

    def _set_credential(self, credential: Credential) -> None:
        self._credential = credential
        self._generation += 1

    def _reset(self) -> None:
        self._state = SessionState.UNAUTHENTICATED
        self._credential = None
        self._identity = None
        self._generation += 1

    async def _refresh_if_stale(self, generation: int) -> None:
        async with self._lock:
            if generation != self._generation:
                log.debug("Credential was already refreshed by a concurrent call.")
                return
            await self._refresh_locked()

    async def _login_locked(self) -> SessionIdentity:
        self._state = SessionState.AUTHORIZING
        try:
            grant = await self._authenticator.request_device_code()
            self._on_verification(grant)
            credential = await self._authenticator.poll_for_token(grant)
            await asyncio.to_thread(self._store.save, credential)
            self._set_credential(credential)
            self._identity = await self._authenticator.fetch_identity(credential)
            self._state = SessionState.AUTHENTICATED
        finally:
            if self._state is not SessionState.AUTHENTICATED:
                self._reset()

        log.info("[green]✓ Device authorized, session started.[/green]")
        return self._identity

    async def _refresh_locked(self) -> None:
        if self._credential is None:
            raise AuthError("No credential to refresh. Run 'tidal-cli login'.")

        previous_state = self._state
        self._state = SessionState.REFRESHING
        try:
            credential = await self._authenticator.exchange_refresh_token(
                self._credential.refresh_token
            )
            # Upstream may rotate the refresh token; keep it even if the
            # identity lookup below fails.
            await asyncio.to_thread(self._store.save, credential)
            self._set_credential(credential)
            identity = await self._authenticator.fetch_identity(credential)
        except AuthError:
            log.warning("[red]Session refresh was rejected.[/red]")
            self._reset()
            raise
        except (UpstreamRejected, TransientNetworkError, StorageIOError):
            self._state = previous_state
            raise

        self._identity = identity
        self._state = SessionState.AUTHENTICATED
        log.debug("Session refreshed.")
