"""
Shared fixtures: an in-process fake TIDAL server and configs pointing at it.
"""

from collections import defaultdict
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from tidal_cli.api import SessionManager
from tidal_cli.models.config import TidalConfig
from tidal_cli.models.session import Credential
from tidal_cli.storage import CredentialStore


def track_item(track_id: int, title: str, **extra: Any) -> dict[str, Any]:
    """A search item shaped like TIDAL's track payload."""
    item = {
        "id": track_id,
        "title": title,
        "duration": 200,
        "allowStreaming": True,
        "streamReady": True,
        "artist": {"id": 1, "name": "Main Artist"},
        "artists": [{"id": 1, "name": "Main Artist", "type": "MAIN"}],
        "album": {"id": 10, "title": "Some Album"},
    }
    item.update(extra)
    return item


class FakeTidal:
    """
    A scriptable stand-in for the TIDAL auth and API hosts.

    Tokens are issued as access-1, access-2, ... and only tokens in
    `valid_tokens` pass the bearer check.
    """

    def __init__(self):
        self.base_url = ""
        self.calls: dict[str, int] = defaultdict(int)
        self.last_params: dict[str, dict[str, str]] = {}

        self.device_grant = {
            "deviceCode": "dev-code",
            "userCode": "ABCDE",
            "verificationUri": "link.tidal.com",
            "verificationUriComplete": "link.tidal.com/ABCDE",
            "expiresIn": 60,
            "interval": 0,
        }
        self.pending_polls = 0
        self.poll_error = "authorization_pending"
        self.refresh_status = 200
        self.refresh_returns_new_refresh_token = True

        self._issued = 0
        self.valid_tokens: set[str] = set()
        self.last_token_response: dict[str, Any] = {}

        # path -> number of upcoming requests that get a 401
        self.unauthorized_next: dict[str, int] = defaultdict(int)
        self.search_status = 200
        self.search_response: dict[str, Any] = {
            "tracks": {"items": [track_item(101, "First"), track_item(102, "Second")]},
            "albums": {"items": [{"id": 10, "title": "Some Album"}]},
            "artists": {"items": [{"id": 1, "name": "Main Artist"}]},
        }
        self.stream_urls: dict[str, list[str]] = defaultdict(
            lambda: ["https://cdn.example/stream.flac"]
        )

    def issue_token(self, refresh_token: str | None = None) -> dict[str, Any]:
        self._issued += 1
        access = f"access-{self._issued}"
        self.valid_tokens.add(access)
        response = {
            "access_token": access,
            "token_type": "Bearer",
            "expires_in": 86400,
            "user": {"userId": 42},
        }
        if refresh_token is None or self.refresh_returns_new_refresh_token:
            response["refresh_token"] = f"refresh-{self._issued}"
        self.last_token_response = response
        return response

    def revoke_all(self) -> None:
        self.valid_tokens.clear()

    def _authorized(self, request: web.Request) -> bool:
        header = request.headers.get("Authorization", "")
        if self.unauthorized_next[request.path] > 0:
            self.unauthorized_next[request.path] -= 1
            return False
        return header.startswith("Bearer ") and header[7:] in self.valid_tokens

    async def device_authorization(self, request: web.Request) -> web.Response:
        self.calls["device_authorization"] += 1
        form = await request.post()
        assert form["client_id"] == "client-id"
        return web.json_response(self.device_grant)

    async def token(self, request: web.Request) -> web.Response:
        form = await request.post()
        if form["grant_type"] == "refresh_token":
            self.calls["refresh"] += 1
            if self.refresh_status != 200:
                return web.json_response(
                    {"error": "invalid_grant"}, status=self.refresh_status
                )
            return web.json_response(self.issue_token(form["refresh_token"]))

        self.calls["poll"] += 1
        assert form["device_code"] == "dev-code"
        if self.pending_polls > 0:
            self.pending_polls -= 1
            return web.json_response({"error": self.poll_error}, status=400)
        return web.json_response(self.issue_token())

    async def sessions(self, request: web.Request) -> web.Response:
        self.calls["sessions"] += 1
        if not self._authorized(request):
            return web.json_response({"status": 401}, status=401)
        return web.json_response(
            {
                "sessionId": "session-abc",
                "userId": 42,
                "countryCode": "NO",
                "channelId": 1,
                "partnerId": 1,
                "client": {},
            }
        )

    async def search(self, request: web.Request) -> web.Response:
        self.calls["search"] += 1
        self.last_params["search"] = dict(request.query)
        if not self._authorized(request):
            return web.json_response({"status": 401}, status=401)
        if self.search_status != 200:
            return web.json_response(
                {"userMessage": "Upstream failure"}, status=self.search_status
            )
        return web.json_response(self.search_response)

    async def stream(self, request: web.Request) -> web.Response:
        self.calls["stream"] += 1
        track_id = request.match_info["track_id"]
        self.last_params["stream"] = dict(request.query)
        if not self._authorized(request):
            return web.json_response({"status": 401}, status=401)
        return web.json_response(
            {"trackId": int(track_id), "urls": self.stream_urls[track_id]}
        )

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/oauth2/device_authorization", self.device_authorization)
        app.router.add_post("/oauth2/token", self.token)
        app.router.add_get("/v1/sessions", self.sessions)
        app.router.add_get("/v1/search", self.search)
        app.router.add_get("/v1/tracks/{track_id}/urlpostpaywall", self.stream)
        return app


@pytest_asyncio.fixture
async def fake_tidal():
    fake = FakeTidal()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = str(server.make_url("/")).rstrip("/")
    yield fake
    await server.close()


@pytest.fixture
def config(fake_tidal, tmp_path) -> TidalConfig:
    return TidalConfig(
        client_id="client-id",
        client_secret="client-secret",
        auth_url=f"{fake_tidal.base_url}/oauth2",
        api_url=f"{fake_tidal.base_url}/v1",
        credential_path=tmp_path / "auth" / "token.json",
        cache_dir=tmp_path / "cache",
        cache_capacity_mb=1,
        request_timeout=5,
    )


@pytest.fixture
def store(config) -> CredentialStore:
    return CredentialStore(config.credential_path)


@pytest.fixture
def stored_credential(fake_tidal, store) -> Credential:
    """A valid credential already on disk, as after an earlier login."""
    token = fake_tidal.issue_token()
    credential = Credential(
        access_token=token["access_token"],
        refresh_token=token["refresh_token"],
        token_type=token["token_type"],
    )
    store.save(credential)
    return credential


@pytest_asyncio.fixture
async def session_manager(config, store):
    verifications = []
    manager = SessionManager(
        config, credential_store=store, on_verification=verifications.append
    )
    manager.verifications = verifications
    yield manager
    await manager.close()
