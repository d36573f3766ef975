"""Shared test fixtures."""

import base64
import json
from dataclasses import dataclass, field
from urllib.parse import parse_qs

import httpx
import pytest

from session_registry.adapters.remote_transport import HttpxRemoteTransport
from session_registry.config import Settings
from session_registry.containers import AppContainer
from session_registry.services.sessions import SessionRegistryClient

BASE_URL = "https://auth.test/api"


def _envelope(data: object = None, status: str = "ok", msg: str = "") -> httpx.Response:
    return httpx.Response(200, json={"status": status, "msg": msg, "data": data})


def _json_body(payload: object) -> httpx.Response:
    # json=None would send an empty body instead of the wire null
    return httpx.Response(
        200,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )


@dataclass
class FakeAuthService:
    """In-memory authorization service speaking the session endpoints."""

    client_id: str = "client-id"
    client_secret: str = "client-secret"
    sessions: dict[str, dict[str, object]] = field(default_factory=dict)
    reachable: bool = True
    error_msg: str | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.reachable:
            raise httpx.ConnectError("Connection refused", request=request)
        action = request.url.path.rsplit("/", 1)[-1]
        if request.method == "GET":
            return self._handle_get(action, request)
        if not self._authorized(request):
            return _envelope(status="error", msg="Unauthorized operation")
        if self.error_msg is not None:
            return _envelope(status="error", msg=self.error_msg)
        return self._handle_post(action, json.loads(request.content))

    def _authorized(self, request: httpx.Request) -> bool:
        raw = f"{self.client_id}:{self.client_secret}".encode()
        expected = "Basic " + base64.b64encode(raw).decode()
        return request.headers.get("Authorization") == expected

    def _handle_get(self, action: str, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if action == "get-sessions":
            rows = [
                row for row in self.sessions.values() if row["owner"] == params["owner"]
            ]
            return httpx.Response(200, json=rows)
        if action == "get-session":
            return _json_body(self.sessions.get(params["sessionPkId"]))
        if action == "is-session-duplicated":
            if self.error_msg is not None:
                return _envelope(status="error", msg=self.error_msg)
            row = self.sessions.get(params["sessionPkId"])
            tokens = row["sessionId"] if row else []
            return _envelope(params["sessionId"] in tokens)
        return httpx.Response(404)

    def _handle_post(self, action: str, payload: dict[str, object]) -> httpx.Response:
        pk_id = f"{payload['owner']}/{payload['name']}/{payload['application']}"
        existing = self.sessions.get(pk_id)
        if action == "add-session":
            if existing is None:
                self.sessions[pk_id] = {
                    **payload,
                    "createdTime": "2024-01-01T00:00:00Z",
                }
                return _envelope("Affected")
            new_tokens = [
                token
                for token in payload["sessionId"]
                if token not in existing["sessionId"]
            ]
            if not new_tokens:
                return _envelope("Unaffected")
            existing["sessionId"] = [*existing["sessionId"], *new_tokens]
            return _envelope("Affected")
        if action == "update-session":
            if existing is None:
                return _envelope("Unaffected")
            existing["sessionId"] = list(payload["sessionId"])
            return _envelope("Affected")
        if action == "delete-session":
            if self.sessions.pop(pk_id, None) is None:
                return _envelope("Unaffected")
            return _envelope("Affected")
        return _envelope(status="error", msg=f"unknown action {action}")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        organization_name="acme",
        application_name="console",
        client_id="client-id",
        client_secret="client-secret",
        remote_base_url=BASE_URL,
        admin_token="admin-token",
    )


@pytest.fixture
def auth_service() -> FakeAuthService:
    return FakeAuthService()


@pytest.fixture
def transport(auth_service: FakeAuthService) -> HttpxRemoteTransport:
    return HttpxRemoteTransport(
        base_url=BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(auth_service.handler)
        ),
    )


@pytest.fixture
def session_client(transport: HttpxRemoteTransport) -> SessionRegistryClient:
    return SessionRegistryClient(
        transport=transport, organization="acme", application="console"
    )


@pytest.fixture
def container(
    settings: Settings,
    transport: HttpxRemoteTransport,
    session_client: SessionRegistryClient,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        session_client=session_client,
        close_resources=transport.close,
    )


def query_of(request: httpx.Request) -> dict[str, list[str]]:
    """Return the decoded query parameters of a captured request."""
    return parse_qs(request.url.query.decode())
