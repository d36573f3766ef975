"""Authenticated RPC transport for the remote authorization service."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlencode

import httpx

from session_registry.domain.errors import DecodeError, RemoteError, TransportError
from session_registry.domain.sessions import ResponseEnvelope

_logger = logging.getLogger(__name__)

_TEXT_CONTENT_TYPE = "text/plain;charset=UTF-8"
_CONNECT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


@dataclass(frozen=True)
class RequestPolicy:
    """Deadline and retry policy applied to every remote call.

    The defaults send a single attempt with no deadline.
    """

    timeout: float | None = None
    max_retries: int = 0
    backoff_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Return the sleep before retry number ``attempt`` (0-based)."""
        return self.backoff_seconds * (2**attempt)


class RemoteTransport(Protocol):
    """Interface for calls to the remote authorization service."""

    def build_url(self, action: str, query: dict[str, str] | None = None) -> str:
        """Build the URL for an action with query parameters."""

    async def get(self, url: str) -> bytes:
        """Send an anonymous GET and return the raw body."""

    async def get_envelope(self, url: str) -> ResponseEnvelope:
        """Send an anonymous GET and decode the reply envelope."""

    async def post(
        self,
        action: str,
        query: dict[str, str] | None = None,
        body: bytes = b"",
        is_multipart: bool = False,
    ) -> ResponseEnvelope:
        """Send a Basic-Auth POST and decode the reply envelope."""


def decode_envelope(content: bytes) -> ResponseEnvelope:
    """Parse a reply envelope, raising on malformed or non-ok replies."""
    return parse_envelope(decode_json(content))


def parse_envelope(payload: object) -> ResponseEnvelope:
    """Build an envelope from decoded JSON, raising RemoteError when not ok."""
    if not isinstance(payload, dict) or not isinstance(payload.get("status"), str):
        raise DecodeError("Response is not a status envelope")
    envelope = ResponseEnvelope(
        status=payload["status"],
        msg=str(payload.get("msg") or ""),
        data=payload.get("data"),
        data2=payload.get("data2"),
    )
    if not envelope.ok:
        raise RemoteError(envelope.msg)
    return envelope


def decode_json(content: bytes) -> object:
    """Parse a JSON body, raising DecodeError when it is malformed."""
    try:
        return json.loads(content)
    except ValueError as exc:
        raise DecodeError(f"Malformed JSON response: {exc}") from exc


@dataclass
class HttpxRemoteTransport(RemoteTransport):
    """HTTPX-backed transport using Basic auth for mutating calls."""

    base_url: str
    client_id: str
    client_secret: str = field(repr=False)
    http_client: httpx.AsyncClient
    policy: RequestPolicy = field(default_factory=RequestPolicy)

    @classmethod
    def create(
        cls,
        base_url: str,
        client_id: str,
        client_secret: str,
        policy: RequestPolicy | None = None,
    ) -> "HttpxRemoteTransport":
        """Create a transport with a managed httpx session."""
        return cls(
            base_url=base_url,
            client_id=client_id,
            client_secret=client_secret,
            http_client=httpx.AsyncClient(),
            policy=policy or RequestPolicy(),
        )

    def build_url(self, action: str, query: dict[str, str] | None = None) -> str:
        """Build ``{base}/{action}`` with a percent-encoded query string."""
        url = f"{self.base_url.rstrip('/')}/{action}"
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    async def get(self, url: str) -> bytes:
        """Send an anonymous GET and return the raw body."""
        response = await self._send("GET", url)
        return response.content

    async def get_envelope(self, url: str) -> ResponseEnvelope:
        """Send an anonymous GET and decode the reply envelope."""
        return decode_envelope(await self.get(url))

    async def post(
        self,
        action: str,
        query: dict[str, str] | None = None,
        body: bytes = b"",
        is_multipart: bool = False,
    ) -> ResponseEnvelope:
        """POST a pre-serialized body, or a single ``file`` form part."""
        url = self.build_url(action, query)
        auth = httpx.BasicAuth(self.client_id, self.client_secret)
        if is_multipart:
            response = await self._send(
                "POST", url, auth=auth, files={"file": ("file", body)}
            )
        else:
            response = await self._send(
                "POST",
                url,
                auth=auth,
                content=body,
                headers={"Content-Type": _TEXT_CONTENT_TYPE},
            )
        return decode_envelope(response.content)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _send(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        attempt = 0
        while True:
            _logger.debug(
                "Remote call: method=%s url=%s attempt=%s",
                method,
                _redact(url),
                attempt,
            )
            try:
                response = await self.http_client.request(
                    method, url, timeout=self.policy.timeout, **kwargs
                )
                response.raise_for_status()
                return response
            except httpx.HTTPError as exc:
                if attempt >= self.policy.max_retries or not _is_retryable(method, exc):
                    raise TransportError(
                        f"{method} {_redact(url)} failed: {_describe(exc)}"
                    ) from exc
                delay = self.policy.delay_for(attempt)
                attempt += 1
                _logger.warning(
                    "Remote call failed, retrying: method=%s url=%s attempt=%s delay=%s",
                    method,
                    _redact(url),
                    attempt,
                    delay,
                )
                await asyncio.sleep(delay)


def _is_retryable(method: str, exc: httpx.HTTPError) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    if method == "GET":
        return isinstance(exc, httpx.TransportError)
    # a POST may have been applied once the request left the client
    return isinstance(exc, _CONNECT_ERRORS)


def _redact(url: str) -> str:
    # query strings may carry session tokens
    return url.split("?", 1)[0]


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return f"{type(exc).__name__}: {exc}"
