"""
HTTP Transport for Carrier API Calls

Thin async transport shared by the OAuth client and carrier adapters.
No retrying or throttling happens at this layer.

Contract:
- request() returns an HttpResponse for ANY status code (4xx/5xx included)
- request() raises TransportTimeoutError when the local timeout expires
- request() raises TransportError for every other network-level failure
- Response bodies are parsed JSON when the server says so, else raw text
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from carrier_integration.core.exceptions import TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class HttpRequest:
    """Outbound request description."""
    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None  # str/bytes sent as-is, anything else JSON-encoded
    timeout: Optional[float] = None  # seconds; None = client default


@dataclass
class HttpResponse:
    """Inbound response, body already decoded."""
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


class HttpClient(ABC):
    """Transport interface. Implementations must honour the module contract."""

    @abstractmethod
    async def request(self, request: HttpRequest) -> HttpResponse:
        ...

    async def close(self) -> None:
        """Release pooled connections. No-op by default."""


class HttpxClient(HttpClient):
    """
    HttpClient backed by httpx.AsyncClient.

    Usage:
        async with HttpxClient(timeout=10.0) as client:
            response = await client.request(HttpRequest(url=..., method="POST", body={...}))
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self.timeout = timeout
        self.default_headers = default_headers or {}
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def init(self):
        """Initialize client without context manager. Must call close() when done."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.default_headers,
            )
        return self

    async def close(self):
        """Close the client. Use this when not using context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(self, request: HttpRequest) -> HttpResponse:
        # Auto-initialize if not using context manager
        if not self._client:
            await self.init()

        kwargs: Dict[str, Any] = {"headers": request.headers}
        if request.body is not None:
            if isinstance(request.body, (str, bytes)):
                kwargs["content"] = request.body
            else:
                kwargs["json"] = request.body
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout

        try:
            response = await self._client.request(request.method, request.url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"[HTTP] {request.method} {request.url} timed out: {e}")
            raise TransportTimeoutError(f"Request timeout: {request.method} {request.url}") from e
        except httpx.RequestError as e:
            logger.warning(f"[HTTP] {request.method} {request.url} failed: {e}")
            raise TransportError(f"Request failed: {e}") from e

        logger.debug(f"[HTTP] {request.method} {request.url} -> {response.status_code}")

        return HttpResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=_decode_body(response),
        )


def _decode_body(response: httpx.Response) -> Any:
    """Parsed JSON for JSON content types; raw text otherwise or if parsing fails."""
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("[HTTP] Response declared JSON but did not parse, returning text")
    return response.text
