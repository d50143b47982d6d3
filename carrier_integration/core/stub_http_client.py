"""
Stub HTTP Client

In-memory HttpClient used by the test suite and by CARRIER_MODE=mock.
Responses are produced by matchers; every request is captured so tests
can assert on URLs, headers and bodies.

Pass max_captured to keep only the most recent requests; the long-running
mock-mode server does this.

Matchers are tried newest-first, so a later stub_url() overrides an
earlier, more general matcher for the same URL.
"""
import asyncio
import copy
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Pattern, Union

from carrier_integration.core.exceptions import TransportError, TransportTimeoutError
from carrier_integration.core.http_client import HttpClient, HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

UrlPattern = Union[str, Pattern[str]]


@dataclass
class StubResponse:
    """Programmed response."""
    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    delay: float = 0.0  # seconds of simulated latency


@dataclass
class CapturedRequest:
    """Snapshot of a request as the stub received it."""
    url: str
    method: str
    headers: Dict[str, str]
    body: Any
    timestamp: float


StubMatcher = Callable[
    [HttpRequest],
    Union[Optional[StubResponse], Awaitable[Optional[StubResponse]]],
]


def url_matches(pattern: UrlPattern, url: str) -> bool:
    """Exact match for strings, re.search for compiled patterns."""
    if isinstance(pattern, str):
        return url == pattern
    return pattern.search(url) is not None


class StubHttpClient(HttpClient):
    """HttpClient returning configured responses."""

    def __init__(self, max_captured: Optional[int] = None):
        self._matchers: List[StubMatcher] = []
        self._captured: Deque[CapturedRequest] = deque(maxlen=max_captured)
        self._simulate_timeout = False

    # ==================== Configuration ====================

    def on_request(self, matcher: StubMatcher) -> None:
        """Add a matcher. Return None from it to fall through to older matchers."""
        self._matchers.append(matcher)

    def stub_url(self, url: UrlPattern, response: StubResponse) -> None:
        """Answer every request whose URL matches with a fixed response."""
        def matcher(req: HttpRequest) -> Optional[StubResponse]:
            return response if url_matches(url, req.url) else None

        self.on_request(matcher)

    def simulate_timeout_for_all_requests(self) -> None:
        self._simulate_timeout = True

    def disable_timeout_simulation(self) -> None:
        self._simulate_timeout = False

    def clear(self) -> None:
        """Drop matchers, captured requests and timeout simulation."""
        self._matchers = []
        self._captured.clear()
        self._simulate_timeout = False

    def clear_captured_requests(self) -> None:
        self._captured.clear()

    # ==================== Inspection ====================

    @property
    def captured_requests(self) -> List[CapturedRequest]:
        return list(self._captured)

    def captured_requests_for_url(self, url: UrlPattern) -> List[CapturedRequest]:
        return [req for req in self._captured if url_matches(url, req.url)]

    @property
    def last_request(self) -> Optional[CapturedRequest]:
        return self._captured[-1] if self._captured else None

    # ==================== HttpClient ====================

    async def request(self, request: HttpRequest) -> HttpResponse:
        self._captured.append(CapturedRequest(
            url=request.url,
            method=request.method,
            headers=dict(request.headers),
            body=copy.deepcopy(request.body),
            timestamp=time.time(),
        ))

        if self._simulate_timeout:
            raise TransportTimeoutError(f"Request timeout: {request.method} {request.url}")

        for matcher in reversed(self._matchers):
            response = matcher(request)
            if asyncio.iscoroutine(response):
                response = await response
            if response is None:
                continue

            if response.delay:
                await asyncio.sleep(response.delay)

            return HttpResponse(
                status=response.status,
                headers=dict(response.headers),
                body=copy.deepcopy(response.body),
            )

        raise TransportError(f"No stub response configured for {request.method} {request.url}")

