"""
OAuth 2.0 Client-Credentials Token Manager

Acquires, caches and refreshes a bearer token for one client identity.

- A cached token is reused until 60 seconds before it expires
- Concurrent callers that miss the cache share ONE token request
  (single-flight): the first caller starts an acquisition task, later
  callers await the same task and receive the same token or the same error
- A caller that gives up (is cancelled) does not cancel the shared
  acquisition; other waiters may still need it
- clear_token() lets adapters force re-acquisition after a 401

All failures surface as CarrierIntegrationError:
    non-200 from the token endpoint        -> AUTH_FAILED
    200 without access_token / expires_in  -> MALFORMED_RESPONSE
    transport failure                      -> AUTH_FAILED (cause preserved)
"""
import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from carrier_integration.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_integration.core.http_client import HttpClient, HttpRequest

logger = logging.getLogger(__name__)

# Tokens are treated as expired this long before their real expiry
TOKEN_EXPIRY_BUFFER = timedelta(seconds=60)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OAuthToken:
    """Bearer token with absolute expiry."""
    access_token: str
    token_type: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at - TOKEN_EXPIRY_BUFFER


@dataclass(frozen=True)
class OAuthConfig:
    """OAuth client-credentials identity."""
    token_url: str
    client_id: str
    client_secret: str
    scope: Optional[str] = None
    timeout: Optional[float] = None  # seconds; None = transport default


class OAuthClient:
    """
    Token manager for a single OAuth identity.

    Each instance owns its own cache; two carriers with different
    credentials must use two OAuthClient instances.
    """

    def __init__(
        self,
        config: OAuthConfig,
        http_client: HttpClient,
        clock: Clock = utc_now,
    ):
        self.config = config
        self._http_client = http_client
        self._clock = clock
        self._token: Optional[OAuthToken] = None
        self._refresh_task: Optional["asyncio.Task[OAuthToken]"] = None

    @property
    def token(self) -> Optional[OAuthToken]:
        """Currently cached token (may be stale)."""
        return self._token

    async def get_access_token(self) -> str:
        """Return a valid access token, acquiring one if necessary."""
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.access_token

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._refresh())
        else:
            logger.debug("OAuth token acquisition already in flight, waiting on it")

        token = await asyncio.shield(self._refresh_task)
        return token.access_token

    def clear_token(self) -> None:
        """Discard the cached token so the next call re-acquires."""
        self._token = None

    async def _refresh(self) -> OAuthToken:
        try:
            token = await self._acquire_token()
            self._token = token
            return token
        finally:
            self._refresh_task = None

    async def _acquire_token(self) -> OAuthToken:
        """Request a new token from the OAuth server."""
        form = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        if self.config.scope:
            form["scope"] = self.config.scope

        request = HttpRequest(
            url=self.config.token_url,
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=urlencode(form),
            timeout=self.config.timeout,
        )

        try:
            response = await self._http_client.request(request)

            if response.status != 200:
                details = _oauth_error_details(response.body)
                details["status"] = response.status
                logger.error(f"OAuth token request failed: {response.status} - {details.get('error', 'no error code')}")
                raise CarrierIntegrationError(
                    ErrorCode.AUTH_FAILED,
                    f"OAuth token request failed with status {response.status}",
                    details=details,
                )

            return self._parse_token(response.body)

        except CarrierIntegrationError:
            raise
        except Exception as e:
            logger.error(f"OAuth token request failed: {e}")
            raise CarrierIntegrationError(
                ErrorCode.AUTH_FAILED,
                "Failed to acquire OAuth token",
                cause=e,
            ) from e

    def _parse_token(self, body: Any) -> OAuthToken:
        if not isinstance(body, dict) or not body.get("access_token") or not body.get("expires_in"):
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                "OAuth response missing required fields",
            )

        try:
            expires_in = float(body["expires_in"])
        except (TypeError, ValueError) as e:
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                f"OAuth response has invalid expires_in: {body['expires_in']!r}",
                cause=e,
            ) from e

        if not math.isfinite(expires_in):
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                f"OAuth response has invalid expires_in: {body['expires_in']!r}",
            )

        token = OAuthToken(
            access_token=str(body["access_token"]),
            token_type=body.get("token_type") or "Bearer",
            expires_at=self._clock() + timedelta(seconds=expires_in),
        )
        logger.info(f"OAuth token obtained, expires in {expires_in:.0f}s")
        return token


def _oauth_error_details(body: Any) -> Dict[str, Any]:
    """Pull RFC 6749 error fields out of an error body, if present."""
    if not isinstance(body, dict):
        return {}
    details = {}
    for key in ("error", "error_description"):
        if body.get(key):
            details[key] = body[key]
    return details
