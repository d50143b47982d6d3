"""
UPS API fixtures

Canned Rating and OAuth responses shaped like the real UPS API, and
UPSMock, which answers them from a StubHttpClient. Used by
CARRIER_MODE=mock and by the test suite.
"""
import re
import time
from collections import deque
from typing import Any, Deque, Dict, Optional
from uuid import uuid4

from carrier_integration.core.http_client import HttpRequest
from carrier_integration.core.stub_http_client import (
    StubHttpClient,
    StubResponse,
    UrlPattern,
    url_matches,
)
from carrier_integration.modules.shipping.carriers.ups import MOCK_CLIENT_ID, MOCK_CLIENT_SECRET

OAUTH_URL_PATTERN = re.compile(r"/security/v1/oauth/token")
RATING_URL_PATTERN = re.compile(r"/api/rating/v1/Rate")

JSON_HEADERS = {"content-type": "application/json"}


def _rated_shipment(code: str, description: str, amount: str, delivery: Dict[str, str]) -> Dict[str, Any]:
    return {
        "Service": {"Code": code, "Description": description},
        "RatedShipmentAlert": [],
        "TransportationCharges": {"CurrencyCode": "USD", "MonetaryValue": amount},
        "TotalCharges": {"CurrencyCode": "USD", "MonetaryValue": amount},
        "GuaranteedDelivery": delivery,
    }


# ==================== OAuth ====================

OAUTH_TOKEN_RESPONSE = {
    "access_token": "test-access-token-abc123xyz",
    "token_type": "Bearer",
    "expires_in": 3600,
}

OAUTH_INVALID_CREDENTIALS = {
    "error": "invalid_client",
    "error_description": "Invalid client credentials",
}

OAUTH_BAD_REQUEST = {
    "error": "invalid_request",
    "error_description": "Missing required parameter: grant_type",
}

# ==================== Rating ====================

SUCCESSFUL_RATE_RESPONSE = {
    "RateResponse": {
        "Response": {
            "ResponseStatus": {"Code": "1", "Description": "Success"},
            "TransactionReference": {"CustomerContext": "CustomerContext123"},
        },
        "RatedShipment": [
            _rated_shipment("03", "Ground", "25.50", {"Date": "2026-02-12"}),
            _rated_shipment("01", "Next Day Air", "45.75", {"Date": "2026-02-09", "Time": "10:30:00"}),
            _rated_shipment("02", "2nd Day Air", "35.25", {"Date": "2026-02-10"}),
            _rated_shipment("12", "3 Day Select", "30.00", {"Date": "2026-02-11"}),
        ],
    }
}

ERROR_RATE_RESPONSE = {
    "RateResponse": {
        "Response": {
            "ResponseStatus": {"Code": "0", "Description": "Failure"},
            "Alert": [{"Code": "110537", "Description": "Invalid Shipper Number"}],
            "TransactionReference": {"CustomerContext": "CustomerContext123"},
        }
    }
}

MALFORMED_RATE_RESPONSE = {
    "invalid": "structure",
    "missing": "RateResponse",
}


def http_error_body(code: int, message: str) -> Dict[str, Any]:
    """UPS gateway error envelope."""
    return {"response": {"errors": [{"code": str(code), "message": message}]}}


HTTP_401_UNAUTHORIZED = StubResponse(
    status=401,
    headers={**JSON_HEADERS, "www-authenticate": 'Bearer realm="UPS API"'},
    body=http_error_body(401, "Unauthorized - Invalid or expired token"),
)

HTTP_429_RATE_LIMITED = StubResponse(
    status=429,
    headers={**JSON_HEADERS, "retry-after": "60"},
    body=http_error_body(429, "Rate limit exceeded. Please retry after 60 seconds"),
)

HTTP_500_SERVER_ERROR = StubResponse(
    status=500,
    headers=JSON_HEADERS,
    body=http_error_body(500, "Internal Server Error"),
)

HTTP_503_UNAVAILABLE = StubResponse(
    status=503,
    headers={**JSON_HEADERS, "retry-after": "30"},
    body=http_error_body(503, "Service temporarily unavailable"),
)


# =============================================================================
# Stub wiring
# =============================================================================

class UPSMock:
    """
    Realistic UPS endpoints on a StubHttpClient.

    - Token endpoint checks the mock credentials and mints a fresh token per call
    - Rating endpoint requires a Bearer header and returns SUCCESSFUL_RATE_RESPONSE

    issued_tokens keeps the last max_issued_tokens tokens (all when None).

    The set_* helpers install an override for one endpoint; since the stub
    tries matchers newest-first, the override wins.
    """

    def __init__(
        self,
        stub: StubHttpClient,
        oauth_url: UrlPattern = OAUTH_URL_PATTERN,
        rating_url: UrlPattern = RATING_URL_PATTERN,
        token_expiry_seconds: int = 3600,
        max_issued_tokens: Optional[int] = None,
    ):
        self.stub = stub
        self.oauth_url = oauth_url
        self.rating_url = rating_url
        self.token_expiry_seconds = token_expiry_seconds
        self.issued_tokens: Deque[str] = deque(maxlen=max_issued_tokens)

        stub.on_request(self._oauth_endpoint)
        stub.on_request(self._rating_endpoint)

    def _oauth_endpoint(self, request: HttpRequest) -> Optional[StubResponse]:
        if request.method != "POST" or not url_matches(self.oauth_url, request.url):
            return None

        if not isinstance(request.body, str):
            return StubResponse(status=400, headers=JSON_HEADERS, body=OAUTH_BAD_REQUEST)

        if MOCK_CLIENT_ID not in request.body or MOCK_CLIENT_SECRET not in request.body:
            return StubResponse(status=401, headers=JSON_HEADERS, body=OAUTH_INVALID_CREDENTIALS)

        access_token = f"test-token-{int(time.time() * 1000)}-{uuid4().hex[:6]}"
        self.issued_tokens.append(access_token)
        return StubResponse(
            status=200,
            headers=JSON_HEADERS,
            body={
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": self.token_expiry_seconds,
            },
        )

    def _rating_endpoint(self, request: HttpRequest) -> Optional[StubResponse]:
        if request.method != "POST" or not url_matches(self.rating_url, request.url):
            return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return HTTP_401_UNAUTHORIZED

        return StubResponse(status=200, headers=JSON_HEADERS, body=SUCCESSFUL_RATE_RESPONSE)

    # ==================== Overrides ====================

    def set_rating_response(self, response: StubResponse) -> None:
        self.stub.stub_url(self.rating_url, response)

    def set_rating_body(self, body: Any) -> None:
        """200 with the given body."""
        self.set_rating_response(StubResponse(status=200, headers=JSON_HEADERS, body=body))

    def set_oauth_response(self, response: StubResponse) -> None:
        self.stub.stub_url(self.oauth_url, response)

    def set_invalid_credentials(self) -> None:
        self.set_oauth_response(
            StubResponse(status=401, headers=JSON_HEADERS, body=OAUTH_INVALID_CREDENTIALS)
        )


def setup_ups_mocks(stub: StubHttpClient, **kwargs) -> UPSMock:
    """Install UPS OAuth and Rating endpoints on a stub client."""
    return UPSMock(stub, **kwargs)
