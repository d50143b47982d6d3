"""
Pytest configuration and fixtures for carrier integration tests.
"""
import os
from datetime import datetime, timezone

import pytest

# Keep tests independent of the developer's environment
os.environ["CARRIER_MODE"] = "mock"
os.environ.pop("UPS_CLIENT_ID", None)
os.environ.pop("UPS_CLIENT_SECRET", None)

from carrier_integration.core.config import Settings  # noqa: E402
from carrier_integration.core.stub_http_client import StubHttpClient  # noqa: E402
from carrier_integration.modules.shipping.carriers.base import (  # noqa: E402
    Address,
    Dimensions,
    Package,
    RateRequest,
)
from carrier_integration.modules.shipping.carriers.ups import (  # noqa: E402
    MOCK_CLIENT_ID,
    MOCK_CLIENT_SECRET,
    UPSCarrier,
    UPSConfig,
)
from carrier_integration.modules.shipping.carriers.ups_fixtures import UPSMock, setup_ups_mocks  # noqa: E402
from carrier_integration.services.oauth import OAuthClient, OAuthConfig  # noqa: E402

BASE_URL = "https://wwwcie.ups.com"
TOKEN_URL = f"{BASE_URL}/security/v1/oauth/token"
RATING_URL = f"{BASE_URL}/api/rating/v1/Rate"

# Before every GuaranteedDelivery date in the rate fixture
FIXED_NOW = datetime(2026, 2, 8, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for token expiry tests."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_client() -> StubHttpClient:
    return StubHttpClient()


@pytest.fixture
def ups_mock(stub_client) -> UPSMock:
    return setup_ups_mocks(stub_client)


@pytest.fixture
def oauth_client(stub_client, clock) -> OAuthClient:
    return OAuthClient(
        OAuthConfig(
            token_url=TOKEN_URL,
            client_id=MOCK_CLIENT_ID,
            client_secret=MOCK_CLIENT_SECRET,
        ),
        stub_client,
        clock=clock,
    )


@pytest.fixture
def ups_carrier(stub_client, oauth_client, clock) -> UPSCarrier:
    return UPSCarrier(
        UPSConfig(base_url=BASE_URL, oauth_client=oauth_client),
        stub_client,
        clock=clock,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        CARRIER_MODE="mock",
        UPS_BASE_URL=BASE_URL,
        UPS_CLIENT_ID="",
        UPS_CLIENT_SECRET="",
    )


@pytest.fixture
def rate_request() -> RateRequest:
    """New York to Los Angeles, one 5 lb package."""
    return RateRequest(
        origin=Address(
            street=("123 Main St",),
            city="New York",
            state_or_province="NY",
            postal_code="10001",
            country="US",
        ),
        destination=Address(
            street=("456 Oak Ave",),
            city="Los Angeles",
            state_or_province="CA",
            postal_code="90001",
            country="US",
        ),
        packages=(Package(weight=5, dimensions=Dimensions(length=10, width=8, height=6)),),
    )


@pytest.fixture
def rate_request_payload() -> dict:
    """JSON body equivalent of rate_request."""
    return {
        "origin": {
            "street": ["123 Main St"],
            "city": "New York",
            "state_or_province": "NY",
            "postal_code": "10001",
            "country": "US",
        },
        "destination": {
            "street": ["456 Oak Ave"],
            "city": "Los Angeles",
            "state_or_province": "CA",
            "postal_code": "90001",
            "country": "US",
        },
        "packages": [
            {"weight": 5, "dimensions": {"length": 10, "width": 8, "height": 6}},
        ],
    }
