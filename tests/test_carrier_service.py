"""
Tests for the multi-carrier facade.
"""
import asyncio
from typing import List
from unittest.mock import AsyncMock

import pytest

from carrier_integration.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_integration.core.http_client import HttpRequest, HttpxClient
from carrier_integration.core.stub_http_client import StubHttpClient
from carrier_integration.modules.shipping.carriers.base import BaseCarrier, RateQuote, RateRequest
from carrier_integration.services.carrier_service import (
    MOCK_HISTORY_LIMIT,
    CarrierIntegrationService,
    create_carrier_service,
    create_http_client,
)

from tests.conftest import RATING_URL


def make_quote(carrier: str, service: str, cost: float) -> RateQuote:
    return RateQuote(
        carrier=carrier,
        service_level=service,
        service_name=service.title(),
        total_cost=cost,
        currency="USD",
    )


class FakeCarrier(BaseCarrier):
    """Carrier returning fixed quotes or raising a fixed error."""

    def __init__(self, name: str, quotes: List[RateQuote] = None, error: Exception = None, delay: float = 0.0):
        self._name = name
        self.quotes = quotes or []
        self.error = error
        self.delay = delay
        self.requests: List[RateRequest] = []

    @property
    def carrier_name(self) -> str:
        return self._name

    async def get_rates(self, request: RateRequest) -> List[RateQuote]:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.quotes)


class TestCarrierIntegrationService:
    """CarrierIntegrationService behaviour."""

    def test_requires_at_least_one_carrier(self):
        with pytest.raises(ValueError):
            CarrierIntegrationService([])

    def test_carrier_names(self):
        service = CarrierIntegrationService([FakeCarrier("UPS"), FakeCarrier("FEDEX")])

        assert service.carrier_names == ["UPS", "FEDEX"]

    @pytest.mark.asyncio
    async def test_failing_carrier_does_not_fail_aggregate(self, rate_request):
        ups = FakeCarrier("UPS", quotes=[make_quote("UPS", "03", 25.50)])
        broken = FakeCarrier(
            "FEDEX",
            error=CarrierIntegrationError(ErrorCode.CARRIER_UNAVAILABLE, "down for maintenance"),
        )
        service = CarrierIntegrationService([broken, ups])

        quotes = await service.get_rates(rate_request)

        assert quotes == [make_quote("UPS", "03", 25.50)]
        assert len(broken.requests) == 1

    @pytest.mark.asyncio
    async def test_unclassified_failure_is_also_swallowed(self, rate_request):
        service = CarrierIntegrationService([
            FakeCarrier("UPS", quotes=[make_quote("UPS", "03", 25.50)]),
            FakeCarrier("USPS", error=RuntimeError("boom")),
        ])

        quotes = await service.get_rates(rate_request)

        assert len(quotes) == 1

    @pytest.mark.asyncio
    async def test_quotes_grouped_in_carrier_order(self, rate_request):
        slow = FakeCarrier("UPS", quotes=[make_quote("UPS", "03", 25.50), make_quote("UPS", "01", 45.75)], delay=0.02)
        fast = FakeCarrier("FEDEX", quotes=[make_quote("FEDEX", "GROUND", 20.00)])
        service = CarrierIntegrationService([slow, fast])

        quotes = await service.get_rates(rate_request)

        assert [(q.carrier, q.service_level) for q in quotes] == [
            ("UPS", "03"),
            ("UPS", "01"),
            ("FEDEX", "GROUND"),
        ]

    @pytest.mark.asyncio
    async def test_carriers_queried_concurrently(self, rate_request):
        started = asyncio.Event()

        class WaitsForOther(FakeCarrier):
            async def get_rates(self, request):
                await started.wait()
                return []

        class SignalsStart(FakeCarrier):
            async def get_rates(self, request):
                started.set()
                return []

        service = CarrierIntegrationService([WaitsForOther("A"), SignalsStart("B")])

        assert await asyncio.wait_for(service.get_rates(rate_request), timeout=1.0) == []

    @pytest.mark.asyncio
    async def test_invalid_request_rejected_before_carriers(self, rate_request_payload):
        carrier = FakeCarrier("UPS")
        service = CarrierIntegrationService([carrier])
        rate_request_payload["packages"] = []

        with pytest.raises(CarrierIntegrationError) as exc_info:
            await service.get_rates(rate_request_payload)

        assert exc_info.value.code == ErrorCode.INVALID_REQUEST
        assert exc_info.value.cause is not None
        assert carrier.requests == []

    @pytest.mark.asyncio
    async def test_accepts_plain_mapping(self, rate_request_payload, rate_request):
        carrier = FakeCarrier("UPS")
        service = CarrierIntegrationService([carrier])

        await service.get_rates(rate_request_payload)

        assert carrier.requests == [rate_request]

    @pytest.mark.asyncio
    async def test_single_carrier_lookup_is_case_insensitive(self, rate_request):
        ups = FakeCarrier("UPS", quotes=[make_quote("UPS", "03", 25.50)])
        service = CarrierIntegrationService([FakeCarrier("FEDEX"), ups])

        quotes = await service.get_rates_from_carrier("ups", rate_request)

        assert len(quotes) == 1
        assert len(ups.requests) == 1

    @pytest.mark.asyncio
    async def test_single_carrier_propagates_error(self, rate_request):
        error = CarrierIntegrationError(ErrorCode.RATE_LIMITED, "slow down")
        service = CarrierIntegrationService([FakeCarrier("UPS", error=error)])

        with pytest.raises(CarrierIntegrationError) as exc_info:
            await service.get_rates_from_carrier("UPS", rate_request)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_unknown_carrier_is_unavailable(self, rate_request):
        service = CarrierIntegrationService([FakeCarrier("UPS")])

        with pytest.raises(CarrierIntegrationError) as exc_info:
            await service.get_rates_from_carrier("DHL", rate_request)

        assert exc_info.value.code == ErrorCode.CARRIER_UNAVAILABLE
        assert "DHL" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_close_closes_http_client(self):
        http_client = AsyncMock()
        service = CarrierIntegrationService([FakeCarrier("UPS")], http_client=http_client)

        await service.close()

        http_client.close.assert_awaited_once()


class TestServiceWiring:
    """create_carrier_service() / create_http_client()."""

    @pytest.mark.asyncio
    async def test_mock_mode_end_to_end(self, test_settings, rate_request):
        service = create_carrier_service(test_settings)

        quotes = await service.get_rates(rate_request)

        assert service.carrier_names == ["UPS"]
        assert [q.total_cost for q in quotes] == [25.50, 45.75, 35.25, 30.00]
        await service.close()

    def test_mock_mode_uses_stub_client(self, test_settings):
        assert isinstance(create_http_client(test_settings), StubHttpClient)

    @pytest.mark.asyncio
    async def test_mock_mode_request_history_is_bounded(self, test_settings):
        client = create_http_client(test_settings)

        for _ in range(MOCK_HISTORY_LIMIT + 5):
            await client.request(HttpRequest(url=RATING_URL, method="POST", body={}))

        assert len(client.captured_requests) == MOCK_HISTORY_LIMIT

    def test_real_mode_uses_httpx_client(self, test_settings):
        settings = test_settings.model_copy(update={"CARRIER_MODE": "real", "HTTP_TIMEOUT_SECONDS": 5.0})

        client = create_http_client(settings)

        assert isinstance(client, HttpxClient)
        assert client.timeout == 5.0

    def test_real_mode_requires_credentials(self, test_settings):
        settings = test_settings.model_copy(update={"CARRIER_MODE": "real"})

        with pytest.raises(ValueError, match="UPS_CLIENT_SECRET"):
            create_carrier_service(settings)
