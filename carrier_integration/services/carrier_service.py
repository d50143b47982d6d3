"""
Carrier Integration Service

Facade over the configured carrier adapters.
- get_rates() asks every carrier in parallel; one carrier failing yields
  no quotes from that carrier instead of failing the whole call
- get_rates_from_carrier() asks one carrier and propagates its errors

Usage:
    service = create_carrier_service(settings)
    quotes = await service.get_rates(request)
"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

from carrier_integration.core.config import Settings, get_settings
from carrier_integration.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_integration.core.http_client import HttpClient, HttpxClient
from carrier_integration.core.stub_http_client import StubHttpClient
from carrier_integration.modules.shipping.carriers import build_carriers
from carrier_integration.modules.shipping.carriers.base import BaseCarrier, RateQuote, RateRequest
from carrier_integration.modules.shipping.carriers.ups_fixtures import setup_ups_mocks
from carrier_integration.schemas.shipping import validate_rate_request

logger = logging.getLogger(__name__)

# Request history kept by the mock-mode stub
MOCK_HISTORY_LIMIT = 100


class CarrierIntegrationService:
    """
    Aggregates rate quotes across carriers.

    Args:
        carriers: Configured adapters, at least one
        http_client: Transport shared by the adapters; closed by close()
    """

    def __init__(self, carriers: Sequence[BaseCarrier], http_client: Optional[HttpClient] = None):
        if not carriers:
            raise ValueError("At least one carrier must be configured")
        self._carriers: List[BaseCarrier] = list(carriers)
        self._http_client = http_client

    @property
    def carrier_names(self) -> List[str]:
        return [carrier.carrier_name for carrier in self._carriers]

    async def get_rates(self, request: Any) -> List[RateQuote]:
        """
        Get quotes from every configured carrier.

        Returns:
            Quotes grouped in carrier order, each carrier's quotes in the
            order it returned them

        Raises:
            CarrierIntegrationError(INVALID_REQUEST): request failed validation
        """
        validated = validate_rate_request(request)

        results = await asyncio.gather(
            *(self._rates_or_empty(carrier, validated) for carrier in self._carriers)
        )

        quotes = [quote for carrier_quotes in results for quote in carrier_quotes]
        logger.info(f"Got {len(quotes)} quotes from {len(self._carriers)} carrier(s)")
        return quotes

    async def get_rates_from_carrier(self, carrier_name: str, request: Any) -> List[RateQuote]:
        """
        Get quotes from one carrier, matched case-insensitively.

        Raises:
            CarrierIntegrationError: INVALID_REQUEST on validation failure,
                CARRIER_UNAVAILABLE for an unknown carrier, or whatever the
                carrier raised
        """
        validated = validate_rate_request(request)

        carrier = self._find_carrier(carrier_name)
        if carrier is None:
            raise CarrierIntegrationError(
                ErrorCode.CARRIER_UNAVAILABLE,
                f"Carrier not found: {carrier_name}",
                details={"available": self.carrier_names},
            )

        return await carrier.get_rates(validated)

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.close()

    def _find_carrier(self, carrier_name: str) -> Optional[BaseCarrier]:
        wanted = carrier_name.lower()
        for carrier in self._carriers:
            if carrier.carrier_name.lower() == wanted:
                return carrier
        return None

    async def _rates_or_empty(self, carrier: BaseCarrier, request: RateRequest) -> List[RateQuote]:
        try:
            quotes = await carrier.get_rates(request)
            logger.debug(f"Got {len(quotes)} rates from {carrier.carrier_name}")
            return quotes
        except CarrierIntegrationError as e:
            logger.warning(f"Error getting rates from {carrier.carrier_name}: [{e.code.value}] {e.message}")
            return []
        except Exception as e:
            logger.warning(f"Error getting rates from {carrier.carrier_name}: {e}")
            return []


def create_http_client(settings: Settings) -> HttpClient:
    """Stub client answering from UPS fixtures in mock mode, httpx otherwise."""
    if settings.is_mock_mode:
        stub = StubHttpClient(max_captured=MOCK_HISTORY_LIMIT)
        setup_ups_mocks(stub, max_issued_tokens=MOCK_HISTORY_LIMIT)
        return stub
    return HttpxClient(timeout=settings.HTTP_TIMEOUT_SECONDS)


def create_carrier_service(settings: Optional[Settings] = None) -> CarrierIntegrationService:
    """
    Wire transport, carriers and facade from settings.

    Raises:
        ValueError: real mode without carrier credentials
    """
    settings = settings or get_settings()
    http_client = create_http_client(settings)
    carriers = build_carriers(http_client, settings)
    logger.info(f"Carrier service ready ({settings.CARRIER_MODE} mode): {', '.join(c.carrier_name for c in carriers)}")
    return CarrierIntegrationService(carriers, http_client=http_client)
