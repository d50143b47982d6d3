"""
Rate Quote API Routes

- POST /api/rates            quotes from every configured carrier
- POST /api/rates/{carrier}  quotes from one carrier

Failures are raised as CarrierIntegrationError and rendered by the
application's exception handlers.
"""
import logging

from fastapi import APIRouter, Depends

from carrier_integration.api.deps import get_carrier_service
from carrier_integration.schemas.shipping import (
    CarrierRateListResponse,
    RateListResponse,
    RateQuoteOut,
    RateRequestIn,
)
from carrier_integration.services.carrier_service import CarrierIntegrationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rates", tags=["rates"])


@router.post("", response_model=RateListResponse)
async def get_rates(
    rate_request: RateRequestIn,
    service: CarrierIntegrationService = Depends(get_carrier_service),
):
    """Get rate quotes from all configured carriers."""
    quotes = await service.get_rates(rate_request)

    return RateListResponse(
        quotes=[RateQuoteOut.from_quote(q) for q in quotes],
        count=len(quotes),
    )


@router.post("/{carrier}", response_model=CarrierRateListResponse)
async def get_carrier_rates(
    carrier: str,
    rate_request: RateRequestIn,
    service: CarrierIntegrationService = Depends(get_carrier_service),
):
    """Get rate quotes from one carrier (name is case-insensitive)."""
    quotes = await service.get_rates_from_carrier(carrier, rate_request)

    return CarrierRateListResponse(
        carrier=carrier.upper(),
        quotes=[RateQuoteOut.from_quote(q) for q in quotes],
        count=len(quotes),
    )
