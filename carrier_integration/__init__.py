"""
Carrier Integration Service

Carrier-agnostic shipping rate quotes. UPS is the first carrier.
"""
from carrier_integration.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_integration.modules.shipping.carriers.base import (
    Address,
    BaseCarrier,
    Dimensions,
    Package,
    RateQuote,
    RateRequest,
)
from carrier_integration.modules.shipping.carriers.ups import UPSCarrier, UPSConfig, create_ups_adapter
from carrier_integration.services.carrier_service import CarrierIntegrationService, create_carrier_service
from carrier_integration.services.oauth import OAuthClient, OAuthConfig, OAuthToken

__version__ = "1.0.0"

__all__ = [
    "Address",
    "BaseCarrier",
    "CarrierIntegrationError",
    "CarrierIntegrationService",
    "Dimensions",
    "ErrorCode",
    "OAuthClient",
    "OAuthConfig",
    "OAuthToken",
    "Package",
    "RateQuote",
    "RateRequest",
    "UPSCarrier",
    "UPSConfig",
    "create_carrier_service",
    "create_ups_adapter",
]
