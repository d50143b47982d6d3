"""
Carrier Registry and Factory

- Adapters register themselves with @register_carrier
- build_carriers() instantiates every registered adapter from settings
- Adding a carrier means adding a module here; nothing else changes
"""
from typing import Dict, List, Optional, Type
import logging

from carrier_integration.core.config import Settings, get_settings
from carrier_integration.core.http_client import HttpClient
from carrier_integration.modules.shipping.carriers.base import BaseCarrier

logger = logging.getLogger(__name__)

# Registry of carrier implementations
_CARRIER_REGISTRY: Dict[str, Type[BaseCarrier]] = {}


def register_carrier(carrier_code: str):
    """
    Decorator to register a carrier implementation.

    The class must provide from_settings(http_client, settings, require_credentials).

    Usage:
        @register_carrier("UPS")
        class UPSCarrier(BaseCarrier):
            ...
    """
    def decorator(cls: Type[BaseCarrier]):
        _CARRIER_REGISTRY[carrier_code.upper()] = cls
        logger.debug(f"Registered carrier: {carrier_code} -> {cls.__name__}")
        return cls
    return decorator


def get_registered_carriers() -> List[str]:
    """Registered carrier codes, in registration order."""
    return list(_CARRIER_REGISTRY.keys())


def get_carrier_class(carrier_code: str) -> Optional[Type[BaseCarrier]]:
    return _CARRIER_REGISTRY.get(carrier_code.upper())


def build_carriers(
    http_client: HttpClient,
    settings: Optional[Settings] = None,
    require_credentials: Optional[bool] = None,
) -> List[BaseCarrier]:
    """
    Instantiate every registered carrier.

    require_credentials defaults to True outside mock mode; a carrier
    missing required credentials raises ValueError.
    """
    settings = settings or get_settings()
    if require_credentials is None:
        require_credentials = not settings.is_mock_mode
    carriers = []

    for code, carrier_cls in _CARRIER_REGISTRY.items():
        carrier = carrier_cls.from_settings(
            http_client,
            settings,
            require_credentials=require_credentials,
        )
        logger.info(f"Configured carrier: {code} ({settings.CARRIER_MODE} mode)")
        carriers.append(carrier)

    return carriers


# Import carriers to trigger registration
# These imports must be at the bottom to avoid circular imports
from carrier_integration.modules.shipping.carriers.ups import UPSCarrier  # noqa: E402, F401
