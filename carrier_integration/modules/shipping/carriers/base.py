"""
Base Carrier Interface

Carrier-agnostic domain types and the interface every carrier adapter
implements. Adapters receive an already-validated RateRequest and return
RateQuotes; all failures surface as CarrierIntegrationError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# Carrier-Agnostic Data Classes
# =============================================================================

@dataclass(frozen=True)
class Address:
    """Postal address."""
    street: Tuple[str, ...]
    city: str
    state_or_province: str
    postal_code: str
    country: str  # ISO 3166-1 alpha-2


@dataclass(frozen=True)
class Dimensions:
    """Package dimensions in inches."""
    length: float
    width: float
    height: float


@dataclass(frozen=True)
class Package:
    """Package weight (pounds) and optional dimensions."""
    weight: float
    dimensions: Optional[Dimensions] = None


@dataclass(frozen=True)
class RateRequest:
    """Request for rate quotes."""
    origin: Address
    destination: Address
    packages: Tuple[Package, ...]
    service_level: Optional[str] = None  # e.g. "GROUND", "NEXT_DAY_AIR"


@dataclass(frozen=True)
class RateQuote:
    """Normalized rate quote."""
    carrier: str
    service_level: str
    service_name: str
    total_cost: float
    currency: str
    estimated_days: Optional[int] = None
    carrier_quote_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "carrier": self.carrier,
            "service_level": self.service_level,
            "service_name": self.service_name,
            "total_cost": self.total_cost,
            "currency": self.currency,
            "estimated_days": self.estimated_days,
            "carrier_quote_id": self.carrier_quote_id,
        }


# =============================================================================
# Base Carrier Interface
# =============================================================================

class BaseCarrier(ABC):
    """
    Abstract base class for all shipping carriers.

    Implementations are stateless apart from injected collaborators
    (token manager, transport), so one instance may serve concurrent calls.
    """

    @property
    @abstractmethod
    def carrier_name(self) -> str:
        """Return the carrier identifier, e.g. "UPS"."""
        pass

    @abstractmethod
    async def get_rates(self, request: RateRequest) -> List[RateQuote]:
        """
        Get rate quotes from the carrier.

        Args:
            request: Validated rate request

        Returns:
            Quotes in the order the carrier returned them

        Raises:
            CarrierIntegrationError: on any failure
        """
        pass
