"""
Shipping Schemas

Pydantic models for rate-quote API requests and responses, plus
validate_rate_request() which the service facade runs before any
carrier is called.
"""
from dataclasses import asdict, is_dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from carrier_integration.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_integration.modules.shipping.carriers.base import (
    Address,
    Dimensions,
    Package,
    RateQuote,
    RateRequest,
)


# ==================== Request Schemas ====================


class AddressIn(BaseModel):
    """Postal address."""
    model_config = ConfigDict(str_strip_whitespace=True)

    street: List[str] = Field(..., min_length=1, description="Street lines, at least one")
    city: str = Field(..., min_length=1)
    state_or_province: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2")

    @field_validator("street")
    @classmethod
    def validate_street_lines(cls, v):
        if any(not line for line in v):
            raise ValueError("Street lines must not be empty")
        return v

    @field_validator("country")
    @classmethod
    def validate_country_code(cls, v):
        return v.upper()

    def to_domain(self) -> Address:
        return Address(
            street=tuple(self.street),
            city=self.city,
            state_or_province=self.state_or_province,
            postal_code=self.postal_code,
            country=self.country,
        )


class DimensionsIn(BaseModel):
    """Package dimensions in inches."""
    length: float = Field(..., gt=0, allow_inf_nan=False)
    width: float = Field(..., gt=0, allow_inf_nan=False)
    height: float = Field(..., gt=0, allow_inf_nan=False)


class PackageIn(BaseModel):
    """Package weight and optional dimensions."""
    weight: float = Field(..., gt=0, allow_inf_nan=False, description="Weight in LBS")
    dimensions: Optional[DimensionsIn] = None

    def to_domain(self) -> Package:
        dimensions = None
        if self.dimensions:
            dimensions = Dimensions(
                length=self.dimensions.length,
                width=self.dimensions.width,
                height=self.dimensions.height,
            )
        return Package(weight=self.weight, dimensions=dimensions)


class RateRequestIn(BaseModel):
    """Request shipping rates."""
    origin: AddressIn
    destination: AddressIn
    packages: List[PackageIn] = Field(..., min_length=1)
    service_level: Optional[str] = Field(None, description="e.g. GROUND, NEXT_DAY_AIR, or a raw carrier code")

    def to_domain(self) -> RateRequest:
        return RateRequest(
            origin=self.origin.to_domain(),
            destination=self.destination.to_domain(),
            packages=tuple(p.to_domain() for p in self.packages),
            service_level=self.service_level or None,
        )


# ==================== Response Schemas ====================


class RateQuoteOut(BaseModel):
    """A single normalized quote."""
    model_config = ConfigDict(from_attributes=True)

    carrier: str
    service_level: str
    service_name: str
    total_cost: float
    currency: str
    estimated_days: Optional[int] = None
    carrier_quote_id: Optional[str] = None

    @classmethod
    def from_quote(cls, quote: RateQuote) -> "RateQuoteOut":
        return cls.model_validate(quote)


class RateListResponse(BaseModel):
    """Quotes from all configured carriers."""
    success: bool = True
    quotes: List[RateQuoteOut]
    count: int


class CarrierRateListResponse(RateListResponse):
    """Quotes from one carrier."""
    carrier: str


# ==================== Validation ====================


def validate_rate_request(request: Any) -> RateRequest:
    """
    Validate a rate request and return it as a domain RateRequest.

    Accepts a domain RateRequest (re-checked field by field), a
    RateRequestIn, or a plain mapping.

    Raises:
        CarrierIntegrationError(INVALID_REQUEST) with the ValidationError as cause
    """
    if isinstance(request, RateRequestIn):
        return request.to_domain()

    data = asdict(request) if is_dataclass(request) and not isinstance(request, type) else request

    try:
        return RateRequestIn.model_validate(data).to_domain()
    except ValidationError as e:
        raise CarrierIntegrationError(
            ErrorCode.INVALID_REQUEST,
            f"Invalid rate request: {_summarize_validation_error(e)}",
            cause=e,
        ) from e


def _summarize_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)
