"""
UPS Rating API wire models

Validated view of the JSON the Rating API returns. Every field is optional
because UPS omits blocks freely; the adapter applies an explicit policy for
each absence. Unknown fields are ignored.

UPS returns a bare object instead of a one-element array for several
repeated elements (RatedShipment, Alert). Those are normalized to lists.
"""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class _UPSModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class UPSCodeDescription(_UPSModel):
    Code: Optional[str] = None
    Description: Optional[str] = None


class UPSResponseStatus(_UPSModel):
    # Left uncoerced: only the string "1" means success.
    Code: Any = None
    Description: Optional[str] = None


class UPSCharges(_UPSModel):
    CurrencyCode: Optional[str] = None
    MonetaryValue: Optional[str] = None


class UPSGuaranteedDelivery(_UPSModel):
    Date: Optional[str] = None
    Time: Optional[str] = None


class UPSResponseMeta(_UPSModel):
    ResponseStatus: Optional[UPSResponseStatus] = None
    Alert: Optional[List[UPSCodeDescription]] = None

    @field_validator("Alert", mode="before")
    @classmethod
    def single_alert_to_list(cls, v):
        return [v] if isinstance(v, dict) else v


class UPSRatedShipment(_UPSModel):
    Service: Optional[UPSCodeDescription] = None
    TotalCharges: Optional[UPSCharges] = None
    TransportationCharges: Optional[UPSCharges] = None
    GuaranteedDelivery: Optional[UPSGuaranteedDelivery] = None


class UPSRateResponseBody(_UPSModel):
    Response: Optional[UPSResponseMeta] = None
    RatedShipment: Optional[List[UPSRatedShipment]] = None

    @field_validator("RatedShipment", mode="before")
    @classmethod
    def single_shipment_to_list(cls, v):
        return [v] if isinstance(v, dict) else v

    @property
    def is_success(self) -> bool:
        status = self.Response.ResponseStatus if self.Response else None
        return status is not None and status.Code == "1"

    @property
    def error_description(self) -> str:
        """ResponseStatus.Description, then the first Alert, then a generic message."""
        if self.Response:
            status = self.Response.ResponseStatus
            if status and status.Description:
                return status.Description
            if self.Response.Alert and self.Response.Alert[0].Description:
                return self.Response.Alert[0].Description
        return "Unknown UPS error"


class UPSRateResponse(_UPSModel):
    RateResponse: Optional[UPSRateResponseBody] = None

