"""
UPS Carrier Implementation

Rating API adapter: maps a RateRequest to the UPS wire format, attaches a
bearer token from the OAuth client, dispatches, classifies the outcome and
maps RatedShipments back to RateQuotes.

Outcome classification:
    transport timeout           -> TIMEOUT
    other transport failure     -> NETWORK_ERROR
    401                         -> clear token, re-acquire, retry ONCE
    401 again on the retry      -> AUTH_FAILED
    429                         -> RATE_LIMITED
    >= 500                      -> CARRIER_UNAVAILABLE
    other non-200               -> INVALID_REQUEST
    200, ResponseStatus != "1"  -> INVALID_REQUEST
    200, unusable body          -> MALFORMED_RESPONSE
"""
import logging
import math
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import ValidationError

from carrier_integration.core.config import Settings, get_settings
from carrier_integration.core.exceptions import (
    CarrierIntegrationError,
    ErrorCode,
    TransportTimeoutError,
)
from carrier_integration.core.http_client import (
    DEFAULT_TIMEOUT_SECONDS,
    HttpClient,
    HttpRequest,
    HttpResponse,
)
from carrier_integration.modules.shipping.carriers import register_carrier
from carrier_integration.modules.shipping.carriers.base import (
    Address,
    BaseCarrier,
    Package,
    RateQuote,
    RateRequest,
)
from carrier_integration.modules.shipping.carriers.ups_types import (
    UPSGuaranteedDelivery,
    UPSRatedShipment,
    UPSRateResponse,
)
from carrier_integration.services.oauth import Clock, OAuthClient, OAuthConfig, utc_now

logger = logging.getLogger(__name__)

CARRIER_NAME = "UPS"

RATING_PATH = "/api/rating/v1/Rate"
TRANSACTION_SOURCE = "carrier-integration-service"

PACKAGING_TYPE_CUSTOMER_SUPPLIED = "02"
WEIGHT_UNIT = "LBS"
DIMENSION_UNIT = "IN"

# Used in place of real credentials when they are not required (mock mode)
MOCK_CLIENT_ID = "test-client-id"
MOCK_CLIENT_SECRET = "test-client-secret"

# Carrier-agnostic service levels -> UPS service codes
SERVICE_LEVEL_CODES = {
    "NEXT_DAY_AIR": "01",
    "OVERNIGHT": "01",
    "2ND_DAY_AIR": "02",
    "EXPRESS": "02",
    "GROUND": "03",
    "WORLDWIDE_EXPRESS": "07",
    "WORLDWIDE_EXPEDITED": "08",
    "STANDARD": "11",
    "3_DAY_SELECT": "12",
    "NEXT_DAY_AIR_SAVER": "13",
    "NEXT_DAY_AIR_EARLY": "14",
    "WORLDWIDE_EXPRESS_PLUS": "54",
    "2ND_DAY_AIR_AM": "59",
    "SAVER": "65",
}

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class UPSConfig:
    """UPS adapter settings."""
    base_url: str
    oauth_client: OAuthClient
    shipper_number: Optional[str] = None
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS
    transaction_source: str = TRANSACTION_SOURCE

    @property
    def rating_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{RATING_PATH}"


@register_carrier(CARRIER_NAME)
class UPSCarrier(BaseCarrier):
    """
    UPS Rating API adapter.

    Stateless apart from the injected OAuth client and transport; safe to
    share between concurrent get_rates() calls.
    """

    def __init__(self, config: UPSConfig, http_client: HttpClient, clock: Clock = utc_now):
        self.config = config
        self._http_client = http_client
        self._clock = clock

    @property
    def carrier_name(self) -> str:
        return CARRIER_NAME

    @classmethod
    def from_settings(
        cls,
        http_client: HttpClient,
        settings: Optional[Settings] = None,
        require_credentials: bool = True,
        clock: Clock = utc_now,
    ) -> "UPSCarrier":
        """
        Build an adapter (and its OAuth client) from application settings.

        Raises:
            ValueError: credentials missing while require_credentials is set
        """
        settings = settings or get_settings()

        if require_credentials and not settings.has_ups_credentials:
            raise ValueError(
                "UPS_CLIENT_ID and UPS_CLIENT_SECRET environment variables are required. "
                "Set CARRIER_MODE=mock to run without credentials."
            )

        oauth_client = OAuthClient(
            OAuthConfig(
                token_url=settings.ups_token_url,
                client_id=settings.UPS_CLIENT_ID or MOCK_CLIENT_ID,
                client_secret=settings.UPS_CLIENT_SECRET or MOCK_CLIENT_SECRET,
                scope=settings.UPS_OAUTH_SCOPE,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            ),
            http_client,
            clock=clock,
        )

        return cls(
            UPSConfig(
                base_url=settings.UPS_BASE_URL,
                oauth_client=oauth_client,
                shipper_number=settings.UPS_SHIPPER_NUMBER,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            ),
            http_client,
            clock=clock,
        )

    # ==================== Rating ====================

    async def get_rates(self, request: RateRequest) -> List[RateQuote]:
        oauth = self.config.oauth_client
        payload = self._build_rate_request(request)

        access_token = await oauth.get_access_token()
        http_request = HttpRequest(
            url=self.config.rating_url,
            method="POST",
            headers=self._build_headers(access_token),
            body=payload,
            timeout=self.config.timeout,
        )

        response = await self._dispatch(http_request)

        if response.status == 401:
            # Token may have been revoked or expired early; refresh and retry once
            logger.warning("UPS API returned 401, refreshing OAuth token and retrying once")
            oauth.clear_token()
            new_token = await oauth.get_access_token()
            http_request = replace(
                http_request,
                headers={**http_request.headers, "Authorization": f"Bearer {new_token}"},
            )
            response = await self._dispatch(http_request)

            if response.status == 401:
                logger.error("UPS API rejected the refreshed OAuth token")
                raise CarrierIntegrationError(
                    ErrorCode.AUTH_FAILED,
                    "UPS API rejected the access token after refresh",
                    details=_error_details(response),
                )

        self._raise_for_status(response)
        return self._transform_response(response.body)

    async def _dispatch(self, http_request: HttpRequest) -> HttpResponse:
        try:
            response = await self._http_client.request(http_request)
        except CarrierIntegrationError:
            raise
        except TransportTimeoutError as e:
            logger.error(f"UPS API request timed out: {e}")
            raise CarrierIntegrationError(
                ErrorCode.TIMEOUT,
                "UPS API request timed out",
                cause=e,
            ) from e
        except Exception as e:
            logger.error(f"UPS API request failed: {e}")
            raise CarrierIntegrationError(
                ErrorCode.NETWORK_ERROR,
                "Network error communicating with UPS API",
                cause=e,
            ) from e

        logger.debug(f"UPS API {http_request.method} {RATING_PATH} -> {response.status}")
        return response

    def _raise_for_status(self, response: HttpResponse) -> None:
        status = response.status
        if status == 200:
            return

        details = _error_details(response)
        suffix = f" - {details['carrier_message']}" if "carrier_message" in details else ""
        logger.error(f"UPS API error: {status}{suffix}")

        if status == 429:
            raise CarrierIntegrationError(
                ErrorCode.RATE_LIMITED,
                "UPS API rate limit exceeded",
                details=details,
            )
        if status >= 500:
            raise CarrierIntegrationError(
                ErrorCode.CARRIER_UNAVAILABLE,
                f"UPS API returned server error: {status}",
                details=details,
            )
        raise CarrierIntegrationError(
            ErrorCode.INVALID_REQUEST,
            f"UPS API returned error status: {status}{suffix}",
            details=details,
        )

    # ==================== Request mapping ====================

    def _build_headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "transId": _generate_transaction_id(),
            "transactionSrc": self.config.transaction_source,
        }

    def _build_rate_request(self, request: RateRequest) -> Dict[str, Any]:
        shipper: Dict[str, Any] = {}
        if self.config.shipper_number:
            shipper["ShipperNumber"] = self.config.shipper_number
        shipper["Address"] = _address_to_ups(request.origin)

        shipment: Dict[str, Any] = {
            "Shipper": shipper,
            "ShipTo": {"Address": _address_to_ups(request.destination)},
        }

        if request.service_level:
            shipment["Service"] = {"Code": resolve_service_code(request.service_level)}

        shipment["Package"] = [_package_to_ups(pkg) for pkg in request.packages]

        return {
            "RateRequest": {
                "Request": {"RequestOption": "Rate"},
                "Shipment": shipment,
            }
        }

    # ==================== Response mapping ====================

    def _transform_response(self, body: Any) -> List[RateQuote]:
        if not isinstance(body, dict):
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                "UPS response is not a JSON object",
            )

        try:
            parsed = UPSRateResponse.model_validate(body)
        except ValidationError as e:
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                "UPS response has an unexpected structure",
                cause=e,
            ) from e

        rate_response = parsed.RateResponse
        if rate_response is None:
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                "UPS response missing RateResponse",
            )

        if not rate_response.is_success:
            description = rate_response.error_description
            logger.error(f"UPS API error in response body: {description}")
            raise CarrierIntegrationError(
                ErrorCode.INVALID_REQUEST,
                f"UPS API error: {description}",
            )

        if not rate_response.RatedShipment:
            return []

        now = self._clock()
        return [self._to_quote(shipment, now) for shipment in rate_response.RatedShipment]

    def _to_quote(self, shipment: UPSRatedShipment, now: datetime) -> RateQuote:
        service = shipment.Service
        service_code = (service.Code if service else None) or "UNKNOWN"
        service_name = (service.Description if service else None) or "Unknown Service"

        charges = shipment.TotalCharges if shipment.TotalCharges is not None else shipment.TransportationCharges
        monetary_value = charges.MonetaryValue if charges else None
        if not monetary_value:
            raise CarrierIntegrationError(
                ErrorCode.MALFORMED_RESPONSE,
                "UPS response missing charge information",
            )

        return RateQuote(
            carrier=CARRIER_NAME,
            service_level=service_code,
            service_name=service_name,
            total_cost=_parse_cost(monetary_value),
            currency=charges.CurrencyCode or "USD",
            estimated_days=_estimate_days(shipment.GuaranteedDelivery, now),
            carrier_quote_id=f"{service_code}-{int(now.timestamp() * 1000)}",
        )


def create_ups_adapter(
    http_client: HttpClient,
    settings: Optional[Settings] = None,
    require_credentials: bool = True,
) -> UPSCarrier:
    """Convenience wrapper around UPSCarrier.from_settings()."""
    return UPSCarrier.from_settings(http_client, settings, require_credentials)


def resolve_service_code(service_level: str) -> str:
    """Map a service level name to a UPS code; unknown values pass through as raw codes."""
    key = service_level.strip().upper().replace(" ", "_").replace("-", "_")
    return SERVICE_LEVEL_CODES.get(key, service_level.strip())


# ==================== Helpers ====================


def _address_to_ups(address: Address) -> Dict[str, Any]:
    ups_address: Dict[str, Any] = {}
    if address.street:
        ups_address["AddressLine"] = list(address.street)
    ups_address.update({
        "City": address.city,
        "StateProvinceCode": address.state_or_province,
        "PostalCode": address.postal_code,
        "CountryCode": address.country,
    })
    return ups_address


def _package_to_ups(package: Package) -> Dict[str, Any]:
    ups_package: Dict[str, Any] = {
        "PackagingType": {"Code": PACKAGING_TYPE_CUSTOMER_SUPPLIED},
    }
    if package.dimensions:
        ups_package["Dimensions"] = {
            "UnitOfMeasurement": {"Code": DIMENSION_UNIT},
            "Length": _decimal_string(package.dimensions.length),
            "Width": _decimal_string(package.dimensions.width),
            "Height": _decimal_string(package.dimensions.height),
        }
    ups_package["PackageWeight"] = {
        "UnitOfMeasurement": {"Code": WEIGHT_UNIT},
        "Weight": _decimal_string(package.weight),
    }
    return ups_package


def _decimal_string(value: float) -> str:
    """5 -> "5", 5.5 -> "5.5", 1e-05 -> "0.00001"."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return format(Decimal(repr(number)), "f")


def _generate_transaction_id() -> str:
    return f"TXN-{int(time.time() * 1000)}-{uuid4().hex[:8]}"


def _parse_cost(monetary_value: str) -> float:
    try:
        cost = float(monetary_value)
    except (TypeError, ValueError) as e:
        raise CarrierIntegrationError(
            ErrorCode.MALFORMED_RESPONSE,
            f"Invalid cost value: {monetary_value}",
            cause=e,
        ) from e

    if not math.isfinite(cost) or cost < 0:
        raise CarrierIntegrationError(
            ErrorCode.MALFORMED_RESPONSE,
            f"Invalid cost value: {monetary_value}",
        )
    return cost


def _parse_delivery_date(value: str) -> Optional[datetime]:
    """ISO (2026-02-12) or UPS compact (20260212) date; naive values are UTC."""
    parsed = None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            parsed = datetime.strptime(value, "%Y%m%d")
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _estimate_days(delivery: Optional[UPSGuaranteedDelivery], now: datetime) -> Optional[int]:
    """Whole days until the guaranteed delivery date, rounded up; None if unknown or not in the future."""
    if delivery is None or not delivery.Date:
        return None

    delivery_at = _parse_delivery_date(delivery.Date)
    if delivery_at is None:
        logger.debug(f"Ignoring unparseable GuaranteedDelivery date: {delivery.Date!r}")
        return None

    days = math.ceil((delivery_at - now).total_seconds() / SECONDS_PER_DAY)
    return days if days > 0 else None


def _error_details(response: HttpResponse) -> Dict[str, Any]:
    """HTTP status plus the first UPS error message, when the body carries one."""
    details: Dict[str, Any] = {"status": response.status}
    body = response.body
    if isinstance(body, dict):
        errors = (body.get("response") or {}).get("errors") or []
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            if errors[0].get("message"):
                details["carrier_message"] = errors[0]["message"]
            if errors[0].get("code"):
                details["carrier_code"] = errors[0]["code"]
    return details
