"""
API dependencies
"""
from fastapi import Request

from carrier_integration.services.carrier_service import CarrierIntegrationService


def get_carrier_service(request: Request) -> CarrierIntegrationService:
    """Facade created by the application lifespan."""
    return request.app.state.carrier_service
