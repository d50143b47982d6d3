"""
Shipping Module

- Carrier-agnostic domain types and the BaseCarrier interface
- Carrier registry; adapters register with @register_carrier
"""
from carrier_integration.modules.shipping.carriers import build_carriers, register_carrier
from carrier_integration.modules.shipping.carriers.base import BaseCarrier

__all__ = [
    "build_carriers",
    "register_carrier",
    "BaseCarrier",
]
