"""
Carrier Integration Exception Hierarchy

Every failure that leaves a carrier adapter or the OAuth client is a
CarrierIntegrationError tagged with one ErrorCode. Callers branch on the
code, never on the underlying transport exception.

Exception Hierarchy:
    CarrierIntegrationError       (classified, carries ErrorCode)
    TransportError                (raised by HttpClient implementations)
    └── TransportTimeoutError
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable failure kinds surfaced to callers."""
    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_REQUEST = "INVALID_REQUEST"
    CARRIER_UNAVAILABLE = "CARRIER_UNAVAILABLE"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"


class CarrierIntegrationError(Exception):
    """
    Classified carrier integration failure.

    Attributes:
        code: ErrorCode for programmatic handling
        message: Human-readable error description
        cause: Underlying exception, if any
        details: Additional context for debugging (HTTP status, carrier error text)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.cause = cause
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        data: Dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value!r}, message={self.message!r})"


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================

class TransportError(Exception):
    """Network-level failure: the request never produced an HTTP response."""


class TransportTimeoutError(TransportError):
    """The request exceeded its local timeout."""
