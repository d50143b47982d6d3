"""
Carrier Integration Service
FastAPI application entry point

- GET  /health
- POST /api/rates
- POST /api/rates/{carrier}

CARRIER_MODE=mock (default) answers UPS calls from in-process fixtures;
CARRIER_MODE=real calls UPS and requires credentials.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from carrier_integration.api.routes import rates
from carrier_integration.core.config import Settings, get_settings
from carrier_integration.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_integration.core.logging_config import configure_logging
from carrier_integration.services.carrier_service import (
    CarrierIntegrationService,
    create_carrier_service,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorCode.AUTH_FAILED: 401,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.CARRIER_UNAVAILABLE: 503,
    ErrorCode.MALFORMED_RESPONSE: 502,
    ErrorCode.NETWORK_ERROR: 502,
    ErrorCode.TIMEOUT: 502,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    return ERROR_STATUS_CODES.get(code, 500)


def _error_response(status_code: int, code: str, message: str, cause: Optional[str] = None) -> JSONResponse:
    error = {"code": code, "message": message}
    if cause:
        error["cause"] = cause
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


# ==================== Exception Handlers ====================


async def carrier_error_handler(request: Request, exc: CarrierIntegrationError) -> JSONResponse:
    status_code = get_http_status_for_error(exc.code)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    return _error_response(
        status_code,
        exc.code.value,
        exc.message,
        cause=str(exc.cause) if exc.cause is not None else None,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return _error_response(
        400,
        ErrorCode.INVALID_REQUEST.value,
        f"Invalid rate request: {'; '.join(parts)}",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error_response(500, "INTERNAL_ERROR", str(exc) or "Internal server error")


# ==================== Application ====================


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[CarrierIntegrationService] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Defaults to get_settings()
        service: Pre-built facade (tests); otherwise created from settings at startup
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        carrier_service = service or create_carrier_service(settings)
        app.state.carrier_service = carrier_service
        logger.info(
            f"{settings.APP_NAME} started in {settings.CARRIER_MODE.upper()} mode "
            f"with carriers: {', '.join(carrier_service.carrier_names)}"
        )

        yield

        # Close HTTP clients to prevent connection leaks
        await carrier_service.close()
        logger.info("Carrier HTTP client closed")

    app = FastAPI(
        lifespan=lifespan,
        title=settings.APP_NAME,
        debug=settings.DEBUG,
    )

    app.add_exception_handler(CarrierIntegrationError, carrier_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(rates.router, prefix="/api")

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
