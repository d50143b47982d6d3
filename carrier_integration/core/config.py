"""
Application configuration

Values come from the environment (or a local .env file).
- CARRIER_MODE defaults to "mock": UPS calls are answered by in-process fixtures
- CARRIER_MODE=real requires UPS_CLIENT_ID and UPS_CLIENT_SECRET
"""
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

UPS_SANDBOX_URL = "https://wwwcie.ups.com"
OAUTH_TOKEN_PATH = "/security/v1/oauth/token"

CARRIER_MODES = ("mock", "real")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    APP_NAME: str = "Carrier Integration Service"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    # "mock" uses stubbed UPS responses, "real" calls UPS
    CARRIER_MODE: str = "mock"

    # UPS
    UPS_BASE_URL: str = UPS_SANDBOX_URL
    UPS_OAUTH_TOKEN_URL: str = ""  # Empty = {UPS_BASE_URL}/security/v1/oauth/token
    UPS_CLIENT_ID: str = ""
    UPS_CLIENT_SECRET: str = ""
    UPS_OAUTH_SCOPE: Optional[str] = None
    UPS_SHIPPER_NUMBER: Optional[str] = None

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0

    @field_validator("CARRIER_MODE", mode="before")
    @classmethod
    def normalize_carrier_mode(cls, v):
        mode = (v or "mock").strip().lower()
        if mode not in CARRIER_MODES:
            raise ValueError(f"CARRIER_MODE must be one of {CARRIER_MODES}, got {v!r}")
        return mode

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        level = (v or "INFO").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {LOG_LEVELS}, got {v!r}")
        return level

    @field_validator("UPS_OAUTH_SCOPE", "UPS_SHIPPER_NUMBER", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_mock_mode(self) -> bool:
        return self.CARRIER_MODE == "mock"

    @property
    def ups_token_url(self) -> str:
        if self.UPS_OAUTH_TOKEN_URL:
            return self.UPS_OAUTH_TOKEN_URL
        return f"{self.UPS_BASE_URL.rstrip('/')}{OAUTH_TOKEN_PATH}"

    @property
    def has_ups_credentials(self) -> bool:
        return bool(self.UPS_CLIENT_ID and self.UPS_CLIENT_SECRET)


@lru_cache
def get_settings() -> Settings:
    return Settings()
