"""
Tests for settings and carrier registry wiring.
"""
import pytest
from pydantic import ValidationError

from carrier_integration.core.config import Settings
from carrier_integration.modules.shipping.carriers import (
    build_carriers,
    get_carrier_class,
    get_registered_carriers,
)
from carrier_integration.modules.shipping.carriers.ups import UPSCarrier, create_ups_adapter


class TestSettings:
    """Settings defaults and normalization."""

    def test_defaults(self, monkeypatch):
        for name in ("CARRIER_MODE", "UPS_BASE_URL", "PORT", "LOG_LEVEL", "UPS_OAUTH_TOKEN_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.CARRIER_MODE == "mock"
        assert settings.is_mock_mode
        assert settings.PORT == 3000
        assert settings.UPS_BASE_URL == "https://wwwcie.ups.com"
        assert settings.ups_token_url == "https://wwwcie.ups.com/security/v1/oauth/token"
        assert settings.HTTP_TIMEOUT_SECONDS == 30.0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CARRIER_MODE", "REAL")
        monkeypatch.setenv("UPS_CLIENT_ID", "abc")
        monkeypatch.setenv("UPS_CLIENT_SECRET", "xyz")
        monkeypatch.setenv("UPS_BASE_URL", "https://onlinetools.ups.com/")

        settings = Settings(_env_file=None)

        assert settings.CARRIER_MODE == "real"
        assert not settings.is_mock_mode
        assert settings.has_ups_credentials
        assert settings.ups_token_url == "https://onlinetools.ups.com/security/v1/oauth/token"

    def test_explicit_token_url_wins(self):
        settings = Settings(_env_file=None, UPS_OAUTH_TOKEN_URL="https://auth.example.com/token")

        assert settings.ups_token_url == "https://auth.example.com/token"

    def test_invalid_carrier_mode(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, CARRIER_MODE="sandbox")

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_blank_optional_values_become_none(self):
        settings = Settings(_env_file=None, UPS_SHIPPER_NUMBER="  ", UPS_OAUTH_SCOPE="")

        assert settings.UPS_SHIPPER_NUMBER is None
        assert settings.UPS_OAUTH_SCOPE is None


class TestCarrierRegistry:
    """@register_carrier and build_carriers()."""

    def test_ups_registered(self):
        assert "UPS" in get_registered_carriers()
        assert get_carrier_class("ups") is UPSCarrier

    def test_build_carriers_in_mock_mode(self, stub_client, test_settings):
        carriers = build_carriers(stub_client, test_settings)

        assert [c.carrier_name for c in carriers] == ["UPS"]

    def test_build_carriers_in_real_mode_requires_credentials(self, stub_client, test_settings):
        settings = test_settings.model_copy(update={"CARRIER_MODE": "real"})

        with pytest.raises(ValueError):
            build_carriers(stub_client, settings)

    def test_build_carriers_explicit_override(self, stub_client, test_settings):
        carriers = build_carriers(stub_client, test_settings, require_credentials=False)

        assert len(carriers) == 1

    def test_create_ups_adapter(self, stub_client, test_settings):
        adapter = create_ups_adapter(stub_client, test_settings, require_credentials=False)

        assert isinstance(adapter, UPSCarrier)
        assert adapter.carrier_name == "UPS"
