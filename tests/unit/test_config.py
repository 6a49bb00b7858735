"""
Unit tests for FgaSettings.
"""

import logging

import pytest

from fgaquery_sdk.config import FgaSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "API_SCHEME",
        "API_HOST",
        "API_PORT",
        "API_TOKEN",
        "STORE_ID",
        "AUTHORIZATION_MODEL_ID",
        "REQUEST_TIMEOUT",
        "MAX_DEPTH",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(f"OPENFGA_{name}", raising=False)


class TestFgaSettings:
    """Tests for loading settings."""

    def test_defaults(self):
        settings = FgaSettings()
        assert settings.api_scheme == "http"
        assert settings.api_host == ""
        assert settings.api_token is None
        assert settings.request_timeout == 30.0
        assert settings.max_depth == 10
        assert settings.log_format == "text"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENFGA_API_HOST", "fga.internal")
        monkeypatch.setenv("OPENFGA_API_PORT", "8080")
        monkeypatch.setenv("OPENFGA_STORE_ID", "01STORE")
        monkeypatch.setenv("OPENFGA_MAX_DEPTH", "4")

        settings = FgaSettings()
        assert settings.api_host == "fga.internal"
        assert settings.api_port == "8080"
        assert settings.store_id == "01STORE"
        assert settings.max_depth == 4

    def test_explicit_values_override_environment(self, monkeypatch):
        monkeypatch.setenv("OPENFGA_API_HOST", "fga.internal")
        settings = FgaSettings(api_host="localhost")
        assert settings.api_host == "localhost"

    def test_api_url(self):
        settings = FgaSettings(api_scheme="https", api_host="fga.example", api_port="443")
        assert settings.api_url == "https://fga.example:443"


class TestVerify:
    """Tests for FgaSettings.verify."""

    def test_valid(self):
        FgaSettings(api_host="localhost", api_port="8080").verify()

    def test_valid_with_store_and_model(self):
        FgaSettings(
            api_host="localhost",
            api_port="8080",
            store_id="store-1",
            authorization_model_id="model-1",
        ).verify()

    def test_missing_host(self):
        with pytest.raises(ValueError, match="missing host"):
            FgaSettings(api_port="8080").verify()

    def test_missing_port(self):
        with pytest.raises(ValueError, match="missing port"):
            FgaSettings(api_host="localhost").verify()

    def test_model_without_store(self):
        with pytest.raises(ValueError, match="without a store ID"):
            FgaSettings(
                api_host="localhost", api_port="8080", authorization_model_id="model-1"
            ).verify()


class TestLogConfig:
    """Tests for FgaSettings.log_config."""

    def test_token_is_redacted(self, caplog):
        settings = FgaSettings(api_host="localhost", api_port="8080", api_token="s3cret")
        with caplog.at_level(logging.INFO, logger="fgaquery_sdk.config"):
            settings.log_config()

        record = caplog.records[-1]
        assert record.api_token == "***"
        assert "s3cret" not in caplog.text
