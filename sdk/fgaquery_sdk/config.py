"""
Configuration for the fgaquery SDK.

Uses pydantic-settings for environment variable loading. Every setting can
also be passed directly when constructing FgaSettings.

Invariants:
    - All settings have sensible defaults for local development
    - The API token is never logged
    - An authorization model ID is only meaningful inside a store
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class FgaSettings(BaseSettings):
    """OpenFGA connection settings loaded from OPENFGA_* variables."""

    model_config = SettingsConfigDict(env_prefix="OPENFGA_")

    # Server connection
    api_scheme: str = Field(default="http", description="http or https")
    api_host: str = Field(default="", description="Host without scheme, e.g. api.fga.example")
    api_port: str = Field(default="", description="Server port")
    api_token: Optional[str] = Field(default=None, description="Pre-shared API token")

    # Store and model every call is made against
    store_id: str = Field(default="", description="Store ID")
    authorization_model_id: str = Field(default="", description="Authorization model ID")

    request_timeout: float = Field(default=30.0, description="HTTP request timeout seconds")
    max_depth: int = Field(default=10, description="Default expansion depth for the CLI")

    # Logging (used by the CLI)
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR")
    log_format: str = Field(default="text", description="json or text")

    @property
    def api_url(self) -> str:
        """Base URL of the OpenFGA HTTP API."""
        return f"{self.api_scheme}://{self.api_host}:{self.api_port}"

    def verify(self) -> None:
        """Check that the settings describe a usable connection.

        Raises:
            ValueError: If host or port is missing, or a model ID is set
                without a store ID
        """
        if not self.api_host:
            raise ValueError("OpenFGA configuration: missing host")
        if not self.api_port:
            raise ValueError("OpenFGA configuration: missing port")
        if self.authorization_model_id and not self.store_id:
            raise ValueError(
                "OpenFGA configuration: authorization model ID specified without a store ID"
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "OpenFGA client configuration loaded",
            extra={
                "api_scheme": self.api_scheme,
                "api_host": self.api_host,
                "api_port": self.api_port,
                "api_token": "***" if self.api_token else None,
                "store_id": self.store_id,
                "authorization_model_id": self.authorization_model_id,
                "request_timeout": self.request_timeout,
            },
        )
