"""Panel configuration with pydantic-settings.

Settings are read from the environment (and an optional ``.env`` file).
The Gateway connection is not global state: ``PanelSettings.gateway_config()``
builds an explicit ``GatewayConfig`` that is handed to ``create_gateway()``.

Usage:
    from gamepanel.config import get_settings

    settings = get_settings()
    gateway = create_gateway(settings.gateway_config(), fallback=settings.fallback)
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://xmanage-api.example.com"


class BaseSettings(PydanticBaseSettings):
    """Base settings shared by every entry point.

    All fields here are optional with sensible defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging configuration
    service_name: str = Field(
        default="gamepanel",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


class GatewayConfig(BaseModel):
    """Connection details for the XManage API.

    A config without an API key is a valid value: it means "not configured".
    Instances are immutable; the ``with_*`` helpers return a new config.
    """

    model_config = ConfigDict(frozen=True)

    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    timeout: float = 30.0

    @field_validator("api_key")
    @classmethod
    def blank_key_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def configured(self) -> bool:
        return self.api_key is not None

    def with_api_key(self, api_key: str) -> "GatewayConfig":
        return GatewayConfig(api_url=self.api_url, api_key=api_key, timeout=self.timeout)

    def with_api_url(self, api_url: str) -> "GatewayConfig":
        return GatewayConfig(
            api_url=api_url.rstrip("/"), api_key=self.api_key, timeout=self.timeout
        )

    def cleared(self) -> "GatewayConfig":
        """Same endpoint, no credential."""
        return self.model_copy(update={"api_key": None})


class PanelSettings(BaseSettings):
    """Game panel settings."""

    xmanage_api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the XManage API",
    )
    xmanage_api_key: str | None = Field(
        default=None,
        description="XManage API key (Bearer token). Leave unset to run unconfigured.",
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    poll_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between background reconciliations",
    )
    confirm_delay: float = Field(
        default=3.0,
        ge=0,
        description="Seconds before an optimistic start is confirmed against the Gateway",
    )
    starting_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds a server may stay 'starting' before it is forcibly reconciled",
    )
    fallback: Literal["mock", "none"] = Field(
        default="mock",
        description="What to use when no API key is configured",
    )

    def gateway_config(self) -> GatewayConfig:
        return GatewayConfig(
            api_url=self.xmanage_api_url.rstrip("/"),
            api_key=self.xmanage_api_key,
            timeout=self.request_timeout,
        )


@lru_cache
def get_settings() -> PanelSettings:
    """Get cached settings instance.

    Raises ValidationError on malformed values.
    """
    return PanelSettings()
