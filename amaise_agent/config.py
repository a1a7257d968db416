"""
Centralized agent configuration.
Loads settings from environment variables and .env files.

All other modules receive a Settings instance; none read os.environ directly
(the LEGALI_TENANTS_* fallback below is the one exception, and it scans
the .env file as well).
"""
import os
import re
from functools import lru_cache
from typing import List, Optional

from dotenv import dotenv_values
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__

DEFAULT_HEARTBEAT_INTERVAL_MS = 10 * 60 * 1000

REQUIRED_SETTINGS = {
    "auth_url": "LEGALI_AUTH_URL",
    "api_url": "LEGALI_API_URL",
    "client_id": "LEGALI_CLIENT_ID",
    "client_secret": "LEGALI_CLIENT_SECRET",
}

_AGENTS_PATH_SUFFIX = re.compile(r"/agents/v1/?$")


def _first_tenant(values) -> Optional[str]:
    return next(
        (value for key, value in values.items() if key.startswith("LEGALI_TENANTS_") and value),
        None,
    )


def _dotenv_values(config) -> dict:
    env_file = config.get("env_file")
    if not env_file:
        return {}
    files = [env_file] if isinstance(env_file, (str, os.PathLike)) else list(env_file)
    values: dict = {}
    for path in files:
        if os.path.isfile(path):
            values.update(dotenv_values(path, encoding=config.get("env_file_encoding")))
    return values


class Settings(BaseSettings):
    """
    Agent settings, read from the environment.
    For local development, copy .env.example to .env and fill in your credentials.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Credentials ---
    # Auth0 token endpoint base URL
    auth_url: Optional[str] = Field(default=None, validation_alias="LEGALI_AUTH_URL")
    # Agent API base URL. Request paths already include /agents/v1.
    api_url: Optional[str] = Field(default=None, validation_alias="LEGALI_API_URL")
    client_id: Optional[str] = Field(default=None, validation_alias="LEGALI_CLIENT_ID")
    client_secret: Optional[str] = Field(default=None, validation_alias="LEGALI_CLIENT_SECRET")

    # Workspace tenant ID - required for multi-tenant agents, optional otherwise
    tenant_id: Optional[str] = Field(default=None, validation_alias="TENANT_ID")

    # --- Runtime ---
    heartbeat_interval_ms: int = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL_MS, validation_alias="HEARTBEAT_INTERVAL_MS"
    )
    handler_timeout: float = Field(default=60.0, validation_alias="HANDLER_TIMEOUT_S")
    http_timeout: float = Field(default=30.0, validation_alias="HTTP_TIMEOUT_S")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Sent in every heartbeat
    sdk_version: str = __version__

    @field_validator("api_url")
    @classmethod
    def strip_agents_suffix(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _AGENTS_PATH_SUFFIX.sub("", value)

    @field_validator("heartbeat_interval_ms", mode="before")
    @classmethod
    def default_interval(cls, value):
        # Empty, zero or negative values fall back to the default
        if value in (None, ""):
            return DEFAULT_HEARTBEAT_INTERVAL_MS
        if int(value) <= 0:
            return DEFAULT_HEARTBEAT_INTERVAL_MS
        return value

    @model_validator(mode="after")
    def tenant_fallback(self) -> "Settings":
        if not self.tenant_id:
            # Process environment wins over .env, as for declared fields
            self.tenant_id = _first_tenant(os.environ) or _first_tenant(_dotenv_values(self.model_config))
        return self

    @property
    def heartbeat_interval(self) -> float:
        """Heartbeat interval in seconds."""
        return self.heartbeat_interval_ms / 1000


def check_required_settings(settings: Settings, required: Optional[List[str]] = None) -> None:
    """
    Verify that required settings are configured.
    Raises ValueError naming the first missing environment variable.
    """
    for setting_name in required or list(REQUIRED_SETTINGS):
        if not getattr(settings, setting_name, None):
            env_name = REQUIRED_SETTINGS.get(setting_name, setting_name.upper())
            raise ValueError(
                f"Missing required environment variable: {env_name}. "
                f"Copy .env.example to .env and fill in your credentials."
            )


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings once per process."""
    settings = Settings()
    check_required_settings(settings)
    return settings
