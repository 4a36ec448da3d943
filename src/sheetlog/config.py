"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional config.yaml provides defaults; environment variables win.
"""

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from src.sheetlog.core.constants import DEFAULT_ENDPOINTS, GoogleEndpoints


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("SHEETLOG_CONFIG_FILE")

    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/sheetlog
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class GoogleSettings(BaseSettings):
    """
    Service-account and target sheet configuration.

    Read without a prefix so the usual GOOGLE_CLIENT_EMAIL / GOOGLE_PRIVATE_KEY /
    SHEET_ID / SHEET_NAME variables work as-is.
    """

    google_client_email: str = Field(default="", description="Service-account email")
    google_private_key: str = Field(default="", repr=False, description="PEM private key (literal \\n allowed)")
    sheet_id: str = Field(default="", description="Target spreadsheet ID")
    sheet_name: str = Field(default="", description="Target sheet/tab name")

    def missing_fields(self) -> List[str]:
        """Names of required fields that are empty."""
        return [
            name for name in ("google_client_email", "google_private_key", "sheet_id", "sheet_name")
            if not getattr(self, name)
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    class Config:
        env_prefix = ""
        case_sensitive = False


class HttpSettings(BaseSettings):
    """Outbound HTTP configuration."""

    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Total timeout per outbound call; unset means no timeout",
    )
    token_url: Optional[str] = Field(default=None, description="Override for the OAuth token endpoint")
    sheets_base_url: Optional[str] = Field(default=None, description="Override for the Sheets API base URL")

    @field_validator("timeout_seconds")
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Reject non-positive timeouts."""
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    def endpoints(self) -> GoogleEndpoints:
        """Endpoint table with any configured overrides applied."""
        return DEFAULT_ENDPOINTS.with_overrides(
            token_url=self.token_url,
            sheets_base_url=self.sheets_base_url,
        )

    class Config:
        env_prefix = "SHEETLOG_HTTP_"


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    greeting: str = Field(default="Hello from SheetLog! \U0001F44B", description="Body returned for every request")
    ops_endpoints_enabled: bool = Field(
        default=False,
        description="Mount /healthz, /readyz and /metrics instead of greeting those paths",
    )
    shutdown_grace_seconds: Optional[float] = Field(
        default=None,
        description="How long shutdown waits for in-flight log tasks; unset waits until they settle",
    )

    # Component settings
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    class Config:
        env_prefix = "SHEETLOG_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "SHEETLOG_HOST",
        ("server", "port"): "SHEETLOG_PORT",
        ("server", "debug"): "SHEETLOG_DEBUG",
        ("server", "log_level"): "SHEETLOG_LOG_LEVEL",
        ("server", "greeting"): "SHEETLOG_GREETING",
        ("server", "ops_endpoints_enabled"): "SHEETLOG_OPS_ENDPOINTS_ENABLED",
        ("server", "shutdown_grace_seconds"): "SHEETLOG_SHUTDOWN_GRACE_SECONDS",
        ("google", "client_email"): "GOOGLE_CLIENT_EMAIL",
        ("google", "private_key"): "GOOGLE_PRIVATE_KEY",
        ("google", "sheet_id"): "SHEET_ID",
        ("google", "sheet_name"): "SHEET_NAME",
        ("http", "timeout_seconds"): "SHEETLOG_HTTP_TIMEOUT_SECONDS",
        ("http", "token_url"): "SHEETLOG_HTTP_TOKEN_URL",
        ("http", "sheets_base_url"): "SHEETLOG_HTTP_SHEETS_BASE_URL",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
