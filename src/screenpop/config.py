"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional config.yaml provides defaults; environment variables override it.
"""

import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/screenpop
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


class SecuritySettings(BaseSettings):
    """Token, CORS and rate limit configuration."""

    jwt_secret: str = Field(
        default="dev-secret-key-change-in-production",
        description="Secret used to sign identity tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="Token signing algorithm")
    token_ttl_hours: int = Field(default=24, description="Default token lifetime in hours")
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Origins allowed to call the API (comma-separated in env)",
    )
    rate_limit_window: int = Field(default=3600000, description="Rate limit window in milliseconds")
    rate_limit_max: int = Field(default=100, description="Requests allowed per window per key")
    privileged_role: str = Field(default="admin", description="Role that bypasses rate limiting")

    @field_validator("allowed_origins", mode="before")
    def parse_allowed_origins(cls, v: Any) -> List[str]:
        """Split a comma-separated origin list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return list(v)

    model_config = SettingsConfigDict(env_prefix="SCREENPOP_", frozen=True)


class AuditSettings(BaseSettings):
    """Audit trail configuration."""

    audit_log: Path = Field(
        default=Path("./logs/screenpop-audit.log"),
        description="Append-only JSON-lines audit file",
    )

    model_config = SettingsConfigDict(env_prefix="SCREENPOP_", frozen=True)


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    environment: str = Field(default="development", description="development or production")

    # Feature
    enabled: bool = Field(default=True, description="Screen Pop feature flag (true/1/yes/on or false/0/no/off)")
    customers_file: Optional[Path] = Field(
        default=None,
        description="YAML file with customer records (bundled fixture when unset)",
    )

    # Component settings
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    model_config = SettingsConfigDict(env_prefix="SCREENPOP_", case_sensitive=False, frozen=True)


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
        ("server", "host"): "SCREENPOP_HOST",
        ("server", "port"): "SCREENPOP_PORT",
        ("server", "debug"): "SCREENPOP_DEBUG",
        ("server", "log_level"): "SCREENPOP_LOG_LEVEL",
        ("server", "environment"): "SCREENPOP_ENVIRONMENT",
        ("feature", "enabled"): "SCREENPOP_ENABLED",
        ("feature", "customers_file"): "SCREENPOP_CUSTOMERS_FILE",
        ("security", "jwt_secret"): "SCREENPOP_JWT_SECRET",
        ("security", "token_ttl_hours"): "SCREENPOP_TOKEN_TTL_HOURS",
        ("security", "rate_limit_window"): "SCREENPOP_RATE_LIMIT_WINDOW",
        ("security", "rate_limit_max"): "SCREENPOP_RATE_LIMIT_MAX",
        ("security", "privileged_role"): "SCREENPOP_PRIVILEGED_ROLE",
        ("audit", "audit_log"): "SCREENPOP_AUDIT_LOG",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # Origins may be given as a YAML list
    if "SCREENPOP_ALLOWED_ORIGINS" not in os.environ:
        origins = (config_data.get("security") or {}).get("allowed_origins")
        if origins:
            if isinstance(origins, list):
                origins = ",".join(origins)
            os.environ["SCREENPOP_ALLOWED_ORIGINS"] = str(origins)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
