"""
Shared configuration management for the security decision service.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow"
    )
    
    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    
    # Observability
    enable_metrics: bool = Field(default=True)


class SecurityConfig(BaseConfig):
    """Settings for the permission engine and its rule store."""
    
    service_name: str = Field(default="security")
    
    # Rule store
    rule_store_backend: Literal["memory", "postgres"] = Field(default="memory")
    postgres_dsn: str = Field(default="postgres://localhost:5432/access")
    postgres_min_pool_size: int = Field(default=2, ge=1)
    postgres_max_pool_size: int = Field(default=10, ge=1)
    postgres_command_timeout: float = Field(default=30.0, gt=0)


def get_config(**overrides) -> SecurityConfig:
    """Get configuration for the security service."""
    return SecurityConfig(**overrides)
