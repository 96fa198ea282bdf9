"""Configuration for Logfire observability.

Read from ``LOGFIRE_*`` environment variables, except the deployment
environment name, which comes from ``ENVIRONMENT``. Nothing leaves the
process unless ``LOGFIRE_SEND_TO_LOGFIRE`` is set.
"""

import os

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilityConfig(BaseSettings):
    """Settings passed to ``logfire.configure``."""

    model_config = SettingsConfigDict(
        env_prefix="LOGFIRE_",
        case_sensitive=False,
        extra="ignore",
    )

    token: str = Field(default="", description="Logfire write token")

    service_name: str = Field(
        default="library-circulation",
        description="Service name attached to every span",
    )

    environment: str = Field(
        default="development",
        description="Deployment environment",
        validation_alias=AliasChoices("ENVIRONMENT", "environment"),
    )

    enabled: bool = Field(default=True, description="Configure Logfire at all")

    console_output: bool = Field(default=False, description="Echo spans to the console")

    send_to_logfire: bool = Field(default=False, description="Export to the Logfire backend")


class ProductionConfig(ObservabilityConfig):
    """Production exports everything and keeps the console quiet."""

    console_output: bool = False
    send_to_logfire: bool = True


class DevelopmentConfig(ObservabilityConfig):
    """Development prints spans locally; no token required."""

    console_output: bool = True
    send_to_logfire: bool = False


def get_environment_config() -> ObservabilityConfig:
    """Get configuration based on environment."""
    env = os.getenv("ENVIRONMENT", "development")

    if env == "production":
        return ProductionConfig()
    if env == "development":
        return DevelopmentConfig()
    return ObservabilityConfig()
