"""Configuration management for the library circulation engine.

The engine's tunable knobs (renewal cap, queue capacity, expiry windows)
live here. The role and resource policy tables do not: they are fixed
business rules and are kept in :mod:`library_circulation.policy`.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CirculationSettings(BaseSettings):
    """Circulation engine configuration.

    Values are read from ``LIBRARY_CIRCULATION_*`` environment variables or
    a local ``.env`` file, falling back to the library's standard rules.
    """

    model_config = SettingsConfigDict(
        # Use LIBRARY_CIRCULATION_ prefix for all env vars
        env_prefix="LIBRARY_CIRCULATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Loans ===

    max_renewals: int = Field(
        default=2,
        description="Maximum number of times a single loan can be renewed",
        ge=0,
        le=10,
    )

    # === Reservation queue ===

    queue_capacity: int = Field(
        default=10,
        description="Maximum live entries in a physical copy's reservation queue",
        ge=1,
        le=100,
    )

    queue_entry_ttl_hours: int = Field(
        default=48,
        description="Hours a queue entry stays live after it is enqueued",
        ge=1,
    )

    # === Reservations ===

    reservation_window_hours: int = Field(
        default=48,
        description="Hours a pending reservation stays valid after it is requested",
        ge=1,
    )

    confirmation_window_hours: int = Field(
        default=24,
        description="Hours a confirmed reservation stays valid for pickup",
        ge=1,
    )

    # === Fines ===

    fine_payment_grace_days: int = Field(
        default=30,
        description="Days after generation before an unpaid fine is overdue for payment",
        ge=0,
    )

    # === Development ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging for circulation decisions",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: CirculationSettings | None = None


def get_config() -> CirculationSettings:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = CirculationSettings()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
