"""Logfire observability and logging setup for the circulation engine."""

import logging

import logfire

from ..config import CirculationSettings, get_config
from .config import ObservabilityConfig, get_environment_config
from .decorators import trace_operation

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "library_circulation"


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Initialize Logfire with configuration."""
    config = config or get_environment_config()

    if not config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=config.token or None,
        service_name=config.service_name,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=None if config.console_output else False,
    )


def configure_logging(settings: CirculationSettings | None = None) -> None:
    """Apply the configured log level to the engine's loggers."""
    settings = settings or get_config()
    level = logging.DEBUG if settings.is_development else getattr(logging, settings.log_level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    if settings.debug:
        logger.debug("Debug mode enabled - circulation decisions logged verbosely")


__all__ = [
    "ObservabilityConfig",
    "configure_logging",
    "initialize_observability",
    "trace_operation",
]
