"""
Library Circulation Engine.

This package implements the circulation core of a library: issuing loans,
tracking due dates and renewals, queueing and expiring reservations, and
assessing and settling fines.

Key Components:
- models: Pydantic models for users, resources, loans, reservations and fines
- policy: per-role and per-media-type circulation rules
- service: CirculationService, the orchestrating composition root
- config: Configuration management with pydantic-settings
- observability: Logfire spans and metrics
"""

__version__ = "0.1.0"

from .config import CirculationSettings, get_config, reset_config
from .enums import (
    FineStatus,
    LoanState,
    ReservationState,
    ResourceCondition,
    ResourceKind,
    UserRole,
)
from .exceptions import (
    CapacityExceeded,
    CirculationError,
    InvalidAmount,
    InvalidTransition,
    NotFoundError,
    ResourceUnavailable,
)
from .models import (
    AudioCopy,
    DigitalCopy,
    Fine,
    Loan,
    PhysicalCopy,
    Reservation,
    ReservationQueue,
    Resource,
    ReturnOutcome,
    User,
)
from .service import CirculationService

__all__ = [
    "AudioCopy",
    "CapacityExceeded",
    "CirculationError",
    "CirculationService",
    "CirculationSettings",
    "DigitalCopy",
    "Fine",
    "FineStatus",
    "InvalidAmount",
    "InvalidTransition",
    "Loan",
    "LoanState",
    "NotFoundError",
    "PhysicalCopy",
    "Reservation",
    "ReservationQueue",
    "ReservationState",
    "Resource",
    "ResourceCondition",
    "ResourceKind",
    "ResourceUnavailable",
    "ReturnOutcome",
    "User",
    "UserRole",
    "__version__",
    "get_config",
    "reset_config",
]
