"""
Exceptions raised by the circulation engine.

Every failure here is an expected, recoverable outcome: the caller asked for
something the library's rules do not allow right now. They are raised so the
presentation layer can tell the reasons apart, never because the engine is in
a broken state.
"""


class CirculationError(Exception):
    """Base exception for circulation operations."""


class CapacityExceeded(CirculationError):
    """Raised when a user is at their loan limit or has unpaid fines."""


class ResourceUnavailable(CirculationError):
    """Raised when a resource cannot be lent right now."""


class InvalidTransition(CirculationError):
    """Raised when an operation is attempted from a state that forbids it."""


class InvalidAmount(CirculationError):
    """Raised when a monetary amount or percentage is out of range."""


class NotFoundError(CirculationError):
    """Raised when an entity id is not registered with the service."""
