"""Enumerations shared by the circulation models and the policy tables."""

from enum import Enum


class UserRole(str, Enum):
    """Role tag of a library user."""

    STUDENT = "student"
    FACULTY = "faculty"
    LIBRARIAN = "librarian"


class ResourceKind(str, Enum):
    """Media type tag of a lendable resource."""

    PHYSICAL = "physical"
    DIGITAL = "digital"
    AUDIO = "audio"


class ResourceCondition(str, Enum):
    """Physical condition of a printed copy."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    DAMAGED = "damaged"


class LoanState(str, Enum):
    """Status of a loan."""

    ACTIVE = "active"
    OVERDUE = "overdue"
    RETURNED = "returned"
    RENEWED = "renewed"
    CANCELLED = "cancelled"


class ReservationState(str, Enum):
    """Status of a reservation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class FineStatus(str, Enum):
    """Payment status of a fine."""

    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
