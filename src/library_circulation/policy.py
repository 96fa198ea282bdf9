"""
Policy resolution for users and resources.

Every numeric or boolean rule the circulation engine applies comes from
here: how long a loan lasts, how many loans a user may hold, how a user
ranks in a reservation queue, what a day of lateness costs and whether a
resource can be renewed or reserved.

Users and resources are tagged variants (``User.role`` and ``Resource.kind``).
The tables below are keyed on those tags so the models never need a subclass
per role or media type. The functions are pure: they read the entity and the
supplied time and never mutate anything.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from .enums import ResourceCondition, ResourceKind, UserRole

if TYPE_CHECKING:
    from .models.resource import Resource
    from .models.user import User


# === Permissions ===

BORROW = "borrow"
RENEW = "renew"
RESERVE = "reserve"
VIEW_CATALOG = "view_catalog"
SEARCH = "search"
SPECIALIZED_ACCESS = "specialized_access"
REQUEST_ACQUISITION = "request_acquisition"
GENERATE_BIBLIOGRAPHY = "generate_bibliography"
GENERATE_REPORTS = "generate_reports"
MANAGE_USERS = "manage_users"
MANAGE_CATALOG = "manage_catalog"

_PATRON_PERMISSIONS = frozenset({BORROW, RENEW, RESERVE, VIEW_CATALOG, SEARCH})
_FACULTY_PERMISSIONS = _PATRON_PERMISSIONS | {
    SPECIALIZED_ACCESS,
    REQUEST_ACQUISITION,
    GENERATE_BIBLIOGRAPHY,
    GENERATE_REPORTS,
}
_COORDINATOR_PERMISSIONS = _FACULTY_PERMISSIONS | {MANAGE_USERS, MANAGE_CATALOG}
ALL_PERMISSIONS = _COORDINATOR_PERMISSIONS


class UserPolicy(BaseModel):
    """Rules derived from a user's role."""

    loan_limit: int | None  # None means unbounded
    loan_days: int
    priority: int
    permissions: frozenset[str]

    model_config = ConfigDict(frozen=True)


class ResourcePolicy(BaseModel):
    """Rules derived from a resource's media type and current state."""

    loan_days: int
    fine_rate_per_day: float
    damage_surcharge: float
    renewable: bool
    reservable: bool

    model_config = ConfigDict(frozen=True)


STUDENT_POLICY = UserPolicy(loan_limit=3, loan_days=7, priority=1, permissions=_PATRON_PERMISSIONS)
FACULTY_POLICY = UserPolicy(
    loan_limit=10, loan_days=15, priority=2, permissions=_FACULTY_PERMISSIONS
)
COORDINATOR_POLICY = UserPolicy(
    loan_limit=15, loan_days=15, priority=3, permissions=_COORDINATOR_PERMISSIONS
)
LIBRARIAN_POLICY = UserPolicy(
    loan_limit=None, loan_days=30, priority=0, permissions=ALL_PERMISSIONS
)

# loan_days, fine_rate_per_day, damage_surcharge, reservable
_RESOURCE_TABLE: dict[ResourceKind, tuple[int, float, float, bool]] = {
    ResourceKind.PHYSICAL: (7, 1.00, 5.00, True),
    ResourceKind.DIGITAL: (14, 0.00, 0.00, False),
    ResourceKind.AUDIO: (21, 0.00, 0.00, False),
}


def user_policy(user: "User") -> UserPolicy:
    """Resolve the policy for a user's role."""
    role = UserRole(user.role)
    if role == UserRole.STUDENT:
        return STUDENT_POLICY
    if role == UserRole.FACULTY:
        return COORDINATOR_POLICY if user.coordinator else FACULTY_POLICY
    return LIBRARIAN_POLICY


def is_damaged(resource: "Resource") -> bool:
    """Check if a resource is a physical copy in damaged condition."""
    return (
        resource.kind == ResourceKind.PHYSICAL
        and resource.condition == ResourceCondition.DAMAGED
    )


def is_renewable(resource: "Resource", now: datetime | None = None) -> bool:
    """
    Check if a loan on the resource may be renewed right now.

    Digital media is always renewable. A physical copy is not renewable
    while someone is waiting in its reservation queue or while it is damaged.
    """
    if resource.kind != ResourceKind.PHYSICAL:
        return True
    if is_damaged(resource):
        return False
    return not resource.reservation_queue.has_pending(now)


def resource_policy(resource: "Resource", now: datetime | None = None) -> ResourcePolicy:
    """Resolve the policy for a resource's media type at ``now``."""
    loan_days, rate, surcharge, reservable = _RESOURCE_TABLE[ResourceKind(resource.kind)]
    return ResourcePolicy(
        loan_days=loan_days,
        fine_rate_per_day=rate,
        damage_surcharge=surcharge,
        renewable=is_renewable(resource, now),
        reservable=reservable,
    )


def loan_days_for(user: "User", resource: "Resource") -> int:
    """Loan length for a pair: the lesser of the user's and the resource's."""
    loan_days, _, _, _ = _RESOURCE_TABLE[ResourceKind(resource.kind)]
    return min(user_policy(user).loan_days, loan_days)


def calculate_fine(resource: "Resource", days_late: int) -> float:
    """
    Fine owed for returning the resource ``days_late`` days after its due date.

    Physical copies cost the daily rate per late day plus a flat surcharge
    when damaged. Digital media never fines.
    """
    if days_late <= 0:
        return 0.0

    _, rate, surcharge, _ = _RESOURCE_TABLE[ResourceKind(resource.kind)]
    amount = days_late * rate
    if rate and is_damaged(resource):
        amount += surcharge
    return round(amount, 2)
