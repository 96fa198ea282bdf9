"""
User model for the library circulation engine.

A user is a single record tagged with a role. Role-specific rules (loan
limit, loan length, reservation priority, permissions) are resolved through
:mod:`library_circulation.policy` rather than through a subclass per role.

The engine mutates a user in three ways only: a loan is added, a loan is
removed, or the pending fine total changes.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .. import policy
from ..enums import UserRole


class User(BaseModel):
    """
    Represents a library user who can borrow and reserve resources.

    The set of active loan ids never grows past the role's loan limit, and a
    user with any unpaid fine cannot take a new loan.
    """

    id: str = Field(
        ...,
        description="Unique identifier for the user",
        pattern=r"^user_[a-zA-Z0-9_]{3,}$",
        examples=["user_smith001", "user_doe_jane"],
    )

    name: str = Field(
        ...,
        description="Full name of the user",
        min_length=2,
        max_length=200,
        examples=["Ana Torres", "Luis Quispe"],
    )

    email: EmailStr = Field(
        ...,
        description="Email address for notifications",
        examples=["ana.torres@example.edu"],
    )

    role: UserRole = Field(
        default=UserRole.STUDENT,
        description="Role tag that selects the user's circulation policy",
    )

    coordinator: bool = Field(
        default=False,
        description="Whether a faculty member coordinates a department",
    )

    active: bool = Field(
        default=True,
        description="Whether the user may use the library",
    )

    registered_on: date = Field(
        default_factory=date.today,
        description="Date the user registered",
    )

    active_loan_ids: list[str] = Field(
        default_factory=list,
        description="IDs of loans currently open for this user",
    )

    loan_history: list[str] = Field(
        default_factory=list,
        description="IDs of every loan ever issued to this user",
    )

    pending_fines: float = Field(
        default=0.0,
        description="Total unpaid fines",
        ge=0.0,
    )

    @field_validator("active_loan_ids")
    @classmethod
    def dedupe_loans(cls, v: list[str]) -> list[str]:
        """Active loans are a set; keep first-seen order."""
        return list(dict.fromkeys(v))

    # === Policy ===

    @property
    def role_policy(self) -> policy.UserPolicy:
        return policy.user_policy(self)

    @property
    def loan_limit(self) -> int | None:
        """Maximum simultaneous loans, or None when unbounded."""
        return self.role_policy.loan_limit

    @property
    def loan_days(self) -> int:
        return self.role_policy.loan_days

    @property
    def priority(self) -> int:
        return self.role_policy.priority

    @property
    def permissions(self) -> frozenset[str]:
        return self.role_policy.permissions

    def has_permission(self, operation: str) -> bool:
        return operation in self.role_policy.permissions

    # === Loans ===

    @property
    def at_loan_limit(self) -> bool:
        limit = self.loan_limit
        return limit is not None and len(self.active_loan_ids) >= limit

    @property
    def can_take_loan(self) -> bool:
        """Check if the user can take one more loan."""
        return self.active and not self.at_loan_limit and self.pending_fines == 0

    def add_loan(self, loan_id: str) -> bool:
        """Register an open loan. Returns False if the user cannot take it."""
        if not self.can_take_loan:
            return False
        self.active_loan_ids.append(loan_id)
        self.loan_history.append(loan_id)
        return True

    def remove_loan(self, loan_id: str) -> bool:
        if loan_id not in self.active_loan_ids:
            return False
        self.active_loan_ids.remove(loan_id)
        return True

    # === Fines ===

    def add_fine(self, amount: float) -> None:
        """Add a fine to the user's account."""
        if amount < 0:
            raise ValueError("Fine amount must be positive")
        self.pending_fines = round(self.pending_fines + amount, 2)

    def adjust_fines(self, delta: float) -> None:
        """Apply a signed correction to the pending total, never below zero."""
        self.pending_fines = max(0.0, round(self.pending_fines + delta, 2))

    def settle_fines(self, amount: float) -> bool:
        """
        Record a fine payment.

        Returns:
            True if the payment cleared every pending fine
        """
        if amount < 0:
            raise ValueError("Payment amount must be positive")
        if amount >= self.pending_fines:
            self.pending_fines = 0.0
            return True
        self.pending_fines = round(self.pending_fines - amount, 2)
        return False

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        str_strip_whitespace=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "id": "user_smith001",
                "name": "Ana Torres",
                "email": "ana.torres@example.edu",
                "role": "student",
                "coordinator": False,
                "active": True,
                "active_loan_ids": [],
                "pending_fines": 0.0,
            }
        },
    )
