"""
Loan model for the library circulation engine.

A loan lends one resource to one user for a bounded period:

    active --renew--> renewed --renew--> renewed
      |                  |
      +------return------+--> returned

``overdue`` is never stored. It is derived on read whenever an open loan is
past its due date, so checking whether a loan is late never mutates it.
``cancelled`` is terminal and unused by the normal flow.

The loan holds only the ids of its user and resource. Operations that need
the records themselves take them as arguments.
"""

import logging
from datetime import date, datetime, timedelta
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .. import policy
from ..enums import LoanState, ResourceCondition, ResourceKind
from ..exceptions import CapacityExceeded, InvalidTransition, ResourceUnavailable
from .fine import Fine
from .resource import Resource
from .user import User

logger = logging.getLogger(__name__)

MAX_RENEWALS = 2

OPEN_STATES = (LoanState.ACTIVE, LoanState.RENEWED)


def _new_loan_id() -> str:
    return f"loan_{uuid4().hex[:12]}"


class ReturnOutcome(BaseModel):
    """What happened when a loan was closed."""

    loan: "Loan"

    fine: Fine | None = None
    notify_user_id: str | None = Field(
        None,
        description="User at the head of the reservation queue who should be told the copy is back",
    )


class Loan(BaseModel):
    """
    Represents a resource lent to a user.

    The due date is always the issue (or renewal) date plus the lesser of
    the user's and the resource's loan periods.
    """

    id: str = Field(
        default_factory=_new_loan_id,
        description="Unique identifier for the loan",
        pattern=r"^loan_[a-zA-Z0-9]{6,}$",
    )

    user_id: str = Field(..., description="ID of the borrowing user")

    resource_id: str = Field(..., description="ID of the lent resource")

    issued_on: date = Field(default_factory=date.today, description="Date the loan was issued")

    due_on: date = Field(..., description="Date the resource must be returned")

    returned_on: date | None = Field(None, description="Date the resource came back")

    loan_days: int = Field(
        ...,
        description="Loan period in days: the lesser of the user's and the resource's",
        ge=1,
    )

    renewal_count: int = Field(default=0, description="Renewals so far", ge=0)

    max_renewals: int = Field(default=MAX_RENEWALS, description="Renewal cap", ge=0)

    state: LoanState = Field(default=LoanState.ACTIVE, description="Stored loan state")

    fine: Fine | None = Field(None, description="Fine generated by a late return")

    @model_validator(mode="after")
    def validate_dates(self) -> "Loan":
        if self.due_on < self.issued_on:
            raise ValueError("Due date cannot be before issue date")
        if self.returned_on and self.returned_on < self.issued_on:
            raise ValueError("Return date cannot be before issue date")
        if self.renewal_count > self.max_renewals:
            raise ValueError("Renewal count cannot exceed the renewal cap")
        return self

    # === Creation ===

    @classmethod
    def open(
        cls,
        user: User,
        resource: Resource,
        now: datetime | None = None,
        max_renewals: int = MAX_RENEWALS,
    ) -> "Loan":
        """
        Issue a new loan of ``resource`` to ``user``.

        Raises:
            CapacityExceeded: If the user is inactive, at their loan limit or
                has unpaid fines
            ResourceUnavailable: If the resource cannot be lent right now
        """
        today = (now or datetime.now()).date()

        if not user.can_take_loan:
            if not user.active:
                reason = "account is inactive"
            elif user.pending_fines > 0:
                reason = f"unpaid fines of {user.pending_fines:.2f}"
            else:
                reason = f"loan limit of {user.loan_limit} reached"
            raise CapacityExceeded(f"User {user.id} cannot take a loan: {reason}")

        if not resource.is_lendable():
            raise ResourceUnavailable(f"Resource {resource.id} is not available for loan")

        loan_days = policy.loan_days_for(user, resource)
        loan = cls(
            user_id=user.id,
            resource_id=resource.id,
            issued_on=today,
            due_on=today + timedelta(days=loan_days),
            loan_days=loan_days,
            max_renewals=max_renewals,
        )
        resource.mark_lent(today)
        user.add_loan(loan.id)
        logger.info(
            "Issued loan %s: %s borrowed %s until %s",
            loan.id,
            user.id,
            resource.id,
            loan.due_on,
        )
        return loan

    # === Derived state ===

    @property
    def is_open(self) -> bool:
        return self.state in OPEN_STATES

    def current_state(self, today: date | None = None) -> LoanState:
        """Stored state, or OVERDUE when an open loan is past its due date."""
        if self.is_open and (today or date.today()) > self.due_on:
            return LoanState.OVERDUE
        return LoanState(self.state)

    def is_overdue(self, today: date | None = None) -> bool:
        return self.current_state(today) == LoanState.OVERDUE

    def days_remaining(self, today: date | None = None) -> int:
        """Days until the due date; 0 once closed or past due."""
        if not self.is_open:
            return 0
        return max(0, (self.due_on - (today or date.today())).days)

    def days_late(self, today: date | None = None) -> int:
        """Days past the due date, measured to the return date once returned."""
        if self.returned_on is None and not self.is_open:
            return 0
        end = self.returned_on or today or date.today()
        return max(0, (end - self.due_on).days)

    @property
    def loan_period_days(self) -> int:
        return (self.due_on - self.issued_on).days

    # === Transitions ===

    def renew(self, resource: Resource, now: datetime | None = None) -> bool:
        """
        Extend the loan from today by its loan period.

        Returns False (and changes nothing) when the loan is closed or overdue,
        the renewal cap is reached, or the resource is not renewable right now.
        """
        now = now or datetime.now()
        today = now.date()
        state = self.current_state(today)

        if state not in OPEN_STATES:
            logger.warning("Loan %s cannot be renewed from state %s", self.id, state)
            return False
        if self.renewal_count >= self.max_renewals:
            logger.warning("Loan %s reached the renewal limit (%d)", self.id, self.max_renewals)
            return False
        if not resource.is_renewable(now):
            logger.warning("Resource %s cannot be renewed right now", resource.id)
            return False

        self.renewal_count += 1
        self.due_on = today + timedelta(days=self.loan_days)
        self.state = LoanState.RENEWED
        logger.info(
            "Renewed loan %s until %s (%d/%d)",
            self.id,
            self.due_on,
            self.renewal_count,
            self.max_renewals,
        )
        return True

    def return_resource(
        self,
        user: User,
        resource: Resource,
        now: datetime | None = None,
        condition: ResourceCondition | str | None = None,
    ) -> ReturnOutcome:
        """
        Close the loan.

        Args:
            user: The borrowing user
            resource: The lent resource
            now: Time of return
            condition: Physical condition reported at the desk, if it changed

        Returns:
            The outcome: this loan, a fine if one was assessed, and the user to
            notify from the resource's reservation queue

        Raises:
            InvalidTransition: If the loan is already closed
        """
        now = now or datetime.now()
        today = now.date()

        if not self.is_open:
            raise InvalidTransition(f"Loan {self.id} cannot be returned from state {self.state}")

        if condition is not None and resource.kind == ResourceKind.PHYSICAL:
            resource.condition = condition

        self.returned_on = today
        resource.mark_returned()
        user.remove_loan(self.id)

        fine = None
        days_late = (today - self.due_on).days
        if days_late > 0:
            amount = resource.calculate_fine(days_late)
            if amount > 0:
                fine = Fine(loan_id=self.id, amount=amount, generated_on=today)
                self.fine = fine
                user.add_fine(amount)
                logger.info(
                    "Loan %s returned %d days late: fined %.2f", self.id, days_late, amount
                )

        notify_user_id = None
        if resource.kind == ResourceKind.PHYSICAL:
            notify_user_id = resource.reservation_queue.dequeue_head(now)
            if notify_user_id:
                logger.info("Copy %s is back: notify %s", resource.id, notify_user_id)

        self.state = LoanState.RETURNED
        return ReturnOutcome(loan=self, fine=fine, notify_user_id=notify_user_id)

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "id": "loan_8b2d4f6a1c3e",
                "user_id": "user_smith001",
                "resource_id": "res_quijote01",
                "issued_on": "2024-03-01",
                "due_on": "2024-03-08",
                "state": "active",
                "renewal_count": 0,
                "max_renewals": 2,
            }
        },
    )


ReturnOutcome.model_rebuild()
