"""
Fine model for the library circulation engine.

A fine is created by a loan that was returned late and belongs to that loan.
Its amount can be discounted or surcharged until it is paid; after payment it
is frozen and kept so a receipt can be produced later.
"""

import logging
from datetime import date, timedelta
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ..enums import FineStatus

logger = logging.getLogger(__name__)

PAYMENT_GRACE_DAYS = 30


def _new_fine_id() -> str:
    return f"fine_{uuid4().hex[:12]}"


def _new_transaction_ref() -> str:
    return f"TXN-{uuid4().hex[:16].upper()}"


class Fine(BaseModel):
    """
    Represents a monetary penalty for a late return.

    Payment is all-or-nothing: a payment below the owed amount is refused
    and leaves the fine untouched.
    """

    id: str = Field(
        default_factory=_new_fine_id,
        description="Unique identifier for the fine",
        pattern=r"^fine_[a-zA-Z0-9]{6,}$",
    )

    loan_id: str = Field(
        ...,
        description="ID of the loan that generated this fine",
        pattern=r"^loan_[a-zA-Z0-9]{6,}$",
    )

    amount: float = Field(..., description="Amount owed", ge=0.0)

    reason: str = Field(
        default="Late return",
        description="Why the fine was assessed",
        max_length=500,
    )

    generated_on: date = Field(
        default_factory=date.today,
        description="Date the fine was assessed",
    )

    paid: bool = Field(default=False, description="Whether the fine has been settled")

    paid_on: date | None = Field(None, description="Date of payment")

    payment_method: str | None = Field(None, description="How the fine was paid", max_length=50)

    transaction_ref: str | None = Field(None, description="Payment transaction reference")

    adjustments: list[str] = Field(
        default_factory=list,
        description="Discounts and surcharges applied, in order",
    )

    def pay(self, amount: float, method: str, today: date | None = None) -> bool:
        """
        Settle the fine.

        Args:
            amount: Amount tendered
            method: Payment method (cash, card, transfer...)
            today: Payment date

        Returns:
            False if already paid or the amount does not cover the fine
        """
        if self.paid:
            logger.warning("Fine %s is already paid", self.id)
            return False
        if amount < self.amount:
            logger.warning(
                "Payment of %.2f does not cover fine %s of %.2f", amount, self.id, self.amount
            )
            return False

        self.paid = True
        self.paid_on = today or date.today()
        self.payment_method = method
        self.transaction_ref = _new_transaction_ref()
        logger.info("Fine %s paid by %s (%s)", self.id, method, self.transaction_ref)
        return True

    def apply_discount(self, percentage: float) -> bool:
        """Reduce the amount by ``percentage`` percent (0-100)."""
        if self.paid or not 0 <= percentage <= 100:
            return False

        self.amount = round(self.amount - self.amount * percentage / 100, 2)
        self.adjustments.append(f"discount {percentage:.1f}%")
        return True

    def add_late_surcharge(self, days: int, daily_rate: float) -> None:
        """Add ``days * daily_rate`` for additional days late; no-op once paid."""
        if self.paid:
            return
        self.amount = round(self.amount + days * daily_rate, 2)
        self.adjustments.append(f"+{days} days")

    def days_since_generation(self, today: date | None = None) -> int:
        return ((today or date.today()) - self.generated_on).days

    def is_overdue_for_payment(
        self, today: date | None = None, grace_days: int = PAYMENT_GRACE_DAYS
    ) -> bool:
        """True if unpaid and more than ``grace_days`` days old."""
        return not self.paid and self.days_since_generation(today) > grace_days

    def payment_due_on(self, grace_days: int = PAYMENT_GRACE_DAYS) -> date:
        return self.generated_on + timedelta(days=grace_days)

    def status(self, today: date | None = None, grace_days: int = PAYMENT_GRACE_DAYS) -> FineStatus:
        if self.paid:
            return FineStatus.PAID
        if self.is_overdue_for_payment(today, grace_days):
            return FineStatus.OVERDUE
        return FineStatus.PENDING

    def receipt(self) -> str | None:
        """Formatted payment receipt, or None while unpaid."""
        if not self.paid:
            return None

        reason = self.reason
        if self.adjustments:
            reason = f"{reason} ({', '.join(self.adjustments)})"
        return (
            "PAYMENT RECEIPT\n"
            f"Fine: {self.id}\n"
            f"Loan: {self.loan_id}\n"
            f"Reason: {reason}\n"
            f"Amount: {self.amount:.2f}\n"
            f"Paid on: {self.paid_on.isoformat()}\n"
            f"Method: {self.payment_method}\n"
            f"Transaction: {self.transaction_ref}\n"
        )

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "id": "fine_3f9a1c2b7d4e",
                "loan_id": "loan_8b2d4f6a1c3e",
                "amount": 3.0,
                "reason": "Late return",
                "generated_on": "2024-03-01",
                "paid": False,
            }
        },
    )
