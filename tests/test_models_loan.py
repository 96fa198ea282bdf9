"""
Tests for the Loan model.

These tests verify that loans correctly:
1. Enforce the user's loan limit and the resource's availability
2. Compute due dates from the lesser loan period
3. Derive the overdue state without storing it
4. Renew at most twice, and never while someone is waiting
5. Assess fines on late return and hand the copy to the next user in line
"""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from library_circulation.enums import LoanState
from library_circulation.exceptions import (
    CapacityExceeded,
    InvalidTransition,
    ResourceUnavailable,
)
from library_circulation.models import Loan, PhysicalCopy

from .conftest import START

TODAY = START.date()


def _copies(count):
    return [PhysicalCopy(id=f"res_copy{i:03d}", title=f"Copy {i}") for i in range(count)]


class TestLoanCreation:
    """Test suite for issuing loans."""

    def test_open_loan(self, student, physical_copy):
        """Test issuing a loan of a physical copy to a student."""
        loan = Loan.open(student, physical_copy, START)

        assert loan.id.startswith("loan_")
        assert loan.user_id == student.id
        assert loan.resource_id == physical_copy.id
        assert loan.issued_on == TODAY
        assert loan.due_on == TODAY + timedelta(days=7)
        assert loan.state == LoanState.ACTIVE
        assert loan.renewal_count == 0
        assert loan.loan_period_days == 7

        assert physical_copy.available is False
        assert physical_copy.times_lent == 1
        assert physical_copy.last_lent_on == TODAY
        assert student.active_loan_ids == [loan.id]
        assert student.loan_history == [loan.id]

    def test_due_date_uses_lesser_period(self, student, digital_copy, faculty, audio_copy):
        """Test that a student's e-book loan lasts 7 days, not 14."""
        assert Loan.open(student, digital_copy, START).due_on == TODAY + timedelta(days=7)
        assert Loan.open(faculty, audio_copy, START).due_on == TODAY + timedelta(days=15)

    def test_loan_limit_enforced(self, student):
        """Test that a student cannot hold a fourth loan."""
        copies = _copies(4)
        for copy in copies[:3]:
            Loan.open(student, copy, START)

        with pytest.raises(CapacityExceeded) as exc_info:
            Loan.open(student, copies[3], START)

        assert "loan limit" in str(exc_info.value)
        assert len(student.active_loan_ids) == 3
        assert copies[3].available is True

    def test_librarian_has_no_limit(self, librarian):
        """Test that a librarian can hold any number of loans."""
        for copy in _copies(20):
            Loan.open(librarian, copy, START)
        assert len(librarian.active_loan_ids) == 20

    def test_unpaid_fines_block_loans(self, student, physical_copy):
        """Test that a user with pending fines cannot borrow."""
        student.add_fine(2.0)
        with pytest.raises(CapacityExceeded) as exc_info:
            Loan.open(student, physical_copy, START)
        assert "unpaid fines" in str(exc_info.value)

    def test_inactive_user_blocked(self, student, physical_copy):
        """Test that an inactive account cannot borrow."""
        student.active = False
        with pytest.raises(CapacityExceeded):
            Loan.open(student, physical_copy, START)

    def test_unavailable_copy(self, student, second_student, physical_copy):
        """Test that a copy out on loan cannot be lent again."""
        Loan.open(student, physical_copy, START)
        with pytest.raises(ResourceUnavailable):
            Loan.open(second_student, physical_copy, START)
        assert second_student.active_loan_ids == []

    def test_damaged_copy_not_lendable(self, student, physical_copy):
        """Test that a damaged copy cannot be lent."""
        physical_copy.condition = "damaged"
        with pytest.raises(ResourceUnavailable):
            Loan.open(student, physical_copy, START)

    def test_digital_copy_lent_concurrently(self, student, faculty, digital_copy):
        """Test that an e-book can be lent to several users at once."""
        Loan.open(student, digital_copy, START)
        Loan.open(faculty, digital_copy, START)
        assert digital_copy.downloads == 2
        assert digital_copy.times_lent == 2

    def test_due_date_validation(self):
        """Test that due date cannot precede the issue date."""
        with pytest.raises(ValidationError) as exc_info:
            Loan(
                user_id="user_student01",
                resource_id="res_quijote01",
                issued_on=date(2024, 3, 10),
                due_on=date(2024, 3, 1),
                loan_days=7,
            )
        assert "Due date cannot be before issue date" in str(exc_info.value)

    def test_renewal_count_validation(self):
        """Test that the renewal count cannot exceed the cap."""
        with pytest.raises(ValidationError):
            Loan(
                user_id="user_student01",
                resource_id="res_quijote01",
                issued_on=TODAY,
                due_on=TODAY + timedelta(days=7),
                loan_days=7,
                renewal_count=3,
            )


class TestLoanState:
    """Test suite for derived loan state."""

    def test_overdue_is_derived(self, student, physical_copy):
        """Test that reading the state never stores OVERDUE."""
        loan = Loan.open(student, physical_copy, START)

        assert loan.current_state(TODAY + timedelta(days=7)) == LoanState.ACTIVE
        assert loan.current_state(TODAY + timedelta(days=8)) == LoanState.OVERDUE
        assert loan.is_overdue(TODAY + timedelta(days=8))
        assert loan.state == LoanState.ACTIVE

    def test_days_remaining_and_late(self, student, physical_copy):
        """Test countdown and lateness in days."""
        loan = Loan.open(student, physical_copy, START)

        assert loan.days_remaining(TODAY) == 7
        assert loan.days_late(TODAY) == 0
        assert loan.days_remaining(TODAY + timedelta(days=10)) == 0
        assert loan.days_late(TODAY + timedelta(days=10)) == 3


class TestLoanRenewal:
    """Test suite for renewals."""

    def test_renew_extends_from_today(self, student, physical_copy):
        """Test that a renewal restarts the loan period from today."""
        loan = Loan.open(student, physical_copy, START)

        assert loan.renew(physical_copy, START + timedelta(days=5))
        assert loan.due_on == TODAY + timedelta(days=12)
        assert loan.renewal_count == 1
        assert loan.state == LoanState.RENEWED

    def test_at_most_two_renewals(self, student, physical_copy):
        """Test that a third renewal is refused."""
        loan = Loan.open(student, physical_copy, START)

        assert loan.renew(physical_copy, START + timedelta(days=5))
        assert loan.renew(physical_copy, START + timedelta(days=10))
        due_on = loan.due_on
        assert not loan.renew(physical_copy, START + timedelta(days=15))
        assert loan.renewal_count == 2
        assert loan.due_on == due_on

    def test_overdue_loan_cannot_renew(self, student, physical_copy):
        """Test that a late loan has to be returned instead."""
        loan = Loan.open(student, physical_copy, START)
        assert not loan.renew(physical_copy, START + timedelta(days=9))
        assert loan.renewal_count == 0

    def test_waiting_user_blocks_renewal(self, student, faculty, physical_copy):
        """Test that a physical copy someone reserved cannot be renewed."""
        loan = Loan.open(student, physical_copy, START)
        physical_copy.reservation_queue.enqueue(faculty.id, faculty.priority, False, START)

        assert not loan.renew(physical_copy, START + timedelta(days=1))
        assert loan.state == LoanState.ACTIVE

    def test_returned_loan_cannot_renew(self, student, digital_copy):
        """Test that a closed loan cannot be renewed."""
        loan = Loan.open(student, digital_copy, START)
        loan.return_resource(student, digital_copy, START)
        assert not loan.renew(digital_copy, START)


class TestLoanReturn:
    """Test suite for returns."""

    def test_on_time_return(self, student, physical_copy):
        """Test a return with no fine."""
        loan = Loan.open(student, physical_copy, START)
        outcome = loan.return_resource(student, physical_copy, START + timedelta(days=7))

        assert outcome.loan is loan
        assert outcome.fine is None
        assert outcome.notify_user_id is None
        assert loan.state == LoanState.RETURNED
        assert loan.returned_on == TODAY + timedelta(days=7)
        assert physical_copy.available is True
        assert student.active_loan_ids == []
        assert student.loan_history == [loan.id]

    def test_late_return_fined(self, student, physical_copy):
        """Test one unit per late day."""
        loan = Loan.open(student, physical_copy, START)
        outcome = loan.return_resource(student, physical_copy, START + timedelta(days=10))

        assert outcome.fine is not None
        assert outcome.fine.amount == 3.0
        assert outcome.fine.loan_id == loan.id
        assert loan.fine is outcome.fine
        assert loan.days_late() == 3
        assert student.pending_fines == 3.0

    def test_damaged_return_surcharged(self, student, physical_copy):
        """Test the damage surcharge on a late return."""
        loan = Loan.open(student, physical_copy, START)
        outcome = loan.return_resource(
            student, physical_copy, START + timedelta(days=10), condition="damaged"
        )

        assert outcome.fine.amount == 8.0
        assert physical_copy.condition == "damaged"

    def test_damaged_on_time_return_not_fined(self, student, physical_copy):
        """Test that damage alone does not generate a late fine."""
        loan = Loan.open(student, physical_copy, START)
        outcome = loan.return_resource(
            student, physical_copy, START + timedelta(days=2), condition="damaged"
        )
        assert outcome.fine is None

    def test_late_digital_return_not_fined(self, student, digital_copy):
        """Test that e-books are never fined."""
        loan = Loan.open(student, digital_copy, START)
        outcome = loan.return_resource(student, digital_copy, START + timedelta(days=30))

        assert outcome.fine is None
        assert student.pending_fines == 0.0

    def test_return_notifies_head_of_queue(self, student, faculty, second_student, physical_copy):
        """Test that the returned copy goes to the highest priority waiting user."""
        loan = Loan.open(student, physical_copy, START)
        queue = physical_copy.reservation_queue
        queue.enqueue(second_student.id, second_student.priority, False, START)
        queue.enqueue(faculty.id, faculty.priority, False, START + timedelta(hours=1))

        outcome = loan.return_resource(student, physical_copy, START + timedelta(days=1))

        assert outcome.notify_user_id == faculty.id
        assert queue.position(second_student.id, START + timedelta(days=1)) == 1

    def test_double_return_rejected(self, student, physical_copy):
        """Test that a returned loan cannot be returned again."""
        loan = Loan.open(student, physical_copy, START)
        loan.return_resource(student, physical_copy, START)

        with pytest.raises(InvalidTransition):
            loan.return_resource(student, physical_copy, START)

    def test_limit_restored_after_return(self, student):
        """Test that returning frees a slot under the loan limit."""
        copies = _copies(4)
        loans = [Loan.open(student, copy, START) for copy in copies[:3]]

        loans[0].return_resource(student, copies[0], START + timedelta(days=1))
        Loan.open(student, copies[3], START + timedelta(days=1))
        assert len(student.active_loan_ids) == 3
