"""
Circulation service for the library circulation engine.

The service is the composition root: it owns the id-indexed collections of
users, resources, loans, reservations and fines, and orchestrates every
operation that touches more than one of them.

1. **Loans**: issuing against the user's loan limit, renewing, returning
2. **Reservations**: requesting, confirming, cancelling, completing
3. **Fines**: paying, discounting and surcharging, with the user's pending
   total kept in step
4. **Expiry**: an explicit sweep that retires stale queue entries and
   reservations

The engine holds everything in memory. Durable storage, notification
delivery and the user interface are collaborators that read and write these
entities through their public fields.

Time comes from an injected clock so every operation is deterministic.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from .config import CirculationSettings, get_config
from .enums import ResourceKind
from .exceptions import CirculationError, InvalidAmount, NotFoundError
from .models.fine import Fine
from .models.loan import Loan, ReturnOutcome
from .models.reservation import Reservation
from .models.resource import Resource
from .models.user import User
from .observability import configure_logging, trace_operation
from .observability.metrics import (
    record_fine_event,
    record_loan_event,
    record_reservation_event,
)

logger = logging.getLogger(__name__)


class CirculationService:
    """
    Orchestrates loans, reservations and fines over registered entities.

    Every user's active loan count stays within their role's loan limit
    after each issue and return.
    """

    def __init__(
        self,
        settings: CirculationSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize with settings and a clock returning the current time."""
        self.settings = settings or get_config()
        self.clock = clock
        configure_logging(self.settings)
        self.users: dict[str, User] = {}
        self.resources: dict[str, Resource] = {}
        self.loans: dict[str, Loan] = {}
        self.reservations: dict[str, Reservation] = {}
        self.fines: dict[str, Fine] = {}

    # === Registry ===

    def register_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def register_resource(self, resource: Resource) -> Resource:
        """Register a resource, applying the configured queue limits to physical copies."""
        if resource.kind == ResourceKind.PHYSICAL:
            queue = resource.reservation_queue
            queue.capacity = self.settings.queue_capacity
            queue.entry_ttl_hours = self.settings.queue_entry_ttl_hours
        self.resources[resource.id] = resource
        return resource

    def get_user(self, user_id: str) -> User:
        try:
            return self.users[user_id]
        except KeyError:
            raise NotFoundError(f"User {user_id} is not registered") from None

    def get_resource(self, resource_id: str) -> Resource:
        try:
            return self.resources[resource_id]
        except KeyError:
            raise NotFoundError(f"Resource {resource_id} is not registered") from None

    def _registered(self, user: User, resource: Resource) -> tuple[User, Resource]:
        # Always operate on the authoritative records held by the service.
        return self.get_user(user.id), self.get_resource(resource.id)

    # === Loans ===

    @trace_operation("issue_loan")
    def issue_loan(self, user: User, resource: Resource) -> Loan:
        """
        Lend ``resource`` to ``user``.

        Raises:
            CapacityExceeded: If the user is at their loan limit, inactive or has unpaid fines
            ResourceUnavailable: If the resource cannot be lent right now
            NotFoundError: If either entity is not registered
        """
        user, resource = self._registered(user, resource)
        now = self.clock()

        try:
            loan = Loan.open(user, resource, now, max_renewals=self.settings.max_renewals)
        except CirculationError as e:
            logger.warning("Loan of %s to %s refused: %s", resource.id, user.id, e)
            raise

        self.loans[loan.id] = loan
        if resource.kind == ResourceKind.PHYSICAL:
            self._settle_borrower_reservations(user, resource, loan, now)

        record_loan_event("issued", resource.kind)
        return loan

    @trace_operation("return_loan")
    def return_loan(self, loan: Loan, condition: str | None = None) -> ReturnOutcome:
        """
        Close a loan, assessing a fine if it is late.

        Raises:
            InvalidTransition: If the loan is already closed
        """
        user = self.get_user(loan.user_id)
        resource = self.get_resource(loan.resource_id)

        outcome = loan.return_resource(user, resource, self.clock(), condition=condition)
        if outcome.fine is not None:
            self.fines[outcome.fine.id] = outcome.fine
            record_fine_event("assessed", outcome.fine.amount)

        record_loan_event("returned", resource.kind)
        return outcome

    @trace_operation("renew_loan")
    def renew_loan(self, loan: Loan) -> bool:
        resource = self.get_resource(loan.resource_id)
        renewed = loan.renew(resource, self.clock())
        if renewed:
            record_loan_event("renewed", resource.kind)
        return renewed

    def active_loans_for(self, user: User) -> list[Loan]:
        return [self.loans[loan_id] for loan_id in user.active_loan_ids if loan_id in self.loans]

    def overdue_loans(self) -> list[Loan]:
        today = self.clock().date()
        return [loan for loan in self.loans.values() if loan.is_overdue(today)]

    # === Reservations ===

    @trace_operation("request_reservation")
    def request_reservation(self, user: User, resource: Resource) -> Reservation:
        """Reserve ``resource`` for ``user``. Unreservable requests come back cancelled."""
        user, resource = self._registered(user, resource)
        reservation = Reservation.request(
            user,
            resource,
            self.clock(),
            window_hours=self.settings.reservation_window_hours,
        )
        self.reservations[reservation.id] = reservation
        record_reservation_event(str(reservation.state))
        return reservation

    @trace_operation("confirm_reservation")
    def confirm_reservation(self, reservation: Reservation) -> bool:
        confirmed = reservation.confirm(
            self.clock(), window_hours=self.settings.confirmation_window_hours
        )
        if confirmed:
            record_reservation_event("confirmed")
        return confirmed

    @trace_operation("cancel_reservation")
    def cancel_reservation(self, reservation: Reservation) -> bool:
        resource = self.get_resource(reservation.resource_id)
        queue = resource.reservation_queue if resource.kind == ResourceKind.PHYSICAL else None
        return reservation.cancel(queue)

    @trace_operation("complete_reservation")
    def complete_reservation(self, reservation: Reservation) -> bool:
        return reservation.complete(self.clock())

    def reservation_position(self, reservation: Reservation) -> int:
        resource = self.get_resource(reservation.resource_id)
        if resource.kind != ResourceKind.PHYSICAL:
            return 0
        return reservation.refresh_position(resource.reservation_queue, self.clock())

    def _settle_borrower_reservations(
        self, user: User, resource: Resource, loan: Loan, now: datetime
    ) -> None:
        """
        Close the borrower's own claims on a copy they just borrowed.

        A confirmed reservation is completed by the loan. Any other live
        reservation is expired or cancelled, and the borrower leaves the
        copy's queue so they never wait behind their own loan.
        """
        queue = resource.reservation_queue
        for reservation in self._live_reservations(user.id, resource.id):
            if reservation.complete(now):
                logger.info("Reservation %s fulfilled by loan %s", reservation.id, loan.id)
                record_reservation_event("completed")
            elif reservation.expire(now):
                record_reservation_event("expired")
            elif reservation.cancel(queue):
                logger.info("Reservation %s withdrawn by loan %s", reservation.id, loan.id)
                record_reservation_event("cancelled")

        if queue.cancel(user.id):
            logger.debug("Removed %s from the queue of %s after borrowing", user.id, resource.id)

    def _live_reservations(self, user_id: str, resource_id: str) -> list[Reservation]:
        return [
            reservation
            for reservation in self.reservations.values()
            if reservation.user_id == user_id
            and reservation.resource_id == resource_id
            and reservation.is_live
        ]

    # === Fines ===

    @trace_operation("pay_fine")
    def pay_fine(self, fine: Fine, amount: float, method: str) -> bool:
        """
        Pay a fine in full and clear it from the user's pending total.

        Raises:
            InvalidAmount: If the amount is negative
        """
        if amount < 0:
            raise InvalidAmount(f"Payment amount must be positive, got {amount}")

        owed = fine.amount
        if not fine.pay(amount, method, self.clock().date()):
            return False

        user = self._fine_owner(fine)
        if user is not None:
            user.settle_fines(owed)
        record_fine_event("paid", owed)
        return True

    @trace_operation("discount_fine")
    def discount_fine(self, fine: Fine, percentage: float) -> bool:
        before = fine.amount
        if not fine.apply_discount(percentage):
            return False
        user = self._fine_owner(fine)
        if user is not None:
            user.adjust_fines(fine.amount - before)
        return True

    @trace_operation("surcharge_fine")
    def surcharge_fine(self, fine: Fine, days: int, daily_rate: float) -> None:
        """
        Add a surcharge for extra days late.

        Raises:
            InvalidAmount: If days or rate are negative
        """
        if days < 0 or daily_rate < 0:
            raise InvalidAmount("Surcharge days and rate must not be negative")

        before = fine.amount
        fine.add_late_surcharge(days, daily_rate)
        user = self._fine_owner(fine)
        if user is not None:
            user.adjust_fines(fine.amount - before)

    def unpaid_fines_for(self, user: User) -> list[Fine]:
        loan_ids = set(user.loan_history)
        return [fine for fine in self.fines.values() if not fine.paid and fine.loan_id in loan_ids]

    def overdue_fines(self) -> list[Fine]:
        today = self.clock().date()
        grace = self.settings.fine_payment_grace_days
        return [fine for fine in self.fines.values() if fine.is_overdue_for_payment(today, grace)]

    def _fine_owner(self, fine: Fine) -> User | None:
        loan = self.loans.get(fine.loan_id)
        if loan is None:
            return None
        return self.users.get(loan.user_id)

    # === Expiry ===

    def sweep_expired(self) -> int:
        """
        Retire everything whose expiry has passed.

        Purges expired entries from every physical copy's queue and moves
        expired reservations to EXPIRED. Intended to be driven by an external
        scheduler; nothing in the engine runs it on a timer.

        Returns:
            Number of queue entries and reservations retired
        """
        now = self.clock()
        retired = 0
        for resource in self.resources.values():
            if resource.kind == ResourceKind.PHYSICAL:
                retired += resource.reservation_queue.purge_expired(now)

        for reservation in self.reservations.values():
            if reservation.expire(now):
                retired += 1
                record_reservation_event("expired")

        if retired:
            logger.info("Expiry sweep retired %d records", retired)
        return retired
