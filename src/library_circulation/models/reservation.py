"""
Reservation model for the library circulation engine.

A reservation is a user's request to borrow a physical copy that is
currently out on loan:

    pending --confirm--> confirmed --complete--> completed
       |                     |
       +--> expired / cancelled <--+

A pending reservation is valid for 48 hours from creation. Confirming it
(the copy came back and the user was told) opens a fresh 24 hour pickup
window. Expiry is a pure function of the supplied time: reading a
reservation never changes it, and ``expire`` or ``confirm`` record the
transition explicitly.

Each live reservation is backed by an entry in the copy's
``ReservationQueue``. That entry has its own 48 hour clock anchored at
enqueue time; the two clocks are kept separate.
"""

import logging
from datetime import datetime, timedelta
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ..enums import ReservationState, ResourceKind
from .queue import ReservationQueue
from .resource import Resource
from .user import User

logger = logging.getLogger(__name__)

RESERVATION_WINDOW_HOURS = 48
CONFIRMATION_WINDOW_HOURS = 24

LIVE_STATES = (ReservationState.PENDING, ReservationState.CONFIRMED)


def _new_reservation_id() -> str:
    return f"reservation_{uuid4().hex[:12]}"


class Reservation(BaseModel):
    """
    Represents a user's place in line for a physical copy.

    Requesting a reservation for a resource that cannot be reserved (digital
    media, a copy sitting on the shelf, a full queue, a user already in line)
    is not an error: the reservation is simply born cancelled.
    """

    id: str = Field(
        default_factory=_new_reservation_id,
        description="Unique identifier for the reservation",
        pattern=r"^reservation_[a-zA-Z0-9]{6,}$",
    )

    user_id: str = Field(..., description="ID of the user who reserved")

    resource_id: str = Field(..., description="ID of the reserved resource")

    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the reservation was requested",
    )

    expires_at: datetime = Field(..., description="When the reservation stops being valid")

    state: ReservationState = Field(
        default=ReservationState.PENDING,
        description="Current status of the reservation",
    )

    priority: int = Field(default=0, description="Priority copied from the user's role", ge=0)

    queue_position: int = Field(
        default=0,
        description="Last known 1-based position in the queue (0 when not queued)",
        ge=0,
    )

    queue_token: str | None = Field(None, description="Token returned by the copy's queue")

    # === Creation ===

    @classmethod
    def request(
        cls,
        user: User,
        resource: Resource,
        now: datetime | None = None,
        window_hours: int = RESERVATION_WINDOW_HOURS,
    ) -> "Reservation":
        """Create a reservation and, when possible, queue the user for the copy."""
        now = now or datetime.now()
        reservation = cls(
            user_id=user.id,
            resource_id=resource.id,
            created_at=now,
            expires_at=now + timedelta(hours=window_hours),
            priority=user.priority,
        )

        if resource.kind != ResourceKind.PHYSICAL:
            logger.info("Resource %s cannot be reserved; reservation cancelled", resource.id)
            reservation.state = ReservationState.CANCELLED
            return reservation

        queue = resource.reservation_queue
        token = queue.enqueue(user.id, user.priority, resource.available, now)
        if token is None:
            logger.info(
                "Reservation of %s by %s refused by the queue; reservation cancelled",
                resource.id,
                user.id,
            )
            reservation.state = ReservationState.CANCELLED
            return reservation

        reservation.queue_token = token
        reservation.queue_position = queue.position(user.id, now)
        logger.info(
            "User %s reserved %s at position %d",
            user.id,
            resource.id,
            reservation.queue_position,
        )
        return reservation

    # === Derived state ===

    @property
    def is_live(self) -> bool:
        return self.state in LIVE_STATES

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.state == ReservationState.EXPIRED:
            return True
        if not self.is_live:
            return False
        return (now or datetime.now()) > self.expires_at

    def current_state(self, now: datetime | None = None) -> ReservationState:
        """Stored state, or EXPIRED when a live reservation's window has passed."""
        if self.is_expired(now):
            return ReservationState.EXPIRED
        return ReservationState(self.state)

    def hours_remaining(self, now: datetime | None = None) -> int:
        """Whole hours until expiry; 0 once the reservation is no longer live."""
        now = now or datetime.now()
        if not self.is_live or self.is_expired(now):
            return 0
        return int((self.expires_at - now).total_seconds() // 3600)

    def refresh_position(self, queue: ReservationQueue, now: datetime | None = None) -> int:
        """Re-read this user's position from the copy's queue."""
        self.queue_position = queue.position(self.user_id, now) if self.is_live else 0
        return self.queue_position

    # === Transitions ===

    def confirm(
        self,
        now: datetime | None = None,
        window_hours: int = CONFIRMATION_WINDOW_HOURS,
    ) -> bool:
        """
        Confirm the reservation once the copy is ready for pickup.

        An expired pending reservation is moved to EXPIRED and the
        confirmation is refused.
        """
        now = now or datetime.now()
        if self.state != ReservationState.PENDING:
            return False
        if self.is_expired(now):
            self.state = ReservationState.EXPIRED
            logger.info("Reservation %s expired before confirmation", self.id)
            return False

        self.state = ReservationState.CONFIRMED
        self.expires_at = now + timedelta(hours=window_hours)
        self.queue_position = 0
        logger.info("Reservation %s confirmed until %s", self.id, self.expires_at)
        return True

    def cancel(self, queue: ReservationQueue | None = None) -> bool:
        """
        Cancel the reservation and drop its own queue entry.

        Fails only for completed reservations. Cancelling twice is harmless.
        Entries behind the user's other reservations are left in place.
        """
        if self.state == ReservationState.COMPLETED:
            return False
        if self.state == ReservationState.CANCELLED:
            return True

        if queue is not None and self.queue_token is not None:
            queue.cancel_token(self.queue_token)
        self.state = ReservationState.CANCELLED
        self.queue_position = 0
        logger.info("Reservation %s cancelled", self.id)
        return True

    def complete(self, now: datetime | None = None) -> bool:
        """Mark a confirmed reservation as fulfilled by a loan."""
        if self.state != ReservationState.CONFIRMED or self.is_expired(now):
            return False
        self.state = ReservationState.COMPLETED
        return True

    def expire(self, now: datetime | None = None) -> bool:
        """Record expiry of a live reservation whose window has passed."""
        if not self.is_live or not self.is_expired(now):
            return False
        self.state = ReservationState.EXPIRED
        self.queue_position = 0
        return True

    def notification_message(self, now: datetime | None = None) -> str:
        """Text the notification collaborator can send to the user."""
        state = self.current_state(now)
        if state == ReservationState.PENDING:
            return (
                f"Reservation created. Position in queue: {self.queue_position}. "
                f"Expires in {self.hours_remaining(now)} hours."
            )
        if state == ReservationState.CONFIRMED:
            return (
                "Your reserved item is available. "
                f"You have {self.hours_remaining(now)} hours to pick it up."
            )
        if state == ReservationState.EXPIRED:
            return "Your reservation has expired. You may place a new one."
        if state == ReservationState.CANCELLED:
            return "Reservation cancelled."
        return "Reservation completed. Enjoy your loan."

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "id": "reservation_5c7e9a1b3d2f",
                "user_id": "user_smith001",
                "resource_id": "res_quijote01",
                "created_at": "2024-03-01T10:30:00",
                "expires_at": "2024-03-03T10:30:00",
                "state": "pending",
                "priority": 1,
                "queue_position": 1,
            }
        },
    )
