"""
Reservation queue owned by a physical copy.

Each physical copy keeps its own ordered queue of users waiting for it.
Entries are ranked by priority (highest first) and then by the time they were
enqueued (earliest first). A monotonically increasing sequence number breaks
any remaining tie so the order is strict.

Every entry carries its own expiry clock, fixed at enqueue time. It is
independent of the expiry window of the user-facing ``Reservation`` that
created it.

Mutations (``enqueue``, ``dequeue_head``, ``cancel``, ``purge_expired``) take
the queue's lock so that concurrent callers on the same copy are serialised.
Queues of different copies share nothing.
"""

import logging
import threading
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_CAPACITY = 10
DEFAULT_ENTRY_TTL_HOURS = 48


class ReservationQueueEntry(BaseModel):
    """A user waiting in a physical copy's reservation queue."""

    user_id: str = Field(..., description="ID of the waiting user", min_length=1)

    priority: int = Field(..., description="Queue priority copied from the user's role", ge=0)

    enqueued_at: datetime = Field(..., description="When the user joined the queue")

    expires_at: datetime = Field(..., description="When this entry stops being live")

    sequence: int = Field(default=0, description="Insertion order tiebreak", ge=0)

    @property
    def token(self) -> str:
        """Opaque reservation token handed back to the caller."""
        return f"{self.user_id}:{self.enqueued_at.isoformat()}"

    @property
    def sort_key(self) -> tuple[int, datetime, int]:
        return (-self.priority, self.enqueued_at, self.sequence)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    model_config = ConfigDict(frozen=True)


class ReservationQueue(BaseModel):
    """
    Priority-ordered reservation queue for one physical copy.

    Read operations (``position``, ``pending_count``, ``has_pending``,
    ``peek``) ignore expired entries without removing them, so a read never
    reports a stale entry as live and never has side effects.
    """

    entries: list[ReservationQueueEntry] = Field(
        default_factory=list,
        description="Entries in queue order",
    )

    capacity: int = Field(
        default=DEFAULT_QUEUE_CAPACITY,
        description="Maximum number of live entries",
        ge=1,
    )

    entry_ttl_hours: int = Field(
        default=DEFAULT_ENTRY_TTL_HOURS,
        description="Hours an entry stays live after it is enqueued",
        ge=1,
    )

    _lock: threading.RLock = PrivateAttr(default_factory=threading.RLock)
    _sequence: int = PrivateAttr(default=0)

    def _live(self, now: datetime | None) -> list[ReservationQueueEntry]:
        now = now or datetime.now()
        with self._lock:
            return [entry for entry in self.entries if not entry.is_expired(now)]

    # === Mutations ===

    def purge_expired(self, now: datetime | None = None) -> int:
        """Remove expired entries and return how many were dropped."""
        with self._lock:
            live = self._live(now)
            dropped = len(self.entries) - len(live)
            if dropped:
                self.entries = live
                logger.debug("Purged %d expired reservation queue entries", dropped)
            return dropped

    def enqueue(
        self,
        user_id: str,
        priority: int,
        resource_available: bool,
        now: datetime | None = None,
    ) -> str | None:
        """
        Add a user to the queue in priority order.

        Args:
            user_id: ID of the user to queue
            priority: User's reservation priority (higher is served first)
            resource_available: Whether the copy can be borrowed right now
            now: Current time

        Returns:
            An opaque reservation token, or None when the copy is available,
            the queue is full or the user is already queued
        """
        now = now or datetime.now()
        with self._lock:
            self.purge_expired(now)

            if resource_available:
                logger.debug("Refusing queue entry for %s: copy is available", user_id)
                return None
            if len(self.entries) >= self.capacity:
                logger.debug("Refusing queue entry for %s: queue is full", user_id)
                return None
            if any(entry.user_id == user_id for entry in self.entries):
                logger.debug("Refusing queue entry for %s: already queued", user_id)
                return None

            self._sequence += 1
            entry = ReservationQueueEntry(
                user_id=user_id,
                priority=priority,
                enqueued_at=now,
                expires_at=now + timedelta(hours=self.entry_ttl_hours),
                sequence=self._sequence,
            )
            self.entries = sorted([*self.entries, entry], key=lambda e: e.sort_key)
            return entry.token

    def dequeue_head(self, now: datetime | None = None) -> str | None:
        """Purge expired entries, then pop and return the head's user id."""
        with self._lock:
            self.purge_expired(now)
            if not self.entries:
                return None
            head, *rest = self.entries
            self.entries = rest
            return head.user_id

    def cancel(self, user_id: str) -> int:
        """Remove every entry for ``user_id``. Safe to call repeatedly."""
        with self._lock:
            remaining = [entry for entry in self.entries if entry.user_id != user_id]
            removed = len(self.entries) - len(remaining)
            self.entries = remaining
            return removed

    def cancel_token(self, token: str) -> int:
        """Remove only the entry a token was issued for. Safe to call repeatedly."""
        with self._lock:
            remaining = [entry for entry in self.entries if entry.token != token]
            removed = len(self.entries) - len(remaining)
            self.entries = remaining
            return removed

    # === Reads ===

    def position(self, user_id: str, now: datetime | None = None) -> int:
        """1-based rank of ``user_id`` among live entries, 0 if absent."""
        for index, entry in enumerate(self._live(now), start=1):
            if entry.user_id == user_id:
                return index
        return 0

    def peek(self, now: datetime | None = None) -> str | None:
        """User id at the head of the queue without removing it."""
        live = self._live(now)
        return live[0].user_id if live else None

    def pending_count(self, now: datetime | None = None) -> int:
        return len(self._live(now))

    def has_pending(self, now: datetime | None = None) -> bool:
        return self.pending_count(now) > 0
