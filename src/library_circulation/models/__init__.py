"""
Circulation models.

These Pydantic models are the entities the circulation engine operates on:

- User: a library user tagged with a role
- PhysicalCopy, DigitalCopy, AudioCopy: lendable resources, unified as ``Resource``
- ReservationQueue: the ordered waiting line owned by a physical copy
- Loan: the loan state machine
- Reservation: the user-facing reservation state machine
- Fine: a penalty for a late return
"""

from .fine import Fine
from .loan import Loan, ReturnOutcome
from .queue import ReservationQueue, ReservationQueueEntry
from .reservation import Reservation
from .resource import AudioCopy, DigitalCopy, PhysicalCopy, Resource, resource_adapter
from .user import User

__all__ = [
    "AudioCopy",
    "DigitalCopy",
    "Fine",
    "Loan",
    "PhysicalCopy",
    "Reservation",
    "ReservationQueue",
    "ReservationQueueEntry",
    "Resource",
    "ReturnOutcome",
    "User",
    "resource_adapter",
]
