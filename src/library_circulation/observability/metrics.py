"""Custom metrics for the circulation engine."""

import logfire

loans_counter = logfire.metric_counter(
    "library.loans", description="Loan lifecycle events (issued/renewed/returned)"
)

fines_counter = logfire.metric_counter(
    "library.fines", description="Fines assessed and paid"
)

fine_amount_histogram = logfire.metric_histogram(
    "library.fines.amount", unit="currency", description="Amount of each assessed fine"
)

reservations_counter = logfire.metric_counter(
    "library.reservations", description="Reservation lifecycle events"
)


def record_loan_event(event_type: str, resource_kind: str):
    """Record a loan event."""
    loans_counter.add(1, {"event_type": event_type, "resource_kind": resource_kind})


def record_fine_event(event_type: str, amount: float):
    """Record a fine being assessed or paid."""
    fines_counter.add(1, {"event_type": event_type})
    if event_type == "assessed":
        fine_amount_histogram.record(amount)


def record_reservation_event(event_type: str):
    """Record a reservation event."""
    reservations_counter.add(1, {"event_type": event_type})
