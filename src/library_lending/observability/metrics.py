"""Lending metrics."""

import logfire

circulation_events = logfire.metric_counter(
    "lending.circulation.events",
    description="Reservation lifecycle events (reserve/renew/cancel/return)",
)

copy_contention = logfire.metric_counter(
    "lending.copies.contention",
    description="Reserve attempts that found no copy available",
)

overdue_marked = logfire.metric_counter(
    "lending.reservations.overdue_marked",
    description="Reservations persisted as OVERDUE by the sweep",
)


def record_circulation_event(event_type: str, book_id: int) -> None:
    """Record a reservation lifecycle event."""
    circulation_events.add(1, {"event_type": event_type, "book_id": book_id})


def record_contention(book_id: int) -> None:
    copy_contention.add(1, {"book_id": book_id})


def record_overdue_sweep(count: int) -> None:
    if count:
        overdue_marked.add(count)
