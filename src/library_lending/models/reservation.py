"""
Reservation model for the Library Lending MCP Server.

A reservation is a member's claim on one copy of a book for 7, 14 or 21
days. Its lifecycle:

    ACTIVE -> RETURNED | CANCELLED | OVERDUE
    OVERDUE -> RETURNED

OVERDUE is normally not stored. Whenever a reservation is read, an ACTIVE
reservation whose due date has passed is reported as OVERDUE; the optional
overdue sweep merely persists the same answer.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReservationStatus(str, Enum):
    """Status of a reservation."""

    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def holds_copy(self) -> bool:
        return self in OUTSTANDING_STATUSES


OUTSTANDING_STATUSES = frozenset({ReservationStatus.ACTIVE, ReservationStatus.OVERDUE})
TERMINAL_STATUSES = frozenset({ReservationStatus.RETURNED, ReservationStatus.CANCELLED})

# Explicit transitions; overdue detection is the only one not invoked by a caller
TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.ACTIVE: frozenset(
        {ReservationStatus.RETURNED, ReservationStatus.CANCELLED, ReservationStatus.OVERDUE}
    ),
    ReservationStatus.OVERDUE: frozenset({ReservationStatus.RETURNED}),
    ReservationStatus.RETURNED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def effective_status(
    status: ReservationStatus, due_date: datetime, now: datetime
) -> ReservationStatus:
    """Project the status a reader should see at ``now``.

    Overdue begins strictly after the due date.
    """
    status = ReservationStatus(status)
    if status == ReservationStatus.ACTIVE and now > due_date:
        return ReservationStatus.OVERDUE
    return status


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return ReservationStatus(target) in TRANSITIONS[ReservationStatus(current)]


def days_until(due_date: datetime, now: datetime) -> int:
    """Whole calendar days from ``now`` until ``due_date`` (negative once past)."""
    return (due_date.date() - now.date()).days


class Reservation(BaseModel):
    """
    A member's reservation as seen at a point in time.

    ``status`` is always the effective status at ``as_of``; the stored
    value is not exposed.
    """

    id: int = Field(..., description="Unique identifier for the reservation", ge=1)

    book_id: int = Field(..., description="ID of the reserved book", ge=1)

    user_id: int = Field(..., description="ID of the member holding the reservation", ge=1)

    reservation_date: datetime = Field(
        ...,
        description="When the reservation was created",
    )

    reservation_days: int = Field(
        ...,
        description="Loan period chosen at creation; renewals extend by the same amount",
        examples=[7, 14, 21],
    )

    due_date: datetime = Field(
        ...,
        description="When the copy must be returned",
    )

    return_date: datetime | None = Field(
        default=None,
        description="When the copy was returned",
    )

    cancelled_at: datetime | None = Field(
        default=None,
        description="When the reservation was cancelled",
    )

    renewal_count: int = Field(
        default=0,
        description="Number of times this reservation has been renewed",
        ge=0,
    )

    status: ReservationStatus = Field(
        default=ReservationStatus.ACTIVE,
        description="Effective status at as_of",
    )

    as_of: datetime = Field(
        default_factory=datetime.now,
        description="Moment the status was projected at",
    )

    book_title: str | None = Field(default=None, description="Catalog title, for display")

    @model_validator(mode="after")
    def validate_dates(self) -> "Reservation":
        if self.due_date <= self.reservation_date:
            raise ValueError("Due date must be after reservation date")
        if self.return_date and self.return_date < self.reservation_date:
            raise ValueError("Return date cannot be before reservation date")
        return self

    @property
    def is_overdue(self) -> bool:
        return self.status == ReservationStatus.OVERDUE

    @property
    def is_outstanding(self) -> bool:
        return self.status.holds_copy

    @property
    def days_until_due(self) -> int:
        return days_until(self.due_date, self.as_of)

    @property
    def days_overdue(self) -> int:
        if not self.is_overdue:
            return 0
        return max(0, -self.days_until_due)

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 42,
                "book_id": 1,
                "user_id": 7,
                "reservation_date": "2024-03-01T10:30:00",
                "reservation_days": 14,
                "due_date": "2024-03-15T10:30:00",
                "renewal_count": 0,
                "status": "ACTIVE",
            }
        },
    )
