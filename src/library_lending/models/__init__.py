"""
Library Lending models.

Pydantic v2 models returned by the lending core:
- BookInventory: copy counts and derived status of a catalog book
- Reservation: a member's claim on one copy, with its effective status
- Member: the identity service's view of a library account
- DashboardStats: per-member aggregate counts
"""

from .book import BookInventory, BookStatus, recompute_status, stored_status
from .member import Member, Role
from .reservation import (
    OUTSTANDING_STATUSES,
    TERMINAL_STATUSES,
    Reservation,
    ReservationStatus,
    can_transition,
    days_until,
    effective_status,
)
from .stats import DashboardStats

__all__ = [
    "OUTSTANDING_STATUSES",
    "TERMINAL_STATUSES",
    "BookInventory",
    "BookStatus",
    "DashboardStats",
    "Member",
    "Reservation",
    "ReservationStatus",
    "Role",
    "can_transition",
    "days_until",
    "effective_status",
    "recompute_status",
    "stored_status",
]
