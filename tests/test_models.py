"""Tests for status derivation and model validation."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from library_lending.models import (
    BookInventory,
    BookStatus,
    Reservation,
    ReservationStatus,
    can_transition,
    days_until,
    effective_status,
    recompute_status,
    stored_status,
)

DUE = datetime(2025, 3, 17, 10, 0)


class TestBookStatus:
    @pytest.mark.parametrize(
        ("available", "maintenance", "expected"),
        [
            (1, False, BookStatus.AVAILABLE),
            (5, False, BookStatus.AVAILABLE),
            (0, False, BookStatus.UNAVAILABLE),
            (3, True, BookStatus.UNAVAILABLE),
        ],
    )
    def test_recompute_status(self, available, maintenance, expected):
        assert recompute_status(available, maintenance) == expected

    def test_stored_status_shows_maintenance(self):
        assert stored_status(0, True) == BookStatus.MAINTENANCE
        assert stored_status(2, False) == BookStatus.AVAILABLE

    def test_available_cannot_exceed_total(self):
        with pytest.raises(ValidationError, match="cannot exceed total"):
            BookInventory(
                id=1,
                title="Dune",
                author="Frank Herbert",
                total_copies=1,
                available_copies=2,
                status=BookStatus.AVAILABLE,
            )


class TestEffectiveStatus:
    def test_active_on_due_date_is_not_overdue(self):
        assert effective_status(ReservationStatus.ACTIVE, DUE, DUE) == ReservationStatus.ACTIVE

    def test_active_after_due_date_is_overdue(self):
        later = DUE + timedelta(microseconds=1)
        assert effective_status(ReservationStatus.ACTIVE, DUE, later) == ReservationStatus.OVERDUE

    @pytest.mark.parametrize(
        "status", [ReservationStatus.RETURNED, ReservationStatus.CANCELLED, ReservationStatus.OVERDUE]
    )
    def test_non_active_statuses_are_unchanged(self, status):
        assert effective_status(status, DUE, DUE + timedelta(days=30)) == status

    def test_accepts_raw_strings(self):
        assert effective_status("ACTIVE", DUE, DUE + timedelta(days=1)) == ReservationStatus.OVERDUE


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (ReservationStatus.ACTIVE, ReservationStatus.RETURNED, True),
            (ReservationStatus.ACTIVE, ReservationStatus.CANCELLED, True),
            (ReservationStatus.ACTIVE, ReservationStatus.OVERDUE, True),
            (ReservationStatus.OVERDUE, ReservationStatus.RETURNED, True),
            (ReservationStatus.OVERDUE, ReservationStatus.CANCELLED, False),
            (ReservationStatus.OVERDUE, ReservationStatus.ACTIVE, False),
            (ReservationStatus.RETURNED, ReservationStatus.ACTIVE, False),
            (ReservationStatus.CANCELLED, ReservationStatus.RETURNED, False),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_terminal_statuses(self):
        assert ReservationStatus.RETURNED.is_terminal
        assert ReservationStatus.CANCELLED.is_terminal
        assert not ReservationStatus.OVERDUE.is_terminal
        assert ReservationStatus.OVERDUE.holds_copy
        assert not ReservationStatus.CANCELLED.holds_copy


class TestReservationModel:
    def _reservation(self, **overrides) -> Reservation:
        data = {
            "id": 1,
            "book_id": 2,
            "user_id": 3,
            "reservation_date": DUE - timedelta(days=14),
            "reservation_days": 14,
            "due_date": DUE,
            "as_of": DUE - timedelta(days=10),
        }
        data.update(overrides)
        return Reservation(**data)

    def test_due_date_must_follow_reservation_date(self):
        with pytest.raises(ValidationError, match="Due date must be after"):
            self._reservation(due_date=DUE - timedelta(days=20))

    def test_days_until_due_counts_calendar_days(self):
        reservation = self._reservation(as_of=datetime(2025, 3, 10, 23, 59))
        assert reservation.days_until_due == 7

    def test_days_overdue(self):
        reservation = self._reservation(
            status=ReservationStatus.OVERDUE, as_of=DUE + timedelta(days=3)
        )
        assert reservation.is_overdue
        assert reservation.days_overdue == 3
        assert self._reservation().days_overdue == 0

    def test_days_until_helper(self):
        assert days_until(DUE, DUE) == 0
        assert days_until(DUE, DUE + timedelta(days=2)) == -2
