"""Tests for the reservation state machine working on rows directly."""

from datetime import timedelta

import pytest

from library_lending.database import ReservationRepository
from library_lending.errors import InvalidReservationPeriod, NotActive
from library_lending.models import ReservationStatus
from library_lending.policy import LendingPolicy
from library_lending.reservations import ReservationStateMachine


class TestCreate:
    def test_create_takes_copy_and_inserts_active_row(self, db_manager, catalog, make_book, members, clock):
        book = make_book(total_copies=2)

        with db_manager.session_scope() as session:
            reservation = ReservationStateMachine(session, LendingPolicy(), clock=clock).create(
                book.id, members.alice, 21
            )

        assert reservation.status == ReservationStatus.ACTIVE
        assert reservation.due_date == clock.now + timedelta(days=21)
        assert catalog.get_book(book.id).available_copies == 1

    def test_create_validates_period_first(self, db_manager, catalog, make_book, members, clock):
        book = make_book()

        with pytest.raises(InvalidReservationPeriod):
            with db_manager.session_scope() as session:
                ReservationStateMachine(session, LendingPolicy(), clock=clock).create(
                    book.id, members.alice, 28
                )

        assert catalog.get_book(book.id).available_copies == 1


class TestStaleReads:
    def test_cancel_on_stale_row_is_rejected(
        self, db_manager, service, catalog, make_book, members, clock
    ):
        book = make_book(total_copies=1)
        reservation = service.reserve(members.alice, book.id, 7)

        session = db_manager.create_session()
        try:
            stale = ReservationRepository(session).get_row(reservation.id)

            # Someone else cancels first
            service.cancel(members.alice, reservation.id)

            machine = ReservationStateMachine(session, LendingPolicy(), clock=clock)
            with pytest.raises(NotActive) as exc_info:
                machine.cancel(stale)
            assert exc_info.value.status == "CANCELLED"
            session.rollback()
        finally:
            session.close()

        assert catalog.get_book(book.id).available_copies == 1
        assert catalog.verify_inventory() == []

    def test_renew_on_stale_row_is_rejected(self, db_manager, service, make_book, members, clock):
        reservation = service.reserve(members.alice, make_book().id, 7)

        session = db_manager.create_session()
        try:
            stale = ReservationRepository(session).get_row(reservation.id)
            service.renew(members.alice, reservation.id)

            # Renewal limit is 1; the stale row still shows 0 renewals
            machine = ReservationStateMachine(session, LendingPolicy(), clock=clock)
            with pytest.raises(NotActive):
                machine.renew(stale)
            session.rollback()
        finally:
            session.close()

        assert service.get_reservation(reservation.id).renewal_count == 1
