"""Tests for the inventory ledger - the only writer of available copies."""

import pytest

from library_lending.database import Book as BookDB
from library_lending.database import MemberCreateSchema, MemberRepository
from library_lending.errors import BookNotFound, NoCopiesAvailable
from library_lending.inventory import InventoryLedger
from library_lending.models import BookStatus


def _ledger_call(db_manager, clock, method, *args):
    with db_manager.session_scope() as session:
        return getattr(InventoryLedger(session, clock=clock), method)(*args)


class TestTryTake:
    def test_take_decrements_available(self, db_manager, clock, make_book):
        book = make_book(total_copies=3)

        result = _ledger_call(db_manager, clock, "try_take", book.id)

        assert result.available_copies == 2
        assert result.status == BookStatus.AVAILABLE

    def test_taking_last_copy_marks_unavailable(self, db_manager, clock, make_book):
        book = make_book(total_copies=1)

        result = _ledger_call(db_manager, clock, "try_take", book.id)

        assert result.available_copies == 0
        assert result.status == BookStatus.UNAVAILABLE

    def test_status_change_stamped_with_ledger_clock(self, db_manager, clock, make_book):
        book = make_book(total_copies=1)
        clock.advance(days=2)

        taken = _ledger_call(db_manager, clock, "try_take", book.id)
        assert taken.updated_at == clock.now

        clock.advance(hours=3)
        released = _ledger_call(db_manager, clock, "release", book.id)
        assert released.status == BookStatus.AVAILABLE
        assert released.updated_at == clock.now

    def test_take_with_no_copies_left(self, db_manager, clock, make_book):
        book = make_book(total_copies=1)
        _ledger_call(db_manager, clock, "try_take", book.id)

        with pytest.raises(NoCopiesAvailable):
            _ledger_call(db_manager, clock, "try_take", book.id)

        assert _ledger_call(db_manager, clock, "snapshot", book.id).available_copies == 0

    def test_take_unknown_book(self, db_manager, clock):
        with pytest.raises(BookNotFound):
            _ledger_call(db_manager, clock, "try_take", 999)

    def test_rollback_restores_taken_copy(self, db_manager, clock, make_book):
        book = make_book(total_copies=2)

        with pytest.raises(RuntimeError):
            with db_manager.session_scope() as session:
                InventoryLedger(session, clock=clock).try_take(book.id)
                raise RuntimeError("insert failed")

        assert _ledger_call(db_manager, clock, "snapshot", book.id).available_copies == 2


class TestRelease:
    def test_release_increments_and_restores_status(self, db_manager, clock, make_book):
        book = make_book(total_copies=1)
        _ledger_call(db_manager, clock, "try_take", book.id)

        result = _ledger_call(db_manager, clock, "release", book.id)

        assert result.available_copies == 1
        assert result.status == BookStatus.AVAILABLE

    def test_release_never_exceeds_total(self, db_manager, clock, make_book):
        book = make_book(total_copies=2)

        result = _ledger_call(db_manager, clock, "release", book.id)

        assert result.available_copies == 2

    def test_release_unknown_book(self, db_manager, clock):
        with pytest.raises(BookNotFound):
            _ledger_call(db_manager, clock, "release", 999)


class TestMaintenance:
    def test_withdrawn_book_cannot_be_taken(self, db_manager, clock, make_book):
        book = make_book(total_copies=3)

        withdrawn = _ledger_call(db_manager, clock, "begin_maintenance", book.id)
        assert withdrawn.available_copies == 0
        assert withdrawn.status == BookStatus.MAINTENANCE

        with pytest.raises(NoCopiesAvailable, match="maintenance"):
            _ledger_call(db_manager, clock, "try_take", book.id)

    def test_end_maintenance_recounts_outstanding(
        self, db_manager, clock, make_book, members, service
    ):
        book = make_book(total_copies=3)
        reservation = service.reserve(members.alice, book.id, 14)
        service.reserve(members.bob, book.id, 7)

        _ledger_call(db_manager, clock, "begin_maintenance", book.id)
        service.return_reservation(reservation.id)
        assert _ledger_call(db_manager, clock, "snapshot", book.id).available_copies == 0

        restored = _ledger_call(db_manager, clock, "end_maintenance", book.id)

        assert restored.available_copies == 2
        assert restored.status == BookStatus.AVAILABLE
        assert _ledger_call(db_manager, clock, "verify", book.id) == []


class TestResize:
    def test_growing_total_adds_available_copies(self, db_manager, clock, make_book, members, service):
        book = make_book(total_copies=1)
        service.reserve(members.alice, book.id, 7)

        result = _ledger_call(db_manager, clock, "resize", book.id, 3)

        assert result.total_copies == 3
        assert result.available_copies == 2

    def test_shrinking_below_outstanding_clamps_at_zero(
        self, db_manager, clock, make_book, members, service
    ):
        book = make_book(total_copies=3)
        service.reserve(members.alice, book.id, 7)
        service.reserve(members.bob, book.id, 7)

        result = _ledger_call(db_manager, clock, "resize", book.id, 1)

        assert result.available_copies == 0
        assert result.status == BookStatus.UNAVAILABLE
        assert _ledger_call(db_manager, clock, "verify", book.id) == []

    def test_returns_after_shrink_keep_shelf_empty_until_loans_fit(
        self, db_manager, clock, make_book, members, service
    ):
        book = make_book(total_copies=3)
        alice_loan = service.reserve(members.alice, book.id, 7)
        bob_loan = service.reserve(members.bob, book.id, 7)
        _ledger_call(db_manager, clock, "resize", book.id, 1)

        service.return_reservation(alice_loan.id)

        after_first = _ledger_call(db_manager, clock, "snapshot", book.id)
        assert after_first.available_copies == 0
        assert after_first.status == BookStatus.UNAVAILABLE
        assert _ledger_call(db_manager, clock, "verify", book.id) == []
        with db_manager.session_scope() as session:
            carol = MemberRepository(session).create(
                MemberCreateSchema(email="carol@example.org", name="Carol")
            )
        with pytest.raises(NoCopiesAvailable):
            service.reserve(carol.id, book.id, 7)

        service.cancel(members.bob, bob_loan.id)

        after_second = _ledger_call(db_manager, clock, "snapshot", book.id)
        assert after_second.available_copies == 1
        assert _ledger_call(db_manager, clock, "verify", book.id) == []

    def test_resize_rejects_zero_copies(self, db_manager, clock, make_book):
        book = make_book()
        with pytest.raises(ValueError):
            _ledger_call(db_manager, clock, "resize", book.id, 0)


class TestVerify:
    def test_consistent_inventory(self, db_manager, clock, make_book, members, service):
        book = make_book(total_copies=2)
        service.reserve(members.alice, book.id, 21)

        assert _ledger_call(db_manager, clock, "verify") == []

    def test_detects_drift(self, db_manager, clock, make_book, members, service):
        book = make_book(total_copies=2)
        service.reserve(members.alice, book.id, 21)

        # Simulate an out-of-band write that bypassed the ledger
        with db_manager.session_scope() as session:
            session.get(BookDB, book.id).available_copies = 2

        problems = _ledger_call(db_manager, clock, "verify")

        assert len(problems) == 1
        assert problems[0].book_id == book.id
        assert problems[0].outstanding == 1
        assert "does not equal total" in problems[0].problem
