"""Concurrent access to the same copies.

Each worker runs the real service against the same SQLite file through its
own connection, so these tests exercise the database's write lock rather
than any in-process coordination.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from library_lending.database import MemberCreateSchema, MemberRepository
from library_lending.errors import NoCopiesAvailable, NotActive, TooManyActiveReservations


def _run_together(functions):
    """Start every callable at the same moment; return (results, errors)."""
    barrier = threading.Barrier(len(functions))

    def _call(function):
        barrier.wait()
        try:
            return function(), None
        except Exception as e:  # noqa: BLE001 - collected for assertions
            return None, e

    with ThreadPoolExecutor(max_workers=len(functions)) as pool:
        outcomes = list(pool.map(_call, functions))

    results = [result for result, error in outcomes if error is None]
    errors = [error for _, error in outcomes if error is not None]
    return results, errors


class TestLastCopyRace:
    def test_two_members_race_for_one_copy(self, service, catalog, make_book, members):
        book = make_book(total_copies=1)

        results, errors = _run_together(
            [
                lambda: service.reserve(members.alice, book.id, 7),
                lambda: service.reserve(members.bob, book.id, 7),
            ]
        )

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], NoCopiesAvailable)
        assert catalog.get_book(book.id).available_copies == 0
        assert catalog.verify_inventory() == []

    def test_many_members_race_for_few_copies(self, db_manager, service, catalog, make_book):
        book = make_book(total_copies=3)
        with db_manager.session_scope() as session:
            repo = MemberRepository(session)
            user_ids = [
                repo.create(MemberCreateSchema(email=f"reader{n}@example.org", name=f"Reader {n}")).id
                for n in range(8)
            ]

        results, errors = _run_together(
            [lambda user_id=user_id: service.reserve(user_id, book.id, 14) for user_id in user_ids]
        )

        assert len(results) == 3
        assert len(errors) == 5
        assert all(isinstance(error, NoCopiesAvailable) for error in errors)
        assert catalog.get_book(book.id).available_copies == 0
        assert catalog.verify_inventory() == []


class TestDoubleCancelRace:
    def test_concurrent_cancels_release_one_copy(self, service, catalog, make_book, members):
        book = make_book(total_copies=2)
        reservation = service.reserve(members.alice, book.id, 7)
        service.reserve(members.bob, book.id, 7)

        results, errors = _run_together(
            [lambda: service.cancel(members.alice, reservation.id) for _ in range(2)]
        )

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], NotActive)
        assert catalog.get_book(book.id).available_copies == 1
        assert catalog.verify_inventory() == []


class TestSameMemberRace:
    def test_limit_holds_across_simultaneous_reserves(
        self, make_service, catalog, make_book, members
    ):
        service = make_service(max_active_reservations=1)
        books = [make_book(total_copies=1, title=f"Volume {n}") for n in range(1, 5)]

        results, errors = _run_together(
            [lambda book_id=book.id: service.reserve(members.alice, book_id, 7) for book in books]
        )

        assert len(results) == 1
        assert len(errors) == 3
        assert all(isinstance(error, TooManyActiveReservations) for error in errors)
        assert len(service.list_mine(members.alice)) == 1
        assert sum(catalog.get_book(book.id).available_copies for book in books) == 3
        assert catalog.verify_inventory() == []
