"""
Inventory ledger - the single writer of a book's availability.

``available_copies`` and ``status`` on the ``books`` table are changed only
here, and only through conditional UPDATE statements whose affected-row
count decides success:

    UPDATE books SET available_copies = available_copies - 1
     WHERE id = :id AND available_copies > 0 AND NOT under_maintenance

Two transactions racing for the last copy both issue that statement; the
database serializes them and the second one matches zero rows. No
application-level lock is involved, so the guarantee holds across
processes.
"""

import logging
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import and_, case, func, select, update
from sqlalchemy.orm import Session

from ..database.catalog_repository import CatalogRepository
from ..database.reservation_repository import ReservationRepository
from ..database.schema import Book as BookDB
from ..database.schema import OUTSTANDING_DB_STATUSES, BookStatusEnum
from ..database.schema import Reservation as ReservationDB
from ..database.session import safe_query
from ..errors import BookNotFound, NoCopiesAvailable
from ..models.book import BookInventory, stored_status

logger = logging.getLogger(__name__)


class InventoryDiscrepancy(BaseModel):
    """A book whose copy counts break an inventory invariant."""

    book_id: int
    total_copies: int
    available_copies: int
    outstanding: int
    problem: str


class InventoryLedger:
    """Copy-count bookkeeping for books, within the caller's transaction."""

    def __init__(self, session: Session, clock=datetime.now):
        self.session = session
        self.clock = clock
        self._books = BookDB.__table__

    # === Mutations ===

    def try_take(self, book_id: int) -> BookInventory:
        """
        Take one copy of a book.

        Raises:
            BookNotFound: If the book does not exist
            NoCopiesAvailable: If no copy is left or the book is withdrawn
        """
        books = self._books
        result = safe_query(
            self.session,
            lambda s: s.execute(
                update(books)
                .where(
                    and_(
                        books.c.id == book_id,
                        books.c.available_copies > 0,
                        books.c.under_maintenance.is_(False),
                    )
                )
                .values(available_copies=books.c.available_copies - 1, updated_at=self.clock())
            ),
            "Failed to take a copy",
        )

        if result.rowcount != 1:
            book = self._load(book_id)
            if book is None:
                raise BookNotFound(f"Book {book_id} not found")
            if book.under_maintenance:
                raise NoCopiesAvailable(f"'{book.title}' is withdrawn for maintenance")
            raise NoCopiesAvailable(f"No copies of '{book.title}' are available")

        book = self._sync_status(book_id)
        logger.debug(
            "Took copy of book %s (%d/%d available)",
            book_id,
            book.available_copies,
            book.total_copies,
        )
        return book

    def release(self, book_id: int) -> BookInventory:
        """
        Put one copy back on the shelf.

        Call after the reservation that held the copy has been closed. The
        count never exceeds ``total_copies`` minus the reservations still
        outstanding, so a book whose total shrank below its loans stays at
        zero until enough copies come back. A withdrawn book keeps zero
        available copies; the returned copy is counted again when
        maintenance ends.

        Raises:
            BookNotFound: If the book no longer exists
        """
        books = self._books
        reservations = ReservationDB.__table__
        outstanding = (
            select(func.count())
            .select_from(reservations)
            .where(
                and_(
                    reservations.c.book_id == books.c.id,
                    reservations.c.status.in_(OUTSTANDING_DB_STATUSES),
                )
            )
            .scalar_subquery()
        )
        shelf_capacity = books.c.total_copies - outstanding
        result = safe_query(
            self.session,
            lambda s: s.execute(
                update(books)
                .where(and_(books.c.id == book_id, books.c.under_maintenance.is_(False)))
                .values(
                    available_copies=case(
                        (
                            books.c.available_copies + 1 <= shelf_capacity,
                            books.c.available_copies + 1,
                        ),
                        (shelf_capacity > 0, shelf_capacity),
                        else_=0,
                    ),
                    updated_at=self.clock(),
                )
            ),
            "Failed to release a copy",
        )

        if result.rowcount != 1 and self._load(book_id) is None:
            raise BookNotFound(f"Book {book_id} not found")

        return self._sync_status(book_id)

    def begin_maintenance(self, book_id: int) -> BookInventory:
        """Withdraw a book from lending; outstanding reservations are untouched."""
        book = self._require(book_id)
        book.under_maintenance = True
        book.available_copies = 0
        book.status = BookStatusEnum.MAINTENANCE
        book.updated_at = self.clock()
        safe_query(self.session, lambda s: s.flush(), "Failed to begin maintenance")
        logger.info("Book %s withdrawn for maintenance", book_id)
        return self._to_model(book)

    def end_maintenance(self, book_id: int) -> BookInventory:
        """Return a withdrawn book to lending with a freshly counted shelf."""
        book = self._require(book_id)
        book.under_maintenance = False
        self._recount(book)
        safe_query(self.session, lambda s: s.flush(), "Failed to end maintenance")
        logger.info("Book %s back in circulation", book_id)
        return self._to_model(book)

    def resize(self, book_id: int, total_copies: int) -> BookInventory:
        """
        Apply a catalog change to ``total_copies``.

        Available copies are recounted as ``total - outstanding`` and clamp at
        zero when the catalog shrinks below the number of copies on loan.
        """
        if total_copies < 1:
            raise ValueError("total_copies must be at least 1")
        book = self._require(book_id)
        book.total_copies = total_copies
        if book.under_maintenance:
            book.updated_at = self.clock()
        else:
            self._recount(book)
        safe_query(self.session, lambda s: s.flush(), "Failed to resize book")
        return self._to_model(book)

    # === Reads ===

    def snapshot(self, book_id: int) -> BookInventory:
        return self._to_model(self._require(book_id))

    def verify(self, book_id: int | None = None) -> list[InventoryDiscrepancy]:
        """
        Audit copy counts against outstanding reservations.

        Checks ``0 <= available <= total`` for every book and
        ``available + outstanding == total`` for books in circulation whose
        total still covers their outstanding reservations.
        """
        query = select(BookDB)
        if book_id is not None:
            query = query.where(BookDB.id == book_id)
        books = safe_query(
            self.session,
            lambda s: s.execute(query.execution_options(populate_existing=True)).scalars().all(),
            "Failed to load books for verification",
        )
        outstanding_by_book = ReservationRepository(self.session).outstanding_counts_by_book()

        problems: list[InventoryDiscrepancy] = []
        for book in books:
            outstanding = outstanding_by_book.get(book.id, 0)
            issues = []

            if book.available_copies < 0:
                issues.append("available copies are negative")
            if book.available_copies > book.total_copies:
                issues.append("available copies exceed total copies")
            if book.under_maintenance:
                if book.available_copies != 0:
                    issues.append("withdrawn book has available copies")
            elif outstanding <= book.total_copies:
                if book.available_copies + outstanding != book.total_copies:
                    issues.append("available plus outstanding does not equal total copies")
            elif book.available_copies != 0:
                issues.append("over-committed book has available copies")

            problems.extend(
                InventoryDiscrepancy(
                    book_id=book.id,
                    total_copies=book.total_copies,
                    available_copies=book.available_copies,
                    outstanding=outstanding,
                    problem=issue,
                )
                for issue in issues
            )

        return problems

    # === Internals ===

    def _load(self, book_id: int) -> BookDB | None:
        return safe_query(
            self.session,
            lambda s: s.execute(
                select(BookDB)
                .where(BookDB.id == book_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none(),
            "Failed to load book",
        )

    def _require(self, book_id: int) -> BookDB:
        book = self._load(book_id)
        if book is None:
            raise BookNotFound(f"Book {book_id} not found")
        return book

    def _recount(self, book: BookDB) -> None:
        outstanding = ReservationRepository(self.session).count_outstanding_for_book(book.id)
        book.available_copies = max(0, book.total_copies - outstanding)
        book.status = BookStatusEnum(stored_status(book.available_copies, False).value)
        book.updated_at = self.clock()

    def _sync_status(self, book_id: int) -> BookInventory:
        """Reload the row after a conditional update and store its derived status."""
        book = self._require(book_id)
        status = BookStatusEnum(stored_status(book.available_copies, book.under_maintenance).value)
        if book.status != status:
            book.status = status
            book.updated_at = self.clock()
            safe_query(self.session, lambda s: s.flush(), "Failed to update book status")
        return self._to_model(book)

    _to_model = staticmethod(CatalogRepository.to_model)
