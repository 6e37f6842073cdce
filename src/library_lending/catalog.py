"""
Catalog collaborator hooks.

The catalog owns titles and their copy counts. When it registers a title,
changes ``total_copies`` or withdraws a title for maintenance, the change is
applied here so the inventory ledger stays the only writer of availability.
"""

import logging
from datetime import datetime

from .database.catalog_repository import BookCreateSchema, CatalogRepository
from .database.session import DatabaseManager
from .errors import BookNotFound
from .inventory.ledger import InventoryDiscrepancy, InventoryLedger
from .models.book import BookInventory

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db_manager: DatabaseManager, clock=datetime.now):
        self.db_manager = db_manager
        self.clock = clock

    def add_book(self, data: BookCreateSchema) -> BookInventory:
        with self.db_manager.session_scope() as session:
            book = CatalogRepository(session).create(data)
        logger.info("Registered '%s' with %d copies", book.title, book.total_copies)
        return book

    def get_book(self, book_id: int) -> BookInventory:
        with self.db_manager.session_scope() as session:
            book = CatalogRepository(session).get(book_id)
        if book is None:
            raise BookNotFound(f"Book {book_id} not found")
        return book

    def list_books(self, available_only: bool = False) -> list[BookInventory]:
        with self.db_manager.session_scope() as session:
            return CatalogRepository(session).list_books(available_only=available_only)

    def set_total_copies(self, book_id: int, total_copies: int) -> BookInventory:
        with self.db_manager.session_scope() as session:
            book = InventoryLedger(session, clock=self.clock).resize(book_id, total_copies)
        logger.info(
            "Book %s now has %d copies (%d available)",
            book_id,
            book.total_copies,
            book.available_copies,
        )
        return book

    def begin_maintenance(self, book_id: int) -> BookInventory:
        with self.db_manager.session_scope() as session:
            return InventoryLedger(session, clock=self.clock).begin_maintenance(book_id)

    def end_maintenance(self, book_id: int) -> BookInventory:
        with self.db_manager.session_scope() as session:
            return InventoryLedger(session, clock=self.clock).end_maintenance(book_id)

    def verify_inventory(self, book_id: int | None = None) -> list[InventoryDiscrepancy]:
        with self.db_manager.session_scope() as session:
            problems = InventoryLedger(session, clock=self.clock).verify(book_id)
        for problem in problems:
            logger.warning("Inventory discrepancy on book %s: %s", problem.book_id, problem.problem)
        return problems
