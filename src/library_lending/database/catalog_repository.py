"""
Catalog repository for the Library Lending MCP Server.

The catalog itself is an external collaborator; this repository is the
narrow slice the lending core needs: register a title with its copy count
and read inventory back. Later changes to ``total_copies`` and maintenance
withdrawals go through :class:`~library_lending.inventory.InventoryLedger`
so the ledger stays the only writer of availability.
"""

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.book import BookInventory, BookStatus
from .schema import Book as BookDB
from .schema import BookStatusEnum
from .session import safe_query


class BookCreateSchema(BaseModel):
    """Schema for registering a lendable title."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=200)
    category_id: int | None = None
    description: str | None = None
    total_copies: int = Field(..., ge=1)


class CatalogRepository:
    """Registers books and reads their inventory."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: BookCreateSchema) -> BookInventory:
        """Register a book with every copy on the shelf."""
        book = BookDB(
            title=data.title,
            author=data.author,
            category_id=data.category_id,
            description=data.description,
            total_copies=data.total_copies,
            available_copies=data.total_copies,
            under_maintenance=False,
            status=BookStatusEnum.AVAILABLE,
        )
        self.session.add(book)
        safe_query(self.session, lambda s: s.flush(), "Failed to create book")
        return self.to_model(book)

    def get(self, book_id: int) -> BookInventory | None:
        book = safe_query(
            self.session,
            lambda s: s.execute(
                select(BookDB)
                .where(BookDB.id == book_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none(),
            "Failed to get book",
        )
        return self.to_model(book) if book is not None else None

    def list_books(self, available_only: bool = False) -> list[BookInventory]:
        query = select(BookDB).order_by(BookDB.title, BookDB.id)
        if available_only:
            query = query.where(BookDB.status == BookStatusEnum.AVAILABLE)
        books = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to list books",
        )
        return [self.to_model(book) for book in books]

    @staticmethod
    def to_model(book: BookDB) -> BookInventory:
        return BookInventory(
            id=book.id,
            title=book.title,
            author=book.author,
            category_id=book.category_id,
            total_copies=book.total_copies,
            available_copies=book.available_copies,
            under_maintenance=book.under_maintenance,
            status=BookStatus(book.status.value),
            updated_at=book.updated_at,
        )
