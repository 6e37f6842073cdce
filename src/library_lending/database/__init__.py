"""
Database package for the Library Lending MCP Server.

- SQLAlchemy schema definitions (schema.py)
- Engine, session and transaction management (session.py)
- Repositories for books, members and reservations

Availability columns on ``books`` are written only through
:class:`~library_lending.inventory.InventoryLedger`.
"""

from .catalog_repository import BookCreateSchema, CatalogRepository
from .member_repository import MemberCreateSchema, MemberRepository
from .reservation_repository import ReservationRepository
from .schema import (
    OUTSTANDING_DB_STATUSES,
    Base,
    Book,
    BookStatusEnum,
    Member,
    Reservation,
    ReservationStatusEnum,
    RoleEnum,
)
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_query,
    session_scope,
)

__all__ = [
    "OUTSTANDING_DB_STATUSES",
    "Base",
    "Book",
    "BookCreateSchema",
    "BookStatusEnum",
    "CatalogRepository",
    "DatabaseManager",
    "Member",
    "MemberCreateSchema",
    "MemberRepository",
    "Reservation",
    "ReservationRepository",
    "ReservationStatusEnum",
    "RoleEnum",
    "get_db_manager",
    "reset_db_manager",
    "safe_query",
    "session_scope",
]
