"""
SQLAlchemy database schema for the Library Lending MCP Server.

Three tables back the lending core:

1. ``members`` - local mirror of identity-service accounts (blacklist flag)
2. ``books`` - catalog rows; the inventory ledger owns ``available_copies``
   and ``status``, the catalog owns everything else
3. ``reservations`` - one row per reservation, never deleted

The copy-count bounds are also enforced by check constraints.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

Base = declarative_base()


class RoleEnum(str, enum.Enum):
    """Database enum for member roles."""

    USER = "USER"
    LIBRARIAN = "LIBRARIAN"


class BookStatusEnum(str, enum.Enum):
    """Database enum for book availability status."""

    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"
    MAINTENANCE = "MAINTENANCE"


class ReservationStatusEnum(str, enum.Enum):
    """Database enum for reservation status."""

    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"


OUTSTANDING_DB_STATUSES = (ReservationStatusEnum.ACTIVE, ReservationStatusEnum.OVERDUE)


class Member(Base):
    """
    Members table - library accounts known to the lending core.

    Owned by the identity service; the lending core only reads
    ``is_blacklisted``.
    """

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.USER)
    is_blacklisted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    reservations = relationship("Reservation", back_populates="member")

    __table_args__ = (Index("idx_member_email", "email"),)

    @validates("email")
    def validate_email(self, key, value):  # noqa: ARG002
        if not value or "@" not in value:
            raise ValueError("Member email must be a valid address")
        return value.lower()


class Book(Base):
    """
    Books table - the lendable titles.

    Only the inventory ledger writes ``available_copies``, ``status`` and
    ``under_maintenance``.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(200), nullable=False)
    category_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    total_copies = Column(Integer, nullable=False)
    available_copies = Column(Integer, nullable=False)
    under_maintenance = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(BookStatusEnum), nullable=False, default=BookStatusEnum.AVAILABLE)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    reservations = relationship("Reservation", back_populates="book")

    __table_args__ = (
        Index("idx_book_category", "category_id"),
        Index("idx_book_availability", "available_copies"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
        CheckConstraint("total_copies > 0", name="check_total_copies_positive"),
    )


class Reservation(Base):
    """
    Reservations table - every claim on a copy, including finished ones.

    Rows are terminalized (RETURNED / CANCELLED), never deleted, so the
    table doubles as the lending history.
    """

    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    reservation_date = Column(DateTime, nullable=False)
    reservation_days = Column(Integer, nullable=False)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    renewal_count = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(ReservationStatusEnum), nullable=False, default=ReservationStatusEnum.ACTIVE
    )

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book", back_populates="reservations")
    member = relationship("Member", back_populates="reservations")

    __table_args__ = (
        Index("idx_reservation_user_status", "user_id", "status"),
        Index("idx_reservation_book_status", "book_id", "status"),
        Index("idx_reservation_due_date", "due_date"),
        CheckConstraint("reservation_days IN (7, 14, 21)", name="check_reservation_days"),
        CheckConstraint("renewal_count >= 0", name="check_renewal_count_non_negative"),
        CheckConstraint("due_date > reservation_date", name="check_due_after_reservation"),
    )
