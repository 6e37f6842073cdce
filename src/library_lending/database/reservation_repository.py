"""
Reservation repository for the Library Lending MCP Server.

Data access for reservation rows. Business rules live in the state machine;
this module only reads, inserts and performs compare-and-set updates, and
projects rows into :class:`~library_lending.models.Reservation` with their
effective status.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import and_, desc, func, select, update
from sqlalchemy.orm import Session, joinedload

from ..models.reservation import Reservation as ReservationModel
from ..models.reservation import ReservationStatus, effective_status
from .schema import OUTSTANDING_DB_STATUSES, ReservationStatusEnum
from .schema import Reservation as ReservationDB
from .session import safe_query


class ReservationRepository:
    """Reads and writes reservation rows within the caller's transaction."""

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        *,
        book_id: int,
        user_id: int,
        reservation_date: datetime,
        reservation_days: int,
        due_date: datetime,
    ) -> ReservationDB:
        """Insert a new ACTIVE reservation and flush it to obtain its id."""
        row = ReservationDB(
            book_id=book_id,
            user_id=user_id,
            reservation_date=reservation_date,
            reservation_days=reservation_days,
            due_date=due_date,
            renewal_count=0,
            status=ReservationStatusEnum.ACTIVE,
            created_at=reservation_date,
            updated_at=reservation_date,
        )
        self.session.add(row)
        safe_query(self.session, lambda s: s.flush(), "Failed to insert reservation")
        return row

    def get_row(self, reservation_id: int) -> ReservationDB | None:
        return safe_query(
            self.session,
            lambda s: s.execute(
                select(ReservationDB)
                .where(ReservationDB.id == reservation_id)
                .options(joinedload(ReservationDB.book))
                .execution_options(populate_existing=True)
            )
            .unique()
            .scalar_one_or_none(),
            "Failed to get reservation",
        )

    def compare_and_set(
        self,
        reservation_id: int,
        expected: Mapping[str, Any],
        values: Mapping[str, Any],
    ) -> bool:
        """
        Update a reservation only if its columns still hold ``expected``.

        ``expected`` values may be a single value or a tuple of acceptable
        values. Returns False when another transaction changed the row
        first.
        """
        table = ReservationDB.__table__
        conditions = [table.c.id == reservation_id]
        for column, value in expected.items():
            if isinstance(value, tuple):
                conditions.append(table.c[column].in_(value))
            else:
                conditions.append(table.c[column] == value)

        result = safe_query(
            self.session,
            lambda s: s.execute(update(table).where(and_(*conditions)).values(**values)),
            "Failed to update reservation",
        )
        return result.rowcount == 1

    def list_for_user(self, user_id: int) -> list[ReservationDB]:
        """All of a member's reservations, newest first."""
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(
                    select(ReservationDB)
                    .where(ReservationDB.user_id == user_id)
                    .options(joinedload(ReservationDB.book))
                    .order_by(desc(ReservationDB.reservation_date), desc(ReservationDB.id))
                )
                .unique()
                .scalars()
                .all(),
                "Failed to list reservations",
            )
        )

    def count_outstanding_for_user(self, user_id: int) -> int:
        """Reservations holding a copy (stored ACTIVE or OVERDUE)."""
        return (
            safe_query(
                self.session,
                lambda s: s.execute(
                    select(func.count())
                    .select_from(ReservationDB)
                    .where(
                        and_(
                            ReservationDB.user_id == user_id,
                            ReservationDB.status.in_(OUTSTANDING_DB_STATUSES),
                        )
                    )
                ).scalar(),
                "Failed to count outstanding reservations",
            )
            or 0
        )

    def count_outstanding_for_book(self, book_id: int) -> int:
        return (
            safe_query(
                self.session,
                lambda s: s.execute(
                    select(func.count())
                    .select_from(ReservationDB)
                    .where(
                        and_(
                            ReservationDB.book_id == book_id,
                            ReservationDB.status.in_(OUTSTANDING_DB_STATUSES),
                        )
                    )
                ).scalar(),
                "Failed to count outstanding reservations for book",
            )
            or 0
        )

    def outstanding_counts_by_book(self) -> dict[int, int]:
        rows = safe_query(
            self.session,
            lambda s: s.execute(
                select(ReservationDB.book_id, func.count())
                .where(ReservationDB.status.in_(OUTSTANDING_DB_STATUSES))
                .group_by(ReservationDB.book_id)
            ).all(),
            "Failed to count outstanding reservations by book",
        )
        return {book_id: count for book_id, count in rows}

    def mark_overdue(self, now: datetime) -> int:
        """Persist OVERDUE for every ACTIVE reservation past its due date."""
        table = ReservationDB.__table__
        result = safe_query(
            self.session,
            lambda s: s.execute(
                update(table)
                .where(
                    and_(
                        table.c.status == ReservationStatusEnum.ACTIVE,
                        table.c.due_date < now,
                    )
                )
                .values(status=ReservationStatusEnum.OVERDUE, updated_at=now)
            ),
            "Failed to mark overdue reservations",
        )
        return result.rowcount or 0

    def to_model(self, row: ReservationDB, now: datetime) -> ReservationModel:
        """Convert a row to a model carrying its effective status at ``now``."""
        stored = ReservationStatus(row.status.value)
        return ReservationModel(
            id=row.id,
            book_id=row.book_id,
            user_id=row.user_id,
            reservation_date=row.reservation_date,
            reservation_days=row.reservation_days,
            due_date=row.due_date,
            return_date=row.return_date,
            cancelled_at=row.cancelled_at,
            renewal_count=row.renewal_count,
            status=effective_status(stored, row.due_date, now),
            as_of=now,
            book_title=row.book.title if row.book is not None else None,
        )
