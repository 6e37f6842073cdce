"""
Reservation service - the lending core's public operations.

Each mutating call runs in one database transaction. ``reserve`` is the
interesting one:

    1. validate the period               (no database access)
    2. ask identity about the blacklist  (own short read, no lock held)
    3. in one transaction:
         per-user limit check
         ledger.try_take                 (atomic conditional update)
         insert ACTIVE reservation
         per-user limit re-check
       commit

Any failure in step 3 rolls the whole transaction back, which also undoes
the copy taken from the ledger.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.reservation_repository import ReservationRepository
from ..database.schema import Reservation as ReservationDB
from ..database.session import DatabaseManager, get_db_manager
from ..errors import (
    NoCopiesAvailable,
    NotOwner,
    PersistenceError,
    ReservationNotFound,
    TooManyActiveReservations,
    UserBlacklisted,
)
from ..identity import IdentityProvider, MemberDirectory
from ..inventory.ledger import InventoryLedger
from ..models.reservation import Reservation, ReservationStatus
from ..models.stats import DashboardStats
from ..observability.metrics import (
    record_circulation_event,
    record_contention,
    record_overdue_sweep,
)
from ..policy import LendingPolicy
from .state_machine import ReservationStateMachine

logger = logging.getLogger(__name__)


class ReservationService:
    """Reserve, renew, cancel and return books; report on a member's loans."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        identity: IdentityProvider,
        policy: LendingPolicy | None = None,
        clock=datetime.now,
    ):
        self.db_manager = db_manager
        self.identity = identity
        self.policy = policy or LendingPolicy()
        self.clock = clock

    # === Mutations ===

    def reserve(self, user_id: int, book_id: int, reservation_days: int) -> Reservation:
        """
        Reserve one copy of a book for 7, 14 or 21 days.

        Raises:
            InvalidReservationPeriod: If the period is not offered
            UserNotFound: If identity does not know the user
            UserBlacklisted: If the user may not borrow
            TooManyActiveReservations: If the per-user limit is reached
            BookNotFound: If the book does not exist
            NoCopiesAvailable: If every copy is taken or the book is withdrawn
        """
        self.policy.validate_period(reservation_days)

        if self.identity.is_blacklisted(user_id):
            logger.info("Reserve refused: user %s is blacklisted", user_id)
            raise UserBlacklisted(f"User {user_id} is blacklisted and may not reserve books")

        try:
            with self._transaction("reserve book") as session:
                repo = ReservationRepository(session)
                self._check_active_limit(repo, user_id, pending=0)

                reservation = self._state_machine(session).create(
                    book_id, user_id, reservation_days
                )

                # A concurrent reserve by the same user may have committed
                # since the first check
                self._check_active_limit(repo, user_id, pending=1)
        except NoCopiesAvailable:
            record_contention(book_id)
            raise

        record_circulation_event("reserve", book_id)
        return reservation

    def renew(self, user_id: int, reservation_id: int) -> Reservation:
        """
        Extend an ACTIVE reservation by its original period.

        Raises:
            ReservationNotFound, NotOwner, NotActive, RenewalLimitReached
        """
        with self._transaction("renew reservation") as session:
            row = self._owned_row(session, reservation_id, user_id)
            reservation = self._state_machine(session).renew(row)

        record_circulation_event("renew", reservation.book_id)
        return reservation

    def cancel(self, user_id: int, reservation_id: int) -> None:
        """
        Cancel an ACTIVE reservation and release its copy.

        Raises:
            ReservationNotFound, NotOwner, NotActive
        """
        with self._transaction("cancel reservation") as session:
            row = self._owned_row(session, reservation_id, user_id)
            reservation = self._state_machine(session).cancel(row)

        record_circulation_event("cancel", reservation.book_id)

    def return_reservation(self, reservation_id: int, user_id: int | None = None) -> Reservation:
        """
        Record the return of a borrowed copy.

        Librarian desks pass no ``user_id``; members returning through the
        API pass theirs and must own the reservation.

        Raises:
            ReservationNotFound, NotOwner, NotActive
        """
        with self._transaction("return reservation") as session:
            if user_id is None:
                row = self._row(session, reservation_id)
            else:
                row = self._owned_row(session, reservation_id, user_id)
            reservation = self._state_machine(session).mark_returned(row)

        record_circulation_event("return", reservation.book_id)
        return reservation

    def sweep_overdue(self) -> int:
        """Persist OVERDUE for every ACTIVE reservation past due."""
        with self._transaction("sweep overdue reservations") as session:
            count = self._state_machine(session).sweep_overdue()
        record_overdue_sweep(count)
        return count

    # === Reads ===

    def get_reservation(self, reservation_id: int) -> Reservation:
        with self._transaction("get reservation") as session:
            row = self._row(session, reservation_id)
            return ReservationRepository(session).to_model(row, self.clock())

    def list_mine(self, user_id: int) -> list[Reservation]:
        """All of a member's reservations, newest first, as of now."""
        now = self.clock()
        with self._transaction("list reservations") as session:
            repo = ReservationRepository(session)
            return [repo.to_model(row, now) for row in repo.list_for_user(user_id)]

    def compute_dashboard_stats(self, user_id: int) -> DashboardStats:
        """
        Count a member's reservations for the dashboard.

        - active: reservations holding a copy (ACTIVE or OVERDUE)
        - due_soon: ACTIVE reservations due within the threshold, today included
        - overdue: reservations past their due date
        - total_borrowed: everything except cancellations
        """
        reservations = self.list_mine(user_id)
        threshold = self.policy.due_soon_threshold_days

        active = due_soon = overdue = total_borrowed = 0
        for reservation in reservations:
            if reservation.status != ReservationStatus.CANCELLED:
                total_borrowed += 1
            if reservation.status.holds_copy:
                active += 1
            if reservation.status == ReservationStatus.OVERDUE:
                overdue += 1
            elif (
                reservation.status == ReservationStatus.ACTIVE
                and 0 <= reservation.days_until_due <= threshold
            ):
                due_soon += 1

        return DashboardStats(
            active=active, due_soon=due_soon, overdue=overdue, total_borrowed=total_borrowed
        )

    # === Internals ===

    @contextmanager
    def _transaction(self, action: str) -> Generator[Session, None, None]:
        try:
            with self.db_manager.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            logger.exception("Failed to %s", action)
            raise PersistenceError(f"Failed to {action}: database error") from e

    def _state_machine(self, session: Session) -> ReservationStateMachine:
        return ReservationStateMachine(
            session, self.policy, InventoryLedger(session, clock=self.clock), clock=self.clock
        )

    def _row(self, session: Session, reservation_id: int) -> ReservationDB:
        row = ReservationRepository(session).get_row(reservation_id)
        if row is None:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        return row

    def _owned_row(self, session: Session, reservation_id: int, user_id: int) -> ReservationDB:
        row = self._row(session, reservation_id)
        if row.user_id != user_id:
            logger.info(
                "User %s attempted to act on reservation %s owned by user %s",
                user_id,
                reservation_id,
                row.user_id,
            )
            raise NotOwner(f"Reservation {reservation_id} does not belong to user {user_id}")
        return row

    def _check_active_limit(self, repo: ReservationRepository, user_id: int, pending: int) -> None:
        """``pending`` is how many of the counted reservations this call created."""
        limit = self.policy.max_active_reservations
        if limit is None:
            return
        outstanding = repo.count_outstanding_for_user(user_id) - pending
        if self.policy.exceeds_active_limit(outstanding):
            raise TooManyActiveReservations(
                f"User {user_id} already holds {outstanding} of {limit} allowed reservations"
            )


_service: ReservationService | None = None


def get_reservation_service() -> ReservationService:
    """
    Get the process-wide service wired to the configured database.

    The MCP tools call this on every request so tests can swap it out.
    """
    global _service  # noqa: PLW0603

    if _service is None:
        db_manager = get_db_manager()
        _service = ReservationService(
            db_manager, MemberDirectory(db_manager), LendingPolicy.from_config()
        )
    return _service


def reset_reservation_service() -> None:
    """Forget the process-wide service (useful for testing)."""
    global _service  # noqa: PLW0603
    _service = None
