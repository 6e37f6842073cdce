"""
Reservation state machine.

    ACTIVE  -> RETURNED | CANCELLED | OVERDUE
    OVERDUE -> RETURNED

RETURNED and CANCELLED are terminal. OVERDUE is reached by time alone: an
ACTIVE reservation is reported as OVERDUE as soon as ``now`` is strictly
past its due date, whether or not the optional sweep has persisted it.

Every transition is written as a compare-and-set on the values the
precondition check read, so two callers racing to cancel or return the
same reservation cannot both release its copy.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..database.reservation_repository import ReservationRepository
from ..database.schema import Reservation as ReservationDB
from ..database.schema import ReservationStatusEnum
from ..errors import NotActive, RenewalLimitReached
from ..inventory.ledger import InventoryLedger
from ..models.reservation import Reservation, ReservationStatus, can_transition, effective_status
from ..policy import LendingPolicy

logger = logging.getLogger(__name__)


class ReservationStateMachine:
    """Applies lifecycle transitions to reservation rows in one transaction."""

    def __init__(
        self,
        session: Session,
        policy: LendingPolicy,
        ledger: InventoryLedger | None = None,
        clock=datetime.now,
    ):
        self.session = session
        self.policy = policy
        self.clock = clock
        self.ledger = ledger or InventoryLedger(session, clock=clock)
        self.repo = ReservationRepository(session)

    def status_of(self, row: ReservationDB, now: datetime | None = None) -> ReservationStatus:
        return effective_status(
            ReservationStatus(row.status.value), row.due_date, now or self.clock()
        )

    # === Transitions ===

    def create(self, book_id: int, user_id: int, reservation_days: int) -> Reservation:
        """
        Take a copy and open an ACTIVE reservation for it.

        Ledger failures (``BookNotFound``, ``NoCopiesAvailable``) propagate
        and no row is written.
        """
        self.policy.validate_period(reservation_days)
        self.ledger.try_take(book_id)

        now = self.clock()
        row = self.repo.add(
            book_id=book_id,
            user_id=user_id,
            reservation_date=now,
            reservation_days=reservation_days,
            due_date=self.policy.due_date_for(now, reservation_days),
        )
        logger.info(
            "Reservation %s created: user %s, book %s, %d days",
            row.id,
            user_id,
            book_id,
            reservation_days,
        )
        return self.repo.to_model(row, now)

    def renew(self, row: ReservationDB) -> Reservation:
        """
        Extend the due date by the original reservation period.

        Overdue reservations cannot be renewed; they must be returned.
        The copy stays held, so availability is not consulted.
        """
        now = self.clock()
        status = self.status_of(row, now)
        if status != ReservationStatus.ACTIVE:
            raise NotActive(
                f"Reservation {row.id} cannot be renewed while {status.value}", status=status.value
            )
        if not self.policy.can_renew(row.renewal_count):
            raise RenewalLimitReached(
                f"Reservation {row.id} has already been renewed "
                f"{row.renewal_count} of {self.policy.max_renewals} allowed times"
            )

        new_due_date = row.due_date + timedelta(days=row.reservation_days)
        self._apply(
            row,
            "renewed",
            expected={"status": ReservationStatusEnum.ACTIVE, "renewal_count": row.renewal_count},
            values={
                "due_date": new_due_date,
                "renewal_count": row.renewal_count + 1,
                "updated_at": now,
            },
        )
        logger.info("Reservation %s renewed until %s", row.id, new_due_date.isoformat())
        return self._reload(row.id, now)

    def cancel(self, row: ReservationDB) -> Reservation:
        """Cancel an ACTIVE reservation and put its copy back."""
        now = self.clock()
        self._check_transition(row, ReservationStatus.CANCELLED, now, "cancelled")
        self._apply(
            row,
            "cancelled",
            expected={"status": ReservationStatusEnum.ACTIVE, "due_date": row.due_date},
            values={
                "status": ReservationStatusEnum.CANCELLED,
                "cancelled_at": now,
                "updated_at": now,
            },
        )
        self.ledger.release(row.book_id)
        logger.info("Reservation %s cancelled", row.id)
        return self._reload(row.id, now)

    def mark_returned(self, row: ReservationDB) -> Reservation:
        """Close an ACTIVE or OVERDUE reservation and put its copy back."""
        now = self.clock()
        self._check_transition(row, ReservationStatus.RETURNED, now, "returned")
        self._apply(
            row,
            "returned",
            expected={
                "status": (ReservationStatusEnum.ACTIVE, ReservationStatusEnum.OVERDUE),
            },
            values={
                "status": ReservationStatusEnum.RETURNED,
                "return_date": now,
                "updated_at": now,
            },
        )
        self.ledger.release(row.book_id)
        logger.info("Reservation %s returned", row.id)
        return self._reload(row.id, now)

    def sweep_overdue(self) -> int:
        """Persist OVERDUE for reservations past due. Copies stay held."""
        count = self.repo.mark_overdue(self.clock())
        if count:
            logger.info("Marked %d reservations overdue", count)
        return count

    # === Internals ===

    def _check_transition(
        self, row: ReservationDB, target: ReservationStatus, now: datetime, action: str
    ) -> None:
        status = self.status_of(row, now)
        if not can_transition(status, target):
            raise NotActive(
                f"Reservation {row.id} cannot be {action} while {status.value}",
                status=status.value,
            )

    def _apply(self, row: ReservationDB, action: str, expected: dict, values: dict) -> None:
        if not self.repo.compare_and_set(row.id, expected, values):
            fresh = self.repo.get_row(row.id)
            status = self.status_of(fresh).value if fresh is not None else "missing"
            raise NotActive(
                f"Reservation {row.id} changed before it could be {action} (now {status})",
                status=status,
            )

    def _reload(self, reservation_id: int, now: datetime) -> Reservation:
        return self.repo.to_model(self.repo.get_row(reservation_id), now)
