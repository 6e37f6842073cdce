"""
Error taxonomy for the lending core.

Every failure the core can report is a :class:`LendingError` subclass with a
stable ``code``. The MCP tool layer turns these into error responses; nothing
here is fatal to the process.

- Validation errors: bad input, rejected before the ledger is touched
- Policy errors: business-rule violations, never retried automatically
- Contention errors: no copy left, expected under load
- Not-found / ownership errors: client errors
- Conflict errors: a transition the reservation's status does not allow
"""


class LendingError(Exception):
    """Base exception for the lending core."""

    code = "lending_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self)


# === Validation ===


class LendingValidationError(LendingError):
    """Request failed validation."""

    code = "validation_error"


class InvalidReservationPeriod(LendingValidationError):
    """Reservation period must be 7, 14 or 21 days."""

    code = "invalid_reservation_period"


# === Policy ===


class PolicyViolation(LendingError):
    """Request violates lending policy."""

    code = "policy_violation"


class UserBlacklisted(PolicyViolation):
    """User is blacklisted and may not reserve books."""

    code = "user_blacklisted"


class TooManyActiveReservations(PolicyViolation):
    """User already holds the maximum number of active reservations."""

    code = "too_many_active_reservations"


class RenewalLimitReached(PolicyViolation):
    """Reservation has already been renewed the maximum number of times."""

    code = "renewal_limit_reached"


# === Contention ===


class ContentionError(LendingError):
    """A contended resource was not available."""

    code = "contention"


class NoCopiesAvailable(ContentionError):
    """No copies of this book are available."""

    code = "no_copies_available"


# === Not found / ownership ===


class NotFoundError(LendingError):
    """Entity not found."""

    code = "not_found"


class BookNotFound(NotFoundError):
    """Book not found."""

    code = "book_not_found"


class ReservationNotFound(NotFoundError):
    """Reservation not found."""

    code = "reservation_not_found"


class UserNotFound(NotFoundError):
    """User not found."""

    code = "user_not_found"


class OwnershipError(LendingError):
    """Caller may not act on this entity."""

    code = "forbidden"


class NotOwner(OwnershipError):
    """Reservation belongs to another user."""

    code = "not_owner"


# === Conflict ===


class ConflictError(LendingError):
    """Request conflicts with the current state."""

    code = "conflict"


class NotActive(ConflictError):
    """Reservation is not in a state that allows this operation."""

    code = "not_active"

    def __init__(self, message: str | None = None, status: str | None = None):
        super().__init__(message)
        self.status = status


# === Persistence ===


class PersistenceError(LendingError):
    """The transaction could not be completed and was rolled back."""

    code = "persistence_error"
