"""Lending policy consumed by the reservation state machine."""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from .config import RESERVATION_PERIODS, ServerConfig, get_config
from .errors import InvalidReservationPeriod


class LendingPolicy(BaseModel):
    """
    Immutable snapshot of the lending rules.

    Built once per service from :class:`ServerConfig` so a configuration
    reload never changes the rules in the middle of a transaction.
    """

    model_config = ConfigDict(frozen=True)

    allowed_reservation_days: tuple[int, ...] = Field(default=RESERVATION_PERIODS)
    max_renewals: int = Field(default=1, ge=0)
    max_active_reservations: int | None = Field(default=None, ge=1)
    due_soon_threshold_days: int = Field(default=7, ge=0)

    @classmethod
    def from_config(cls, config: ServerConfig | None = None) -> "LendingPolicy":
        config = config or get_config()
        return cls(
            allowed_reservation_days=config.allowed_reservation_days,
            max_renewals=config.max_renewals,
            max_active_reservations=config.max_active_reservations,
            due_soon_threshold_days=config.due_soon_threshold_days,
        )

    def validate_period(self, reservation_days: int) -> int:
        """Reject any reservation period the policy does not offer."""
        # bool is an int subclass; True must not sneak in as a 1-day loan
        if isinstance(reservation_days, bool) or reservation_days not in self.allowed_reservation_days:
            raise InvalidReservationPeriod(
                f"Reservation period must be one of {list(self.allowed_reservation_days)} days, "
                f"got {reservation_days!r}"
            )
        return reservation_days

    def due_date_for(self, start: datetime, reservation_days: int) -> datetime:
        return start + timedelta(days=reservation_days)

    def can_renew(self, renewal_count: int) -> bool:
        return renewal_count < self.max_renewals

    def exceeds_active_limit(self, outstanding: int) -> bool:
        """True when a member holding ``outstanding`` reservations may not take another."""
        if self.max_active_reservations is None:
            return False
        return outstanding >= self.max_active_reservations
