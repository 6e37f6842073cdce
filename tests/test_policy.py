"""Tests for lending policy rules."""

from datetime import datetime

import pytest

from library_lending.errors import InvalidReservationPeriod
from library_lending.policy import LendingPolicy


class TestReservationPeriod:
    @pytest.mark.parametrize("days", [7, 14, 21])
    def test_allowed_periods(self, days):
        assert LendingPolicy().validate_period(days) == days

    @pytest.mark.parametrize("days", [0, 1, 6, 8, 15, 28, -7, True])
    def test_other_periods_rejected(self, days):
        with pytest.raises(InvalidReservationPeriod) as exc_info:
            LendingPolicy().validate_period(days)
        assert exc_info.value.code == "invalid_reservation_period"

    def test_restricted_policy_rejects_unoffered_period(self):
        policy = LendingPolicy(allowed_reservation_days=(7, 14))
        with pytest.raises(InvalidReservationPeriod):
            policy.validate_period(21)

    def test_due_date_is_start_plus_period(self):
        start = datetime(2025, 1, 30, 9, 15)
        assert LendingPolicy().due_date_for(start, 7) == datetime(2025, 2, 6, 9, 15)


class TestLimits:
    def test_default_allows_one_renewal(self):
        policy = LendingPolicy()
        assert policy.can_renew(0) is True
        assert policy.can_renew(1) is False

    def test_zero_renewals(self):
        assert LendingPolicy(max_renewals=0).can_renew(0) is False

    def test_unbounded_active_reservations_by_default(self):
        assert LendingPolicy().exceeds_active_limit(10_000) is False

    def test_active_limit(self):
        policy = LendingPolicy(max_active_reservations=2)
        assert policy.exceeds_active_limit(1) is False
        assert policy.exceeds_active_limit(2) is True
