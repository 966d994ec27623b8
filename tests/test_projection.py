"""
Tests for the insufficient-funds projector.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from src.models.finance import Account, ObligationStatus
from src.projection import (
    all_insufficient_funds_warnings,
    check_insufficient_funds,
    upcoming_for_account,
)


@pytest.fixture
def small_account():
    return Account(id="acc-main", name="HDFC Savings", balance=Decimal("100.00"))


class TestInsufficientFunds:
    """Tests for check_insufficient_funds."""

    def test_exactly_covered_is_not_a_shortage(self, small_account, make_obligation, today):
        """Test a projected balance of exactly zero gives no warning."""
        obligation = make_obligation(amount=Decimal("100.00"), due_date=today + timedelta(days=5))
        assert check_insufficient_funds(small_account, [obligation], 30, today) is None

    def test_one_paisa_short(self, small_account, make_obligation, today):
        """Test the smallest shortage is reported with the days to the first bill."""
        obligation = make_obligation(amount=Decimal("100.01"), due_date=today + timedelta(days=5))
        warning = check_insufficient_funds(small_account, [obligation], 30, today)
        assert warning is not None
        assert warning.shortage == Decimal("0.01")
        assert warning.upcoming_obligations == Decimal("100.01")
        assert warning.days_until_first == 5
        assert [o.id for o in warning.affected_obligations] == [obligation.id]

    def test_negative_balance_without_obligations(self, today):
        """Test an already negative account with nothing scheduled gets no warning."""
        card = Account(id="acc-card", name="Amex", balance=Decimal("-5000"))
        assert check_insufficient_funds(card, [], 30, today) is None

    def test_due_today_counts(self, small_account, make_obligation, today):
        """Test an obligation due today is included with zero days to go."""
        warning = check_insufficient_funds(
            small_account,
            [make_obligation(amount=Decimal("150"), due_date=today)],
            30,
            today,
        )
        assert warning.days_until_first == 0

    def test_sum_of_several_obligations(self, small_account, make_obligation, today):
        """Test obligations are summed and listed by due date."""
        later = make_obligation(amount=Decimal("60"), due_date=today + timedelta(days=20))
        sooner = make_obligation(amount=Decimal("60"), due_date=today + timedelta(days=2))
        warning = check_insufficient_funds(small_account, [later, sooner], 30, today)
        assert warning.shortage == Decimal("20")
        assert [o.id for o in warning.affected_obligations] == [sooner.id, later.id]
        assert warning.days_until_first == 2


class TestUpcomingFilter:
    """Tests for which obligations count as upcoming."""

    def test_filters(self, small_account, make_obligation, today):
        """Test horizon, account, status and past-due filters."""
        keep = make_obligation(due_date=today + timedelta(days=30))
        obligations = [
            keep,
            make_obligation(due_date=today + timedelta(days=31)),
            make_obligation(due_date=today - timedelta(days=1)),
            make_obligation(account_id="acc-other"),
            make_obligation(status=ObligationStatus.OVERDUE),
            make_obligation(status=ObligationStatus.PAID),
            make_obligation(status=ObligationStatus.SKIPPED),
        ]
        upcoming = upcoming_for_account(small_account, obligations, today, 30)
        assert [o.id for o in upcoming] == [keep.id]

    def test_horizon_from_settings(self, small_account, make_obligation, today):
        """Test the default horizon is 30 days."""
        obligation = make_obligation(amount=Decimal("500"), due_date=today + timedelta(days=30))
        assert check_insufficient_funds(small_account, [obligation], today=today) is not None


class TestAllAccounts:
    """Tests for all_insufficient_funds_warnings."""

    def test_only_short_accounts_reported(self, small_account, make_obligation, today):
        """Test one warning per short account."""
        rich = Account(id="acc-rich", name="Savings", balance=Decimal("100000"))
        obligations = [
            make_obligation(amount=Decimal("500"), due_date=today + timedelta(days=3)),
            make_obligation(amount=Decimal("500"), account_id="acc-rich", due_date=today + timedelta(days=3)),
        ]
        warnings = all_insufficient_funds_warnings([small_account, rich], obligations, 30, today)
        assert [w.account_id for w in warnings] == ["acc-main"]
        assert warnings[0].account_name == "HDFC Savings"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
