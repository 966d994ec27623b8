"""
Tests for recurrence generation and transaction conversion.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.models.finance import (
    ObligationStatus,
    RecurrencePattern,
    Transaction,
    TransactionType,
)
from src.models.requests import BatchSeriesParams, RecurringBillRequest, SeriesFrequency
from src.scheduling import (
    build_batch_series,
    can_convert_to_recurring,
    convert_transaction_to_scheduled,
    default_recurring_request,
    next_due_date,
    preview_due_dates,
)


class TestNextDueDate:
    """Tests for next_due_date."""

    def test_monthly_from_31st_clamps_to_month_end(self):
        """Test Jan 31 lands on the last day of each following month."""
        base = date(2024, 1, 31)
        dates = [next_due_date(base, RecurrencePattern.MONTHLY, 1, i) for i in range(1, 4)]
        assert dates == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]

    def test_monthly_from_31st_non_leap_year(self):
        """Test February clamps to the 28th outside leap years."""
        assert next_due_date(date(2023, 1, 31), RecurrencePattern.MONTHLY, 1, 1) == date(2023, 2, 28)

    def test_monthly_does_not_drift_after_short_month(self):
        """Test the day is restored after a clamped month."""
        base = date(2024, 1, 30)
        assert next_due_date(base, RecurrencePattern.MONTHLY, 1, 1) == date(2024, 2, 29)
        assert next_due_date(base, RecurrencePattern.MONTHLY, 1, 2) == date(2024, 3, 30)

    def test_monthly_with_interval(self):
        """Test quarterly spacing."""
        assert next_due_date(date(2024, 1, 15), RecurrencePattern.MONTHLY, 3, 2) == date(2024, 7, 15)

    def test_weekly(self):
        """Test weekly steps are 7 * interval days."""
        assert next_due_date(date(2024, 1, 1), RecurrencePattern.WEEKLY, 2, 1) == date(2024, 1, 15)

    def test_custom_days(self):
        """Test custom steps are interval days."""
        assert next_due_date(date(2024, 1, 1), RecurrencePattern.CUSTOM, 10, 3) == date(2024, 1, 31)

    def test_once_never_advances(self):
        """Test ONCE always returns the base date."""
        assert next_due_date(date(2024, 1, 1), RecurrencePattern.ONCE, 1, 5) == date(2024, 1, 1)

    def test_index_zero_is_base(self):
        """Test occurrence 0 is the base date."""
        assert next_due_date(date(2024, 5, 31), RecurrencePattern.MONTHLY, 1, 0) == date(2024, 5, 31)

    def test_negative_index_rejected(self):
        """Test negative occurrence index raises."""
        with pytest.raises(ValueError):
            next_due_date(date(2024, 1, 1), RecurrencePattern.MONTHLY, 1, -1)

    @pytest.mark.parametrize("interval", [0, -1])
    def test_interval_below_one_rejected(self, interval):
        """Test repeating patterns need an interval of at least 1."""
        with pytest.raises(ValueError):
            next_due_date(date(2024, 1, 31), RecurrencePattern.MONTHLY, interval, 1)
        with pytest.raises(ValueError):
            preview_due_dates(date(2024, 1, 31), RecurrencePattern.WEEKLY, interval, 3)

    def test_once_ignores_interval(self):
        """Test ONCE never looks at the interval."""
        assert next_due_date(date(2024, 1, 31), RecurrencePattern.ONCE, 0, 2) == date(2024, 1, 31)


class TestPreviewDueDates:
    """Tests for preview_due_dates."""

    def test_preview_count(self):
        """Test preview returns `count` dates."""
        dates = preview_due_dates(date(2024, 1, 15), RecurrencePattern.MONTHLY, 1, 3)
        assert dates == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15)]

    def test_preview_stops_at_end_date(self):
        """Test dates beyond the end date are dropped."""
        dates = preview_due_dates(
            date(2024, 1, 15),
            RecurrencePattern.MONTHLY,
            1,
            12,
            end_date=date(2024, 3, 20),
        )
        assert dates == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15)]

    def test_preview_once(self):
        """Test ONCE previews only the base date."""
        assert preview_due_dates(date(2024, 1, 15), RecurrencePattern.ONCE, 1, 5) == [date(2024, 1, 15)]

    def test_preview_zero_count(self):
        """Test a zero count previews nothing."""
        assert preview_due_dates(date(2024, 1, 15), RecurrencePattern.MONTHLY, 1, 0) == []

    def test_preview_matches_generator(self):
        """Test preview and next_due_date agree."""
        base = date(2024, 1, 31)
        dates = preview_due_dates(base, RecurrencePattern.MONTHLY, 1, 6)
        assert dates == [next_due_date(base, RecurrencePattern.MONTHLY, 1, i) for i in range(6)]


class TestBuildBatchSeries:
    """Tests for batch cheque series expansion."""

    @pytest.fixture
    def params(self):
        return BatchSeriesParams(
            merchant="Landlord",
            amount=Decimal("25000"),
            account_id="acc-main",
            first_due_date=date(2024, 1, 15),
            frequency=SeriesFrequency.MONTHLY,
            interval=1,
            number_of_cheques=6,
            starting_cheque_number=1001,
            cheque_images=["img-1", "img-2"],
        )

    def test_six_monthly_cheques(self, params):
        """Test 6 obligations with increasing monthly due dates."""
        series = build_batch_series(params)
        assert len(series) == 6
        due_dates = [o.due_date for o in series]
        assert due_dates == sorted(due_dates)
        assert len(set(due_dates)) == 6
        assert due_dates[0] == date(2024, 1, 15)
        assert due_dates[-1] == date(2024, 6, 15)

    def test_shared_series_id(self, params):
        """Test every item shares one series ID."""
        series = build_batch_series(params)
        assert len({o.series_id for o in series}) == 1
        assert series[0].series_id is not None

    def test_cheque_numbers(self, params):
        """Test cheque numbers run from the starting number."""
        series = build_batch_series(params)
        assert [o.cheque_number for o in series] == [str(n) for n in range(1001, 1007)]

    def test_images_assigned_by_position(self, params):
        """Test fewer images than cheques leaves the rest empty."""
        series = build_batch_series(params)
        assert [o.cheque_image for o in series] == ["img-1", "img-2", None, None, None, None]

    def test_items_are_pending_one_time_cheques(self, params):
        """Test each item is a PENDING ONCE cheque with a position note."""
        series = build_batch_series(params)
        assert all(o.status == ObligationStatus.PENDING for o in series)
        assert all(o.recurrence_pattern == RecurrencePattern.ONCE for o in series)
        assert all(o.is_cheque for o in series)
        assert series[0].notes == "Cheque #1 of 6"
        assert series[5].notes == "Cheque #6 of 6"

    def test_without_cheque_numbers(self, params):
        """Test no starting number means no cheque numbers."""
        params = params.model_copy(update={"starting_cheque_number": None})
        assert all(o.cheque_number is None for o in build_batch_series(params))

    def test_explicit_series_id(self, params):
        """Test a caller-supplied series ID is used."""
        series = build_batch_series(params, series_id="series-1")
        assert {o.series_id for o in series} == {"series-1"}


class TestConversion:
    """Tests for turning a transaction into a recurring bill."""

    @pytest.fixture
    def rent(self):
        return Transaction(
            amount=Decimal("15000"),
            type=TransactionType.EXPENSE,
            date=date(2024, 1, 31),
            merchant="Landlord",
            category="Rent",
            account_id="acc-main",
        )

    def test_transfer_refused(self, rent):
        """Test transfers cannot become bills."""
        transfer = rent.model_copy(update={"type": TransactionType.TRANSFER})
        ok, reason = can_convert_to_recurring(transfer)
        assert ok is False
        assert "Transfer" in reason

    def test_orphaned_refused(self, rent):
        """Test a transaction without account cannot become a bill."""
        ok, reason = can_convert_to_recurring(rent.model_copy(update={"account_id": None}))
        assert ok is False
        assert "account" in reason

    def test_default_request(self, rent):
        """Test defaults: monthly, first due one month later."""
        request = default_recurring_request(rent)
        assert request.recurrence_pattern == RecurrencePattern.MONTHLY
        assert request.recurrence_interval == 1
        assert request.first_due_date == date(2024, 2, 29)

    def test_expense_becomes_obligation(self, rent):
        """Test conversion output."""
        obligation = convert_transaction_to_scheduled(rent, default_recurring_request(rent))
        assert obligation.type == TransactionType.OBLIGATION
        assert obligation.amount == Decimal("15000")
        assert obligation.account_id == "acc-main"
        assert obligation.due_date == date(2024, 2, 29)
        assert obligation.notes == "Created from transaction on 2024-01-31 - Landlord"

    def test_custom_notes_kept(self, rent):
        """Test explicit notes override the default."""
        request = RecurringBillRequest(
            first_due_date=date(2024, 3, 1),
            notes="Flat 4B",
        )
        assert convert_transaction_to_scheduled(rent, request).notes == "Flat 4B"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
