"""
Tests for the obligation state machine and lifecycle service.
"""

import threading
import pytest
from datetime import date, timedelta
from decimal import Decimal

from src.lifecycle import (
    InvalidTransitionError,
    ObligationService,
    ObligationStateError,
    apply_overdue,
    can_transition,
    reinstated_copy,
    transition,
)
from src.models.audit import AuditEventType
from src.models.finance import (
    ObligationStatus,
    RecurrencePattern,
    TransactionType,
)
from src.models.requests import BatchSeriesParams, ScheduleRequest


class TestStateMachine:
    """Tests for allowed transitions."""

    @pytest.mark.parametrize("current,target,allowed", [
        (ObligationStatus.PENDING, ObligationStatus.PAID, True),
        (ObligationStatus.PENDING, ObligationStatus.OVERDUE, True),
        (ObligationStatus.PENDING, ObligationStatus.SKIPPED, True),
        (ObligationStatus.OVERDUE, ObligationStatus.PAID, True),
        (ObligationStatus.OVERDUE, ObligationStatus.SKIPPED, True),
        (ObligationStatus.OVERDUE, ObligationStatus.PENDING, False),
        (ObligationStatus.PAID, ObligationStatus.PENDING, False),
        (ObligationStatus.PAID, ObligationStatus.SKIPPED, False),
        (ObligationStatus.SKIPPED, ObligationStatus.PENDING, False),
        (ObligationStatus.SKIPPED, ObligationStatus.PAID, False),
    ])
    def test_can_transition(self, current, target, allowed):
        """Test the transition table."""
        assert can_transition(current, target) is allowed

    def test_transition_returns_updated_copy(self, make_obligation):
        """Test transition leaves the input untouched."""
        obligation = make_obligation()
        paid = transition(obligation, ObligationStatus.PAID, cleared_date=date(2024, 3, 9))
        assert paid.status == ObligationStatus.PAID
        assert paid.cleared_date == date(2024, 3, 9)
        assert obligation.status == ObligationStatus.PENDING

    def test_invalid_transition_raises(self, make_obligation):
        """Test a terminal status cannot move."""
        paid = make_obligation(status=ObligationStatus.PAID)
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(paid, ObligationStatus.PENDING)
        assert isinstance(exc_info.value, ObligationStateError)
        assert exc_info.value.current == ObligationStatus.PAID


class TestOverduePass:
    """Tests for apply_overdue."""

    def test_past_due_pending_becomes_overdue(self, make_obligation, today):
        """Test only PENDING obligations due before today change."""
        late = make_obligation(due_date=today - timedelta(days=1))
        due_today = make_obligation(due_date=today)
        paid_late = make_obligation(due_date=today - timedelta(days=5), status=ObligationStatus.PAID)
        skipped_late = make_obligation(due_date=today - timedelta(days=5), status=ObligationStatus.SKIPPED)

        changed = apply_overdue([late, due_today, paid_late, skipped_late], today)

        assert [o.id for o in changed] == [late.id]
        assert changed[0].status == ObligationStatus.OVERDUE

    def test_pass_is_idempotent(self, make_obligation, today):
        """Test running the pass twice equals running it once."""
        obligations = [
            make_obligation(due_date=today - timedelta(days=3)),
            make_obligation(due_date=today + timedelta(days=3)),
            make_obligation(due_date=today - timedelta(days=40)),
        ]
        changed = {o.id: o for o in apply_overdue(obligations, today)}
        once = [changed.get(o.id, o) for o in obligations]

        assert apply_overdue(once, today) == []
        assert [o.status for o in once] == [
            ObligationStatus.OVERDUE,
            ObligationStatus.PENDING,
            ObligationStatus.OVERDUE,
        ]


class TestReinstate:
    """Tests for the undo-skip copy."""

    def test_reinstated_copy_is_new_pending_record(self, make_obligation):
        """Test a new ID and PENDING status."""
        skipped = make_obligation(status=ObligationStatus.SKIPPED, notes="skip this month")
        fresh = reinstated_copy(skipped)
        assert fresh.id != skipped.id
        assert fresh.status == ObligationStatus.PENDING
        assert fresh.due_date == skipped.due_date
        assert skipped.status == ObligationStatus.SKIPPED

    def test_only_skipped_can_be_reinstated(self, make_obligation):
        """Test reinstating a PENDING obligation raises."""
        with pytest.raises(ObligationStateError):
            reinstated_copy(make_obligation())


class TestObligationServiceCreation:
    """Tests for creating obligations through the service."""

    def test_create_obligation(self, service, obligation_storage, audit_storage):
        """Test a valid request is stored and audited."""
        obligation, report = service.create_obligation(ScheduleRequest(
            merchant="BESCOM",
            amount=Decimal("1200"),
            account_id="acc-main",
            due_date=date(2024, 4, 5),
            recurrence_pattern=RecurrencePattern.MONTHLY,
        ))
        assert report.is_valid
        assert obligation_storage.get(obligation.id) == obligation
        event_types = [e.event_type for e in audit_storage.get_recent_events()]
        assert AuditEventType.OBLIGATION_CREATED in event_types

    def test_missing_due_date_rejected(self, service, obligation_storage):
        """Test nothing is stored for an invalid request."""
        obligation, report = service.create_obligation(ScheduleRequest(
            merchant="BESCOM",
            amount=Decimal("1200"),
        ))
        assert obligation is None
        assert report.errors[0].field == "due_date"
        assert obligation_storage.list_all() == []

    def test_create_batch_series(self, service, obligation_storage):
        """Test a batch series is stored in full."""
        result = service.create_batch_series(BatchSeriesParams(
            merchant="Landlord",
            amount=Decimal("25000"),
            account_id="acc-main",
            first_due_date=date(2024, 1, 15),
            number_of_cheques=6,
            starting_cheque_number=1001,
        ))
        assert result.success
        assert result.validation.warnings == []
        stored = obligation_storage.list_by_series(result.series_id)
        assert len(stored) == 6
        assert sorted(o.cheque_number for o in stored) == [str(n) for n in range(1001, 1007)]

    def test_invalid_batch_creates_nothing(self, service, obligation_storage):
        """Test an invalid batch is refused before any write."""
        result = service.create_batch_series(BatchSeriesParams(
            merchant="Landlord",
            amount=Decimal("25000"),
            first_due_date=date(2024, 1, 15),
            number_of_cheques=0,
        ))
        assert result.success is False
        assert result.series_id is None
        assert obligation_storage.list_all() == []

    def test_add_cheque_with_duplicate_number_warns(self, service, obligation_storage):
        """Test a duplicate cheque number is a warning and the cheque is still added."""
        series = service.create_batch_series(BatchSeriesParams(
            merchant="Landlord",
            amount=Decimal("25000"),
            account_id="acc-main",
            first_due_date=date(2024, 1, 15),
            number_of_cheques=3,
            starting_cheque_number=1001,
        ))
        result = service.add_cheque(series.series_id, date(2024, 4, 15), cheque_number="1002")

        assert result.success
        issue_types = {w.issue_type for w in result.validation.warnings}
        assert "duplicate_cheque_number" in issue_types
        added = result.obligations[0]
        assert added.merchant == "Landlord"
        assert added.amount == Decimal("25000")
        assert len(obligation_storage.list_by_series(series.series_id)) == 4

    def test_add_cheque_with_duplicate_date_warns(self, service):
        """Test a duplicate due date is a warning."""
        series = service.create_batch_series(BatchSeriesParams(
            merchant="Landlord",
            amount=Decimal("25000"),
            first_due_date=date(2024, 1, 15),
            number_of_cheques=3,
        ))
        result = service.add_cheque(series.series_id, date(2024, 2, 15))
        assert result.success
        assert "duplicate_due_date" in {w.issue_type for w in result.validation.warnings}

    def test_add_cheque_unknown_series(self, service):
        """Test adding to a missing series is refused."""
        result = service.add_cheque("no-such-series", date(2024, 4, 15))
        assert result.success is False
        assert result.validation.errors[0].issue_type == "not_found"

    def test_schedule_from_transaction(self, service, make_transaction, obligation_storage):
        """Test converting an expense into a monthly bill."""
        tx = make_transaction(date=date(2024, 1, 31))
        obligation, report = service.schedule_from_transaction(tx)
        assert report.is_valid
        assert obligation.type == TransactionType.OBLIGATION
        assert obligation.due_date == date(2024, 2, 29)
        assert obligation_storage.get(obligation.id) is not None

    def test_schedule_from_transfer_refused(self, service, make_transaction):
        """Test transfers are refused with a reason."""
        obligation, report = service.schedule_from_transaction(
            make_transaction(type=TransactionType.TRANSFER)
        )
        assert obligation is None
        assert report.errors[0].issue_type == "not_convertible"

    def test_delete_series(self, service, obligation_storage, audit_storage):
        """Test deleting a whole series."""
        series = service.create_batch_series(BatchSeriesParams(
            merchant="Landlord",
            amount=Decimal("100"),
            first_due_date=date(2024, 1, 15),
            number_of_cheques=4,
        ))
        assert service.delete_series(series.series_id) == 4
        assert obligation_storage.list_all() == []
        assert audit_storage.get_recent_events(1)[0].event_type == AuditEventType.SERIES_DELETED


class TestObligationServiceStatus:
    """Tests for status commands."""

    def test_mark_paid(self, service, obligation_storage, make_obligation):
        """Test manual mark-paid."""
        obligation = obligation_storage.upsert(make_obligation())
        outcome = service.mark_paid(obligation.id, cleared_date=date(2024, 3, 9))
        assert outcome.success
        stored = obligation_storage.get(obligation.id)
        assert stored.status == ObligationStatus.PAID
        assert stored.cleared_date == date(2024, 3, 9)
        assert stored.matched_transaction_id is None

    def test_skip_after_paid_refused(self, service, obligation_storage, make_obligation, audit_storage):
        """Test a refused transition returns a reason and writes nothing."""
        obligation = obligation_storage.upsert(make_obligation(status=ObligationStatus.PAID))
        outcome = service.skip(obligation.id)
        assert outcome.success is False
        assert "PAID" in outcome.reason
        assert obligation_storage.get(obligation.id).status == ObligationStatus.PAID
        assert audit_storage.get_recent_events(1)[0].event_type == AuditEventType.TRANSITION_REFUSED

    def test_unknown_obligation(self, service):
        """Test commands on a missing obligation are refused."""
        outcome = service.mark_paid("missing")
        assert outcome.success is False
        assert "not found" in outcome.reason

    def test_skip_then_reinstate(self, service, obligation_storage, make_obligation):
        """Test undo-skip creates a new PENDING record beside the skipped one."""
        obligation = obligation_storage.upsert(make_obligation())
        assert service.skip(obligation.id, notes="Paid in cash").success

        outcome = service.reinstate(obligation.id)
        assert outcome.success
        assert outcome.obligation.id != obligation.id
        assert outcome.obligation.status == ObligationStatus.PENDING
        assert obligation_storage.get(obligation.id).status == ObligationStatus.SKIPPED
        assert len(obligation_storage.list_all()) == 2

    def test_reinstate_requires_skipped(self, service, obligation_storage, make_obligation):
        """Test only SKIPPED obligations can be reinstated."""
        obligation = obligation_storage.upsert(make_obligation())
        outcome = service.reinstate(obligation.id)
        assert outcome.success is False
        assert len(obligation_storage.list_all()) == 1

    def test_refresh_overdue_twice(self, service, obligation_storage, make_obligation, today):
        """Test the second pass changes nothing."""
        late = obligation_storage.upsert(make_obligation(due_date=today - timedelta(days=2)))
        obligation_storage.upsert(make_obligation(due_date=today + timedelta(days=2)))

        first = service.refresh_overdue(today)
        second = service.refresh_overdue(today)

        assert [o.id for o in first.transitioned] == [late.id]
        assert second.changed_count == 0
        assert obligation_storage.get(late.id).status == ObligationStatus.OVERDUE


class TestConfirmPairing:
    """Tests for the locked check-then-set."""

    def test_confirm_sets_paid_and_link(self, service, obligation_storage, make_obligation, make_transaction):
        """Test a confirmed pairing marks the obligation PAID."""
        obligation = obligation_storage.upsert(make_obligation())
        tx = make_transaction(date=date(2024, 3, 12))

        outcome = service.confirm_pairing(obligation.id, tx)

        assert outcome.success
        stored = obligation_storage.get(obligation.id)
        assert stored.status == ObligationStatus.PAID
        assert stored.matched_transaction_id == tx.id
        assert stored.cleared_date == date(2024, 3, 12)

    def test_overdue_obligation_can_be_paired(self, service, obligation_storage, make_obligation, make_transaction):
        """Test OVERDUE obligations are still payable."""
        obligation = obligation_storage.upsert(make_obligation(status=ObligationStatus.OVERDUE))
        assert service.confirm_pairing(obligation.id, make_transaction()).success

    def test_no_double_pairing(self, service, obligation_storage, make_obligation, make_transaction, audit_storage):
        """Test a transaction cannot pay two obligations."""
        first = obligation_storage.upsert(make_obligation())
        second = obligation_storage.upsert(make_obligation())
        tx = make_transaction()

        assert service.confirm_pairing(first.id, tx).success
        outcome = service.confirm_pairing(second.id, tx)

        assert outcome.success is False
        assert "already paired" in outcome.reason
        assert obligation_storage.get(second.id).status == ObligationStatus.PENDING
        assert audit_storage.get_recent_events(1)[0].event_type == AuditEventType.PAIRING_REFUSED

    def test_paid_obligation_refused(self, service, obligation_storage, make_obligation, make_transaction):
        """Test an obligation paid in the meantime is refused."""
        obligation = obligation_storage.upsert(make_obligation(status=ObligationStatus.PAID))
        outcome = service.confirm_pairing(obligation.id, make_transaction())
        assert outcome.success is False
        assert "PAID" in outcome.reason

    def test_account_mismatch_refused(self, service, obligation_storage, make_obligation, make_transaction):
        """Test accounts must agree when both are set."""
        obligation = obligation_storage.upsert(make_obligation())
        outcome = service.confirm_pairing(obligation.id, make_transaction(account_id="acc-other"))
        assert outcome.success is False
        assert outcome.reason == "Account mismatch"

    def test_income_refused(self, service, obligation_storage, make_obligation, make_transaction):
        """Test only EXPENSE or OBLIGATION transactions can pay an obligation."""
        obligation = obligation_storage.upsert(make_obligation())
        outcome = service.confirm_pairing(obligation.id, make_transaction(type=TransactionType.INCOME))
        assert outcome.success is False

    def test_outside_window_refused(self, service, obligation_storage, make_obligation, make_transaction, today):
        """Test transactions more than 30 days from the due date are refused."""
        obligation = obligation_storage.upsert(make_obligation())
        outcome = service.confirm_pairing(
            obligation.id,
            make_transaction(date=today + timedelta(days=31)),
        )
        assert outcome.success is False

    def test_concurrent_confirmations_claim_once(self, obligation_storage, make_obligation, make_transaction):
        """Test two threads racing for one transaction: exactly one wins."""
        service = ObligationService(obligation_storage)
        obligations = [obligation_storage.upsert(make_obligation()) for _ in range(2)]
        tx = make_transaction()
        barrier = threading.Barrier(2)
        outcomes = []

        def confirm(obligation_id):
            barrier.wait()
            outcomes.append(service.confirm_pairing(obligation_id, tx))

        threads = [threading.Thread(target=confirm, args=(o.id,)) for o in obligations]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(o.success for o in outcomes) == [False, True]
        linked = [o for o in obligation_storage.list_all() if o.matched_transaction_id == tx.id]
        assert len(linked) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
