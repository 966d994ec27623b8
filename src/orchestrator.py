"""
Main Orchestrator for the Obligation Engine

This module ties the components together behind one facade and defines
the end-to-end flows for:
1. Scheduling (request -> validate -> create -> audit)
2. Pairing (transaction -> suggest -> user confirms -> re-check -> PAID)
3. Balance checks (obligations -> shortfall warnings; history -> drift)
4. Daily upkeep (midnight trigger -> overdue pass)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No pairing without an explicit confirmation
- No balance is ever overwritten; the user picks how drift is resolved
- Every state change is audited

Time is always injectable (`today=`) so every flow is deterministic.
"""

from datetime import date
from typing import Optional, Union
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.audit.logger import configure_log_level
from src.config import EngineSettings, get_settings, validate_all_settings
from src.lifecycle import ObligationService
from src.matching import MatchingEngine
from src.models.audit import AuditEventBuilder
from src.models.finance import (
    Account,
    AccountReassignment,
    ScheduledTransaction,
    Transaction,
)
from src.models.requests import (
    BatchSeriesParams,
    RecurringBillRequest,
    ScheduleRequest,
)
from src.models.results import (
    ChequeMatchResult,
    ChequeMatchSummary,
    ChequePairingCandidate,
    InsufficientFundsWarning,
    LifecycleOutcome,
    MatchCandidate,
    OverduePassResult,
    PairingOutcome,
    ReconciliationAction,
    ReconciliationResolution,
    ReconciliationResult,
    SeriesResult,
    ValidationResult,
)
from src.projection import all_insufficient_funds_warnings
from src.queries import ObligationViews
from src.reconciliation import BalanceReconciler
from src.scheduling import DailyTrigger, preview_due_dates
from src.services.storage import (
    InMemoryAuditStorage,
    InMemoryObligationStorage,
    InMemoryTransactionStorage,
    ObligationStorageInterface,
    TransactionStorageInterface,
)
from src.validation import ScheduleValidator


class ObligationEngine:
    """
    Facade over scheduling, lifecycle, matching, projection and
    reconciliation.

    Transactions and accounts are snapshots owned by the host app. Methods
    that need transactions read them from the transaction store unless a
    list is passed in.
    """

    def __init__(
        self,
        obligation_storage: ObligationStorageInterface,
        transaction_storage: Optional[TransactionStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._settings = settings or get_settings().engine
        self._obligations = obligation_storage
        self._transactions = transaction_storage
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger("obligations.engine")

        self.validator = ScheduleValidator()
        self.lifecycle = ObligationService(
            obligation_storage,
            audit_logger=audit_logger,
            settings=self._settings,
            validator=self.validator,
        )
        self.matcher = MatchingEngine(self._settings, audit_logger)
        self.reconciler = BalanceReconciler(self._settings)
        self.views = ObligationViews(obligation_storage)

    def _audit(self, event) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)

    def _transaction_snapshot(
        self,
        transactions: Optional[list[Transaction]],
    ) -> list[Transaction]:
        if transactions is not None:
            return transactions
        if self._transactions is None:
            raise ValueError("No transaction store configured; pass transactions explicitly")
        return self._transactions.list_all()

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def schedule(
        self,
        request: ScheduleRequest,
    ) -> tuple[Optional[ScheduledTransaction], ValidationResult]:
        return self.lifecycle.create_obligation(request)

    def create_batch_series(self, params: BatchSeriesParams) -> SeriesResult:
        return self.lifecycle.create_batch_series(params)

    def add_cheque(self, series_id: str, due_date: date, **kwargs) -> SeriesResult:
        return self.lifecycle.add_cheque(series_id, due_date, **kwargs)

    def schedule_from_transaction(
        self,
        transaction: Transaction,
        request: Optional[RecurringBillRequest] = None,
    ) -> tuple[Optional[ScheduledTransaction], ValidationResult]:
        return self.lifecycle.schedule_from_transaction(transaction, request)

    def preview(self, request: ScheduleRequest, count: Optional[int] = None) -> list[date]:
        """
        Due dates a request would produce, without creating anything.

        A request that schedule() would reject previews nothing.
        """
        if self.validator.validate_schedule_request(request).has_errors:
            return []
        return preview_due_dates(
            request.due_date,
            request.recurrence_pattern,
            request.recurrence_interval,
            count if count is not None else self._settings.default_preview_count,
            end_date=request.recurrence_end_date,
        )

    def validate_series(self, series_id: str) -> ValidationResult:
        return self.validator.validate_series(self.views.by_series(series_id))

    def suggest_next_in_series(self, series_id: str) -> tuple[Optional[str], Optional[date]]:
        """(next cheque number, next due date) for adding to a series."""
        members = self.views.by_series(series_id)
        return (
            self.validator.suggest_next_cheque_number(members),
            self.validator.suggest_next_due_date(members),
        )

    def delete_series(self, series_id: str) -> int:
        return self.lifecycle.delete_series(series_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def mark_paid(self, obligation_id: str, cleared_date: Optional[date] = None) -> LifecycleOutcome:
        return self.lifecycle.mark_paid(obligation_id, cleared_date)

    def skip(self, obligation_id: str, notes: Optional[str] = None) -> LifecycleOutcome:
        return self.lifecycle.skip(obligation_id, notes)

    def reinstate(self, obligation_id: str) -> LifecycleOutcome:
        return self.lifecycle.reinstate(obligation_id)

    def refresh_statuses(self, today: Optional[date] = None) -> OverduePassResult:
        """Overdue pass over every stored obligation."""
        return self.lifecycle.refresh_overdue(today)

    def create_daily_trigger(self) -> DailyTrigger:
        """
        Midnight trigger running the overdue pass.

        Not started; the host owns start() and stop().
        """
        return DailyTrigger(
            "overdue_pass",
            self.refresh_statuses,
            audit_logger=self._audit_logger,
        )

    # -------------------------------------------------------------------------
    # Matching
    # -------------------------------------------------------------------------

    def find_matches(self, transaction: Transaction) -> list[MatchCandidate]:
        everything = self._obligations.list_all()
        return self.matcher.find_matches(transaction, everything)

    def suggest_match(self, transaction: Transaction) -> Optional[MatchCandidate]:
        """Best obligation for a new transaction. The user still has to confirm."""
        everything = self._obligations.list_all()
        return self.matcher.suggest_match(transaction, everything)

    def pairing_candidates(
        self,
        obligation_id: str,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[ChequePairingCandidate]:
        obligation = self._obligations.get(obligation_id)
        if obligation is None:
            return []
        return self.matcher.find_pairing_candidates(
            obligation,
            self._transaction_snapshot(transactions),
            self._obligations.list_all(),
        )

    def confirm_pairing(
        self,
        obligation_id: str,
        transaction: Union[Transaction, str],
    ) -> PairingOutcome:
        """
        Confirm a pairing chosen by the user; accepts a transaction or its ID.

        With a transaction store configured, the stored copy is always
        re-read, so edits made after the suggestion are seen by the check.
        """
        transaction_id = transaction if isinstance(transaction, str) else transaction.id
        if self._transactions is not None:
            transaction = self._transactions.get(transaction_id)
        elif isinstance(transaction, str):
            transaction = None
        if transaction is None:
            return PairingOutcome(
                success=False,
                reason=f"Transaction not found: {transaction_id}",
                transaction_id=transaction_id,
            )
        return self.lifecycle.confirm_pairing(obligation_id, transaction)

    def match_statement_cheques(
        self,
        transactions: list[Transaction],
    ) -> tuple[dict[int, ChequeMatchResult], ChequeMatchSummary]:
        results = self.matcher.batch_match_cheques(transactions, self._obligations.list_all())
        return results, self.matcher.cheque_match_summary(results)

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    def insufficient_funds(
        self,
        accounts: list[Account],
        today: Optional[date] = None,
        horizon_days: Optional[int] = None,
    ) -> list[InsufficientFundsWarning]:
        warnings = all_insufficient_funds_warnings(
            accounts,
            self._obligations.list_all(),
            horizon_days=horizon_days,
            today=today,
        )
        correlation_id = create_correlation_id()
        for warning in warnings:
            self._audit(AuditEventBuilder.insufficient_funds(
                account_id=warning.account_id,
                shortage=str(warning.shortage),
                obligation_count=len(warning.affected_obligations),
                correlation_id=correlation_id,
            ))
        return warnings

    def reconcile(
        self,
        accounts: list[Account],
        transactions: Optional[list[Transaction]] = None,
    ) -> dict[str, ReconciliationResult]:
        """Reconciliation result for every account, drifting or not."""
        results = self.reconciler.reconcile_all(
            accounts,
            self._transaction_snapshot(transactions),
            include_ok=True,
        )
        correlation_id = create_correlation_id()
        for result in results.values():
            if result.ok:
                continue
            self._audit(AuditEventBuilder.reconciliation_drift(
                account_id=result.account_id,
                expected=str(result.expected_balance),
                actual=str(result.actual_balance),
                severity=result.severity.value,
                correlation_id=correlation_id,
            ))
        return results

    def resolve_reconciliation(
        self,
        account: Account,
        result: ReconciliationResult,
        action: ReconciliationAction,
        today: Optional[date] = None,
    ) -> ReconciliationResolution:
        """
        Apply the user's choice. The caller persists the returned account
        or adjustment transaction.
        """
        resolution = self.reconciler.resolve(account, result, action, today)
        self._audit(AuditEventBuilder.reconciliation_resolved(
            account_id=account.id,
            action=action.value,
        ))
        return resolution

    def reassign_accounts(
        self,
        command: AccountReassignment,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """Hand an account reassignment to the transaction store."""
        if self._transactions is None:
            raise ValueError("No transaction store configured")
        moved = self._transactions.apply_reassignment(command)
        self._logger.info(
            "accounts_reassigned",
            source=command.source_account_id,
            target=command.target_account_id,
            moved=moved,
        )
        self._audit(AuditEventBuilder.accounts_reassigned(
            source_account_id=command.source_account_id,
            target_account_id=command.target_account_id,
            moved=moved,
            correlation_id=correlation_id,
        ))
        return moved


def create_engine(
    obligation_storage: Optional[ObligationStorageInterface] = None,
    transaction_storage: Optional[TransactionStorageInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> ObligationEngine:
    """
    Factory function to create a fully wired engine.

    Any store not supplied is created in memory. Also checks the settings
    and applies the configured log level.

    Raises:
        ValueError: if any settings group fails validation
    """
    checks = validate_all_settings()
    failed = {name: error for name, error in checks.items() if name.endswith("_error")}
    if failed:
        raise ValueError(f"Invalid settings: {failed}")
    configure_log_level()
    return ObligationEngine(
        obligation_storage=obligation_storage or InMemoryObligationStorage(),
        transaction_storage=transaction_storage or InMemoryTransactionStorage(),
        audit_logger=audit_logger or AuditLogger(InMemoryAuditStorage()),
    )
