"""
Obligation Lifecycle Service

The only writer of obligation status and `matched_transaction_id`.

DESIGN DECISION: Every command follows the same shape:
1. Re-read the record from storage (never trust the caller's copy)
2. Ask the pure state machine for the new record
3. Upsert, audit, and return an outcome

Commands never raise for refused operations. A refusal is an outcome with
`success=False` and a reason, and nothing is written.

Pairing confirmation is the one check-then-set in the engine: "is this
transaction already paired elsewhere?" and the write happen under one lock,
so two concurrent confirmations cannot claim the same transaction.
"""

import threading
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from src.audit.logger import AuditLogger, create_correlation_id
from src.config import EngineSettings, get_settings
from src.lifecycle.state import (
    InvalidTransitionError,
    ObligationStateError,
    apply_overdue,
    reinstated_copy,
    transition,
)
from src.matching.eligibility import check_pairing
from src.models.audit import AuditEventBuilder
from src.models.finance import (
    ObligationStatus,
    ScheduledTransaction,
    Transaction,
)
from src.models.requests import (
    BatchSeriesParams,
    RecurringBillRequest,
    ScheduleRequest,
)
from src.models.results import (
    LifecycleOutcome,
    OverduePassResult,
    PairingOutcome,
    SeriesResult,
    ValidationIssue,
    ValidationResult,
)
from src.scheduling.conversion import (
    can_convert_to_recurring,
    convert_transaction_to_scheduled,
    default_recurring_request,
)
from src.scheduling.recurrence import build_batch_series
from src.services.storage import ObligationStorageInterface
from src.validation import ScheduleValidator


class ObligationService:
    """
    Creates obligations and moves them through their lifecycle.

    Usage:
        service = ObligationService(InMemoryObligationStorage())
        obligation, report = service.create_obligation(request)
        outcome = service.confirm_pairing(obligation.id, transaction)
    """

    def __init__(
        self,
        storage: ObligationStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
        validator: Optional[ScheduleValidator] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().engine
        self._validator = validator or ScheduleValidator()
        self._logger = structlog.get_logger("obligations.lifecycle")
        self.lock = threading.RLock()

    @property
    def storage(self) -> ObligationStorageInterface:
        return self._storage

    def _audit(self, event) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)

    def _reject(self, validation: ValidationResult, correlation_id: UUID) -> None:
        self._logger.info("schedule_rejected", errors=validation.error_count)
        self._audit(AuditEventBuilder.schedule_rejected(
            issues=[issue.model_dump() for issue in validation.errors],
            correlation_id=correlation_id,
        ))

    def _created(self, obligation: ScheduledTransaction, correlation_id: UUID) -> None:
        self._audit(AuditEventBuilder.obligation_created(
            obligation_id=obligation.id,
            merchant=obligation.merchant,
            amount=str(obligation.amount),
            due_date=obligation.due_date.isoformat(),
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_obligation(
        self,
        request: ScheduleRequest,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[ScheduledTransaction], ValidationResult]:
        """
        Validate and store a single obligation.

        Returns:
            (obligation or None if rejected, validation report)
        """
        correlation_id = correlation_id or create_correlation_id()
        validation = self._validator.validate_schedule_request(request)
        if validation.has_errors:
            self._reject(validation, correlation_id)
            return None, validation

        now = datetime.now()
        obligation = ScheduledTransaction(
            amount=request.amount,
            currency=request.currency,
            merchant=request.merchant,
            category=request.category,
            type=request.type,
            account_id=request.account_id,
            due_date=request.due_date,
            recurrence_pattern=request.recurrence_pattern,
            recurrence_interval=request.recurrence_interval,
            recurrence_end_date=request.recurrence_end_date,
            is_cheque=request.is_cheque,
            cheque_number=request.cheque_number,
            cheque_image=request.cheque_image,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )
        self._storage.upsert(obligation)
        self._created(obligation, correlation_id)
        return obligation, validation

    def create_batch_series(
        self,
        params: BatchSeriesParams,
        correlation_id: Optional[UUID] = None,
    ) -> SeriesResult:
        """Validate and store a batch series of ONCE obligations."""
        correlation_id = correlation_id or create_correlation_id()
        validation = self._validator.validate_batch_params(params)
        if validation.has_errors:
            self._reject(validation, correlation_id)
            return SeriesResult(validation=validation)

        obligations = build_batch_series(params)
        series_id = obligations[0].series_id
        for obligation in obligations:
            self._storage.upsert(obligation)

        validation = validation.merge(self._validator.validate_series(obligations))
        self._logger.info(
            "series_created",
            series_id=series_id,
            count=len(obligations),
        )
        self._audit(AuditEventBuilder.series_created(
            series_id=series_id,
            merchant=params.merchant,
            count=len(obligations),
            warning_count=len(validation.warnings),
            correlation_id=correlation_id,
        ))
        return SeriesResult(
            series_id=series_id,
            obligations=obligations,
            validation=validation,
        )

    def add_cheque(
        self,
        series_id: str,
        due_date: date,
        cheque_number: Optional[str] = None,
        amount: Optional[Decimal] = None,
        cheque_image: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SeriesResult:
        """
        Append one cheque to an existing series.

        Copies payee, currency and account from the series. Duplicate dates
        or cheque numbers are reported as warnings; the cheque is still added.
        """
        correlation_id = correlation_id or create_correlation_id()
        members = self._storage.list_by_series(series_id)
        if not members:
            return SeriesResult(
                series_id=series_id,
                validation=ValidationResult(issues=[ValidationIssue(
                    field="series_id",
                    issue_type="not_found",
                    message=f"Series not found: {series_id}",
                    severity="error",
                )]),
            )

        template = min(members, key=lambda o: o.due_date)
        now = datetime.now()
        cheque = ScheduledTransaction(
            amount=amount if amount is not None else template.amount,
            currency=template.currency,
            merchant=template.merchant,
            category=template.category,
            type=template.type,
            account_id=template.account_id,
            due_date=due_date,
            series_id=series_id,
            is_cheque=True,
            cheque_number=cheque_number,
            cheque_image=cheque_image,
            notes=f"Cheque added to series ({len(members) + 1} total)",
            created_at=now,
            updated_at=now,
        )
        self._storage.upsert(cheque)
        self._created(cheque, correlation_id)

        validation = self._validator.validate_series([*members, cheque])
        return SeriesResult(
            series_id=series_id,
            obligations=[cheque],
            validation=validation,
        )

    def schedule_from_transaction(
        self,
        transaction: Transaction,
        request: Optional[RecurringBillRequest] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[ScheduledTransaction], ValidationResult]:
        """Turn an existing transaction into a recurring bill."""
        correlation_id = correlation_id or create_correlation_id()

        allowed, reason = can_convert_to_recurring(transaction)
        if not allowed:
            validation = ValidationResult(issues=[ValidationIssue(
                field="transaction",
                issue_type="not_convertible",
                message=reason,
                severity="error",
            )])
            self._reject(validation, correlation_id)
            return None, validation

        request = request or default_recurring_request(transaction)
        validation = self._validator.validate_recurring_request(request)
        if validation.has_errors:
            self._reject(validation, correlation_id)
            return None, validation

        obligation = convert_transaction_to_scheduled(transaction, request)
        self._storage.upsert(obligation)
        self._created(obligation, correlation_id)
        return obligation, validation

    def delete_series(
        self,
        series_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """Delete every member of a series. Explicit user action only."""
        with self.lock:
            members = self._storage.list_by_series(series_id)
            deleted = sum(1 for o in members if self._storage.delete(o.id))
        self._audit(AuditEventBuilder.series_deleted(
            series_id=series_id,
            count=deleted,
            correlation_id=correlation_id,
        ))
        return deleted

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    def _change_status(
        self,
        obligation_id: str,
        target: ObligationStatus,
        correlation_id: Optional[UUID],
        **updates,
    ) -> LifecycleOutcome:
        with self.lock:
            current = self._storage.get(obligation_id)
            if current is None:
                return LifecycleOutcome(
                    success=False,
                    reason=f"Obligation not found: {obligation_id}",
                )
            try:
                updated = transition(current, target, **updates)
            except InvalidTransitionError as e:
                self._audit(AuditEventBuilder.transition_refused(
                    obligation_id=obligation_id,
                    reason=str(e),
                    correlation_id=correlation_id,
                ))
                return LifecycleOutcome(success=False, reason=str(e), obligation=current)
            self._storage.upsert(updated)

        self._audit(AuditEventBuilder.status_changed(
            obligation_id=obligation_id,
            old_status=current.status.value,
            new_status=target.value,
            is_user_action=True,
            correlation_id=correlation_id,
        ))
        return LifecycleOutcome(success=True, obligation=updated)

    def mark_paid(
        self,
        obligation_id: str,
        cleared_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LifecycleOutcome:
        """Mark paid by hand, without linking a transaction."""
        return self._change_status(
            obligation_id,
            ObligationStatus.PAID,
            correlation_id,
            cleared_date=cleared_date or date.today(),
        )

    def skip(
        self,
        obligation_id: str,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LifecycleOutcome:
        updates = {"notes": notes} if notes is not None else {}
        return self._change_status(
            obligation_id,
            ObligationStatus.SKIPPED,
            correlation_id,
            **updates,
        )

    def reinstate(
        self,
        obligation_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LifecycleOutcome:
        """
        Undo a skip by creating a new PENDING copy.

        The SKIPPED record stays as it is.
        """
        with self.lock:
            skipped = self._storage.get(obligation_id)
            if skipped is None:
                return LifecycleOutcome(
                    success=False,
                    reason=f"Obligation not found: {obligation_id}",
                )
            try:
                fresh = reinstated_copy(skipped)
            except ObligationStateError as e:
                return LifecycleOutcome(success=False, reason=str(e), obligation=skipped)
            self._storage.upsert(fresh)

        self._audit(AuditEventBuilder.obligation_reinstated(
            skipped_id=obligation_id,
            new_id=fresh.id,
            correlation_id=correlation_id,
        ))
        return LifecycleOutcome(success=True, obligation=fresh)

    def confirm_pairing(
        self,
        obligation_id: str,
        transaction: Transaction,
        cleared_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PairingOutcome:
        """
        Link a transaction to an obligation and mark it PAID.

        Eligibility is checked again against the current stored state,
        under the service lock, right before the write.
        """
        with self.lock:
            current = self._storage.get(obligation_id)
            if current is None:
                reason = f"Obligation not found: {obligation_id}"
            else:
                reason = check_pairing(
                    transaction,
                    current,
                    self._storage.list_all(),
                    self._settings.match_window_days,
                )

            if reason is None:
                paired = transition(
                    current,
                    ObligationStatus.PAID,
                    matched_transaction_id=transaction.id,
                    cleared_date=cleared_date or transaction.date,
                )
                self._storage.upsert(paired)

        if reason is not None:
            self._logger.info(
                "pairing_refused",
                obligation_id=obligation_id,
                transaction_id=transaction.id,
                reason=reason,
            )
            self._audit(AuditEventBuilder.pairing_refused(
                obligation_id=obligation_id,
                transaction_id=transaction.id,
                reason=reason,
                correlation_id=correlation_id,
            ))
            return PairingOutcome(
                success=False,
                reason=reason,
                obligation=current,
                transaction_id=transaction.id,
            )

        self._audit(AuditEventBuilder.pairing_confirmed(
            obligation_id=obligation_id,
            transaction_id=transaction.id,
            correlation_id=correlation_id,
        ))
        self._audit(AuditEventBuilder.status_changed(
            obligation_id=obligation_id,
            old_status=current.status.value,
            new_status=ObligationStatus.PAID.value,
            is_user_action=True,
            correlation_id=correlation_id,
        ))
        return PairingOutcome(
            success=True,
            obligation=paired,
            transaction_id=transaction.id,
        )

    def refresh_overdue(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> OverduePassResult:
        """
        Move past-due PENDING obligations to OVERDUE.

        Safe to run repeatedly or concurrently; a second pass finds nothing
        left to change.
        """
        today = today or date.today()
        correlation_id = correlation_id or create_correlation_id()

        with self.lock:
            changed = apply_overdue(self._storage.list_all(), today)
            for obligation in changed:
                self._storage.upsert(obligation)

        for obligation in changed:
            self._audit(AuditEventBuilder.status_changed(
                obligation_id=obligation.id,
                old_status=ObligationStatus.PENDING.value,
                new_status=ObligationStatus.OVERDUE.value,
                is_user_action=False,
                correlation_id=correlation_id,
            ))
        self._audit(AuditEventBuilder.overdue_pass_completed(
            evaluated_on=today.isoformat(),
            changed_ids=[o.id for o in changed],
            correlation_id=correlation_id,
        ))
        return OverduePassResult(evaluated_on=today, transitioned=changed)
