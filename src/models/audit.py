"""
Audit Models for the Obligation Engine

Every state change the engine makes is recorded as an audit event:
1. Obligations created, paid, skipped, reinstated or made overdue
2. Pairings confirmed or refused (with the reason)
3. Reconciliation drift found and how the user resolved it
4. Funding warnings and scheduler runs

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Scheduling
    OBLIGATION_CREATED = "obligation_created"
    SERIES_CREATED = "series_created"
    SERIES_DELETED = "series_deleted"
    SCHEDULE_REJECTED = "schedule_rejected"

    # Lifecycle
    STATUS_CHANGED = "status_changed"
    OVERDUE_PASS_COMPLETED = "overdue_pass_completed"
    OBLIGATION_REINSTATED = "obligation_reinstated"
    TRANSITION_REFUSED = "transition_refused"

    # Matching
    MATCH_SUGGESTED = "match_suggested"
    PAIRING_CONFIRMED = "pairing_confirmed"
    PAIRING_REFUSED = "pairing_refused"

    # Balances
    INSUFFICIENT_FUNDS_DETECTED = "insufficient_funds_detected"
    RECONCILIATION_DRIFT_DETECTED = "reconciliation_drift_detected"
    RECONCILIATION_RESOLVED = "reconciliation_resolved"
    ACCOUNTS_REASSIGNED = "accounts_reassigned"

    # Scheduler
    DAILY_TASK_COMPLETED = "daily_task_completed"
    DAILY_TASK_SKIPPED = "daily_task_skipped"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'obligation', 'series', 'account')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one batch series creation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.obligation_created(obligation_id, merchant, due_date)
        event = AuditEventBuilder.pairing_confirmed(obligation_id, transaction_id)
    """

    @staticmethod
    def obligation_created(
        obligation_id: str,
        merchant: str,
        amount: str,
        due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OBLIGATION_CREATED,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Obligation scheduled: {merchant} - {amount} due {due_date}",
            details={
                "merchant": merchant,
                "amount": amount,
                "due_date": due_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def series_created(
        series_id: str,
        merchant: str,
        count: int,
        warning_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SERIES_CREATED,
            severity=AuditSeverity.WARNING if warning_count else AuditSeverity.INFO,
            entity_type="series",
            entity_id=series_id,
            correlation_id=correlation_id,
            description=f"Series created: {count} obligations for {merchant}",
            details={
                "merchant": merchant,
                "count": count,
                "warning_count": warning_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def series_deleted(
        series_id: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SERIES_DELETED,
            entity_type="series",
            entity_id=series_id,
            correlation_id=correlation_id,
            description=f"Series deleted ({count} obligations)",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def schedule_rejected(
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEDULE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="request",
            correlation_id=correlation_id,
            description=f"Scheduling request rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def status_changed(
        obligation_id: str,
        old_status: str,
        new_status: str,
        is_user_action: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATUS_CHANGED,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Status changed: {old_status} -> {new_status}",
            details={
                "old_status": old_status,
                "new_status": new_status,
            },
            is_user_action=is_user_action,
        )

    @staticmethod
    def overdue_pass_completed(
        evaluated_on: str,
        changed_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OVERDUE_PASS_COMPLETED,
            correlation_id=correlation_id,
            description=f"Overdue pass on {evaluated_on}: {len(changed_ids)} obligations now overdue",
            details={
                "evaluated_on": evaluated_on,
                "changed_ids": changed_ids,
            },
        )

    @staticmethod
    def obligation_reinstated(
        skipped_id: str,
        new_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OBLIGATION_REINSTATED,
            entity_type="obligation",
            entity_id=new_id,
            correlation_id=correlation_id,
            description="Skipped obligation re-created as pending",
            details={"skipped_id": skipped_id},
            is_user_action=True,
        )

    @staticmethod
    def transition_refused(
        obligation_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSITION_REFUSED,
            severity=AuditSeverity.WARNING,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Status change refused: {reason}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def match_suggested(
        transaction_id: str,
        obligation_id: str,
        score: int,
        confidence: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MATCH_SUGGESTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Suggested obligation {obligation_id} (score {score}, {confidence})",
            details={
                "obligation_id": obligation_id,
                "score": score,
                "confidence": confidence,
            },
        )

    @staticmethod
    def pairing_confirmed(
        obligation_id: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAIRING_CONFIRMED,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description="Transaction paired with obligation",
            details={"transaction_id": transaction_id},
            is_user_action=True,
        )

    @staticmethod
    def pairing_refused(
        obligation_id: str,
        transaction_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAIRING_REFUSED,
            severity=AuditSeverity.WARNING,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Pairing refused: {reason}",
            details={
                "transaction_id": transaction_id,
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def insufficient_funds(
        account_id: str,
        shortage: str,
        obligation_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSUFFICIENT_FUNDS_DETECTED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Upcoming obligations exceed balance by {shortage}",
            details={
                "shortage": shortage,
                "obligation_count": obligation_count,
            },
        )

    @staticmethod
    def reconciliation_drift(
        account_id: str,
        expected: str,
        actual: str,
        severity: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_DRIFT_DETECTED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance drift ({severity}): stored {actual}, computed {expected}",
            details={
                "expected_balance": expected,
                "actual_balance": actual,
                "drift_severity": severity,
            },
        )

    @staticmethod
    def reconciliation_resolved(
        account_id: str,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_RESOLVED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Reconciliation resolved: {action}",
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def accounts_reassigned(
        source_account_id: str,
        target_account_id: str,
        moved: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_REASSIGNED,
            entity_type="account",
            entity_id=target_account_id,
            correlation_id=correlation_id,
            description=f"Moved {moved} transactions from {source_account_id}",
            details={
                "source_account_id": source_account_id,
                "moved": moved,
            },
            is_user_action=True,
        )

    @staticmethod
    def daily_task(
        task_name: str,
        ran: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.DAILY_TASK_COMPLETED
                if ran
                else AuditEventType.DAILY_TASK_SKIPPED
            ),
            entity_type="task",
            entity_id=task_name,
            description=(
                f"Daily task completed: {task_name}"
                if ran
                else f"Daily task already running, skipped: {task_name}"
            ),
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
