"""
Data Models Package

This package contains all Pydantic models used by the obligation engine.
All data flowing through the engine must conform to these schemas.
"""

from src.models.finance import (
    Account,
    AccountReassignment,
    AccountType,
    ObligationStatus,
    ParsedMeta,
    RecurrencePattern,
    ScheduledTransaction,
    Transaction,
    TransactionType,
    new_id,
)
from src.models.requests import (
    BatchSeriesParams,
    RecurringBillRequest,
    ScheduleRequest,
    SeriesFrequency,
)
from src.models.results import (
    BalanceDifference,
    ChequeMatchResult,
    ChequeMatchSummary,
    ChequePairingCandidate,
    DriftSeverity,
    InsufficientFundsWarning,
    LifecycleOutcome,
    MatchCandidate,
    MatchConfidence,
    OverduePassResult,
    PairingOutcome,
    PairingSummary,
    ReconciliationAction,
    ReconciliationResolution,
    ReconciliationResult,
    SeriesResult,
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "Account",
    "AccountReassignment",
    "AccountType",
    "ObligationStatus",
    "ParsedMeta",
    "RecurrencePattern",
    "ScheduledTransaction",
    "Transaction",
    "TransactionType",
    "new_id",
    # Requests
    "BatchSeriesParams",
    "RecurringBillRequest",
    "ScheduleRequest",
    "SeriesFrequency",
    # Results
    "BalanceDifference",
    "ChequeMatchResult",
    "ChequeMatchSummary",
    "ChequePairingCandidate",
    "DriftSeverity",
    "InsufficientFundsWarning",
    "LifecycleOutcome",
    "MatchCandidate",
    "MatchConfidence",
    "OverduePassResult",
    "PairingOutcome",
    "PairingSummary",
    "ReconciliationAction",
    "ReconciliationResolution",
    "ReconciliationResult",
    "SeriesResult",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
