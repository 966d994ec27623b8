"""
Result Models

Everything the engine hands back to presentation code: validation reports,
lifecycle and pairing outcomes, match candidates, funding warnings and
reconciliation results.

IMPORTANT: None of these are errors. A refused operation is a result with
`success=False` and a reason the caller can show to the user.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.models.finance import Account, ScheduledTransaction, Transaction


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'out_of_range', 'duplicate_due_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
    obligation_id: Optional[str] = Field(
        default=None,
        description="Obligation the issue refers to, for series checks"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating a scheduling request or an obligation series.

    Errors block the request; warnings are data-integrity notices that
    travel with a successful operation.
    """

    validated_at: datetime = Field(default_factory=datetime.now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(issues=[*self.issues, *other.issues])


# =============================================================================
# LIFECYCLE OUTCOMES
# =============================================================================

class LifecycleOutcome(BaseModel):
    """Result of a single-obligation command (mark paid, skip, reinstate...)."""

    success: bool
    reason: Optional[str] = None
    obligation: Optional[ScheduledTransaction] = None


class PairingOutcome(BaseModel):
    """
    Result of confirming a transaction against an obligation.

    On refusal nothing was written.
    """

    success: bool
    reason: Optional[str] = None
    obligation: Optional[ScheduledTransaction] = None
    transaction_id: Optional[str] = None


class SeriesResult(BaseModel):
    """Obligations created by a series command plus the validation report."""

    series_id: Optional[str] = None
    obligations: list[ScheduledTransaction] = Field(default_factory=list)
    validation: ValidationResult = Field(default_factory=ValidationResult)

    @property
    def success(self) -> bool:
        return not self.validation.has_errors


class OverduePassResult(BaseModel):
    """What a status re-evaluation pass changed."""

    evaluated_on: date
    transitioned: list[ScheduledTransaction] = Field(default_factory=list)

    @property
    def changed_count(self) -> int:
        return len(self.transitioned)


# =============================================================================
# MATCHING MODELS
# =============================================================================

class MatchConfidence(str, Enum):
    """Confidence band derived from a total match score."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"


class MatchCandidate(BaseModel):
    """An obligation proposed for a newly imported transaction."""

    obligation: ScheduledTransaction
    score: int
    reasons: list[str] = Field(default_factory=list)
    confidence: MatchConfidence


class ChequePairingCandidate(BaseModel):
    """A transaction proposed for a chosen obligation (manual pairing)."""

    transaction: Transaction
    relevance_score: int
    reasons: list[str] = Field(default_factory=list)
    confidence: MatchConfidence


class PairingSummary(BaseModel):
    """Candidate counts per confidence band."""

    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    none: int = 0


class ChequeMatchResult(BaseModel):
    """Outcome of matching a statement cheque line by cheque number."""

    matched_obligation: Optional[ScheduledTransaction] = None
    confidence: MatchConfidence = MatchConfidence.NONE
    match_reason: Optional[str] = None
    mismatch_warning: Optional[str] = None


class ChequeMatchSummary(BaseModel):
    """Aggregate over a batch of cheque matches."""

    total: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    no_match: int = 0
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return self.low_confidence > 0 or self.no_match > 0


# =============================================================================
# PROJECTION & RECONCILIATION MODELS
# =============================================================================

class InsufficientFundsWarning(BaseModel):
    """Upcoming obligations would push the account below zero."""

    account_id: str
    account_name: str
    current_balance: Decimal
    upcoming_obligations: Decimal
    shortage: Decimal
    affected_obligations: list[ScheduledTransaction] = Field(default_factory=list)
    days_until_first: int = Field(ge=0)


class DriftSeverity(str, Enum):
    """How far a stored balance is from the recomputed one."""
    NONE = "none"
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class ReconciliationAction(str, Enum):
    """What the user chose to do about a drift."""
    ACCEPT_COMPUTED = "accept_computed"
    KEEP_STORED = "keep_stored"
    REVIEW_TRANSACTIONS = "review_transactions"


class ReconciliationResult(BaseModel):
    """
    Stored vs recomputed balance for one account.

    `drift` is the magnitude; `difference` keeps the sign (stored - expected).
    """

    account_id: str
    ok: bool
    actual_balance: Decimal
    expected_balance: Decimal
    drift: Decimal = Decimal("0")
    difference: Decimal = Decimal("0")
    severity: DriftSeverity = DriftSeverity.NONE
    transaction_count: int = 0
    last_snapshot_transaction_id: Optional[str] = None


class ReconciliationResolution(BaseModel):
    """
    What applying the user's choice produces.

    The engine never writes these itself; the caller persists the updated
    account or the adjustment transaction.
    """

    action: ReconciliationAction
    account: Account
    adjustment_transaction: Optional[Transaction] = None
    needs_review: bool = False


class BalanceDifference(BaseModel):
    """A parsed balance disagrees with the balance implied by the ledger."""

    account_id: str
    calculated_balance: Decimal
    parsed_balance: Decimal
    difference: Decimal
