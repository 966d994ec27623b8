"""
Balance Reconciler

Recomputes an account's balance from its transaction history and compares
it to the stored balance.

DESIGN DECISION: The recomputation is a reference fold, independent of
whatever incremental updates produced the stored value:

    running = opening_balance
    for tx in chronological order (date, time, id):
        running += amount if INCOME else -amount
        if tx carries a balance snapshot:
            running = snapshot          # the bank's figure wins

IMPORTANT: The reconciler never overwrites a balance. On drift it reports
both values; the user picks accept-computed, keep-stored or review, and
`resolve` returns the record(s) the caller should persist.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import structlog

from src.config import EngineSettings, get_settings
from src.models.finance import (
    Account,
    ParsedMeta,
    Transaction,
    TransactionType,
)
from src.models.results import (
    BalanceDifference,
    DriftSeverity,
    ReconciliationAction,
    ReconciliationResolution,
    ReconciliationResult,
)


UNKNOWN_CATEGORY = "Unknown"
ADJUSTMENT_MERCHANT = "Manual Balance Adjustment"
DISCREPANCY_MERCHANT = "Balance Discrepancy Detected"


def snapshot_balance(account: Account, meta: Optional[ParsedMeta]) -> Optional[Decimal]:
    """
    Balance implied by a parsed snapshot, or None if it cannot be used.

    Available balance is taken as-is. Available credit becomes debt
    `-(limit - available)`, which needs the account's credit limit.
    """
    if meta is None:
        return None
    if meta.available_balance is not None:
        return meta.available_balance
    if meta.available_credit is not None and account.total_credit_limit is not None:
        return -(account.total_credit_limit - meta.available_credit)
    return None


def signed_amount(transaction: Transaction) -> Decimal:
    if transaction.type == TransactionType.INCOME:
        return transaction.amount
    return -transaction.amount


def is_adjustment_transaction(transaction: Transaction) -> bool:
    """True for transactions the reconciler itself created."""
    return (
        transaction.category == UNKNOWN_CATEGORY
        or transaction.merchant in (ADJUSTMENT_MERCHANT, DISCREPANCY_MERCHANT)
    )


class BalanceReconciler:
    """
    Stored-vs-computed balance checks.

    Usage:
        reconciler = BalanceReconciler()
        result = reconciler.reconcile(account, transactions)
        if not result.ok:
            resolution = reconciler.resolve(account, result, action)
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_settings().engine
        self._logger = structlog.get_logger("obligations.reconciliation")

    # -------------------------------------------------------------------------
    # Computation
    # -------------------------------------------------------------------------

    def _account_history(
        self,
        account: Account,
        transactions: list[Transaction],
    ) -> list[Transaction]:
        return sorted(
            (t for t in transactions if t.account_id == account.id),
            key=lambda t: t.sort_key(),
        )

    def _fold(
        self,
        account: Account,
        history: list[Transaction],
    ) -> tuple[Decimal, Optional[str]]:
        running = account.opening_balance
        last_snapshot_id = None
        for transaction in history:
            running += signed_amount(transaction)
            anchored = snapshot_balance(account, transaction.parsed_meta)
            if anchored is not None:
                running = anchored
                last_snapshot_id = transaction.id
        return running, last_snapshot_id

    def compute_expected_balance(
        self,
        account: Account,
        transactions: list[Transaction],
    ) -> Decimal:
        """Balance implied by the account's history. Other accounts' rows are ignored."""
        expected, _ = self._fold(account, self._account_history(account, transactions))
        return expected

    def classify(self, drift: Decimal, stored: Decimal) -> DriftSeverity:
        """
        Severity of a drift magnitude against the stored balance.

        Percentages only apply when the stored balance is non-zero.
        """
        s = self._settings
        if drift < s.reconciliation_tolerance:
            return DriftSeverity.NONE

        percent = drift / abs(stored) * 100 if stored != 0 else None

        def over(amount: Decimal, pct: Decimal) -> bool:
            return drift > amount or (percent is not None and percent > pct)

        if over(s.drift_critical_amount, s.drift_critical_percent):
            return DriftSeverity.CRITICAL
        if over(s.drift_major_amount, s.drift_major_percent):
            return DriftSeverity.MAJOR
        return DriftSeverity.MINOR

    def compare(
        self,
        account_id: str,
        stored: Decimal,
        expected: Decimal,
        transaction_count: int = 0,
        last_snapshot_transaction_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """Compare two balances; differences below the tolerance are not drift."""
        difference = stored - expected
        drift = abs(difference)
        ok = drift < self._settings.reconciliation_tolerance
        return ReconciliationResult(
            account_id=account_id,
            ok=ok,
            actual_balance=stored,
            expected_balance=expected,
            drift=Decimal("0") if ok else drift,
            difference=Decimal("0") if ok else difference,
            severity=DriftSeverity.NONE if ok else self.classify(drift, stored),
            transaction_count=transaction_count,
            last_snapshot_transaction_id=last_snapshot_transaction_id,
        )

    def reconcile(
        self,
        account: Account,
        transactions: list[Transaction],
    ) -> ReconciliationResult:
        history = self._account_history(account, transactions)
        expected, snapshot_id = self._fold(account, history)
        result = self.compare(
            account.id,
            account.balance,
            expected,
            transaction_count=len(history),
            last_snapshot_transaction_id=snapshot_id,
        )
        if not result.ok:
            self._logger.info(
                "balance_drift",
                account_id=account.id,
                drift=str(result.drift),
                severity=result.severity.value,
            )
        return result

    def reconcile_all(
        self,
        accounts: list[Account],
        transactions: list[Transaction],
        include_ok: bool = False,
    ) -> dict[str, ReconciliationResult]:
        """Results keyed by account ID; accounts without drift are left out by default."""
        results = {}
        for account in accounts:
            result = self.reconcile(account, transactions)
            if include_ok or not result.ok:
                results[account.id] = result
        return results

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def create_adjustment_transaction(
        self,
        account: Account,
        expected: Decimal,
        today: Optional[date] = None,
    ) -> Transaction:
        """
        Transaction that brings the history in line with the stored balance.

        It carries the stored balance as a snapshot, so the fold re-anchors
        to it from that point on.
        """
        now = datetime.now()
        difference = account.balance - expected
        currency = account.currency
        return Transaction(
            amount=abs(difference),
            currency=currency,
            type=TransactionType.INCOME if difference > 0 else TransactionType.EXPENSE,
            date=today or now.date(),
            time=now.time().replace(microsecond=0),
            merchant=ADJUSTMENT_MERCHANT,
            category=UNKNOWN_CATEGORY,
            account_id=account.id,
            account_name=account.name,
            parsed_meta=ParsedMeta(available_balance=account.balance),
            raw_text=(
                f"Balance adjusted from {currency} {expected:.2f} "
                f"to {currency} {account.balance:.2f}"
            ),
        )

    def resolve(
        self,
        account: Account,
        result: ReconciliationResult,
        action: ReconciliationAction,
        today: Optional[date] = None,
    ) -> ReconciliationResolution:
        """
        Apply the user's choice for a drift.

        ACCEPT_COMPUTED     account copy with the computed balance
        KEEP_STORED         adjustment transaction, account unchanged
        REVIEW_TRANSACTIONS account unchanged, flagged for review
        """
        if action == ReconciliationAction.ACCEPT_COMPUTED:
            return ReconciliationResolution(
                action=action,
                account=account.model_copy(update={"balance": result.expected_balance}),
            )

        if action == ReconciliationAction.KEEP_STORED:
            adjustment = None
            if not result.ok:
                adjustment = self.create_adjustment_transaction(
                    account, result.expected_balance, today
                )
            return ReconciliationResolution(
                action=action,
                account=account,
                adjustment_transaction=adjustment,
            )

        return ReconciliationResolution(
            action=action,
            account=account,
            needs_review=True,
        )

    # -------------------------------------------------------------------------
    # Parsed balance check for a single incoming transaction
    # -------------------------------------------------------------------------

    def is_latest_for_account(
        self,
        transaction: Transaction,
        transactions: list[Transaction],
    ) -> bool:
        key = (transaction.date, transaction.sort_key()[1])
        return all(
            (other.date, other.sort_key()[1]) <= key
            for other in transactions
            if other.account_id == transaction.account_id and other.id != transaction.id
        )

    def detect_balance_difference(
        self,
        transaction: Transaction,
        current_balance: Decimal,
        transactions: list[Transaction],
    ) -> Optional[BalanceDifference]:
        """
        Compare a parsed "available balance" with the balance after applying
        the transaction.

        Only the latest transaction of its account is checked; a snapshot on
        a historical row says nothing about today's balance. TRANSFER rows
        do not move the computed balance here.
        """
        meta = transaction.parsed_meta
        if meta is None or meta.available_balance is None or not transaction.account_id:
            return None
        if not self.is_latest_for_account(transaction, transactions):
            return None

        calculated = current_balance
        if transaction.type == TransactionType.INCOME:
            calculated += transaction.amount
        elif transaction.type != TransactionType.TRANSFER:
            calculated -= transaction.amount

        difference = meta.available_balance - calculated
        if abs(difference) < self._settings.reconciliation_tolerance:
            return None

        return BalanceDifference(
            account_id=transaction.account_id,
            calculated_balance=calculated,
            parsed_balance=meta.available_balance,
            difference=difference,
        )

    def create_discrepancy_transaction(
        self,
        difference: BalanceDifference,
        account: Account,
        source: Transaction,
    ) -> Transaction:
        """Unknown-category transaction covering a detected balance difference."""
        currency = account.currency
        return Transaction(
            amount=abs(difference.difference),
            currency=currency,
            type=(
                TransactionType.INCOME
                if difference.difference > 0
                else TransactionType.EXPENSE
            ),
            date=source.date,
            time=source.time,
            merchant=DISCREPANCY_MERCHANT,
            category=UNKNOWN_CATEGORY,
            account_id=difference.account_id,
            account_name=account.name,
            parsed_meta=ParsedMeta(available_balance=difference.parsed_balance),
            raw_text=(
                f"Auto-created due to {currency} {abs(difference.difference):.2f} "
                f"difference between parsed balance ({difference.parsed_balance:.2f}) "
                f"and calculated balance ({difference.calculated_balance:.2f})"
            ),
        )
